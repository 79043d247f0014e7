from __future__ import annotations

import argparse
import json
import math
import re
import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from config import (
    ANTHROPIC_API_KEY,
    GOOGLE_AI_API_KEY,
    IMAGE_SERVICE_URL,
    IMAGES_ENABLED,
    OPENAI_API_KEY,
    PUBLISH_WEBHOOK_URL,
    SECTION_FALLBACK_WORKERS,
)
from domain.generation_policy import ContentLength, is_comparison_keyword, section_cap, tier_for
from domain.models import (
    ArticleRequest,
    GeneratedArticle,
    GenerationContext,
    ImageRef,
    Outline,
    OutlineSection,
    ResearchResult,
)
from domain.prompt_builder import (
    METADATA_SYSTEM_PROMPT,
    build_image_prompt,
    build_metadata_prompt,
    build_outline_prompt,
    build_system_prompt,
)
from draft_builder import build_draft
from helpers import count_words, get_image_style, slugify, title_case
from observability.logger import get_logger, log_stage
from postprocess import RepairContext, run_repair_pipeline
from ranking import Candidate, rank_candidates
from research import CitationChecker, run_research
from seo_optimizer import build_consolidated_links, optimize_seo, polish_tone
from services.images import ImagePipeline, build_image_pipeline
from services.llm_client import (
    PROVIDER_ANTHROPIC,
    PROVIDER_GEMINI,
    PROVIDER_OPENAI,
    ModelClient,
    ModelClientError,
    ProviderConfig,
    get_default_client,
)
from services.schemas import METADATA_SCHEMA, OUTLINE_SCHEMA

LOGGER = get_logger("articleforge.orchestrate")

MAX_TITLE_CHARS = 75
WORDS_PER_MINUTE = 200
METADATA_MAX_TOKENS = 4096
OUTLINE_MAX_TOKENS = 4096
PLACEHOLDER_POINTS = ("Cover the core concept", "Provide actionable advice")
FEATURED_IMAGE_WARNING = "featured_image_failed"
INLINE_IMAGE_WARNING = "inline_image_failed"

_HTTP_LINK_RE = re.compile(r"(?<!!)\[[^\]\n]+\]\(https?://[^)\s]+\)")
_H2_RE = re.compile(r"^##\s+(.+?)\s*$")
_PLAIN_TEXT_RE = re.compile(r"[#*\[\]()]")


class PipelineStage(str, Enum):
    RESEARCH = "research"
    OUTLINE = "outline"
    DRAFT = "draft"
    TONE = "tone"
    SEO = "seo"
    METADATA = "metadata"
    IMAGE = "image"


STAGES: Tuple[PipelineStage, ...] = tuple(PipelineStage)

STAGE_MESSAGES = {
    PipelineStage.RESEARCH: "Researched topic and competitor gaps",
    PipelineStage.OUTLINE: "Created article outline",
    PipelineStage.DRAFT: "Wrote first draft",
    PipelineStage.TONE: "Refined tone and style",
    PipelineStage.SEO: "Optimized for SEO",
    PipelineStage.METADATA: "Generated metadata",
    PipelineStage.IMAGE: "Generated images",
}

ProgressCallback = Callable[[Dict[str, Any]], None]


class StageError(RuntimeError):
    """Raised when a stage fails irrecoverably."""

    def __init__(self, stage: PipelineStage, message: str, *, status_code: int = 500) -> None:
        super().__init__(message)
        self.stage = stage
        self.status_code = status_code


@dataclass
class StageLogEntry:
    stage: PipelineStage
    started_at: float
    finished_at: Optional[float] = None
    notes: Dict[str, object] = field(default_factory=dict)
    status: str = "pending"


def progress_event(stage: PipelineStage, message: str, percentage: int) -> Dict[str, Any]:
    return {
        "step": stage.value,
        "stepIndex": STAGES.index(stage),
        "totalSteps": len(STAGES),
        "message": message,
        "percentage": percentage,
    }


def stage_percentage(stage: PipelineStage, *, done: bool = True) -> int:
    index = STAGES.index(stage) + (1 if done else 0)
    return round(index / len(STAGES) * 100)


def ensure_keyword_in_title(title: str, keyword: str) -> str:
    """Make the title carry the keyword, tolerating one missing word for long keywords."""

    title = title.strip()
    keyword_lower = keyword.strip().lower()
    title_lower = title.lower()
    if not keyword_lower or keyword_lower in title_lower:
        return title
    words = keyword_lower.split()
    if len(words) > 2 and sum(1 for word in words if word in title_lower) >= len(words) - 1:
        return title
    pretty = title_case(keyword.strip())
    suffixed = f"{title}: {pretty}"
    if len(suffixed) <= MAX_TITLE_CHARS:
        return suffixed
    prefixed = f"{pretty}: {title}"
    if len(prefixed) > MAX_TITLE_CHARS:
        return prefixed[: MAX_TITLE_CHARS - 3] + "..."
    return prefixed


def cap_content_sections(sections: Sequence[OutlineSection], cap: int) -> Tuple[OutlineSection, ...]:
    """Drop content sections past ``cap``; structural sections keep their place."""

    kept: List[OutlineSection] = []
    content = 0
    for section in sections:
        if section.is_structural:
            kept.append(section)
            continue
        if content < cap:
            kept.append(section)
            content += 1
    return tuple(kept)


def finalize_outline(payload: Dict[str, Any], keyword: str, length: ContentLength, *, today: date) -> Outline:
    title = str(payload.get("title") or "").strip()
    sections = [
        OutlineSection(
            heading=str(item.get("heading") or "").strip(),
            points=tuple(str(point).strip() for point in item.get("points") or [] if str(point).strip()),
        )
        for item in payload.get("sections") or []
        if isinstance(item, dict) and str(item.get("heading") or "").strip()
    ]
    if not title or not sections:
        raise StageError(PipelineStage.OUTLINE, "Outline generation returned no title or sections")
    if len(sections) < 2:
        sections.append(OutlineSection(heading=f"Understanding {keyword}", points=PLACEHOLDER_POINTS))

    last_year = str(today.year - 1)
    title = title.replace(last_year, str(today.year))
    title = ensure_keyword_in_title(title, keyword)
    capped = cap_content_sections(sections, section_cap(length))
    if len(capped) < len(sections):
        LOGGER.info(
            "outline_sections_capped",
            extra={"requested": len(sections), "kept": len(capped), "content_length": length.value},
        )
    return Outline(title=title, sections=capped, unique_angle=str(payload.get("uniqueAngle") or "").strip())


def count_http_links(text: str) -> int:
    return len(_HTTP_LINK_RE.findall(text))


def _plain_text(text: str) -> str:
    return " ".join(_PLAIN_TEXT_RE.sub("", text).split())


def fallback_metadata(keyword: str, ctx: GenerationContext, title: str, content: str) -> Dict[str, Any]:
    plain = _plain_text(content)
    niche = ctx.niche or "general"
    return {
        "title": title,
        "slug": slugify(title),
        "metaTitle": title[:60],
        "metaDescription": plain[:155],
        "excerpt": plain[:200],
        "secondaryKeywords": [],
        "tags": [niche],
        "category": niche,
        "twitterCaption": "",
        "linkedinCaption": "",
        "instagramCaption": "",
        "facebookCaption": "",
        "structuredData": {
            "@context": "https://schema.org",
            "@type": "Article",
            "headline": title,
            "author": {"@type": "Organization", "name": ctx.brand_name},
        },
        "featuredImageAlt": f"{keyword} - {title}",
    }


def inline_image_targets(headings: Sequence[str]) -> List[int]:
    """Indices of the H2 sections that receive an inline image."""

    if len(headings) >= 4:
        return [1, 3]
    if len(headings) >= 2:
        return [0, min(1, len(headings) - 1)]
    return []


def _h2_positions(lines: Sequence[str]) -> List[Tuple[int, str]]:
    positions: List[Tuple[int, str]] = []
    in_fence = False
    for index, line in enumerate(lines):
        if line.lstrip().startswith("```"):
            in_fence = not in_fence
            continue
        match = None if in_fence else _H2_RE.match(line)
        if match:
            positions.append((index, match.group(1)))
    return positions


def insert_after_first_paragraph(text: str, heading_index: int, image_markdown: str) -> str:
    """Insert ``image_markdown`` after the first paragraph of the ``heading_index``-th H2 section."""

    lines = text.split("\n")
    positions = _h2_positions(lines)
    if heading_index >= len(positions):
        return text
    start = positions[heading_index][0]
    end = positions[heading_index + 1][0] if heading_index + 1 < len(positions) else len(lines)
    cursor = start + 1
    while cursor < end and not lines[cursor].strip():
        cursor += 1
    if cursor >= end:
        return text
    while cursor < end and lines[cursor].strip():
        cursor += 1
    lines[cursor:cursor] = ["", image_markdown]
    return "\n".join(lines)


class ArticlePipeline:
    """research → outline → draft → tone → seo → metadata → image for one keyword."""

    def __init__(
        self,
        client: Optional[ModelClient] = None,
        *,
        provider: Optional[ProviderConfig] = None,
        image_pipeline: Optional[ImagePipeline] = None,
        citation_checker: Optional[CitationChecker] = None,
        progress_callback: Optional[ProgressCallback] = None,
        job_id: Optional[str] = None,
        today: Optional[date] = None,
        images_enabled: bool = IMAGES_ENABLED,
        max_workers: int = SECTION_FALLBACK_WORKERS,
    ) -> None:
        self.client = client or get_default_client()
        self.provider = provider or self.client.default_provider
        self.image_pipeline = image_pipeline
        self.citation_checker = citation_checker
        self.progress_callback = progress_callback
        self.job_id = job_id
        self.today = today or date.today()
        self.images_enabled = images_enabled
        self.max_workers = max_workers
        self.logs: List[StageLogEntry] = []
        self._percentage = 0

    # progress -------------------------------------------------------------

    def _report(self, stage: PipelineStage, message: str, *, done: bool = True) -> None:
        self._percentage = max(self._percentage, stage_percentage(stage, done=done))
        if self.progress_callback is not None:
            self.progress_callback(progress_event(stage, message, self._percentage))

    def _draft_progress(self, _step: str, message: str) -> None:
        self._report(PipelineStage.DRAFT, message, done=False)

    @contextmanager
    def _stage(self, stage: PipelineStage) -> Iterator[StageLogEntry]:
        entry = StageLogEntry(stage=stage, started_at=time.time())
        self.logs.append(entry)
        log_stage(LOGGER, job_id=self.job_id, stage=stage.value, status="started")
        try:
            yield entry
        except Exception:
            entry.status = "failed"
            entry.finished_at = time.time()
            log_stage(LOGGER, job_id=self.job_id, stage=stage.value, status="failed")
            raise
        entry.status = "ok"
        entry.finished_at = time.time()
        log_stage(
            LOGGER,
            job_id=self.job_id,
            stage=stage.value,
            status="finished",
            duration_ms=int((entry.finished_at - entry.started_at) * 1000),
            **entry.notes,
        )
        self._report(stage, STAGE_MESSAGES[stage])

    # stages ---------------------------------------------------------------

    def _outline(
        self,
        keyword: str,
        ctx: GenerationContext,
        request: ArticleRequest,
        research: ResearchResult,
        system_prompt: str,
        comparison: bool,
    ) -> Outline:
        tier = tier_for(request.content_length)
        prompt = build_outline_prompt(
            keyword,
            ctx,
            research,
            tier,
            research_context=research.to_prompt_context(),
            comparison=comparison,
            include_faq=request.include_faq,
            today=self.today,
        )
        payload = self.client.generate_json(
            prompt,
            system_prompt,
            schema=OUTLINE_SCHEMA,
            provider=self.provider,
            max_tokens=OUTLINE_MAX_TOKENS,
            label="outline",
        )
        return finalize_outline(payload, keyword, request.content_length, today=self.today)

    def _metadata(self, keyword: str, ctx: GenerationContext, title: str, content: str) -> Tuple[Dict[str, Any], bool]:
        try:
            payload = self.client.generate_json(
                build_metadata_prompt(keyword, ctx, content),
                METADATA_SYSTEM_PROMPT,
                schema=METADATA_SCHEMA,
                provider=self.provider,
                max_tokens=METADATA_MAX_TOKENS,
                label="metadata",
            )
        except ModelClientError as exc:
            LOGGER.warning("metadata_fallback", extra={"keyword": keyword, "error": str(exc)})
            return fallback_metadata(keyword, ctx, title, content), True
        merged = fallback_metadata(keyword, ctx, title, content)
        merged.update({key: value for key, value in payload.items() if value not in (None, "", [], {})})
        return merged, False

    def _images(
        self,
        images: ImagePipeline,
        keyword: str,
        ctx: GenerationContext,
        title: str,
        slug: str,
        content: str,
        warnings: List[str],
    ) -> Tuple[str, Optional[ImageRef], List[ImageRef]]:
        style = get_image_style(ctx.niche)
        featured: Optional[ImageRef] = None
        subject = (
            f'Create an image that directly represents the concept of "{keyword}" for a {ctx.niche or "general"} '
            f'business. The image should clearly relate to the article "{title}"'
        )
        try:
            url = images.generate_featured_image(
                build_image_prompt(subject, keyword, style), f"{slug}-featured", ctx.id
            )
            featured = ImageRef(url=url, alt=f"{keyword} - {title}")
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("featured_image_failed", extra={"slug": slug, "error": str(exc)})
            warnings.append(FEATURED_IMAGE_WARNING)

        headings = [heading for _, heading in _h2_positions(content.split("\n"))]
        targets = sorted(set(inline_image_targets(headings)), reverse=True)
        rendered: Dict[int, ImageRef] = {}
        for image_number, heading_index in enumerate(sorted(targets), start=1):
            heading = headings[heading_index]
            try:
                url = images.generate_inline_image(
                    build_image_prompt(f"An illustration for the section '{heading}'", keyword, style),
                    slug,
                    image_number,
                    ctx.id,
                )
            except Exception as exc:  # noqa: BLE001
                LOGGER.warning(
                    "inline_image_failed",
                    extra={"slug": slug, "heading": heading, "error": str(exc)},
                )
                warnings.append(INLINE_IMAGE_WARNING)
                continue
            rendered[heading_index] = ImageRef(url=url, alt=f"{heading} - {keyword}", heading=heading)
        # Bottom-up so earlier insertions do not shift later headings.
        for heading_index in targets:
            image = rendered.get(heading_index)
            if image is None:
                continue
            content = insert_after_first_paragraph(content, heading_index, f"![{image.alt}]({image.url})")
        inline = [rendered[index] for index in sorted(rendered)]
        return content, featured, inline

    # main entry -----------------------------------------------------------

    def run(self, request: ArticleRequest, ctx: GenerationContext) -> GeneratedArticle:
        keyword = request.keyword.strip()
        if not keyword:
            raise StageError(PipelineStage.RESEARCH, "Keyword is required", status_code=400)
        tier = tier_for(request.content_length)
        comparison = is_comparison_keyword(keyword)
        system_prompt = build_system_prompt(ctx, today=self.today)
        warnings: List[str] = []

        with self._stage(PipelineStage.RESEARCH) as entry:
            research = run_research(
                self.client,
                keyword,
                ctx,
                provider=self.provider,
                system_prompt=system_prompt,
                citation_checker=self.citation_checker,
            )
            entry.notes.update(degraded=research.degraded, citations=len(research.citations))
            if research.degraded:
                warnings.append("research_degraded")

        with self._stage(PipelineStage.OUTLINE) as entry:
            outline = self._outline(keyword, ctx, request, research, system_prompt, comparison)
            entry.notes.update(sections=len(outline.sections))
        headings = [section.heading for section in outline.content_sections]

        with self._stage(PipelineStage.DRAFT) as entry:
            draft = build_draft(
                self.client,
                keyword,
                ctx,
                outline,
                tier,
                request,
                research,
                provider=self.provider,
                system_prompt=system_prompt,
                comparison=comparison,
                progress=self._draft_progress,
                today=self.today,
                max_workers=self.max_workers,
            )
            entry.notes.update(words=draft.words, fallback=draft.used_fallback)

        with self._stage(PipelineStage.TONE) as entry:
            tone = polish_tone(
                self.client,
                ctx,
                draft.text,
                headings,
                provider=self.provider,
                system_prompt=system_prompt,
                include_pro_tips=request.include_pro_tips,
            )
            entry.notes.update(words=tone.words, fell_back=tone.fell_back)

        links = build_consolidated_links(ctx)
        with self._stage(PipelineStage.SEO) as entry:
            seo = optimize_seo(
                self.client,
                keyword,
                ctx,
                tone.text,
                headings,
                links,
                research.citations,
                provider=self.provider,
                system_prompt=system_prompt,
                tier=tier,
                include_faq=request.include_faq,
            )
            candidates = [
                Candidate("seo", seo.text, seo.words, seo.missing_sections, seo.cutoff),
                Candidate("tone", tone.text, tone.words, tone.missing_sections, tone.cutoff),
                Candidate.evaluate("draft", draft.text, headings, truncated=draft.truncated),
            ]
            ranked = rank_candidates(candidates)
            winner = ranked[0]
            LOGGER.info(
                "candidates_ranked",
                extra={
                    "winner": winner.label,
                    "ranking": [
                        {"label": c.label, "words": c.words, "missing": c.missing_sections, "cutoff": c.cutoff}
                        for c in ranked
                    ],
                },
            )
            repair_ctx = RepairContext(
                brand_name=ctx.brand_name,
                brand_url=ctx.brand_url,
                cta_url=ctx.cta_url,
                title=outline.title,
                consolidated_links=tuple(links),
                internal_links=ctx.internal_links,
                citations=research.citations,
                current_year=self.today.year,
                inject_links=not (winner.label == "seo" and count_http_links(winner.text) >= 3),
            )
            report = run_repair_pipeline(winner.text, repair_ctx)
            content = report.text
            entry.notes.update(winner=winner.label, repairs=sum(report.changes.values()))

        with self._stage(PipelineStage.METADATA) as entry:
            metadata, fell_back = self._metadata(keyword, ctx, outline.title, content)
            entry.notes.update(fallback=fell_back)
            if fell_back:
                warnings.append("metadata_fallback")
        slug = slugify(str(metadata.get("slug") or "")) or slugify(outline.title)

        featured: Optional[ImageRef] = None
        inline: List[ImageRef] = []
        with self._stage(PipelineStage.IMAGE) as entry:
            if request.include_images and self.images_enabled and self.image_pipeline is not None:
                content, featured, inline = self._images(
                    self.image_pipeline, keyword, ctx, outline.title, slug, content, warnings
                )
            elif request.include_images:
                LOGGER.warning("images_skipped", extra={"reason": "no image pipeline configured"})
            entry.notes.update(featured=featured is not None, inline=len(inline))

        words = count_words(content)
        return GeneratedArticle(
            title=outline.title,
            slug=slug,
            content=content,
            excerpt=str(metadata.get("excerpt") or ""),
            meta_title=str(metadata.get("metaTitle") or outline.title[:60]),
            meta_description=str(metadata.get("metaDescription") or ""),
            focus_keyword=keyword,
            secondary_keywords=[str(item) for item in metadata.get("secondaryKeywords") or []],
            tags=[str(item) for item in metadata.get("tags") or []],
            category=str(metadata.get("category") or ctx.niche),
            structured_data=dict(metadata.get("structuredData") or {}),
            social_captions={
                "twitter": str(metadata.get("twitterCaption") or ""),
                "linkedin": str(metadata.get("linkedinCaption") or ""),
                "instagram": str(metadata.get("instagramCaption") or ""),
                "facebook": str(metadata.get("facebookCaption") or ""),
            },
            word_count=words,
            reading_time=max(1, math.ceil(words / WORDS_PER_MINUTE)),
            featured_image=featured,
            featured_image_alt=str(metadata.get("featuredImageAlt") or f"{keyword} - {outline.title}"),
            inline_images=inline,
            research=research,
            warnings=warnings,
        )


def serialize_stage_logs(logs: Sequence[StageLogEntry]) -> List[Dict[str, Any]]:
    return [
        {
            "stage": entry.stage.value,
            "status": entry.status,
            "started_at": entry.started_at,
            "finished_at": entry.finished_at,
            "notes": dict(entry.notes),
        }
        for entry in logs
    ]


def request_from_payload(data: Dict[str, Any]) -> ArticleRequest:
    return ArticleRequest(
        keyword=str(data.get("keyword") or "").strip(),
        content_length=ContentLength.parse(data.get("contentLength")),
        include_images=bool(data.get("includeImages", True)),
        include_faq=bool(data.get("includeFAQ", True)),
        include_pro_tips=bool(data.get("includeProTips", True)),
        include_toc=bool(data.get("includeTableOfContents", True)),
        custom_direction=(str(data["customDirection"]).strip() or None) if data.get("customDirection") else None,
    )


def generate_article_from_payload(
    *,
    data: Dict[str, Any],
    context: Dict[str, Any],
    client: Optional[ModelClient] = None,
    model: Optional[str] = None,
    image_pipeline: Optional[ImagePipeline] = None,
    progress_callback: Optional[ProgressCallback] = None,
) -> Dict[str, Any]:
    provider = ProviderConfig.for_model(model) if model else None
    pipeline = ArticlePipeline(
        client,
        provider=provider,
        image_pipeline=image_pipeline,
        progress_callback=progress_callback,
    )
    article = pipeline.run(request_from_payload(data), GenerationContext.from_dict(context))
    return {"article": article.to_dict(), "stages": serialize_stage_logs(pipeline.logs)}


def _mask_key(raw_key: str) -> str:
    key = (raw_key or "").strip()
    if not key:
        return "****"
    if len(key) <= 4:
        return "*" * len(key)
    return f"{key[:2]}***{key[-4:]}"


def gather_health_status(provider: Optional[ProviderConfig] = None) -> Dict[str, Any]:
    checks: Dict[str, Dict[str, object]] = {}
    config = provider or ProviderConfig.from_env()
    key_names = {
        PROVIDER_GEMINI: ("GOOGLE_AI_API_KEY", GOOGLE_AI_API_KEY),
        PROVIDER_ANTHROPIC: ("ANTHROPIC_API_KEY", ANTHROPIC_API_KEY),
        PROVIDER_OPENAI: ("OPENAI_API_KEY", OPENAI_API_KEY),
    }
    env_name, env_key = key_names.get(config.provider, ("", ""))
    api_key = config.api_key or env_key
    if api_key:
        message = f"{config.provider}/{config.model} key found ({_mask_key(api_key)})"
    else:
        message = f"{env_name} is not set"
    checks["provider_key"] = {"ok": bool(api_key), "message": message}
    checks["image_pipeline"] = {
        "ok": True,
        "message": "configured" if IMAGE_SERVICE_URL and IMAGES_ENABLED else "disabled, images will be skipped",
    }
    checks["publish_hook"] = {
        "ok": True,
        "message": "webhook configured" if PUBLISH_WEBHOOK_URL else "no webhook, publish events are logged only",
    }
    ok = all(check.get("ok") is True for check in checks.values())
    return {"ok": ok, "checks": checks}


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate one article from a keyword")
    parser.add_argument("--context", help="Path to JSON generation context (brand, audience, links)")
    parser.add_argument("--keyword", help="Target keyword")
    parser.add_argument("--data", help="Path to JSON job input; overrides --keyword")
    parser.add_argument("--length", default=ContentLength.MEDIUM.value, choices=[item.value for item in ContentLength])
    parser.add_argument("--model", help="Model name, e.g. gpt-4o or claude-sonnet-4-20250514")
    parser.add_argument("--no-images", action="store_true", dest="no_images")
    parser.add_argument("--outfile", help="Write the article JSON here instead of stdout")
    parser.add_argument("--check", action="store_true")
    return parser.parse_args()


def _load_input(path: str) -> Dict[str, Any]:
    payload_path = Path(path)
    if not payload_path.exists():
        raise FileNotFoundError(f"Input file not found: {payload_path}")
    try:
        return json.loads(payload_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {payload_path}: {exc}") from exc


def _print_progress(event: Dict[str, Any]) -> None:
    print(f"[{event['percentage']:3d}%] {event['step']}: {event['message']}", file=sys.stderr)


def main() -> None:
    args = _parse_args()

    if args.check:
        provider = ProviderConfig.for_model(args.model) if args.model else None
        status = gather_health_status(provider)
        print(json.dumps(status, ensure_ascii=False, indent=2))
        sys.exit(0 if status.get("ok") else 1)

    if not args.context:
        raise ValueError("--context is required")
    context = _load_input(args.context)
    data = _load_input(args.data) if args.data else {"keyword": args.keyword or ""}
    data.setdefault("contentLength", args.length)
    if args.no_images:
        data["includeImages"] = False

    result = generate_article_from_payload(
        data=data,
        context=context,
        model=args.model,
        image_pipeline=build_image_pipeline() if data.get("includeImages", True) else None,
        progress_callback=_print_progress,
    )
    rendered = json.dumps(result, ensure_ascii=False, indent=2)
    if args.outfile:
        Path(args.outfile).write_text(rendered, encoding="utf-8")
    else:
        print(rendered)


if __name__ == "__main__":  # pragma: no cover
    try:
        main()
    except Exception as exc:  # noqa: BLE001
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
