"""Draft stage: one full-article pass with a section-by-section fallback."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, List, Optional, Sequence

from config import SECTION_FALLBACK_WORKERS
from continuation import ContinuationResult, generate_with_continuation
from domain.generation_policy import LengthTier
from domain.models import ArticleRequest, GenerationContext, Outline, OutlineSection, ResearchResult
from domain.prompt_builder import (
    build_draft_prompt,
    build_faq_prompt,
    build_intro_prompt,
    build_section_prompt,
)
from helpers import count_words, deduplicate_content, find_missing_sections, is_cut_off
from observability.logger import get_logger
from services.llm_client import GenerationOptions, ProviderConfig

LOGGER = get_logger("articleforge.draft")

DRAFT_TEMPERATURE = 0.8
INTRO_TOKENS = 3072
INTRO_MIN_WORDS = 150
SECTION_TOKENS = 4096
FAQ_TEMPERATURE = 0.7
FAQ_TOKENS = 2048
FAQ_MIN_WORDS = 200


@dataclass(slots=True)
class DraftResult:
    text: str
    words: int
    truncated: bool
    missing_sections: List[str] = field(default_factory=list)
    used_fallback: bool = False


@dataclass(frozen=True)
class _Piece:
    label: str
    prompt: str
    options: GenerationOptions
    min_words: int


def needs_section_fallback(words: int, missing: int, truncated: bool, cut_off: bool, tier: LengthTier) -> bool:
    return words < tier.min_words or missing >= 2 or truncated or cut_off


def _fallback_pieces(
    keyword: str,
    ctx: GenerationContext,
    sections: Sequence[OutlineSection],
    tier: LengthTier,
    request: ArticleRequest,
    comparison: bool,
    today: Optional[date],
) -> List[_Piece]:
    words_per_section = tier.words_per_section(len(sections))
    pieces = [
        _Piece(
            "intro-section",
            build_intro_prompt(keyword, ctx, sections, include_toc=request.include_toc, today=today),
            GenerationOptions(temperature=DRAFT_TEMPERATURE, max_tokens=INTRO_TOKENS),
            INTRO_MIN_WORDS,
        )
    ]
    for index, section in enumerate(sections):
        pieces.append(
            _Piece(
                f"section-{index + 1}",
                build_section_prompt(
                    keyword,
                    ctx,
                    section,
                    index=index,
                    words=words_per_section,
                    is_last=index == len(sections) - 1,
                    comparison=comparison,
                    today=today,
                ),
                GenerationOptions(temperature=DRAFT_TEMPERATURE, max_tokens=SECTION_TOKENS),
                int(words_per_section * 0.75),
            )
        )
    if request.include_faq:
        pieces.append(
            _Piece(
                "faq-section",
                build_faq_prompt(keyword, ctx),
                GenerationOptions(temperature=FAQ_TEMPERATURE, max_tokens=FAQ_TOKENS),
                FAQ_MIN_WORDS,
            )
        )
    return pieces


def build_sectioned_draft(
    client,
    pieces: Sequence[_Piece],
    *,
    system_prompt: str,
    provider: ProviderConfig,
    max_workers: int = SECTION_FALLBACK_WORKERS,
) -> str:
    """Generate every piece independently and join them in order."""

    def _generate(piece: _Piece) -> ContinuationResult:
        return generate_with_continuation(
            client,
            piece.prompt,
            system_prompt,
            piece.options,
            provider=provider,
            label=piece.label,
            min_words=piece.min_words,
        )

    with ThreadPoolExecutor(max_workers=max(1, max_workers), thread_name_prefix="draft-section") as pool:
        futures = [pool.submit(_generate, piece) for piece in pieces]
        parts: List[str] = []
        for piece, future in zip(pieces, futures):
            result = future.result()
            LOGGER.info("draft_piece_generated", extra={"label": piece.label, "words": count_words(result.text)})
            parts.append(result.text.strip())
    return "\n\n".join(part for part in parts if part)


def build_draft(
    client,
    keyword: str,
    ctx: GenerationContext,
    outline: Outline,
    tier: LengthTier,
    request: ArticleRequest,
    research: ResearchResult,
    *,
    provider: ProviderConfig,
    system_prompt: str,
    comparison: bool,
    progress: Optional[Callable[[str, str], None]] = None,
    today: Optional[date] = None,
    max_workers: int = SECTION_FALLBACK_WORKERS,
) -> DraftResult:
    sections = outline.content_sections
    headings = [section.heading for section in sections]
    prompt = build_draft_prompt(
        keyword,
        ctx,
        outline,
        tier,
        research,
        research_context=research.to_prompt_context(),
        include_toc=request.include_toc,
        include_faq=request.include_faq,
        include_pro_tips=request.include_pro_tips,
        comparison=comparison,
        custom_direction=request.custom_direction,
        today=today,
    )
    result = generate_with_continuation(
        client,
        prompt,
        system_prompt,
        GenerationOptions(temperature=DRAFT_TEMPERATURE, max_tokens=tier.draft_tokens),
        provider=provider,
        label="draft",
        min_words=tier.min_words,
    )
    text = deduplicate_content(result.text)
    words = count_words(text)
    missing = find_missing_sections(text, headings)
    cut_off = is_cut_off(text)
    draft = DraftResult(text=text, words=words, truncated=result.truncated, missing_sections=missing)
    if not needs_section_fallback(words, len(missing), result.truncated, cut_off, tier):
        return draft

    LOGGER.warning(
        "draft_incomplete",
        extra={
            "words": words,
            "min_words": tier.min_words,
            "missing": missing,
            "truncated": result.truncated,
            "cut_off": cut_off,
        },
    )
    if progress is not None:
        progress("draft", "Draft was incomplete, rebuilding section by section...")
    pieces = _fallback_pieces(keyword, ctx, sections, tier, request, comparison, today)
    stitched = build_sectioned_draft(
        client, pieces, system_prompt=system_prompt, provider=provider, max_workers=max_workers
    )
    stitched_words = count_words(stitched)
    LOGGER.info("draft_stitched", extra={"words": stitched_words, "floor": tier.stitched_floor})
    if stitched_words < tier.stitched_floor:
        return draft
    return DraftResult(
        text=stitched,
        words=stitched_words,
        truncated=False,
        missing_sections=find_missing_sections(stitched, headings),
        used_fallback=True,
    )


__all__ = ["DraftResult", "build_draft", "build_sectioned_draft", "needs_section_fallback"]
