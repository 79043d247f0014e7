"""Tone-polish and SEO rewrite stages plus the approved internal-link set."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from config import MAX_PROMPT_LINKS
from continuation import generate_with_continuation
from domain.generation_policy import LengthTier, rewrite_token_budget, shrink_floor
from domain.models import ConsolidatedLink, GenerationContext
from domain.prompt_builder import build_seo_prompt, build_tone_prompt
from helpers import count_words, deduplicate_content, find_missing_sections, is_cut_off
from observability.logger import get_logger
from services.llm_client import GenerationOptions, ProviderConfig

LOGGER = get_logger("articleforge.seo")

TONE_TEMPERATURE = 0.65
SEO_TEMPERATURE = 0.4


@dataclass(frozen=True)
class RewriteResult:
    text: str
    words: int
    missing_sections: int
    cutoff: bool
    fell_back: bool = False


def build_consolidated_links(ctx: GenerationContext) -> List[ConsolidatedLink]:
    """Internal links first, then published articles; unique by URL."""

    seen = set()
    links: List[ConsolidatedLink] = []
    for link in ctx.internal_links:
        if link.url and link.url not in seen:
            seen.add(link.url)
            links.append(ConsolidatedLink(anchor=link.keyword, url=link.url))
    for post in ctx.existing_posts:
        if post.url and post.url not in seen:
            seen.add(post.url)
            links.append(ConsolidatedLink(anchor=post.focus_keyword or post.title, url=post.url))
    return links


def polish_tone(
    client,
    ctx: GenerationContext,
    draft_text: str,
    headings: Sequence[str],
    *,
    provider: ProviderConfig,
    system_prompt: str,
    include_pro_tips: bool,
) -> RewriteResult:
    """Rewrite for voice; falls back to the draft when the rewrite degrades it."""

    draft_words = count_words(draft_text)
    result = generate_with_continuation(
        client,
        build_tone_prompt(ctx, draft_text, draft_words, include_pro_tips=include_pro_tips),
        system_prompt,
        GenerationOptions(temperature=TONE_TEMPERATURE, max_tokens=rewrite_token_budget(draft_words)),
        provider=provider,
        label="tone-polish",
        min_words=shrink_floor(draft_words),
    )
    tone_text = deduplicate_content(result.text)
    tone_words = count_words(tone_text)
    tone_missing = len(find_missing_sections(tone_text, headings))
    draft_missing = len(find_missing_sections(draft_text, headings))
    tone_cut_off = is_cut_off(tone_text)
    LOGGER.info(
        "tone_polished",
        extra={"words": tone_words, "draft_words": draft_words, "missing": tone_missing, "cut_off": tone_cut_off},
    )
    if tone_cut_off or tone_words < shrink_floor(draft_words) or tone_missing > draft_missing:
        LOGGER.warning("tone_fallback_to_draft", extra={"words": tone_words, "draft_words": draft_words})
        return RewriteResult(
            text=draft_text,
            words=draft_words,
            missing_sections=draft_missing,
            cutoff=is_cut_off(draft_text),
            fell_back=True,
        )
    return RewriteResult(text=tone_text, words=tone_words, missing_sections=tone_missing, cutoff=False)


def optimize_seo(
    client,
    keyword: str,
    ctx: GenerationContext,
    text: str,
    headings: Sequence[str],
    links: Sequence[ConsolidatedLink],
    citations: Sequence[str],
    *,
    provider: ProviderConfig,
    system_prompt: str,
    tier: LengthTier,
    include_faq: bool,
) -> RewriteResult:
    """SEO rewrite of ``text``; a rewrite that shrinks below the floor counts as cut off."""

    input_words = count_words(text)
    prompt = build_seo_prompt(
        keyword,
        ctx,
        text,
        input_words,
        list(links)[:MAX_PROMPT_LINKS],
        list(citations),
        target_words=tier.target_words,
        include_faq=include_faq,
    )
    result = generate_with_continuation(
        client,
        prompt,
        system_prompt,
        GenerationOptions(temperature=SEO_TEMPERATURE, max_tokens=rewrite_token_budget(input_words)),
        provider=provider,
        label="seo-optimize",
        min_words=shrink_floor(input_words),
    )
    seo_text = deduplicate_content(result.text)
    seo_words = count_words(seo_text)
    missing = len(find_missing_sections(seo_text, headings))
    shrank = seo_words < shrink_floor(input_words)
    if shrank:
        LOGGER.warning("seo_rewrite_shrank", extra={"words": seo_words, "input_words": input_words})
    cutoff = is_cut_off(seo_text) or shrank
    LOGGER.info("seo_optimized", extra={"words": seo_words, "missing": missing, "cut_off": cutoff})
    return RewriteResult(text=seo_text, words=seo_words, missing_sections=missing, cutoff=cutoff)


__all__ = ["RewriteResult", "build_consolidated_links", "optimize_seo", "polish_tone"]
