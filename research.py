"""Research stage: content gaps, statistics and verified citations for a keyword."""
from __future__ import annotations

from typing import Any, Iterable, List, Optional, Protocol, Tuple
from urllib.parse import urlsplit

import httpx

from config import CITATION_CHECK_TIMEOUT_S, MAX_CITATIONS, RESEARCH_TIMEOUT_S
from domain.models import GenerationContext, ResearchResult
from domain.prompt_builder import build_research_prompt
from observability.logger import get_logger
from services.llm_client import ModelClientError, ProviderConfig
from services.schemas import RESEARCH_SCHEMA

LOGGER = get_logger("articleforge.research")


class CitationChecker(Protocol):
    def __call__(self, url: str) -> bool:
        ...


class HttpCitationChecker:
    """Keeps a citation when a HEAD request answers below 400."""

    def __init__(self, *, timeout_s: float = CITATION_CHECK_TIMEOUT_S, client: Optional[httpx.Client] = None) -> None:
        self._client = client or httpx.Client(timeout=timeout_s, follow_redirects=True)

    def __call__(self, url: str) -> bool:
        try:
            response = self._client.head(url)
        except httpx.HTTPError as exc:
            LOGGER.info("citation_unreachable", extra={"url": url, "error": str(exc)})
            return False
        return response.status_code < 400


def _strings(values: Any) -> Tuple[str, ...]:
    if not isinstance(values, list):
        return ()
    return tuple(str(value).strip() for value in values if isinstance(value, (str, int, float)) and str(value).strip())


def normalize_citations(raw: Iterable[Any], *, limit: int = MAX_CITATIONS) -> List[str]:
    """http(s) URLs only, deduplicated in order, at most ``limit``."""

    seen = set()
    citations: List[str] = []
    for item in raw or []:
        url = item.get("url") if isinstance(item, dict) else item
        if not isinstance(url, str):
            continue
        url = url.strip()
        try:
            parsed = urlsplit(url)
        except ValueError:
            continue
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            continue
        key = url.rstrip("/").lower()
        if key in seen:
            continue
        seen.add(key)
        citations.append(url)
        if len(citations) >= limit:
            break
    return citations


def degraded_research(keyword: str, ctx: GenerationContext) -> ResearchResult:
    notes = (
        f"Topic: {keyword}. Audience: {ctx.target_audience or 'general readers'}. "
        f"Niche: {ctx.niche or 'general'}. No external research was available; rely on established knowledge "
        "and avoid unverifiable statistics."
    )
    return ResearchResult(notes=notes, degraded=True)


def run_research(
    client,
    keyword: str,
    ctx: GenerationContext,
    *,
    provider: ProviderConfig,
    system_prompt: Optional[str] = None,
    citation_checker: Optional[CitationChecker] = None,
) -> ResearchResult:
    """Gather research for ``keyword``; provider failures degrade to a minimal context."""

    try:
        payload = client.generate_json(
            build_research_prompt(keyword, ctx),
            system_prompt,
            schema=RESEARCH_SCHEMA,
            provider=provider.with_timeout(RESEARCH_TIMEOUT_S),
            label="research",
        )
    except ModelClientError as exc:
        LOGGER.warning("research_degraded", extra={"keyword": keyword, "error": str(exc)})
        return degraded_research(keyword, ctx)

    citations = normalize_citations(payload.get("citations") or [])
    if citation_checker is not None:
        citations = [url for url in citations if citation_checker(url)]
    result = ResearchResult(
        content_gaps=_strings(payload.get("contentGaps")),
        missing_subtopics=_strings(payload.get("missingSubtopics")),
        key_statistics=_strings(payload.get("keyStatistics")),
        citations=tuple(citations),
        notes=str(payload.get("notes") or "").strip(),
    )
    LOGGER.info(
        "research_completed",
        extra={
            "keyword": keyword,
            "gaps": len(result.content_gaps),
            "statistics": len(result.key_statistics),
            "citations": len(result.citations),
        },
    )
    return result


__all__ = [
    "CitationChecker",
    "HttpCitationChecker",
    "degraded_research",
    "normalize_citations",
    "run_research",
]
