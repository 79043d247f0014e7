"""Keyword normalization, keyword suggestions and topic-cluster previews."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from domain.models import GenerationContext
from domain.prompt_builder import build_cluster_prompt, build_keyword_suggest_prompt
from observability.logger import get_logger
from services.llm_client import ModelClient, ProviderConfig
from services.schemas import CLUSTER_PREVIEW_SCHEMA, KEYWORD_SUGGESTIONS_SCHEMA

LOGGER = get_logger("articleforge.keywords")

SUGGESTION_COUNT = 20
KEYWORD_MAX_LENGTH = 120
SUGGEST_MAX_TOKENS = 4096
CLUSTER_MAX_TOKENS = 4096
PILLAR_WORD_COUNT = 3000
SUPPORTING_WORD_COUNT = 1500

_PUNCT_STRIP = "\"'()[]{}<>.,:;!?-–—“”‘’"


def _normalize_space(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def _cleanup_manual_keyword(raw: str) -> str:
    cleaned = _normalize_space(str(raw).replace("\r", " ").replace("\n", " "))
    cleaned = cleaned.strip(_PUNCT_STRIP)
    if len(cleaned) > KEYWORD_MAX_LENGTH:
        cleaned = cleaned[:KEYWORD_MAX_LENGTH].rstrip()
    return cleaned


def keyword_key(raw: str) -> str:
    """Comparison key: lowercase, single-spaced, outer punctuation stripped."""

    return _cleanup_manual_keyword(raw).lower()


def parse_manual_keywords(raw: object) -> List[str]:
    """Return a normalized list of user-provided keywords."""

    items: List[str] = []
    if isinstance(raw, str):
        items.extend(part for part in re.split(r",|\n|;", raw) if part)
    elif isinstance(raw, (list, tuple, set)):
        items.extend(str(item) for item in raw)

    normalized: List[str] = []
    seen = set()
    for item in items:
        display = _cleanup_manual_keyword(item)
        key = display.lower()
        if not display or key in seen:
            continue
        normalized.append(display)
        seen.add(key)
    return normalized


@dataclass(frozen=True)
class KeywordSuggestion:
    keyword: str
    intent: str = ""
    difficulty: str = ""
    priority: str = ""
    rationale: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "keyword": self.keyword,
            "intent": self.intent,
            "difficulty": self.difficulty,
            "priority": self.priority,
            "rationale": self.rationale,
        }


@dataclass(frozen=True)
class ClusterKeyword:
    keyword: str
    role: str
    search_intent: str = ""
    suggested_word_count: int = SUPPORTING_WORD_COUNT
    description: str = ""


@dataclass
class ClusterPreview:
    pillar_title: str
    description: str = ""
    keywords: List[ClusterKeyword] = field(default_factory=list)

    @property
    def pillar(self) -> ClusterKeyword:
        return next(item for item in self.keywords if item.role == "pillar")

    @property
    def supporting(self) -> List[ClusterKeyword]:
        return [item for item in self.keywords if item.role != "pillar"]

    def to_suggestion(self, rationale: Optional[str] = None) -> Dict[str, Any]:
        return {
            "pillarKeyword": self.pillar.keyword,
            "name": self.pillar_title,
            "supportingKeywords": [item.keyword for item in self.supporting],
            "rationale": rationale if rationale is not None else self.description,
        }


def filter_new_suggestions(
    suggestions: Iterable[KeywordSuggestion], existing: Iterable[str]
) -> List[KeywordSuggestion]:
    """Drop suggestions the site already targets and repeats within the batch."""

    seen = {keyword_key(item) for item in existing}
    fresh: List[KeywordSuggestion] = []
    for suggestion in suggestions:
        key = keyword_key(suggestion.keyword)
        if not key or key in seen:
            continue
        seen.add(key)
        fresh.append(suggestion)
    return fresh


def suggest_keywords(
    client: ModelClient,
    ctx: GenerationContext,
    existing: Sequence[str],
    *,
    provider: Optional[ProviderConfig] = None,
    count: int = SUGGESTION_COUNT,
) -> List[KeywordSuggestion]:
    payload = client.generate_json(
        build_keyword_suggest_prompt(ctx, existing, count),
        None,
        schema=KEYWORD_SUGGESTIONS_SCHEMA,
        provider=provider,
        max_tokens=SUGGEST_MAX_TOKENS,
        label="keyword-suggest",
    )
    raw = [
        KeywordSuggestion(
            keyword=_cleanup_manual_keyword(item.get("keyword") or ""),
            intent=str(item.get("intent") or ""),
            difficulty=str(item.get("difficulty") or ""),
            priority=str(item.get("priority") or ""),
            rationale=str(item.get("rationale") or ""),
        )
        for item in payload.get("keywords") or []
    ]
    suggestions = filter_new_suggestions(raw, existing)
    LOGGER.info(
        "keywords_suggested",
        extra={"site_id": ctx.id, "returned": len(raw), "kept": len(suggestions)},
    )
    return suggestions


def _force_single_pillar(seed: str, keywords: List[ClusterKeyword]) -> List[ClusterKeyword]:
    pillars = [index for index, item in enumerate(keywords) if item.role == "pillar"]
    if len(pillars) == 1:
        return keywords
    if not pillars:
        seed_key = keyword_key(seed)
        chosen = next((i for i, item in enumerate(keywords) if keyword_key(item.keyword) == seed_key), 0)
    else:
        chosen = pillars[0]
    return [
        ClusterKeyword(
            keyword=item.keyword,
            role="pillar" if index == chosen else "supporting",
            search_intent=item.search_intent,
            suggested_word_count=item.suggested_word_count,
            description=item.description,
        )
        for index, item in enumerate(keywords)
    ]


def generate_cluster_preview(
    client: ModelClient,
    seed: str,
    ctx: GenerationContext,
    existing: Sequence[str],
    *,
    provider: Optional[ProviderConfig] = None,
) -> ClusterPreview:
    """Ask for a pillar-and-supporting cluster around ``seed``; the result has exactly one pillar."""

    payload = client.generate_json(
        build_cluster_prompt(seed, ctx, existing),
        None,
        schema=CLUSTER_PREVIEW_SCHEMA,
        provider=provider,
        max_tokens=CLUSTER_MAX_TOKENS,
        label="cluster-preview",
    )
    keywords: List[ClusterKeyword] = []
    seen = set()
    for item in payload.get("keywords") or []:
        keyword = _cleanup_manual_keyword(item.get("keyword") or "")
        if not keyword or keyword.lower() in seen:
            continue
        seen.add(keyword.lower())
        role = "pillar" if item.get("role") == "pillar" else "supporting"
        keywords.append(
            ClusterKeyword(
                keyword=keyword,
                role=role,
                search_intent=str(item.get("searchIntent") or ""),
                suggested_word_count=int(
                    item.get("suggestedWordCount") or (PILLAR_WORD_COUNT if role == "pillar" else SUPPORTING_WORD_COUNT)
                ),
                description=str(item.get("description") or ""),
            )
        )
    if not keywords:
        keywords.append(ClusterKeyword(keyword=_cleanup_manual_keyword(seed), role="pillar"))
    keywords = _force_single_pillar(seed, keywords)
    preview = ClusterPreview(
        pillar_title=str(payload.get("pillarTitle") or seed).strip(),
        description=str(payload.get("description") or "").strip(),
        keywords=keywords,
    )
    LOGGER.info(
        "cluster_previewed",
        extra={"site_id": ctx.id, "seed": seed, "pillar": preview.pillar.keyword, "supporting": len(preview.supporting)},
    )
    return preview


__all__ = [
    "ClusterKeyword",
    "ClusterPreview",
    "KeywordSuggestion",
    "filter_new_suggestions",
    "generate_cluster_preview",
    "keyword_key",
    "parse_manual_keywords",
    "suggest_keywords",
]
