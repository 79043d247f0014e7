"""Domain model, length-tier policy and prompt assembly."""

from .generation_policy import (  # noqa: F401
    LENGTH_TIERS,
    ContentLength,
    LengthTier,
    is_comparison_keyword,
    is_faq_heading,
    is_structural_heading,
    keyword_hash,
    rewrite_token_budget,
    section_cap,
    shrink_floor,
    tier_for,
)
from .models import (  # noqa: F401
    ArticleRequest,
    ConsolidatedLink,
    GeneratedArticle,
    GenerationContext,
    ImageRef,
    InternalLink,
    Outline,
    OutlineSection,
    PublishedArticle,
    ResearchResult,
)
from .prompt_builder import build_system_prompt  # noqa: F401

__all__ = [
    "ArticleRequest",
    "ConsolidatedLink",
    "ContentLength",
    "GeneratedArticle",
    "GenerationContext",
    "ImageRef",
    "InternalLink",
    "LENGTH_TIERS",
    "LengthTier",
    "Outline",
    "OutlineSection",
    "PublishedArticle",
    "ResearchResult",
    "build_system_prompt",
    "is_comparison_keyword",
    "is_faq_heading",
    "is_structural_heading",
    "keyword_hash",
    "rewrite_token_budget",
    "section_cap",
    "shrink_floor",
    "tier_for",
]
