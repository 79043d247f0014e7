"""Length tiers, token budgets and deterministic per-keyword choices."""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

STRUCTURAL_HEADING_RE = re.compile(r"^(key takeaways?|table of contents|faq|frequently asked|conclusion)", re.IGNORECASE)
FAQ_HEADING_RE = re.compile(r"^(faq|frequently asked)", re.IGNORECASE)
_COMPARISON_RE = re.compile(r"\b(vs\.?|compare|comparison|top \d+|alternatives?|ranking|ranked|versus)\b", re.IGNORECASE)
_BEST_OF_RE = re.compile(
    r"\bbest\s+(?!practices?\b|ways?\b|time\b|approach\b|strategy\b|strategies\b|tips?\b|methods?\b|advice\b|guide\b)\w",
    re.IGNORECASE,
)

DEFAULT_SECTION_CAP = 5
REWRITE_TOKEN_FLOOR = 16384
SHRINK_FLOOR_RATIO = 0.75
STITCHED_WORD_FLOOR = 200


class ContentLength(str, Enum):
    SHORT = "SHORT"
    MEDIUM = "MEDIUM"
    LONG = "LONG"
    PILLAR = "PILLAR"

    @classmethod
    def parse(cls, value: object) -> "ContentLength":
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().upper()
        try:
            return cls(normalized)
        except ValueError:
            return cls.MEDIUM


@dataclass(frozen=True)
class LengthTier:
    """Word targets and token budgets for one content length."""

    word_range: Tuple[int, int]
    draft_tokens: int
    min_words: int
    max_content_sections: int

    @property
    def target_words(self) -> str:
        return f"{self.word_range[0]}-{self.word_range[1]}"

    @property
    def upper_words(self) -> int:
        return self.word_range[1]

    def words_per_section(self, section_count: int) -> int:
        return math.ceil(self.upper_words / max(1, section_count))

    @property
    def stitched_floor(self) -> int:
        return max(STITCHED_WORD_FLOOR, int(self.min_words * 0.5))


LENGTH_TIERS = {
    ContentLength.SHORT: LengthTier((600, 800), 4096, 450, 3),
    ContentLength.MEDIUM: LengthTier((1000, 1500), 8192, 800, 4),
    ContentLength.LONG: LengthTier((1800, 2500), 12288, 1400, 6),
    ContentLength.PILLAR: LengthTier((2500, 3500), 16384, 2000, 8),
}


def tier_for(length: object) -> LengthTier:
    return LENGTH_TIERS[ContentLength.parse(length)]


def section_cap(length: object) -> int:
    tier = LENGTH_TIERS.get(ContentLength.parse(length))
    return tier.max_content_sections if tier else DEFAULT_SECTION_CAP


def is_structural_heading(heading: str) -> bool:
    return bool(STRUCTURAL_HEADING_RE.match((heading or "").strip()))


def is_faq_heading(heading: str) -> bool:
    return bool(FAQ_HEADING_RE.match((heading or "").strip()))


def is_comparison_keyword(keyword: str) -> bool:
    return bool(_COMPARISON_RE.search(keyword or "") or _BEST_OF_RE.search(keyword or ""))


def rewrite_token_budget(words: int) -> int:
    return max(REWRITE_TOKEN_FLOOR, math.ceil(words * 1.4 * 1.5))


def shrink_floor(words: int) -> int:
    return int(words * SHRINK_FLOOR_RATIO)


def _int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def keyword_hash(keyword: str, shift: int) -> int:
    """32-bit rolling hash ``h = (h << shift) - h + ord(c)`` used to pick per-keyword variants."""

    h = 0
    for char in keyword:
        h = _int32((h << shift) - h + ord(char))
    return abs(h)


__all__ = [
    "ContentLength",
    "LENGTH_TIERS",
    "LengthTier",
    "is_comparison_keyword",
    "is_faq_heading",
    "is_structural_heading",
    "keyword_hash",
    "rewrite_token_budget",
    "section_cap",
    "shrink_floor",
    "tier_for",
]
