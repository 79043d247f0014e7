"""Line/block tokenization of markdown used by the repair passes."""
from __future__ import annotations

import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, List, Optional, Tuple


class LineKind(str, Enum):
    HEADING = "heading"
    LIST_ITEM = "list_item"
    TABLE_ROW = "table_row"
    CODE_FENCE = "code_fence"
    CODE = "code"
    IMAGE = "image"
    QUOTE = "quote"
    HTML = "html"
    RULE = "rule"
    BLANK = "blank"
    PROSE = "prose"


_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")
_LIST_RE = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+")
_FENCE_RE = re.compile(r"^\s*(```|~~~)")
_RULE_RE = re.compile(r"^\s*(?:(?:-\s*){3,}|(?:\*\s*){3,}|(?:_\s*){3,})$")
_IMAGE_RE = re.compile(r"^\s*!\[")

INLINE_KINDS = frozenset({LineKind.PROSE, LineKind.LIST_ITEM, LineKind.QUOTE, LineKind.TABLE_ROW, LineKind.HEADING})
BODY_KINDS = frozenset({LineKind.PROSE, LineKind.LIST_ITEM, LineKind.QUOTE, LineKind.TABLE_ROW})
LINK_KINDS = frozenset(kind for kind in LineKind if kind not in {LineKind.CODE, LineKind.CODE_FENCE, LineKind.BLANK})


@dataclass(frozen=True)
class Line:
    kind: LineKind
    text: str
    level: int = 0

    @property
    def heading_text(self) -> str:
        if self.kind is not LineKind.HEADING:
            return ""
        match = _HEADING_RE.match(self.text)
        return match.group(2).strip() if match else ""

    @property
    def is_blank(self) -> bool:
        return self.kind is LineKind.BLANK

    def with_text(self, text: str) -> "Line":
        """Return a copy carrying ``text``, reclassified unless it is code."""

        if self.kind in {LineKind.CODE, LineKind.CODE_FENCE}:
            return replace(self, text=text)
        return classify_line(text)


def classify_line(text: str) -> Line:
    stripped = text.strip()
    if not stripped:
        return Line(LineKind.BLANK, text)
    if _FENCE_RE.match(text):
        return Line(LineKind.CODE_FENCE, text)
    heading = _HEADING_RE.match(stripped)
    if heading and text.startswith("#"):
        return Line(LineKind.HEADING, text, level=len(heading.group(1)))
    if _RULE_RE.match(stripped):
        return Line(LineKind.RULE, text)
    if _IMAGE_RE.match(text):
        return Line(LineKind.IMAGE, text)
    if _LIST_RE.match(text):
        return Line(LineKind.LIST_ITEM, text)
    if stripped.startswith("|"):
        return Line(LineKind.TABLE_ROW, text)
    if stripped.startswith(">"):
        return Line(LineKind.QUOTE, text)
    if stripped.startswith("<"):
        return Line(LineKind.HTML, text)
    return Line(LineKind.PROSE, text)


def tokenize(text: str) -> List[Line]:
    lines: List[Line] = []
    in_code = False
    for raw in (text or "").split("\n"):
        if _FENCE_RE.match(raw):
            lines.append(Line(LineKind.CODE_FENCE, raw))
            in_code = not in_code
            continue
        if in_code:
            lines.append(Line(LineKind.CODE, raw))
            continue
        lines.append(classify_line(raw))
    return lines


def render(lines: Iterable[Line]) -> str:
    return "\n".join(line.text for line in lines)


def retokenize(lines: List[Line]) -> List[Line]:
    return tokenize(render(lines))


def paragraph_spans(lines: List[Line]) -> List[Tuple[int, int]]:
    """Half-open ``(start, end)`` index spans of consecutive prose lines."""

    spans: List[Tuple[int, int]] = []
    start: Optional[int] = None
    for index, line in enumerate(lines):
        if line.kind is LineKind.PROSE:
            if start is None:
                start = index
            continue
        if start is not None:
            spans.append((start, index))
            start = None
    if start is not None:
        spans.append((start, len(lines)))
    return spans


def section_end(lines: List[Line], heading_index: int) -> int:
    """Index of the next heading at the same or a higher level."""

    level = lines[heading_index].level
    for index in range(heading_index + 1, len(lines)):
        line = lines[index]
        if line.kind is LineKind.HEADING and line.level <= level:
            return index
    return len(lines)


__all__ = [
    "BODY_KINDS",
    "INLINE_KINDS",
    "LINK_KINDS",
    "Line",
    "LineKind",
    "classify_line",
    "paragraph_spans",
    "render",
    "retokenize",
    "section_end",
    "tokenize",
]
