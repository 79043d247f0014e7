"""Voice passes and the final cleanup."""
from __future__ import annotations

import re
from typing import Callable, List, Tuple

from config import MAX_BRAND_MENTIONS, MAX_FIRST_PERSON_PHRASES
from helpers import is_cut_off

from .blocks import BODY_KINDS, INLINE_KINDS, Line, LineKind, classify_line, paragraph_spans
from .context import RepairContext
from .links import clean_orphaned_fragments

FIRST_PERSON_PHRASES = (
    "from my experience",
    "in my experience",
    "in my testing",
    "i've found that",
    "i have found that",
    "what i noticed",
    "after working with",
    "i've seen",
    "i have seen",
    "i always",
    "i recently",
    "i regularly",
)
_FIRST_PERSON_RE = re.compile(
    r"(?<!\w)(?:" + "|".join(re.escape(phrase) for phrase in FIRST_PERSON_PHRASES) + r")(?!\w),?[ \t]*",
    re.IGNORECASE,
)
_YEAR_CONTEXT_BEFORE = (
    "in|for|of|guide|edition|update|best|top|latest|review|trends|strategies|tips|framework|playbook|roadmap|checklist|report"
)
_YEAR_CONTEXT_AFTER = "guide|edition|update|best|tips|trends|strategies|framework|playbook|roadmap|report|review|checklist"

# Link destinations and inline code are left untouched by text rewrites.
_PROTECTED_RE = re.compile(r"(\]\([^)\n]*\)|`[^`\n]*`)")
_INNER_SPACES_RE = re.compile(r"(?<=\S) {2,}")
_SPACE_BEFORE_PUNCT_RE = re.compile(r"(?<=\S) +([.,;:!?])(?=\s|$)")
_TERMINAL_RE = re.compile(r"[.!?][\"'”’)*]*(?=\s|$)")


def _rewrite_outside_protected(text: str, rewrite: Callable[[str, str], str]) -> str:
    """Apply ``rewrite(segment, text_before_segment)`` to unprotected parts of ``text``."""

    parts = _PROTECTED_RE.split(text)
    output: List[str] = []
    for index, part in enumerate(parts):
        if index % 2:
            output.append(part)
        else:
            output.append(rewrite(part, "".join(output)))
    return "".join(output)


def _at_sentence_start(before: str) -> bool:
    stripped = before.rstrip().lstrip("#>-*+ \t")
    return not stripped or stripped[-1] in ".!?:"


def throttle_brand_mentions(lines: List[Line], ctx: RepairContext) -> Tuple[List[Line], int]:
    """Keep the first few literal brand mentions in the body and neutralize the rest."""

    brand = (ctx.brand_name or "").strip()
    if len(brand) <= 2:
        return lines, 0
    pattern = re.compile(r"(?<!\w)" + re.escape(brand) + r"(?!\w)")
    seen = 0
    changed = 0
    result = list(lines)

    for index, line in enumerate(lines):
        if line.kind not in BODY_KINDS:
            continue

        def _rewrite(segment: str, before: str) -> str:
            nonlocal seen, changed
            pieces: List[str] = []
            cursor = 0
            for match in pattern.finditer(segment):
                seen += 1
                pieces.append(segment[cursor:match.start()])
                cursor = match.end()
                if seen <= MAX_BRAND_MENTIONS:
                    pieces.append(match.group(0))
                    continue
                changed += 1
                prefix = before + "".join(pieces)
                pieces.append("The platform" if _at_sentence_start(prefix) else "the platform")
            pieces.append(segment[cursor:])
            return "".join(pieces)

        updated = _rewrite_outside_protected(line.text, _rewrite)
        if updated != line.text:
            result[index] = line.with_text(updated)
    return result, changed


def throttle_first_person(lines: List[Line], ctx: RepairContext) -> Tuple[List[Line], int]:
    """Keep the first few first-person expertise phrases and drop the rest."""

    seen = 0
    changed = 0
    result = list(lines)
    for index, line in enumerate(lines):
        if line.kind not in BODY_KINDS:
            continue

        def _rewrite(segment: str, before: str) -> str:
            nonlocal seen, changed
            pieces: List[str] = []
            cursor = 0
            capitalize_next = False
            for match in _FIRST_PERSON_RE.finditer(segment):
                seen += 1
                if seen <= MAX_FIRST_PERSON_PHRASES:
                    continue
                changed += 1
                pieces.append(segment[cursor:match.start()])
                cursor = match.end()
                capitalize_next = _at_sentence_start(before + "".join(pieces))
                if capitalize_next and cursor < len(segment):
                    pieces.append(segment[cursor].upper())
                    cursor += 1
            pieces.append(segment[cursor:])
            return "".join(pieces)

        updated = _rewrite_outside_protected(line.text, _rewrite)
        if updated != line.text:
            result[index] = line.with_text(updated)
    return result, changed


def fix_stale_years(lines: List[Line], ctx: RepairContext) -> Tuple[List[Line], int]:
    """Move last year's references in headings and year-bearing phrases to the current year."""

    current = str(ctx.current_year)
    last = str(ctx.current_year - 1)
    anywhere = re.compile(r"(?<!\d)" + last + r"(?!\d)")
    in_context = re.compile(
        r"(\b(?:" + _YEAR_CONTEXT_BEFORE + r")\s+)" + last + r"\b"
        r"|\b" + last + r"(\s+(?:" + _YEAR_CONTEXT_AFTER + r")\b)",
        re.IGNORECASE,
    )
    changed = 0
    result = list(lines)
    for index, line in enumerate(lines):
        if line.kind not in INLINE_KINDS:
            continue
        if line.kind is LineKind.HEADING or "](#" in line.text:
            updated, count = anywhere.subn(current, line.text)
        else:
            updated, count = in_context.subn(lambda match: match.group(0).replace(last, current), line.text)
        if count:
            changed += count
            result[index] = line.with_text(updated)
    return result, changed


def _tidy_inline(text: str) -> str:
    indent = text[: len(text) - len(text.lstrip())]

    def _rewrite(segment: str, before: str) -> str:
        segment = _INNER_SPACES_RE.sub(" ", segment)
        return _SPACE_BEFORE_PUNCT_RE.sub(r"\1", segment)

    return indent + _rewrite_outside_protected(text.strip(), _rewrite)


def _trim_blank_runs(lines: List[Line]) -> List[Line]:
    result: List[Line] = []
    for line in lines:
        if line.is_blank and (not result or result[-1].is_blank):
            continue
        result.append(line)
    while result and result[-1].is_blank:
        result.pop()
    return result


def _drop_trailing_headings(lines: List[Line]) -> Tuple[List[Line], int]:
    dropped = 0
    while lines and (lines[-1].is_blank or lines[-1].kind is LineKind.HEADING):
        if lines[-1].kind is LineKind.HEADING:
            dropped += 1
        lines = lines[:-1]
    return lines, dropped


def _trim_incomplete_ending(lines: List[Line]) -> Tuple[List[Line], int]:
    changed = 0
    for _ in range(3):
        lines, dropped = _drop_trailing_headings(lines)
        changed += dropped
        if not lines or lines[-1].kind is not LineKind.PROSE or not is_cut_off(lines[-1].text):
            break
        start, end = paragraph_spans(lines)[-1]
        paragraph = " ".join(line.text.strip() for line in lines[start:end])
        terminals = list(_TERMINAL_RE.finditer(paragraph))
        changed += 1
        if terminals:
            lines = lines[:start] + [classify_line(paragraph[: terminals[-1].end()])]
            break
        lines = lines[:start]
    lines, dropped = _drop_trailing_headings(lines)
    return _trim_blank_runs(lines), changed + dropped


def final_cleanup(lines: List[Line], ctx: RepairContext) -> Tuple[List[Line], int]:
    """Collapse whitespace, normalize H1s, cut a looping tail and end on a complete sentence."""

    changed = 0
    title = (ctx.title or "").strip().lower()
    seen_h2 = set()
    result: List[Line] = []
    for line in lines:
        if line.kind is LineKind.HEADING and line.level == 1:
            changed += 1
            if line.heading_text.lower() == title:
                continue
            line = classify_line(f"## {line.heading_text}")
        if line.kind is LineKind.HEADING and line.level == 2:
            key = line.heading_text.lower()
            if key in seen_h2:
                changed += 1
                break
            seen_h2.add(key)
        if line.kind in INLINE_KINDS and line.kind is not LineKind.TABLE_ROW:
            text, removed = clean_orphaned_fragments(line.text)
            text = _tidy_inline(text)
            if text != line.text:
                changed += 1 if not removed else removed
                line = line.with_text(text)
        elif line.kind is not LineKind.CODE and line.text != line.text.rstrip():
            changed += 1
            line = line.with_text(line.text.rstrip())
        result.append(line)

    collapsed = _trim_blank_runs(result)
    while collapsed and collapsed[0].is_blank:
        collapsed = collapsed[1:]
    if len(collapsed) != len(result):
        changed += 1
    collapsed, trimmed = _trim_incomplete_ending(collapsed)
    return collapsed, changed + trimmed


__all__ = [
    "FIRST_PERSON_PHRASES",
    "final_cleanup",
    "fix_stale_years",
    "throttle_brand_mentions",
    "throttle_first_person",
]
