"""Structural passes: opening fragments, split paragraphs, FAQ blocks, table of contents."""
from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

from config import PARAGRAPH_SPLIT_WORDS, PARAGRAPH_TARGET_WORDS
from domain.generation_policy import is_faq_heading, is_structural_heading

from .blocks import Line, LineKind, classify_line, paragraph_spans, render, retokenize, section_end, tokenize
from .context import RepairContext

_FRAGMENT_BOUNDARY_RE = re.compile(r"(?<=[.!?])\s+(?=[A-Z0-9#*\[])")
_LETTER_RE = re.compile(r"[A-Za-z]")
_CONJUNCTION_RE = re.compile(r"^(because|although|though|whereas|unless|since|while|until|whereby)\b", re.IGNORECASE)
_SENTENCE_SPLIT_RE = re.compile(r"(?:(?<=[.!?])|(?<=[.!?][\"'”’)]))\s+")

_TOC_HEADING_RE = re.compile(r"^table of contents\b", re.IGNORECASE)
_BROKEN_TOC_ENTRY_RE = re.compile(r"^(\s*[-*]\s+\[[^\]\n]*)\n\s*([^\n]*?\]\(#[^)\n]+\))", re.MULTILINE)
_ORPHAN_TOC_TAIL_RE = re.compile(r"^\s*[^-*#\s\[][^\n\[]*\]\(#[^)\n]+\)\s*$", re.MULTILINE)
_TOC_MARKER_RE = re.compile(r"^(\s*(?:[-*+]|\d+[.)])\s+)(.*)$")
_TOC_LINK_RE = re.compile(r"^\[([^\]\n]+)\]\(#([^)\s]+)\)(.*)$")
_ANY_LINK_RE = re.compile(r"^\[([^\]\n]+)\]\([^)\n]*\)")
_SLUG_STRIP_RE = re.compile(r"[`*_\[\]()]")


def heading_slug(text: str) -> str:
    """Anchor slug for a heading, matching common markdown renderers."""

    slug = _SLUG_STRIP_RE.sub("", text.lower())
    slug = re.sub(r"[^\w\s-]", "", slug).strip()
    return re.sub(r"\s+", "-", slug)


def _is_opening_fragment(line: Line) -> bool:
    if line.kind is not LineKind.PROSE:
        return False
    stripped = line.text.strip()
    return len(stripped) < 60 and len(_LETTER_RE.findall(stripped)) <= 3 and not is_structural_heading(stripped)


def strip_opening_fragment(lines: List[Line], ctx: RepairContext) -> Tuple[List[Line], int]:
    """Drop an orphaned numeral or abbreviation (``25%.``, ``S.``) that opens the article."""

    changed = 0
    for _ in range(3):
        start = next((index for index, line in enumerate(lines) if not line.is_blank), None)
        if start is None or not _is_opening_fragment(lines[start]):
            break
        rest = render(lines[start:])
        match = _FRAGMENT_BOUNDARY_RE.search(rest[:300])
        if not match or match.start() > len(lines[start].text.rstrip()):
            break
        lines = lines[:start] + tokenize(rest[match.end():])
        changed += 1
    return lines, changed


def _paragraph_text(lines: List[Line], start: int, end: int) -> str:
    return " ".join(line.text.strip() for line in lines[start:end])


def _starts_as_continuation(text: str) -> bool:
    return bool(text) and (text[0].islower() or bool(_CONJUNCTION_RE.match(text)))


def join_split_paragraphs(lines: List[Line], ctx: RepairContext) -> Tuple[List[Line], int]:
    """Merge a short paragraph that continues the previous sentence back into it."""

    spans = paragraph_spans(lines)
    span_end: Dict[int, int] = dict(spans)
    merges = set()
    previous_end: Optional[int] = None
    for start, end in spans:
        text = _paragraph_text(lines, start, end)
        if (
            previous_end is not None
            and start > previous_end
            and all(line.is_blank for line in lines[previous_end:start])
            and len(text.split()) < 12
            and _starts_as_continuation(text)
        ):
            merges.add(start)
        previous_end = end

    if not merges:
        return lines, 0
    result: List[Line] = []
    index = 0
    while index < len(lines):
        if index in merges:
            while result and result[-1].is_blank:
                result.pop()
            fragment = _paragraph_text(lines, index, span_end[index])
            result[-1] = result[-1].with_text(f"{result[-1].text.rstrip()} {fragment}")
            index = span_end[index]
            continue
        result.append(lines[index])
        index += 1
    return result, len(merges)


def repair_faq(lines: List[Line], ctx: RepairContext) -> Tuple[List[Line], int]:
    """Remove orphaned answer text between an FAQ heading and its first question."""

    result = list(lines)
    changed = 0
    index = 0
    while index < len(result):
        line = result[index]
        if line.kind is not LineKind.HEADING or not is_faq_heading(line.heading_text):
            index += 1
            continue
        end = section_end(result, index)
        first_question = next(
            (
                position
                for position in range(index + 1, end)
                if result[position].kind is LineKind.HEADING and result[position].level > line.level
            ),
            None,
        )
        if first_question is None:
            index = end
            continue
        orphaned = [entry for entry in result[index + 1:first_question] if not entry.is_blank]
        if orphaned:
            changed += len(orphaned)
            result[index + 1:first_question] = [classify_line("")]
        index += 1
    return result, changed


def _is_toc_heading(line: Line) -> bool:
    return line.kind is LineKind.HEADING and line.level <= 3 and bool(_TOC_HEADING_RE.match(line.heading_text))


def _dedupe_toc_blocks(lines: List[Line]) -> Tuple[List[Line], int]:
    result: List[Line] = []
    seen_toc = False
    skipping = False
    removed = 0
    for line in lines:
        if _is_toc_heading(line):
            if seen_toc:
                skipping = True
                removed += 1
                continue
            seen_toc = True
        elif skipping:
            if line.is_blank or line.kind is LineKind.LIST_ITEM:
                removed += 0 if line.is_blank else 1
                continue
            skipping = False
        result.append(line)
    return result, removed


def _match_heading(entry: str, headings: List[Tuple[str, str]]) -> Optional[Tuple[str, str]]:
    lowered = entry.lower().strip()
    if not lowered:
        return None
    for text, slug in headings:
        if text.lower() == lowered:
            return text, slug
    for text, slug in headings:
        heading = text.lower()
        if lowered in heading or heading in lowered:
            return text, slug
    return None


def repair_toc(lines: List[Line], ctx: RepairContext) -> Tuple[List[Line], int]:
    """Point every table-of-contents entry at a heading that exists in the body."""

    text = render(lines)
    text, joined = _BROKEN_TOC_ENTRY_RE.subn(r"\1 \2", text)
    text, tails = _ORPHAN_TOC_TAIL_RE.subn("", text)
    lines = tokenize(text) if joined or tails else list(lines)
    lines, duplicates = _dedupe_toc_blocks(lines)
    changed = joined + tails + duplicates

    headings: List[Tuple[str, str]] = []
    seen_slugs = set()
    for line in lines:
        if line.kind is LineKind.HEADING and line.level in (2, 3) and not _is_toc_heading(line):
            slug = heading_slug(line.heading_text)
            if slug and slug not in seen_slugs:
                seen_slugs.add(slug)
                headings.append((line.heading_text, slug))
    by_slug = dict((slug, text) for text, slug in headings)

    toc_index = next((index for index, line in enumerate(lines) if _is_toc_heading(line)), None)
    if toc_index is None:
        return lines, changed

    end = toc_index + 1
    while end < len(lines) and not (lines[end].kind is LineKind.HEADING and lines[end].level <= 3):
        end += 1

    rebuilt: List[Line] = []
    entries = 0
    for line in lines[toc_index + 1:end]:
        marker = _TOC_MARKER_RE.match(line.text) if line.kind is LineKind.LIST_ITEM else None
        if not marker:
            rebuilt.append(line)
            continue
        prefix, body = marker.group(1), marker.group(2).strip()
        target: Optional[Tuple[str, str]] = None
        link = _TOC_LINK_RE.match(body)
        if link and link.group(2) in by_slug:
            target = (by_slug[link.group(2)], link.group(2))
        else:
            display = link.group(1) if link else body
            other = _ANY_LINK_RE.match(display)
            target = _match_heading(other.group(1) if other else display, headings)
        if target is None:
            changed += 1
            continue
        entry = f"{prefix}[{target[0]}](#{target[1]})"
        if entry != line.text:
            changed += 1
        rebuilt.append(classify_line(entry))
        entries += 1

    if entries == 0:
        changed += 1
        return lines[:toc_index] + [line for line in rebuilt if line.kind is not LineKind.LIST_ITEM] + lines[end:], changed
    return lines[:toc_index + 1] + rebuilt + lines[end:], changed


def _split_sentences(text: str) -> List[str]:
    return [sentence for sentence in _SENTENCE_SPLIT_RE.split(text) if sentence]


def _chunk_sentences(sentences: List[str]) -> List[str]:
    chunks: List[List[str]] = []
    words = 0
    for sentence in sentences:
        count = len(sentence.split())
        if chunks and words + count > PARAGRAPH_TARGET_WORDS and not _starts_as_continuation(sentence):
            chunks.append([sentence])
            words = count
            continue
        if not chunks:
            chunks.append([])
        chunks[-1].append(sentence)
        words += count
    return [" ".join(chunk) for chunk in chunks if chunk]


def _drop_rules(lines: List[Line]) -> List[Line]:
    """Remove rule lines, merging the blank runs on either side into one."""

    kept: List[Line] = []
    after_rule = False
    for line in lines:
        if line.kind is LineKind.RULE:
            after_rule = True
            continue
        if after_rule and line.is_blank and kept and kept[-1].is_blank:
            continue
        after_rule = after_rule and line.is_blank
        kept.append(line)
    return kept


def split_long_paragraphs(lines: List[Line], ctx: RepairContext) -> Tuple[List[Line], int]:
    """Drop horizontal rules and split prose paragraphs over the word limit at sentence breaks."""

    rules = sum(1 for line in lines if line.kind is LineKind.RULE)
    if rules:
        lines = _drop_rules(lines)
    changed = rules
    result: List[Line] = []
    cursor = 0
    for start, end in paragraph_spans(lines):
        result.extend(lines[cursor:start])
        cursor = end
        text = _paragraph_text(lines, start, end)
        if text.startswith("**Pro Tip") or len(text.split()) <= PARAGRAPH_SPLIT_WORDS:
            result.extend(lines[start:end])
            continue
        sentences = _split_sentences(text)
        chunks = _chunk_sentences(sentences) if len(sentences) >= 2 else [text]
        if len(chunks) < 2:
            result.extend(lines[start:end])
            continue
        changed += 1
        for position, chunk in enumerate(chunks):
            if position:
                result.append(classify_line(""))
            result.append(classify_line(chunk))
    result.extend(lines[cursor:])
    return (retokenize(result) if changed else result), changed


__all__ = [
    "heading_slug",
    "join_split_paragraphs",
    "repair_faq",
    "repair_toc",
    "split_long_paragraphs",
    "strip_opening_fragment",
]
