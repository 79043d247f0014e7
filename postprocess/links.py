"""Link passes: injection, URL reconstruction, allowlist stripping and repeat capping."""
from __future__ import annotations

import re
from typing import Callable, List, Optional, Set, Tuple
from urllib.parse import urlsplit

from config import MAX_INTERNAL_LINKS, MAX_LINK_REPEATS
from domain.models import ConsolidatedLink
from observability.logger import get_logger

from .blocks import INLINE_KINDS, LINK_KINDS, Line, LineKind, render, retokenize, tokenize
from .context import LINK_RE, RepairContext, link_target, normalize_url, url_host

LOGGER = get_logger("articleforge.postprocess.links")

_PLACEHOLDER_RE = re.compile(r"\[INTERNAL_LINK:\s*([^\]\n]+)\]", re.IGNORECASE)
_HTTP_RE = re.compile(r"https?://", re.IGNORECASE)
_MULTILINE_LINK_RE = re.compile(r"\[([^\[\]\n]+)\]\(([^()]*?[\r\n][^()]*?)\)")
_COM_PATH_RE = re.compile(r"\[([^\[\]\n]+)\]\(com/([^)\s]*)\)")
_BARE_PATH_RE = re.compile(
    r"\[([^\[\]\n]+)\]\((?!https?://|#|mailto:|tel:|/)([a-z][a-z0-9-]*(?:/[a-z0-9._-]+)*/?)\)",
    re.IGNORECASE,
)
_ROOT_PATH_RE = re.compile(r"\[([^\[\]\n]+)\]\((/(?!/)[^)\s]*)\)")
_STATIC_EXT_RE = re.compile(r"\.(js|css|png|jpe?g|gif|svg|webp|pdf|zip|md)$", re.IGNORECASE)
_ORPHAN_COM_RE = re.compile(r"\s*(?<![\w.])com/[a-z0-9_-]+(?:/[a-z0-9_-]+)*/?\)?", re.IGNORECASE)
_ORPHAN_HOST_TAIL_RE = re.compile(r"\bhttps?://[a-z0-9.-]*\.\s*$", re.IGNORECASE)
_ORPHAN_PAREN_RE = re.compile(r"\(\s*com/[a-z0-9_-]+(?:/[a-z0-9_-]+)*/?\s*\)", re.IGNORECASE)
_FULL_LINK_RE = re.compile(r"\[[^\[\]\n]*\]\([^)\n]*\)")
_MASK_RE = re.compile(r"\x00(\d+)\x00")

_STOPWORDS = frozenset({"a", "an", "the", "our", "your", "of", "in", "for", "and", "to", "with", "about", "how", "get"})
_SKIPPED_PATH_PARTS = frozenset({"blog", "services"})


def _inline_lines(lines: List[Line], kinds=INLINE_KINDS):
    for index, line in enumerate(lines):
        if line.kind in kinds:
            yield index, line


def _sub_links(lines: List[Line], replace: Callable[[str, str], Optional[str]]) -> Tuple[List[Line], int]:
    """Apply ``replace(anchor, url)`` to every markdown link; ``None`` keeps the link."""

    changed = 0
    result = list(lines)

    def _swap(match: "re.Match[str]") -> str:
        nonlocal changed
        replacement = replace(match.group(1), link_target(match.group(2)))
        if replacement is None:
            return match.group(0)
        changed += 1
        return replacement

    for index, line in _inline_lines(lines, LINK_KINDS):
        updated = LINK_RE.sub(_swap, line.text)
        if updated != line.text:
            result[index] = line.with_text(updated)
    return result, changed


def document_links(lines: List[Line]) -> List[str]:
    urls: List[str] = []
    for _, line in _inline_lines(lines, LINK_KINDS):
        urls.extend(link_target(match.group(2)) for match in LINK_RE.finditer(line.text))
    return urls


def clean_orphaned_fragments(text: str) -> Tuple[str, int]:
    """Remove stray ``com/path`` fragments and dangling ``https://host.`` tails outside links."""

    masks: List[str] = []

    def _mask(match: "re.Match[str]") -> str:
        masks.append(match.group(0))
        return f"\x00{len(masks) - 1}\x00"

    masked = _FULL_LINK_RE.sub(_mask, text)
    total = 0
    for pattern in (_ORPHAN_PAREN_RE, _ORPHAN_COM_RE, _ORPHAN_HOST_TAIL_RE):
        masked, count = pattern.subn("", masked)
        total += count
    if not total:
        return text, 0
    return _MASK_RE.sub(lambda match: masks[int(match.group(1))], masked), total


def link_phrases(link: ConsolidatedLink) -> List[str]:
    """Candidate phrases for injecting ``link``, longest first."""

    anchor = link.anchor.lower().strip()
    phrases = [anchor]
    try:
        path = urlsplit(link.url).path
    except ValueError:
        path = ""
    for part in path.split("/"):
        slug = part.replace("-", " ").strip().lower()
        if len(slug) >= 4 and slug not in _SKIPPED_PATH_PARTS:
            phrases.append(slug)
    core = [word for word in anchor.split() if word not in _STOPWORDS and len(word) > 2]
    if len(core) >= 2:
        phrases.append(" ".join(core))
        for first, second in zip(core, core[1:]):
            pair = f"{first} {second}"
            if len(pair) >= 8:
                phrases.append(pair)
    unique = list(dict.fromkeys(phrase for phrase in phrases if phrase))
    return sorted(unique, key=len, reverse=True)


def _phrase_pattern(phrase: str) -> "re.Pattern[str]":
    words = [re.escape(word) for word in phrase.split()]
    return re.compile(r"\b(" + r"(?:\s+\w+)?\s+".join(words) + r")\b", re.IGNORECASE)


def _injectable(line: Line) -> bool:
    if line.kind is not LineKind.PROSE or len(line.text.strip()) < 20:
        return False
    return not (LINK_RE.search(line.text) or _HTTP_RE.search(line.text))


def _resolve_placeholders(lines: List[Line], ctx: RepairContext) -> Tuple[List[Line], int]:
    changed = 0
    result = list(lines)

    def _resolve(match: "re.Match[str]") -> str:
        nonlocal changed
        changed += 1
        anchor = match.group(1).strip()
        lowered = anchor.lower()
        for link in ctx.internal_links:
            keyword = link.keyword.lower()
            if keyword and (keyword in lowered or lowered in keyword):
                return f"[{anchor}]({link.url})"
        return anchor

    for index, line in _inline_lines(lines):
        updated = _PLACEHOLDER_RE.sub(_resolve, line.text)
        if updated != line.text:
            result[index] = line.with_text(updated)
    return result, changed


def inject_internal_links(lines: List[Line], ctx: RepairContext) -> Tuple[List[Line], int]:
    """Resolve ``[INTERNAL_LINK: x]`` placeholders, then link approved targets into plain prose."""

    lines, changed = _resolve_placeholders(lines, ctx)
    if not ctx.inject_links or not ctx.consolidated_links:
        return lines, changed

    approved = {normalize_url(link.url) for link in ctx.consolidated_links}
    present: Set[str] = {normalize_url(url) for url in document_links(lines)}
    internal_count = sum(1 for url in document_links(lines) if normalize_url(url) in approved)
    result = list(lines)
    linked: Set[int] = set()
    injected = 0
    for link in ctx.consolidated_links:
        if internal_count >= MAX_INTERNAL_LINKS:
            break
        normalized = normalize_url(link.url)
        if normalized in present:
            continue
        for phrase in link_phrases(link):
            pattern = _phrase_pattern(phrase)
            hit = False
            for index, line in enumerate(result):
                if index in linked or not _injectable(line):
                    continue
                match = pattern.search(line.text)
                if not match:
                    continue
                text = line.text
                wrapped = f"{text[:match.start(1)]}[{match.group(1)}]({link.url}){text[match.end(1):]}"
                result[index] = line.with_text(wrapped)
                linked.add(index)
                present.add(normalized)
                internal_count += 1
                injected += 1
                hit = True
                break
            if hit:
                break
    if injected:
        LOGGER.info("internal_links_injected", extra={"count": injected})
    return result, changed + injected


def repair_urls(lines: List[Line], ctx: RepairContext) -> Tuple[List[Line], int]:
    """Rejoin link targets split across lines and rebuild partial brand URLs."""

    text = render(lines)
    changed = 0

    def _rejoin(match: "re.Match[str]") -> str:
        nonlocal changed
        changed += 1
        target = re.sub(r"[\r\n]\s*", "", match.group(2))
        return f"[{match.group(1)}]({target})"

    text = _MULTILINE_LINK_RE.sub(_rejoin, text)
    result = tokenize(text) if changed else list(lines)

    origin = ctx.brand_origin

    def _rebuild(match: "re.Match[str]") -> str:
        nonlocal changed
        path = match.group(2).lstrip("/")
        if _STATIC_EXT_RE.search(path):
            return match.group(0)
        changed += 1
        return f"[{match.group(1)}]({origin}/{path})"

    for index, line in _inline_lines(result):
        updated = line.text
        if origin:
            updated = _COM_PATH_RE.sub(_rebuild, updated)
            updated = _BARE_PATH_RE.sub(_rebuild, updated)
            updated = _ROOT_PATH_RE.sub(_rebuild, updated)
        updated, removed = clean_orphaned_fragments(updated)
        changed += removed
        if updated != line.text:
            result[index] = line.with_text(updated)
    return result, changed


def strip_unapproved_links(lines: List[Line], ctx: RepairContext) -> Tuple[List[Line], int]:
    """Demote every link that is neither approved, a verified citation, nor an in-page anchor."""

    allowed = ctx.allowed_urls
    citation_urls = ctx.citation_urls
    citation_hosts = ctx.citation_hosts
    brand_host = ctx.brand_host

    def _check(anchor: str, url: str) -> Optional[str]:
        if url.startswith("#"):
            return None
        normalized = normalize_url(url)
        if normalized in allowed:
            return None
        host = url_host(url)
        if host and host != brand_host and (normalized in citation_urls or host in citation_hosts):
            return None
        LOGGER.info("unapproved_link_stripped", extra={"url": url})
        return anchor

    return _sub_links(lines, _check)


def cap_repeated_links(lines: List[Line], ctx: RepairContext) -> Tuple[List[Line], int]:
    counts: dict = {}

    def _cap(anchor: str, url: str) -> Optional[str]:
        if url.startswith("#"):
            return None
        normalized = normalize_url(url)
        seen = counts.get(normalized, 0)
        if seen >= MAX_LINK_REPEATS:
            return anchor
        counts[normalized] = seen + 1
        return None

    return _sub_links(lines, _cap)


def clean_orphans(lines: List[Line], ctx: RepairContext) -> Tuple[List[Line], int]:
    result = list(lines)
    changed = 0
    for index, line in _inline_lines(lines):
        updated, removed = clean_orphaned_fragments(line.text)
        if removed:
            changed += removed
            result[index] = line.with_text(updated)
    return (retokenize(result) if changed else result), changed


__all__ = [
    "cap_repeated_links",
    "clean_orphaned_fragments",
    "clean_orphans",
    "document_links",
    "inject_internal_links",
    "link_phrases",
    "repair_urls",
    "strip_unapproved_links",
]
