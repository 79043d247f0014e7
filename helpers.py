# -*- coding: utf-8 -*-
"""Text metrics shared by the generation stages and the repair pipeline."""
import re
from typing import Iterable, List

from observability.logger import get_logger

LOGGER = get_logger("articleforge.helpers")

_URL_RE = re.compile(r"https?://[^\s)]+")
_LINK_TARGET_RE = re.compile(r"\[([^\]]*)\]\([^)]+\)")
_H2_RE = re.compile(r"^## (.+)$", re.MULTILINE)
_LIST_LINE_RE = re.compile(r"^(?:[-*]\s|\d+\.\s)")
_HEADING_LINE_RE = re.compile(r"^#{1,6}\s")
_STRUCTURAL_BLOCK_RE = re.compile(r"^(#{1,6}\s|[-*]\s|\d+\.\s|!\[|```|<|\|)")
_TRAILING_STUB_RE = re.compile(r"([\s\S]*?)\n##\s*$")
_VALID_ENDINGS = {".", "!", "?", '"', "'", "”", "’", ")", "]", ">", "*", "`"}
_SENTENCE_BREAKS = (". ", ".\n", "? ", "! ")


def count_words(text: str) -> int:
    """Count words, ignoring bare URLs and markdown link targets."""

    stripped = _URL_RE.sub("", text or "")
    stripped = _LINK_TARGET_RE.sub(r"[\1]", stripped)
    return len(stripped.split())


def is_cut_off(text: str) -> bool:
    """Return True when ``text`` ends mid-sentence.

    A final list item or heading line counts as a complete ending.
    """

    trimmed = (text or "").strip()
    if not trimmed:
        return True
    last_line = trimmed.split("\n")[-1].strip()
    if _LIST_LINE_RE.match(last_line) or _HEADING_LINE_RE.match(last_line):
        return False
    return trimmed[-1] not in _VALID_ENDINGS


def extract_h2_headings(text: str) -> List[str]:
    return [match.strip() for match in _H2_RE.findall(text or "")]


def _similar_heading(a: str, b: str) -> bool:
    if len(a) < 5 or len(b) < 5:
        return False
    shorter, longer = (a, b) if len(a) < len(b) else (b, a)
    return shorter[: int(len(shorter) * 0.7)] in longer


def find_missing_sections(text: str, headings: Iterable[str]) -> List[str]:
    """Return the outline headings that have no matching H2 in ``text``."""

    present = [heading.lower() for heading in extract_h2_headings(text)]
    missing: List[str] = []
    for heading in headings:
        target = heading.lower()
        if not any(h in target or target in h or _similar_heading(h, target) for h in present):
            missing.append(heading)
    return missing


def deduplicate_content(text: str) -> str:
    """Drop a repeated H2 loop, a restarted article, or a dangling ``##`` stub."""

    lines = text.split("\n")
    if len(lines) < 10:
        return text

    seen_h2 = set()
    for index, line in enumerate(lines):
        match = re.match(r"^## (.+)$", line)
        if not match:
            continue
        heading = match.group(1).strip().lower()
        if heading in seen_h2:
            LOGGER.info("dedupe_repeated_heading", extra={"heading": match.group(1), "line": index})
            return "\n".join(lines[:index]).rstrip()
        seen_h2.add(heading)

    first_paragraph = ""
    for block in re.split(r"\n\n+", text):
        candidate = block.strip()
        if len(candidate) > 80 and not _STRUCTURAL_BLOCK_RE.match(candidate):
            first_paragraph = re.sub(r"\s+", " ", candidate[:200].lower())
            break
    if first_paragraph:
        normalized = re.sub(r"\s+", " ", text).lower()
        first_index = normalized.find(first_paragraph)
        if first_index >= 0:
            second_index = normalized.find(first_paragraph, first_index + len(first_paragraph))
            if second_index > 0:
                blocks = re.split(r"\n\n+", text)
                kept: List[str] = []
                consumed = 0
                for block in blocks:
                    if consumed >= second_index - 50:
                        break
                    kept.append(block)
                    consumed += len(re.sub(r"\s+", " ", block)) + 2
                if kept and len(kept) < len(blocks):
                    LOGGER.info("dedupe_repeated_article", extra={"position": second_index})
                    return "\n\n".join(kept).rstrip()

    stub = _TRAILING_STUB_RE.fullmatch(text.rstrip())
    if stub:
        return stub.group(1).rstrip()
    return text


def slugify(text: str) -> str:
    slug = (text or "").lower()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[\s_-]+", "-", slug)
    return slug.strip("-")[:80]


def truncate_at_sentence(text: str, max_chars: int) -> str:
    """Clip ``text`` to ``max_chars``, preferring the last sentence break past the halfway mark."""

    if len(text) <= max_chars:
        return text
    clipped = text[:max_chars]
    cut = max(clipped.rfind(marker) for marker in _SENTENCE_BREAKS)
    if cut > max_chars * 0.5:
        return clipped[: cut + 1].strip()
    return clipped.strip()


def title_case(text: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in text.split())


def get_image_style(niche: str) -> str:
    n = (niche or "").lower()
    styles = (
        (r"food|restaurant|cook|recipe|bak", "appetizing professional food photography style, warm lighting, shallow depth of field"),
        (r"fashion|beauty|cosmetic|skincare", "clean editorial photography style, soft natural lighting, modern aesthetic"),
        (r"tech|saas|software|ai|developer|coding|startup", "clean modern flat illustration with a professional tech aesthetic, minimal and sleek"),
        (r"health|fitness|medical|wellness|yoga", "bright clean lifestyle photography style, natural and uplifting"),
        (r"finance|banking|invest|insurance|accounting", "professional corporate illustration, clean lines, trustworthy blue-toned palette"),
        (r"travel|hotel|tourism|adventure", "vivid landscape photography style, cinematic composition, natural colors"),
        (r"education|learning|school|course|tutoring", "friendly modern illustration, approachable and colorful, educational context"),
        (r"real.?estate|property|home|interior", "professional architectural photography style, bright and inviting interiors"),
        (r"marketing|seo|content|social.?media|agency", "clean modern flat illustration with bold accent colors, professional and data-driven feel"),
        (r"ecommerce|shop|retail|product", "clean product photography style on minimal background, professional commercial look"),
    )
    for pattern, style in styles:
        if re.search(pattern, n):
            return style
    return "clean professional illustration, modern and relevant to the topic"
