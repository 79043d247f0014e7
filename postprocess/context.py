"""Inputs shared by the repair passes."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from typing import FrozenSet, Optional, Tuple
from urllib.parse import urlsplit

from domain.models import ConsolidatedLink, InternalLink

# ``[anchor](target)``; anchors may hold one level of ``[...]``. Images are excluded by the lookbehind.
LINK_RE = re.compile(r"(?<!!)\[((?:[^\[\]\n]|\[[^\[\]\n]*\](?!\())*)\]\(([^)\n]*)\)")


def link_target(raw: str) -> str:
    """First token of a link destination, dropping an optional title."""

    parts = (raw or "").strip().split()
    return parts[0] if parts else ""


def normalize_url(url: str) -> str:
    return (url or "").strip().rstrip("/").lower()


def url_host(url: str) -> str:
    try:
        parsed = urlsplit(url.strip())
    except ValueError:
        return ""
    if parsed.scheme not in {"http", "https"}:
        return ""
    return (parsed.hostname or "").lower()


def _current_year() -> int:
    return date.today().year


@dataclass(frozen=True)
class RepairContext:
    """What the passes need to know about the brand and the approved link targets."""

    brand_name: str = ""
    brand_url: str = ""
    cta_url: Optional[str] = None
    title: str = ""
    consolidated_links: Tuple[ConsolidatedLink, ...] = ()
    internal_links: Tuple[InternalLink, ...] = ()
    citations: Tuple[str, ...] = ()
    current_year: int = field(default_factory=_current_year)
    inject_links: bool = True

    @property
    def brand_origin(self) -> str:
        try:
            parsed = urlsplit((self.brand_url or "").strip())
        except ValueError:
            return ""
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            return ""
        return f"{parsed.scheme}://{parsed.netloc}"

    @property
    def brand_host(self) -> str:
        return url_host(self.brand_url or "")

    @property
    def allowed_urls(self) -> FrozenSet[str]:
        allowed = {normalize_url(link.url) for link in self.consolidated_links}
        if self.cta_url:
            allowed.add(normalize_url(self.cta_url))
        return frozenset(allowed)

    @property
    def citation_urls(self) -> FrozenSet[str]:
        return frozenset(normalize_url(url) for url in self.citations)

    @property
    def citation_hosts(self) -> FrozenSet[str]:
        return frozenset(host for host in (url_host(url) for url in self.citations) if host)


__all__ = ["LINK_RE", "RepairContext", "link_target", "normalize_url", "url_host"]
