"""Publish hooks fired after an auto-published article is stored."""
from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

import httpx

from config import PUBLISH_TIMEOUT_S, PUBLISH_WEBHOOK_URL
from observability.logger import get_logger

LOGGER = get_logger("articleforge.publishing")


class PublishHook(Protocol):
    def __call__(self, event: Dict[str, Any]) -> None:
        ...


class NullPublishHook:
    def __call__(self, event: Dict[str, Any]) -> None:
        LOGGER.info("publish_hook_skipped", extra={"event": event})


class WebhookPublishHook:
    """POSTs ``{articleId, siteId, trigger}`` to a configured URL."""

    def __init__(self, url: str, *, timeout_s: float = PUBLISH_TIMEOUT_S, client: Optional[httpx.Client] = None) -> None:
        self._url = url
        self._client = client or httpx.Client(timeout=timeout_s)

    def __call__(self, event: Dict[str, Any]) -> None:
        response = self._client.post(self._url, json=event)
        response.raise_for_status()
        LOGGER.info("publish_hook_sent", extra={"event": event, "status_code": response.status_code})


def build_publish_hook() -> PublishHook:
    if PUBLISH_WEBHOOK_URL:
        return WebhookPublishHook(PUBLISH_WEBHOOK_URL)
    return NullPublishHook()


__all__ = ["NullPublishHook", "PublishHook", "WebhookPublishHook", "build_publish_hook"]
