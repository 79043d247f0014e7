"""Image pipeline collaborators consumed by the image stage."""
from __future__ import annotations

from typing import Optional, Protocol

import httpx

from config import IMAGE_SERVICE_URL, IMAGE_TIMEOUT_S
from observability.logger import get_logger

LOGGER = get_logger("articleforge.images")


class ImageGenerationError(RuntimeError):
    """Raised when a single image cannot be produced."""


class ImagePipeline(Protocol):
    def generate_featured_image(self, prompt: str, slug: str, site_id: str) -> str:
        ...

    def generate_inline_image(self, prompt: str, slug: str, index: int, site_id: str) -> str:
        ...


class HttpImagePipeline:
    """Delegates rendering to an external image service over HTTP.

    The service receives ``{prompt, slug, siteId, kind, index}`` and answers
    with ``{"url": "..."}``.
    """

    def __init__(self, base_url: str, *, timeout_s: float = IMAGE_TIMEOUT_S, client: Optional[httpx.Client] = None) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout_s, connect=min(10.0, timeout_s)))

    def _render(self, payload: dict) -> str:
        try:
            response = self._client.post(f"{self._base_url}/images", json=payload)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ImageGenerationError(f"Image service failed: {exc}") from exc
        url = data.get("url") if isinstance(data, dict) else None
        if not isinstance(url, str) or not url.strip():
            raise ImageGenerationError("Image service returned no URL")
        return url.strip()

    def generate_featured_image(self, prompt: str, slug: str, site_id: str) -> str:
        return self._render({"prompt": prompt, "slug": slug, "siteId": site_id, "kind": "featured"})

    def generate_inline_image(self, prompt: str, slug: str, index: int, site_id: str) -> str:
        return self._render(
            {"prompt": prompt, "slug": slug, "siteId": site_id, "kind": "inline", "index": index}
        )

    def close(self) -> None:
        self._client.close()


def build_image_pipeline() -> Optional[ImagePipeline]:
    if not IMAGE_SERVICE_URL:
        LOGGER.warning("image_pipeline_disabled", extra={"reason": "IMAGE_SERVICE_URL is not set"})
        return None
    return HttpImagePipeline(IMAGE_SERVICE_URL)


__all__ = ["HttpImagePipeline", "ImageGenerationError", "ImagePipeline", "build_image_pipeline"]
