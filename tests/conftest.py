from __future__ import annotations

import json
import sys
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from domain.models import ArticleRequest, GeneratedArticle, GenerationContext  # noqa: E402
from helpers import slugify  # noqa: E402
from orchestrate import STAGE_MESSAGES, STAGES, progress_event, stage_percentage  # noqa: E402
from services.llm_client import GenerationResult, ModelClient, ProviderConfig, RetryPolicy  # noqa: E402

TEST_PROVIDER = ProviderConfig(provider="gemini", model="test-model", api_key="test-key")


class ScriptedTransport:
    """Answers prompts by prefix; a list route is consumed in order and repeats its last item."""

    def __init__(self, routes: Sequence[Tuple[str, Any]]) -> None:
        self._routes = [(prefix, list(value) if isinstance(value, list) else value) for prefix, value in routes]
        self._lock = threading.Lock()
        self.calls: List[Dict[str, Any]] = []

    def prompts(self, prefix: str) -> List[str]:
        return [call["prompt"] for call in self.calls if call["prompt"].startswith(prefix)]

    def _pick(self, prompt: str) -> Any:
        with self._lock:
            for prefix, value in self._routes:
                if not prompt.startswith(prefix):
                    continue
                if isinstance(value, list):
                    return value.pop(0) if len(value) > 1 else value[0]
                return value
        raise AssertionError(f"unexpected prompt: {prompt[:120]!r}")

    def complete(self, prompt, system_prompt, options, config):
        with self._lock:
            self.calls.append({"prompt": prompt, "system_prompt": system_prompt, "options": options, "config": config})
        response = self._pick(prompt)
        if callable(response) and not isinstance(response, type):
            response = response(prompt)
        if isinstance(response, BaseException):
            raise response
        if isinstance(response, GenerationResult):
            return response
        if isinstance(response, (dict, list)):
            return GenerationResult(text=json.dumps(response))
        return GenerationResult(text=str(response))


def build_client(transport: ScriptedTransport, *, max_attempts: int = 3, sleeps: Optional[list] = None) -> ModelClient:
    recorded = sleeps if sleeps is not None else []
    return ModelClient(
        TEST_PROVIDER,
        transports={"gemini": transport},
        retry_policy=RetryPolicy(max_attempts=max_attempts, base_delay=1.0, max_delay=8.0),
        sleep=recorded.append,
        rps=1000,
        rpm=100000,
    )


class DummyImagePipeline:
    def __init__(self, *, fail_featured: int = 0, fail_inline: bool = False) -> None:
        self.fail_featured = fail_featured
        self.fail_inline = fail_inline
        self.featured_calls: List[Tuple[str, str, str]] = []
        self.inline_calls: List[Tuple[str, str, int, str]] = []

    def generate_featured_image(self, prompt: str, slug: str, site_id: str) -> str:
        self.featured_calls.append((prompt, slug, site_id))
        if self.fail_featured > 0:
            self.fail_featured -= 1
            raise RuntimeError("image service unavailable")
        return f"https://cdn.example.com/{slug}.webp"

    def generate_inline_image(self, prompt: str, slug: str, index: int, site_id: str) -> str:
        self.inline_calls.append((prompt, slug, index, site_id))
        if self.fail_inline:
            raise RuntimeError("inline render failed")
        return f"https://cdn.example.com/{slug}-inline-{index}.webp"


class RecordingPublishHook:
    def __init__(self, *, error: Optional[Exception] = None) -> None:
        self.events: List[Dict[str, Any]] = []
        self.error = error

    def __call__(self, event: Dict[str, Any]) -> None:
        self.events.append(event)
        if self.error is not None:
            raise self.error


def paragraph(tag: str, sentences: int = 6) -> str:
    """Eight words per sentence; ``tag`` keeps paragraphs distinct."""

    return " ".join(f"Agencies using {tag} step {index} keep reporting consistent." for index in range(1, sentences + 1))


def section(heading: str, tag: str, paragraphs: int = 4) -> str:
    body = "\n\n".join(paragraph(f"{tag}p{index}") for index in range(1, paragraphs + 1))
    return f"## {heading}\n\n{body}"


def toc(headings: Sequence[str]) -> str:
    from postprocess import heading_slug

    return "## Table of Contents\n\n" + "\n".join(f"- [{h}](#{heading_slug(h)})" for h in headings)


FAQ_BLOCK = """## Frequently Asked Questions

### What does a CRM do for an agency?

It keeps every client conversation, deal and deliverable in one shared place.

### How long does a CRM rollout take?

Most small agencies finish a basic rollout within two to four weeks."""


def echo_article(prompt: str) -> str:
    """Return the article embedded in a tone or SEO rewrite prompt unchanged."""

    start = prompt.index("words):\n") + len("words):\n")
    end = prompt.rindex("\n\nOutput ONLY")
    return prompt[start:end]


@pytest.fixture
def brand_context() -> GenerationContext:
    return GenerationContext(
        id="site-1",
        brand_name="Northwind",
        brand_url="https://northwind.io",
        niche="marketing agency software",
        target_audience="agency owners",
        tone="practical",
    )


@pytest.fixture
def scripted_client() -> Callable[..., Tuple[ModelClient, ScriptedTransport]]:
    def _factory(routes: Sequence[Tuple[str, Any]], **kwargs) -> Tuple[ModelClient, ScriptedTransport]:
        transport = ScriptedTransport(routes)
        return build_client(transport, **kwargs), transport

    return _factory


class FakeClock:
    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def make_article(keyword: str, *, warnings: Sequence[str] = ()) -> GeneratedArticle:
    return GeneratedArticle(
        title=keyword.title(),
        slug=slugify(keyword),
        content=f"## {keyword.title()}\n\nA complete paragraph about {keyword}.",
        excerpt=f"All about {keyword}.",
        meta_title=keyword.title(),
        meta_description=f"All about {keyword}.",
        focus_keyword=keyword,
        secondary_keywords=[f"{keyword} tips"],
        featured_image_alt=f"{keyword} - {keyword.title()}",
        warnings=list(warnings),
    )


class _FakePipeline:
    def __init__(self, factory: "FakePipelineFactory", progress_callback) -> None:
        self._factory = factory
        self._progress = progress_callback

    def run(self, request: ArticleRequest, ctx: GenerationContext) -> GeneratedArticle:
        self._factory.runs.append((request, ctx))
        for stage in STAGES:
            if self._progress is not None:
                self._progress(progress_event(stage, STAGE_MESSAGES[stage], stage_percentage(stage)))
            if self._factory.on_stage is not None:
                self._factory.on_stage(stage)
            if self._factory.error is not None:
                raise self._factory.error
        return make_article(request.keyword, warnings=self._factory.warnings)


class FakePipelineFactory:
    """Replaces ``ArticlePipeline`` in queue tests and records every run."""

    def __init__(self, *, warnings: Sequence[str] = (), error: Optional[Exception] = None, on_stage=None) -> None:
        self.warnings = list(warnings)
        self.error = error
        self.on_stage = on_stage
        self.runs: List[Tuple[ArticleRequest, GenerationContext]] = []
        self.kwargs: Dict[str, Any] = {}

    def __call__(self, client, **kwargs) -> _FakePipeline:
        self.kwargs = kwargs
        return _FakePipeline(self, kwargs.get("progress_callback"))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
