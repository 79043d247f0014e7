"""Queue operations: enqueue, claim-and-process, progress, completion and stuck-job recovery."""
from __future__ import annotations

import re
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from config import JOB_MAX_AUTO_RETRIES, JOB_STUCK_THRESHOLD_S
from domain.models import GenerationContext, ImageRef, InternalLink, PublishedArticle
from domain.prompt_builder import build_image_prompt
from helpers import get_image_style
from keywords import generate_cluster_preview, keyword_key, suggest_keywords
from observability.logger import get_logger, job_context
from observability.metrics import get_registry
from orchestrate import FEATURED_IMAGE_WARNING, ArticlePipeline, PipelineStage
from research import CitationChecker, HttpCitationChecker
from services.images import ImagePipeline, build_image_pipeline
from services.llm_client import ModelClient, ProviderConfig, get_default_client
from services.publishing import NullPublishHook, PublishHook, build_publish_hook

from .content_store import ArticleStatus, ContentStore, ContentStoreProtocol, KeywordStatus, StoredArticle
from .models import (
    ArticleJobInput,
    ClusterInput,
    GenerationJob,
    JobKind,
    JobStatus,
    KeywordSuggestInput,
    parse_job_input,
    utcnow,
)
from .store import JobStore, JobStoreProtocol

LOGGER = get_logger("articleforge.jobs.queue")
REGISTRY = get_registry()
ENQUEUED_COUNTER = REGISTRY.counter("jobs.enqueued_total")
COMPLETED_COUNTER = REGISTRY.counter("jobs.completed_total")
FAILED_COUNTER = REGISTRY.counter("jobs.failed_total")
RECOVERED_COUNTER = REGISTRY.counter("jobs.recovered_total")
QUEUE_GAUGE = REGISTRY.gauge("jobs.queue_length")

RETRY_MARKER_RE = re.compile(r"\[auto-retry (\d+)/\d+\]")
PUBLISHED_LINK_KEYWORDS = 2


def parse_retry_count(error: Optional[str]) -> int:
    match = RETRY_MARKER_RE.search(error or "")
    return int(match.group(1)) if match else 0


def retry_marker(attempt: int, limit: int) -> str:
    return f"[auto-retry {attempt}/{limit}] Job stalled, auto-retrying..."


def terminal_failure_message(limit: int) -> str:
    return f"Job failed after {limit} auto-retries. Click Retry to try again."


def build_link_candidates(
    published: List[PublishedArticle], manual: List[InternalLink]
) -> List[InternalLink]:
    """Published articles first (focus plus two secondary keywords), then manual links with new keywords."""

    seen = set()
    candidates: List[InternalLink] = []

    def _add(keyword: str, url: str) -> None:
        key = keyword_key(keyword)
        if not key or not url or key in seen:
            return
        seen.add(key)
        candidates.append(InternalLink(keyword=keyword.strip(), url=url))

    for post in published:
        _add(post.focus_keyword or post.title, post.url)
        for secondary in post.secondary_keywords[:PUBLISHED_LINK_KEYWORDS]:
            _add(secondary, post.url)
    for link in manual:
        _add(link.keyword, link.url)
    return candidates


class JobQueue:
    """Schedules generation work over a job store and a content store."""

    def __init__(
        self,
        jobs: JobStoreProtocol,
        content: ContentStoreProtocol,
        *,
        client: Optional[ModelClient] = None,
        provider: Optional[ProviderConfig] = None,
        image_pipeline: Optional[ImagePipeline] = None,
        publish_hook: Optional[PublishHook] = None,
        citation_checker: Optional[CitationChecker] = None,
        stuck_threshold_s: int = JOB_STUCK_THRESHOLD_S,
        max_auto_retries: int = JOB_MAX_AUTO_RETRIES,
        clock: Callable[[], datetime] = utcnow,
        pipeline_factory: Optional[Callable[..., ArticlePipeline]] = None,
    ) -> None:
        self.jobs = jobs
        self.content = content
        self.client = client
        self.provider = provider
        self.image_pipeline = image_pipeline
        self.publish_hook = publish_hook or NullPublishHook()
        self.citation_checker = citation_checker
        self.stuck_threshold_s = stuck_threshold_s
        self.max_auto_retries = max_auto_retries
        self._clock = clock
        self._pipeline_factory = pipeline_factory or ArticlePipeline

    def _client(self) -> ModelClient:
        if self.client is None:
            self.client = get_default_client()
        return self.client

    def _refresh_gauge(self) -> None:
        QUEUE_GAUGE.set(float(self.jobs.count(JobStatus.QUEUED)))

    # enqueue --------------------------------------------------------------

    def enqueue(self, kind: JobKind, data: Dict[str, Any]) -> str:
        parsed = parse_job_input(kind, data)
        job = GenerationJob(id=uuid.uuid4().hex, kind=JobKind(kind), input=parsed.to_dict(), created_at=self._clock())
        self.jobs.create(job)
        ENQUEUED_COUNTER.inc()
        self._refresh_gauge()
        LOGGER.info("job_enqueued", extra={"job_id": job.id, "kind": job.kind.value})
        return job.id

    def enqueue_article(self, data: Dict[str, Any]) -> str:
        return self.enqueue(JobKind.BLOG_GENERATION, data)

    def enqueue_keyword_suggest(self, data: Dict[str, Any]) -> str:
        return self.enqueue(JobKind.KEYWORD_SUGGEST, data)

    def enqueue_cluster(self, data: Dict[str, Any]) -> str:
        return self.enqueue(JobKind.CLUSTER_GENERATE, data)

    # state transitions ----------------------------------------------------
    # A processing run passes the ``started_at`` of its claim; after recovery requeues
    # the job and another run claims it, writes from the stale run are dropped.

    def update_progress(
        self, job_id: str, progress: int, step: Optional[str] = None, *, started_at: Optional[datetime] = None
    ) -> Optional[GenerationJob]:
        return self.jobs.update(
            job_id,
            lambda job: job.update_progress(progress, step),
            expect_status=JobStatus.PROCESSING,
            expect_started_at=started_at,
        )

    def complete(
        self,
        job_id: str,
        output: Dict[str, Any],
        *,
        blog_post_id: Optional[str] = None,
        started_at: Optional[datetime] = None,
    ) -> Optional[GenerationJob]:
        now = self._clock()
        job = self.jobs.update(
            job_id,
            lambda item: item.mark_completed(output, now, blog_post_id=blog_post_id),
            expect_status=JobStatus.PROCESSING,
            expect_started_at=started_at,
        )
        if job is not None:
            COMPLETED_COUNTER.inc()
            LOGGER.info("job_completed", extra={"job_id": job_id, "kind": job.kind.value})
        else:
            LOGGER.warning("job_completion_dropped", extra={"job_id": job_id})
        return job

    def fail(self, job_id: str, error: str, *, started_at: Optional[datetime] = None) -> Optional[GenerationJob]:
        now = self._clock()
        job = self.jobs.update(
            job_id,
            lambda item: item.mark_failed(error, now),
            expect_status=JobStatus.PROCESSING,
            expect_started_at=started_at,
        )
        if job is not None:
            FAILED_COUNTER.inc()
            LOGGER.warning("job_failed", extra={"job_id": job_id, "kind": job.kind.value, "error": error})
        return job

    def retry(self, job_id: str) -> Optional[GenerationJob]:
        """Manual retry of a failed job; clears the auto-retry marker."""

        job = self.jobs.update(job_id, lambda item: item.requeue(None), expect_status=JobStatus.FAILED)
        if job is not None:
            self._refresh_gauge()
            LOGGER.info("job_retried", extra={"job_id": job_id})
        return job

    # processing -----------------------------------------------------------

    def process_job(self, job_id: str) -> Optional[JobStatus]:
        """Claim ``job_id`` and run it; a job that is not ``QUEUED`` is left alone."""

        job = self.jobs.claim(job_id)
        if job is None:
            LOGGER.info("job_claim_skipped", extra={"job_id": job_id})
            return None
        return self._run(job)

    def process_next(self) -> Optional[JobStatus]:
        job = self.jobs.claim_next()
        if job is None:
            return None
        return self._run(job)

    def _run(self, job: GenerationJob) -> JobStatus:
        self._refresh_gauge()
        LOGGER.info("job_claimed", extra={"job_id": job.id, "kind": job.kind.value})
        handlers = {
            JobKind.BLOG_GENERATION: self._process_article,
            JobKind.KEYWORD_SUGGEST: self._process_keyword_suggest,
            JobKind.CLUSTER_GENERATE: self._process_cluster,
        }
        try:
            with job_context(job.id):
                handlers[job.kind](job)
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("job_processing_error", extra={"job_id": job.id, "error": str(exc)})
            failed = self.fail(job.id, str(exc) or exc.__class__.__name__, started_at=job.started_at)
            if failed is not None and job.kind == JobKind.BLOG_GENERATION:
                keyword_id = job.input.get("keywordId")
                if keyword_id:
                    self.content.set_keyword_status(keyword_id, KeywordStatus.FAILED)
            return JobStatus.FAILED
        return JobStatus.COMPLETED

    def _website(self, website_id: str) -> GenerationContext:
        ctx = self.content.get_website(website_id)
        if ctx is None:
            raise LookupError(f"Website {website_id} not found")
        return ctx

    def _with_link_candidates(self, ctx: GenerationContext) -> GenerationContext:
        published = self.content.published_articles(ctx.id)
        candidates = build_link_candidates(published, self.content.internal_links(ctx.id))
        return ctx.with_links(candidates, published)

    def _process_article(self, job: GenerationJob) -> None:
        params = ArticleJobInput.parse(job.input)
        ctx = self._with_link_candidates(self._website(params.website_id))
        self.content.set_keyword_status(params.keyword_id, KeywordStatus.RESEARCHING)
        generating = False

        def _on_progress(event: Dict[str, Any]) -> None:
            nonlocal generating
            updated = self.update_progress(job.id, int(event["percentage"]), event["step"], started_at=job.started_at)
            if updated is not None and not generating and event["step"] == PipelineStage.OUTLINE.value:
                generating = True
                self.content.set_keyword_status(params.keyword_id, KeywordStatus.GENERATING)

        pipeline = self._pipeline_factory(
            self._client(),
            provider=self.provider,
            image_pipeline=self.image_pipeline,
            citation_checker=self.citation_checker,
            progress_callback=_on_progress,
            job_id=job.id,
        )
        article = pipeline.run(params.to_request(), ctx)
        status = ArticleStatus.PUBLISHED if params.auto_publish else ArticleStatus.REVIEW
        stored = self.content.create_article(params.website_id, params.keyword_id, article, status=status)
        if params.include_images and FEATURED_IMAGE_WARNING in article.warnings:
            stored = self._retry_featured_image(ctx, stored)
        completed = self.complete(
            job.id,
            {"blogPostId": stored.id, "title": stored.article.title, "slug": stored.slug},
            blog_post_id=stored.id,
            started_at=job.started_at,
        )
        if completed is None:
            # Claim lost to recovery; the run that owns the job now writes the article.
            self.content.delete_article(stored.id)
            LOGGER.warning("stale_article_discarded", extra={"job_id": job.id, "article_id": stored.id})
            return
        self.content.set_keyword_status(params.keyword_id, KeywordStatus.COMPLETED, blog_post_id=stored.id)
        if params.auto_publish:
            self._publish(stored)

    def _retry_featured_image(self, ctx: GenerationContext, stored: StoredArticle) -> StoredArticle:
        if self.image_pipeline is None:
            return stored
        article = stored.article
        prompt = build_image_prompt(
            f'Create an image that directly represents the concept of "{article.focus_keyword}" '
            f"for a {ctx.niche or 'general'} business",
            article.focus_keyword,
            get_image_style(ctx.niche),
        )
        try:
            url = self.image_pipeline.generate_featured_image(prompt, f"{stored.slug}-featured", ctx.id)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("featured_image_retry_failed", extra={"article_id": stored.id, "error": str(exc)})
            message = str(exc) or exc.__class__.__name__

            def _record(item: StoredArticle) -> None:
                item.image_error = message

            return self.content.update_article(stored.id, _record) or stored

        def _attach(item: StoredArticle) -> None:
            item.article.featured_image = ImageRef(url=url, alt=item.article.featured_image_alt)
            item.article.warnings = [w for w in item.article.warnings if w != FEATURED_IMAGE_WARNING]
            item.image_error = None

        LOGGER.info("featured_image_retried", extra={"article_id": stored.id})
        return self.content.update_article(stored.id, _attach) or stored

    def _publish(self, stored: StoredArticle) -> None:
        event = {"articleId": stored.id, "siteId": stored.website_id, "trigger": "auto"}
        try:
            self.publish_hook(event)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("publish_hook_failed", extra={"article_id": stored.id, "error": str(exc)})

    def _process_keyword_suggest(self, job: GenerationJob) -> None:
        params = KeywordSuggestInput.parse(job.input)
        ctx = self._website(params.website_id)
        existing = [record.keyword for record in self.content.keywords_for(ctx.id)]
        self.update_progress(job.id, 20, "generating", started_at=job.started_at)
        suggestions = suggest_keywords(self._client(), ctx, existing, provider=self.provider, count=params.count)
        self.update_progress(job.id, 80, "filtering", started_at=job.started_at)
        self.complete(job.id, {"suggestions": [item.to_dict() for item in suggestions]}, started_at=job.started_at)

    def _process_cluster(self, job: GenerationJob) -> None:
        params = ClusterInput.parse(job.input)
        ctx = self._website(params.website_id)
        seed = params.seed_keyword or ctx.niche or ctx.brand_name
        existing = [record.keyword for record in self.content.keywords_for(ctx.id)]
        self.update_progress(job.id, 30, "analyzing", started_at=job.started_at)
        self.update_progress(job.id, 80, "generating", started_at=job.started_at)
        preview = generate_cluster_preview(self._client(), seed, ctx, existing, provider=self.provider)
        self.complete(job.id, {"suggestions": [preview.to_suggestion()]}, started_at=job.started_at)

    # recovery -------------------------------------------------------------

    def recover_stuck_jobs(self) -> int:
        """Requeue or fail jobs that stayed ``PROCESSING`` past the threshold; returns how many were handled."""

        cutoff = self._clock() - timedelta(seconds=self.stuck_threshold_s)
        handled = 0
        for job in self.jobs.find_stuck(cutoff):
            retries = parse_retry_count(job.error)
            if retries < self.max_auto_retries:
                marker = retry_marker(retries + 1, self.max_auto_retries)
                updated = self.jobs.update(
                    job.id,
                    lambda item: item.requeue(marker),
                    expect_status=JobStatus.PROCESSING,
                    expect_started_at=job.started_at,
                )
                event = "stuck_job_requeued"
            else:
                now = self._clock()
                message = terminal_failure_message(self.max_auto_retries)
                updated = self.jobs.update(
                    job.id,
                    lambda item: item.mark_failed(message, now),
                    expect_status=JobStatus.PROCESSING,
                    expect_started_at=job.started_at,
                )
                event = "stuck_job_failed"
            if updated is None:
                continue
            handled += 1
            RECOVERED_COUNTER.inc()
            LOGGER.warning(event, extra={"job_id": job.id, "retries": retries, "kind": job.kind.value})
        if handled:
            self._refresh_gauge()
        return handled


def build_default_queue(
    jobs: Optional[JobStoreProtocol] = None, content: Optional[ContentStoreProtocol] = None
) -> JobQueue:
    """Wire the stores with the configured model, image and publish collaborators."""

    return JobQueue(
        jobs or JobStore(),
        content or ContentStore(),
        client=get_default_client(),
        image_pipeline=build_image_pipeline(),
        publish_hook=build_publish_hook(),
        citation_checker=HttpCitationChecker(),
    )


__all__ = [
    "JobQueue",
    "build_default_queue",
    "build_link_candidates",
    "parse_retry_count",
    "retry_marker",
    "terminal_failure_message",
]
