from __future__ import annotations

import pytest

from conftest import (
    TEST_PROVIDER,
    DummyImagePipeline,
    FakePipelineFactory,
    RecordingPublishHook,
    ScriptedTransport,
    build_client,
)
from domain.models import InternalLink, PublishedArticle
from jobs import ArticleStatus, ContentStore, JobInputError, JobQueue, JobStatus, JobStore, JobWorker, KeywordStatus
from jobs.queue import build_link_candidates, parse_retry_count
from orchestrate import FEATURED_IMAGE_WARNING, PipelineStage, StageError


class RecordingContentStore(ContentStore):
    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.keyword_history = []

    def set_keyword_status(self, keyword_id, status, *, blog_post_id=None):
        self.keyword_history.append(status)
        return super().set_keyword_status(keyword_id, status, blog_post_id=blog_post_id)


@pytest.fixture
def content(clock, brand_context):
    store = RecordingContentStore(clock=clock)
    store.add_website(brand_context)
    return store


def _queue(content, clock, *, routes=(), **kwargs) -> JobQueue:
    kwargs.setdefault("pipeline_factory", FakePipelineFactory())
    return JobQueue(
        JobStore(clock=clock),
        content,
        client=build_client(ScriptedTransport(list(routes))),
        provider=TEST_PROVIDER,
        clock=clock,
        **kwargs,
    )


def _article_job(queue, content, keyword="crm for agencies", **extra):
    record = content.add_keyword("site-1", keyword)
    job_id = queue.enqueue_article({"keywordId": record.id, "keyword": keyword, "websiteId": "site-1", **extra})
    return job_id, record


def test_article_job_completes_and_links_keyword(content, clock):
    observed = []
    factory = FakePipelineFactory()
    queue = _queue(content, clock, pipeline_factory=factory)
    job_id, record = _article_job(queue, content)
    factory.on_stage = lambda stage: observed.append(queue.jobs.get(job_id).progress)

    assert queue.process_next() == JobStatus.COMPLETED

    job = queue.jobs.get(job_id)
    assert job.status == JobStatus.COMPLETED
    assert job.progress == 100
    stored = content.get_article(job.blog_post_id)
    assert job.output == {"blogPostId": stored.id, "title": "Crm For Agencies", "slug": "crm-for-agencies"}
    assert stored.status == ArticleStatus.REVIEW
    assert stored.url == "https://northwind.io/blog/crm-for-agencies"
    keyword = content.get_keyword(record.id)
    assert keyword.status == KeywordStatus.COMPLETED
    assert keyword.blog_post_id == stored.id
    assert content.keyword_history == [KeywordStatus.RESEARCHING, KeywordStatus.GENERATING, KeywordStatus.COMPLETED]
    assert observed == sorted(observed)
    assert observed[0] > 0
    assert factory.kwargs["job_id"] == job_id


def test_missing_website_fails_job_and_keyword(content, clock):
    queue = _queue(content, clock)
    record = content.add_keyword("site-404", "crm for agencies")
    job_id = queue.enqueue_article({"keywordId": record.id, "keyword": "crm for agencies", "websiteId": "site-404"})

    assert queue.process_job(job_id) == JobStatus.FAILED

    job = queue.jobs.get(job_id)
    assert job.status == JobStatus.FAILED
    assert job.error == "Website site-404 not found"
    assert content.get_keyword(record.id).status == KeywordStatus.FAILED


def test_pipeline_error_fails_job_with_message(content, clock):
    factory = FakePipelineFactory(error=StageError(PipelineStage.OUTLINE, "Outline generation returned no title"))
    queue = _queue(content, clock, pipeline_factory=factory)
    job_id, record = _article_job(queue, content)

    assert queue.process_next() == JobStatus.FAILED
    job = queue.jobs.get(job_id)
    assert job.error == "Outline generation returned no title"
    assert job.progress == 14
    assert content.get_keyword(record.id).status == KeywordStatus.FAILED


def test_process_job_skips_jobs_that_are_not_queued(content, clock):
    queue = _queue(content, clock)
    job_id, _ = _article_job(queue, content)
    queue.jobs.claim(job_id)
    assert queue.process_job(job_id) is None


def test_invalid_job_input_is_rejected(content, clock):
    queue = _queue(content, clock)
    with pytest.raises(JobInputError):
        queue.enqueue_article({"keywordId": "k1", "websiteId": "site-1"})
    with pytest.raises(JobInputError):
        queue.enqueue_article({"keywordId": "k1", "keyword": "crm", "websiteId": "site-1", "contentLength": "huge"})


def test_stuck_jobs_are_requeued_then_failed(content, clock):
    queue = _queue(content, clock, stuck_threshold_s=600, max_auto_retries=2)
    job_id, _ = _article_job(queue, content)

    queue.jobs.claim(job_id)
    clock.advance(300)
    assert queue.recover_stuck_jobs() == 0

    clock.advance(301)
    assert queue.recover_stuck_jobs() == 1
    job = queue.jobs.get(job_id)
    assert job.status == JobStatus.QUEUED
    assert job.error.startswith("[auto-retry 1/2]")
    assert job.progress == 0

    queue.jobs.claim(job_id)
    clock.advance(601)
    queue.recover_stuck_jobs()
    assert parse_retry_count(queue.jobs.get(job_id).error) == 2

    queue.jobs.claim(job_id)
    clock.advance(601)
    queue.recover_stuck_jobs()
    job = queue.jobs.get(job_id)
    assert job.status == JobStatus.FAILED
    assert job.error == "Job failed after 2 auto-retries. Click Retry to try again."


def test_writes_from_a_stale_run_are_dropped(content, clock):
    queue = _queue(content, clock, stuck_threshold_s=600)
    job_id, _ = _article_job(queue, content)

    stale = queue.jobs.claim(job_id)
    clock.advance(601)
    assert queue.recover_stuck_jobs() == 1
    clock.advance(1)
    fresh = queue.jobs.claim(job_id)

    assert queue.update_progress(job_id, 90, "image", started_at=stale.started_at) is None
    assert queue.complete(job_id, {"slug": "stale"}, started_at=stale.started_at) is None
    assert queue.fail(job_id, "late failure", started_at=stale.started_at) is None
    job = queue.jobs.get(job_id)
    assert job.status == JobStatus.PROCESSING
    assert job.progress == 0

    assert queue.complete(job_id, {"slug": "fresh"}, started_at=fresh.started_at).status == JobStatus.COMPLETED


def test_stale_run_does_not_persist_a_second_article(content, clock):
    hook = RecordingPublishHook()
    factory = FakePipelineFactory()
    queue = _queue(content, clock, pipeline_factory=factory, publish_hook=hook, stuck_threshold_s=600)
    job_id, record = _article_job(queue, content, autoPublish=True)
    outcomes = []

    def _stall_first_run(stage):
        if stage is not PipelineStage.IMAGE or outcomes:
            return
        outcomes.append(None)
        clock.advance(601)
        assert queue.recover_stuck_jobs() == 1
        clock.advance(1)
        outcomes.append(queue.process_job(job_id))

    factory.on_stage = _stall_first_run
    queue.process_job(job_id)

    assert outcomes[-1] == JobStatus.COMPLETED
    job = queue.jobs.get(job_id)
    assert job.status == JobStatus.COMPLETED
    published = content.published_articles("site-1")
    assert [item.slug for item in published] == ["crm-for-agencies"]
    assert content.get_keyword(record.id).blog_post_id == job.blog_post_id
    assert hook.events == [{"articleId": job.blog_post_id, "siteId": "site-1", "trigger": "auto"}]


def test_stale_failure_leaves_keyword_alone(content, clock):
    factory = FakePipelineFactory()
    queue = _queue(content, clock, pipeline_factory=factory, stuck_threshold_s=600)
    job_id, record = _article_job(queue, content)

    def _stall_then_crash(stage):
        if stage is PipelineStage.IMAGE:
            clock.advance(601)
            queue.recover_stuck_jobs()
            raise RuntimeError("late crash")

    factory.on_stage = _stall_then_crash
    queue.process_job(job_id)

    assert queue.jobs.get(job_id).status == JobStatus.QUEUED
    assert content.get_keyword(record.id).status != KeywordStatus.FAILED


def test_manual_retry_clears_marker(content, clock):
    queue = _queue(content, clock, pipeline_factory=FakePipelineFactory(error=RuntimeError("boom")))
    job_id, _ = _article_job(queue, content)
    queue.process_next()

    retried = queue.retry(job_id)
    assert retried.status == JobStatus.QUEUED
    assert retried.error is None
    assert queue.retry(job_id) is None


def test_featured_image_is_retried_after_generation(content, clock):
    images = DummyImagePipeline()
    factory = FakePipelineFactory(warnings=[FEATURED_IMAGE_WARNING])
    queue = _queue(content, clock, pipeline_factory=factory, image_pipeline=images)
    job_id, _ = _article_job(queue, content)

    queue.process_next()

    stored = content.get_article(queue.jobs.get(job_id).blog_post_id)
    assert stored.article.featured_image.url == "https://cdn.example.com/crm-for-agencies-featured.webp"
    assert FEATURED_IMAGE_WARNING not in stored.article.warnings
    assert stored.image_error is None
    assert images.featured_calls[0][1:] == ("crm-for-agencies-featured", "site-1")


def test_failed_featured_image_retry_is_recorded(content, clock):
    factory = FakePipelineFactory(warnings=[FEATURED_IMAGE_WARNING])
    queue = _queue(content, clock, pipeline_factory=factory, image_pipeline=DummyImagePipeline(fail_featured=1))
    job_id, _ = _article_job(queue, content)

    assert queue.process_next() == JobStatus.COMPLETED

    stored = content.get_article(queue.jobs.get(job_id).blog_post_id)
    assert stored.article.featured_image is None
    assert stored.image_error == "image service unavailable"


def test_auto_publish_fires_hook(content, clock):
    hook = RecordingPublishHook()
    queue = _queue(content, clock, publish_hook=hook)
    job_id, _ = _article_job(queue, content, autoPublish=True)

    queue.process_next()

    stored = content.get_article(queue.jobs.get(job_id).blog_post_id)
    assert stored.status == ArticleStatus.PUBLISHED
    assert stored.published_at == clock()
    assert hook.events == [{"articleId": stored.id, "siteId": "site-1", "trigger": "auto"}]


def test_publish_hook_failure_does_not_fail_job(content, clock):
    queue = _queue(content, clock, publish_hook=RecordingPublishHook(error=RuntimeError("webhook down")))
    job_id, _ = _article_job(queue, content, autoPublish=True)
    assert queue.process_next() == JobStatus.COMPLETED
    assert queue.jobs.get(job_id).status == JobStatus.COMPLETED


def test_repeated_keyword_gets_unique_slug(content, clock):
    queue = _queue(content, clock)
    first, _ = _article_job(queue, content)
    clock.advance(1)
    second, _ = _article_job(queue, content)
    JobWorker(queue).run_until_idle()

    slugs = [content.get_article(queue.jobs.get(job_id).blog_post_id).slug for job_id in (first, second)]
    assert slugs == ["crm-for-agencies", "crm-for-agencies-1"]


def test_published_articles_become_link_candidates(content, clock):
    factory = FakePipelineFactory()
    queue = _queue(content, clock, pipeline_factory=factory)
    content.add_internal_links("site-1", [InternalLink("client portal", "https://northwind.io/portal")])
    _article_job(queue, content, keyword="crm pricing", autoPublish=True)
    queue.process_next()
    clock.advance(1)
    _article_job(queue, content, keyword="crm onboarding")
    queue.process_next()

    _, ctx = factory.runs[-1]
    assert [(link.keyword, link.url) for link in ctx.internal_links] == [
        ("crm pricing", "https://northwind.io/blog/crm-pricing"),
        ("crm pricing tips", "https://northwind.io/blog/crm-pricing"),
        ("client portal", "https://northwind.io/portal"),
    ]
    assert [post.slug for post in ctx.existing_posts] == ["crm-pricing"]


def test_build_link_candidates_prefers_published_keywords():
    published = [
        PublishedArticle(
            title="CRM Pricing",
            slug="crm-pricing",
            url="https://northwind.io/blog/crm-pricing",
            focus_keyword="crm pricing",
            secondary_keywords=("crm costs", "crm plans", "crm tiers"),
        )
    ]
    manual = [
        InternalLink("CRM Pricing", "https://northwind.io/pricing"),
        InternalLink("client portal", "https://northwind.io/portal"),
    ]
    candidates = build_link_candidates(published, manual)
    assert [link.keyword for link in candidates] == ["crm pricing", "crm costs", "crm plans", "client portal"]
    assert candidates[0].url == "https://northwind.io/blog/crm-pricing"


def test_keyword_suggest_job(content, clock):
    content.add_keyword("site-1", "crm for agencies")
    routes = [
        (
            "Suggest ",
            {"keywords": [{"keyword": "CRM for Agencies"}, {"keyword": "agency client portal", "intent": "commercial"}]},
        )
    ]
    queue = _queue(content, clock, routes=routes)
    job_id = queue.enqueue_keyword_suggest({"websiteId": "site-1", "count": 10})

    assert queue.process_next() == JobStatus.COMPLETED
    output = queue.jobs.get(job_id).output
    assert [item["keyword"] for item in output["suggestions"]] == ["agency client portal"]


def test_cluster_job_seeds_from_niche(content, clock):
    transport = ScriptedTransport(
        [
            (
                "Design a topic cluster",
                {
                    "pillarTitle": "Agency Software Guide",
                    "keywords": [
                        {"keyword": "agency software", "role": "pillar"},
                        {"keyword": "agency crm", "role": "supporting"},
                    ],
                },
            )
        ]
    )
    queue = JobQueue(JobStore(clock=clock), content, client=build_client(transport), provider=TEST_PROVIDER, clock=clock)
    job_id = queue.enqueue_cluster({"websiteId": "site-1"})

    assert queue.process_next() == JobStatus.COMPLETED
    assert transport.calls[0]["prompt"].startswith('Design a topic cluster around "marketing agency software"')
    assert queue.jobs.get(job_id).output == {
        "suggestions": [
            {
                "pillarKeyword": "agency software",
                "name": "Agency Software Guide",
                "supportingKeywords": ["agency crm"],
                "rationale": "",
            }
        ]
    }


def test_worker_drains_queue(content, clock):
    queue = _queue(content, clock, pipeline_factory=FakePipelineFactory(error=RuntimeError("boom")))
    _article_job(queue, content)
    _article_job(queue, content, keyword="crm pricing")
    worker = JobWorker(queue)

    assert worker.run_until_idle() == 2
    assert worker.stats.processed == 2
    assert worker.stats.failed == 2
    assert worker.run_once() is False
