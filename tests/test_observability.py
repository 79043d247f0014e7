import json
import logging

from observability.logger import JsonFormatter, bind_trace_id, clear_trace_id, job_context
from observability.metrics import MetricsRegistry


def _record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("articleforge.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_emits_extras_trace_and_job_ids():
    formatter = JsonFormatter()
    bind_trace_id("trace-1")
    try:
        with job_context("job-9"):
            payload = json.loads(formatter.format(_record("job_claimed", kind="BLOG_GENERATION")))
    finally:
        clear_trace_id()

    assert payload["message"] == "job_claimed"
    assert payload["logger"] == "articleforge.test"
    assert payload["trace_id"] == "trace-1"
    assert payload["job_id"] == "job-9"
    assert payload["kind"] == "BLOG_GENERATION"
    assert "lineno" not in payload


def test_job_context_is_reset_after_block():
    formatter = JsonFormatter()
    with job_context("job-1"):
        pass
    payload = json.loads(formatter.format(_record("idle", job_id=None)))
    assert payload["job_id"] is None
    assert "trace_id" not in payload


def test_registry_reuses_metrics_and_snapshots():
    registry = MetricsRegistry()
    registry.counter("jobs.enqueued_total").inc()
    registry.counter("jobs.enqueued_total").inc(2)
    registry.counter("jobs.enqueued_total").inc(0)
    registry.gauge("jobs.queue_length").set(4)
    timer = registry.timer("llm.request_duration")
    timer.observe(12.5)
    timer.observe(40.0)

    snapshot = registry.snapshot()
    assert snapshot["jobs.enqueued_total"] == 3.0
    assert snapshot["jobs.queue_length"] == 4.0
    assert snapshot["llm.request_duration"] == {"count": 2.0, "total_ms": 52.5, "max_ms": 40.0}
