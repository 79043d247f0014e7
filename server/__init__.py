"""Flask application exposing the generation queue via HTTP."""
from __future__ import annotations

import uuid
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from flask import Flask, current_app, g, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from config import LLM_RPM, LLM_RPS, WORKER_AUTOSTART
from domain.models import GenerationContext, InternalLink
from jobs import JobInputError, JobQueue, JobStatus, JobWorker, build_default_queue
from keywords import parse_manual_keywords
from observability.logger import bind_trace_id, clear_trace_id, get_logger
from observability.metrics import get_registry
from orchestrate import gather_health_status

load_dotenv()

LOGGER = get_logger("articleforge.api")

EXTENSION_KEY = "articleforge"


class ApiError(Exception):
    """Exception translated into an HTTP error response."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def _queue() -> JobQueue:
    return current_app.extensions[EXTENSION_KEY]["queue"]


def _worker() -> Optional[JobWorker]:
    return current_app.extensions[EXTENSION_KEY]["worker"]


def _require_json(req) -> Dict[str, Any]:
    try:
        data = req.get_json(force=True)  # type: ignore[no-any-return]
    except Exception as exc:  # noqa: BLE001
        raise ApiError("Invalid JSON body") from exc
    if not isinstance(data, dict):
        raise ApiError("Expected a JSON object")
    return data


def _require_website(website_id: str) -> GenerationContext:
    ctx = _queue().content.get_website(website_id)
    if ctx is None:
        raise ApiError(f"Website {website_id} not found", 404)
    return ctx


def _accepted(job_id: str):
    return jsonify({"jobId": job_id, "status": JobStatus.QUEUED.value}), 202


def create_app(queue: Optional[JobQueue] = None, *, start_worker: Optional[bool] = None) -> Flask:
    app = Flask(__name__)
    if hasattr(app, "json"):
        app.json.ensure_ascii = False
    CORS(app, resources={r"/api/*": {"origins": "*"}})

    queue = queue or build_default_queue()
    worker = JobWorker(queue)
    app.extensions[EXTENSION_KEY] = {"queue": queue, "worker": worker}
    if WORKER_AUTOSTART if start_worker is None else start_worker:
        worker.start()

    @app.before_request
    def _bind_request_trace() -> None:
        trace_id = request.headers.get("X-Trace-Id") or uuid.uuid4().hex
        g.trace_id = trace_id
        bind_trace_id(trace_id)

    @app.after_request
    def _append_trace(response):  # type: ignore[override]
        trace_id = getattr(g, "trace_id", None)
        if trace_id:
            response.headers.setdefault("X-Trace-Id", trace_id)
        clear_trace_id()
        return response

    @app.teardown_request
    def _teardown_trace(_exc):  # type: ignore[override]
        clear_trace_id()

    @app.errorhandler(ApiError)
    def _handle_api_error(exc: ApiError):  # type: ignore[override]
        LOGGER.warning("api_error", extra={"error": exc.message, "code": exc.status_code})
        trace_id = getattr(g, "trace_id", None)
        return (
            jsonify({"error": {"message": exc.message, "code": exc.status_code, "trace_id": trace_id}}),
            exc.status_code,
        )

    @app.errorhandler(HTTPException)
    def _handle_http_error(exc: HTTPException):  # type: ignore[override]
        trace_id = getattr(g, "trace_id", None)
        return (
            jsonify({"error": {"message": exc.description, "code": exc.code, "trace_id": trace_id}}),
            exc.code or 500,
        )

    @app.errorhandler(Exception)
    def _handle_generic_error(exc: Exception):  # type: ignore[override]
        LOGGER.exception("unhandled_error")
        trace_id = getattr(g, "trace_id", None)
        return jsonify({"error": {"message": "Internal server error", "trace_id": trace_id}}), 500

    @app.post("/api/websites")
    def create_website():
        payload = _require_json(request)
        ctx = GenerationContext.from_dict(payload)
        if not ctx.brand_name or not ctx.brand_url:
            raise ApiError("'brandName' and 'brandUrl' are required")
        ctx = _queue().content.add_website(ctx)
        for keyword in parse_manual_keywords(payload.get("keywords") or []):
            _queue().content.add_keyword(ctx.id, keyword)
        return jsonify({"website": ctx.to_dict()}), 201

    @app.post("/api/websites/<website_id>/links")
    def add_links(website_id: str):
        _require_website(website_id)
        payload = _require_json(request)
        raw_links = payload.get("links")
        if not isinstance(raw_links, list):
            raise ApiError("'links' must be a list of {keyword, url}")
        links = [
            InternalLink(keyword=str(item["keyword"]).strip(), url=str(item["url"]).strip())
            for item in raw_links
            if isinstance(item, dict) and item.get("keyword") and item.get("url")
        ]
        stored = _queue().content.add_internal_links(website_id, links)
        return jsonify({"links": [{"keyword": link.keyword, "url": link.url} for link in stored]})

    @app.post("/api/websites/<website_id>/keywords")
    def add_keywords(website_id: str):
        _require_website(website_id)
        payload = _require_json(request)
        records = [
            _queue().content.add_keyword(website_id, keyword)
            for keyword in parse_manual_keywords(payload.get("keywords"))
        ]
        return jsonify({"keywords": [record.to_dict() for record in records]}), 201

    @app.post("/api/websites/<website_id>/generate")
    def generate(website_id: str):
        _require_website(website_id)
        payload = _require_json(request)
        payload["websiteId"] = website_id
        if not payload.get("keywordId") and isinstance(payload.get("keyword"), str) and payload["keyword"].strip():
            payload["keywordId"] = _queue().content.add_keyword(website_id, payload["keyword"]).id
        elif payload.get("keywordId") and not payload.get("keyword"):
            record = _queue().content.get_keyword(str(payload["keywordId"]))
            if record is None:
                raise ApiError(f"Keyword {payload['keywordId']} not found", 404)
            payload["keyword"] = record.keyword
        try:
            job_id = _queue().enqueue_article(payload)
        except JobInputError as exc:
            raise ApiError(str(exc)) from exc
        return _accepted(job_id)

    @app.post("/api/websites/<website_id>/keywords/suggest")
    def suggest(website_id: str):
        _require_website(website_id)
        payload = _require_json(request) if request.data else {}
        payload["websiteId"] = website_id
        try:
            job_id = _queue().enqueue_keyword_suggest(payload)
        except JobInputError as exc:
            raise ApiError(str(exc)) from exc
        return _accepted(job_id)

    @app.post("/api/websites/<website_id>/clusters")
    def clusters(website_id: str):
        _require_website(website_id)
        payload = _require_json(request) if request.data else {}
        payload["websiteId"] = website_id
        try:
            job_id = _queue().enqueue_cluster(payload)
        except JobInputError as exc:
            raise ApiError(str(exc)) from exc
        return _accepted(job_id)

    @app.get("/api/jobs/<job_id>")
    def job_status(job_id: str):
        job = _queue().jobs.get(job_id)
        if job is None:
            raise ApiError("Job not found", 404)
        return jsonify(job.to_status_dict())

    @app.post("/api/jobs/<job_id>/retry")
    def retry_job(job_id: str):
        if _queue().jobs.get(job_id) is None:
            raise ApiError("Job not found", 404)
        job = _queue().retry(job_id)
        if job is None:
            raise ApiError("Only failed jobs can be retried", 409)
        return jsonify(job.to_status_dict()), 202

    @app.get("/api/websites/<website_id>/articles/<article_id>")
    def get_article(website_id: str, article_id: str):
        stored = _queue().content.get_article(article_id)
        if stored is None or stored.website_id != website_id:
            raise ApiError("Article not found", 404)
        return jsonify(stored.to_dict())

    @app.get("/api/health")
    def health():
        status = gather_health_status(_queue().provider)
        checks = status.setdefault("checks", {})
        worker = _worker()
        queued = _queue().jobs.count(JobStatus.QUEUED)
        checks["rate_limits"] = {"ok": True, "message": f"Client limits active: {LLM_RPS} rps / {LLM_RPM} rpm"}
        checks["job_worker"] = {
            "ok": True,
            "message": "running" if worker is not None and worker.running else "not started",
        }
        checks["job_queue"] = {"ok": queued < 10, "message": f"Queued jobs: {queued}"}
        status["ok"] = all(check.get("ok") is True for check in checks.values())
        http_status = 200 if status.get("ok") else 503
        return jsonify(status), http_status

    @app.get("/api/metrics")
    def metrics():
        return jsonify(get_registry().snapshot())

    return app


__all__ = ["ApiError", "create_app"]
