"""Job records and validated job inputs."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from domain.generation_policy import ContentLength
from domain.models import ArticleRequest

ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utcnow() -> datetime:
    """Return a timezone-aware UTC datetime."""

    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.strftime(ISO_FORMAT) if value else None


class JobKind(str, Enum):
    BLOG_GENERATION = "BLOG_GENERATION"
    KEYWORD_SUGGEST = "KEYWORD_SUGGEST"
    CLUSTER_GENERATE = "CLUSTER_GENERATE"


class JobStatus(str, Enum):
    """Lifecycle states for a queued job."""

    QUEUED = "QUEUED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class JobInputError(ValueError):
    """Raised when a job payload is missing required fields or has invalid values."""


def _require_str(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise JobInputError(f"'{key}' is required")
    return value.strip()


def _flag(data: Dict[str, Any], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    if isinstance(value, (int, float)):
        return bool(value)
    raise JobInputError(f"'{key}' must be a boolean")


@dataclass(frozen=True)
class ArticleJobInput:
    keyword_id: str
    keyword: str
    website_id: str
    content_length: ContentLength = ContentLength.MEDIUM
    include_images: bool = True
    include_faq: bool = True
    include_pro_tips: bool = True
    include_toc: bool = True
    auto_publish: bool = False
    custom_direction: Optional[str] = None

    @classmethod
    def parse(cls, data: Dict[str, Any]) -> "ArticleJobInput":
        if not isinstance(data, dict):
            raise JobInputError("Job input must be a JSON object")
        raw_length = data.get("contentLength")
        if raw_length not in (None, "") and str(raw_length).strip().upper() not in ContentLength.__members__:
            raise JobInputError(f"Unknown contentLength '{raw_length}'")
        direction = data.get("customDirection")
        return cls(
            keyword_id=_require_str(data, "keywordId"),
            keyword=_require_str(data, "keyword"),
            website_id=_require_str(data, "websiteId"),
            content_length=ContentLength.parse(raw_length),
            include_images=_flag(data, "includeImages", True),
            include_faq=_flag(data, "includeFAQ", True),
            include_pro_tips=_flag(data, "includeProTips", True),
            include_toc=_flag(data, "includeTableOfContents", True),
            auto_publish=_flag(data, "autoPublish", False),
            custom_direction=(str(direction).strip() or None) if direction else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keywordId": self.keyword_id,
            "keyword": self.keyword,
            "websiteId": self.website_id,
            "contentLength": self.content_length.value,
            "includeImages": self.include_images,
            "includeFAQ": self.include_faq,
            "includeProTips": self.include_pro_tips,
            "includeTableOfContents": self.include_toc,
            "autoPublish": self.auto_publish,
            "customDirection": self.custom_direction,
        }

    def to_request(self) -> ArticleRequest:
        return ArticleRequest(
            keyword=self.keyword,
            content_length=self.content_length,
            include_images=self.include_images,
            include_faq=self.include_faq,
            include_pro_tips=self.include_pro_tips,
            include_toc=self.include_toc,
            custom_direction=self.custom_direction,
        )


@dataclass(frozen=True)
class KeywordSuggestInput:
    website_id: str
    count: int = 20

    @classmethod
    def parse(cls, data: Dict[str, Any]) -> "KeywordSuggestInput":
        if not isinstance(data, dict):
            raise JobInputError("Job input must be a JSON object")
        try:
            count = int(data.get("count") or 20)
        except (TypeError, ValueError) as exc:
            raise JobInputError("'count' must be an integer") from exc
        return cls(website_id=_require_str(data, "websiteId"), count=max(1, min(50, count)))

    def to_dict(self) -> Dict[str, Any]:
        return {"websiteId": self.website_id, "count": self.count}


@dataclass(frozen=True)
class ClusterInput:
    website_id: str
    seed_keyword: Optional[str] = None

    @classmethod
    def parse(cls, data: Dict[str, Any]) -> "ClusterInput":
        if not isinstance(data, dict):
            raise JobInputError("Job input must be a JSON object")
        seed = data.get("seedKeyword")
        if seed is not None and not isinstance(seed, str):
            raise JobInputError("'seedKeyword' must be a string")
        return cls(website_id=_require_str(data, "websiteId"), seed_keyword=(seed or "").strip() or None)

    def to_dict(self) -> Dict[str, Any]:
        return {"websiteId": self.website_id, "seedKeyword": self.seed_keyword}


_INPUT_TYPES = {
    JobKind.BLOG_GENERATION: ArticleJobInput,
    JobKind.KEYWORD_SUGGEST: KeywordSuggestInput,
    JobKind.CLUSTER_GENERATE: ClusterInput,
}


def parse_job_input(kind: JobKind, data: Dict[str, Any]):
    return _INPUT_TYPES[JobKind(kind)].parse(data)


@dataclass
class GenerationJob:
    """One unit of queued work."""

    id: str
    kind: JobKind
    input: Dict[str, Any] = field(default_factory=dict)
    status: JobStatus = JobStatus.QUEUED
    progress: int = 0
    current_step: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    output: Optional[Dict[str, Any]] = None
    blog_post_id: Optional[str] = None

    def mark_processing(self, now: datetime) -> None:
        self.status = JobStatus.PROCESSING
        self.started_at = now
        self.completed_at = None

    def update_progress(self, progress: int, step: Optional[str]) -> None:
        self.progress = max(self.progress, max(0, min(100, int(progress))))
        if step:
            self.current_step = step

    def mark_completed(self, output: Dict[str, Any], now: datetime, *, blog_post_id: Optional[str] = None) -> None:
        self.status = JobStatus.COMPLETED
        self.output = output
        self.progress = 100
        self.current_step = "done"
        self.completed_at = now
        self.error = None
        if blog_post_id:
            self.blog_post_id = blog_post_id

    def mark_failed(self, error: str, now: datetime) -> None:
        self.status = JobStatus.FAILED
        self.error = error
        self.completed_at = now

    def requeue(self, marker: Optional[str]) -> None:
        self.status = JobStatus.QUEUED
        self.progress = 0
        self.current_step = None
        self.started_at = None
        self.completed_at = None
        self.error = marker

    def to_status_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "status": self.status.value,
            "currentStep": self.current_step,
            "progress": self.progress,
        }
        if self.error:
            payload["error"] = self.error
        if self.output is not None:
            payload["output"] = self.output
        return payload

    def to_dict(self) -> Dict[str, Any]:
        payload = self.to_status_dict()
        payload.update(
            {
                "type": self.kind.value,
                "input": self.input,
                "createdAt": _iso(self.created_at),
                "startedAt": _iso(self.started_at),
                "completedAt": _iso(self.completed_at),
                "blogPostId": self.blog_post_id,
            }
        )
        return payload


__all__ = [
    "ArticleJobInput",
    "ClusterInput",
    "GenerationJob",
    "JobInputError",
    "JobKind",
    "JobStatus",
    "KeywordSuggestInput",
    "parse_job_input",
    "utcnow",
]
