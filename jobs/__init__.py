"""Job queue, stores and background worker for generation jobs."""

from .content_store import (  # noqa: F401
    ArticleStatus,
    ContentStore,
    ContentStoreProtocol,
    KeywordRecord,
    KeywordStatus,
    StoredArticle,
)
from .models import (  # noqa: F401
    ArticleJobInput,
    ClusterInput,
    GenerationJob,
    JobInputError,
    JobKind,
    JobStatus,
    KeywordSuggestInput,
)
from .queue import JobQueue, build_default_queue, parse_retry_count  # noqa: F401
from .runner import JobWorker  # noqa: F401
from .store import JobStore, JobStoreProtocol  # noqa: F401

__all__ = [
    "ArticleJobInput",
    "ArticleStatus",
    "ClusterInput",
    "ContentStore",
    "ContentStoreProtocol",
    "GenerationJob",
    "JobInputError",
    "JobKind",
    "JobQueue",
    "JobStatus",
    "JobStore",
    "JobStoreProtocol",
    "JobWorker",
    "KeywordRecord",
    "KeywordStatus",
    "KeywordSuggestInput",
    "StoredArticle",
    "build_default_queue",
    "parse_retry_count",
]
