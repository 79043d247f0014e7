"""In-memory job store with atomic claim semantics."""
from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, List, Optional, Protocol

from .models import GenerationJob, JobStatus, utcnow

Mutator = Callable[[GenerationJob], None]


class JobStoreProtocol(Protocol):
    def create(self, job: GenerationJob) -> GenerationJob:
        ...

    def get(self, job_id: str) -> Optional[GenerationJob]:
        ...

    def update(
        self,
        job_id: str,
        mutator: Mutator,
        *,
        expect_status: Optional[JobStatus] = None,
        expect_started_at: Optional[datetime] = None,
    ) -> Optional[GenerationJob]:
        ...

    def claim(self, job_id: str) -> Optional[GenerationJob]:
        ...

    def claim_next(self) -> Optional[GenerationJob]:
        ...

    def find_stuck(self, older_than: datetime) -> List[GenerationJob]:
        ...

    def count(self, status: JobStatus) -> int:
        ...


class JobStore:
    """Thread-safe in-memory storage for jobs.

    Readers get copies; every state change goes through the lock, so a claim is a
    compare-and-set from ``QUEUED`` to ``PROCESSING``.
    """

    def __init__(self, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._jobs: Dict[str, GenerationJob] = {}
        self._lock = threading.RLock()
        self._clock = clock

    def create(self, job: GenerationJob) -> GenerationJob:
        with self._lock:
            if job.id in self._jobs:
                raise ValueError(f"Job {job.id} already exists")
            self._jobs[job.id] = replace(job)
            return replace(job)

    def get(self, job_id: str) -> Optional[GenerationJob]:
        with self._lock:
            job = self._jobs.get(job_id)
            return replace(job) if job else None

    def update(
        self,
        job_id: str,
        mutator: Mutator,
        *,
        expect_status: Optional[JobStatus] = None,
        expect_started_at: Optional[datetime] = None,
    ) -> Optional[GenerationJob]:
        """Apply ``mutator`` when the job exists and matches the expectations."""

        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None
            if expect_status is not None and job.status != expect_status:
                return None
            if expect_started_at is not None and job.started_at != expect_started_at:
                return None
            mutator(job)
            return replace(job)

    def claim(self, job_id: str) -> Optional[GenerationJob]:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.status != JobStatus.QUEUED:
                return None
            job.mark_processing(self._clock())
            return replace(job)

    def claim_next(self) -> Optional[GenerationJob]:
        with self._lock:
            queued = [job for job in self._jobs.values() if job.status == JobStatus.QUEUED]
            if not queued:
                return None
            oldest = min(queued, key=lambda job: job.created_at)
            return self.claim(oldest.id)

    def find_stuck(self, older_than: datetime) -> List[GenerationJob]:
        with self._lock:
            return [
                replace(job)
                for job in self._jobs.values()
                if job.status == JobStatus.PROCESSING and job.started_at is not None and job.started_at < older_than
            ]

    def count(self, status: JobStatus) -> int:
        with self._lock:
            return sum(1 for job in self._jobs.values() if job.status == status)


__all__ = ["JobStore", "JobStoreProtocol"]
