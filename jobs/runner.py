"""Background worker that polls the queue, recovers stuck jobs and processes one job at a time."""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from config import WORKER_HEARTBEAT_S, WORKER_POLL_INTERVAL_S
from observability.logger import get_logger

from .models import JobStatus
from .queue import JobQueue

LOGGER = get_logger("articleforge.jobs.runner")


@dataclass
class WorkerStats:
    processed: int = 0
    failed: int = 0
    polls: int = 0
    recovered: int = 0


class JobWorker:
    """Serial job worker executing queued jobs in a background thread."""

    def __init__(
        self,
        queue: JobQueue,
        *,
        poll_interval_s: float = WORKER_POLL_INTERVAL_S,
        heartbeat_s: float = WORKER_HEARTBEAT_S,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._queue = queue
        self._poll_interval_s = poll_interval_s
        self._heartbeat_s = heartbeat_s
        self._monotonic = monotonic
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self.stats = WorkerStats()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            self._stop.clear()
            self._thread = threading.Thread(target=self._worker, name="job-worker", daemon=True)
            self._thread.start()
        LOGGER.info("worker_started", extra={"poll_interval_s": self._poll_interval_s})

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None:
            thread.join(timeout=timeout)
        LOGGER.info("worker_stopped", extra={"processed": self.stats.processed, "failed": self.stats.failed})

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the worker is stopped."""

        return self._stop.wait(timeout)

    def run_once(self) -> bool:
        """One poll: recovery sweep, then claim and process the oldest queued job."""

        self.stats.polls += 1
        self.stats.recovered += self._queue.recover_stuck_jobs()
        status = self._queue.process_next()
        if status is None:
            return False
        self.stats.processed += 1
        if status == JobStatus.FAILED:
            self.stats.failed += 1
        return True

    def run_until_idle(self, max_jobs: Optional[int] = None) -> int:
        """Process jobs in the calling thread until the queue is empty."""

        handled = 0
        while max_jobs is None or handled < max_jobs:
            if not self.run_once():
                break
            handled += 1
        return handled

    def _heartbeat(self) -> None:
        LOGGER.info(
            "worker_heartbeat",
            extra={
                "processed": self.stats.processed,
                "failed": self.stats.failed,
                "polls": self.stats.polls,
                "recovered": self.stats.recovered,
            },
        )

    def _worker(self) -> None:
        last_heartbeat = self._monotonic()
        while not self._stop.is_set():
            try:
                processed = self.run_once()
            except Exception as exc:  # noqa: BLE001
                LOGGER.exception("worker_poll_failed", extra={"error": str(exc)})
                processed = False
            if self._monotonic() - last_heartbeat >= self._heartbeat_s:
                self._heartbeat()
                last_heartbeat = self._monotonic()
            if not processed:
                self._stop.wait(self._poll_interval_s)


__all__ = ["JobWorker", "WorkerStats"]
