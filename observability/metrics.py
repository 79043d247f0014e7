"""In-process counters, gauges and timers for the pipeline, model client and queue."""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict, Union


@dataclass
class _BaseMetric:
    name: str
    _value: float = 0.0
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def snapshot(self) -> float:
        with self._lock:
            return float(self._value)


class Counter(_BaseMetric):
    """Only grows; non-positive increments are ignored."""

    def inc(self, amount: float = 1.0) -> None:
        if amount <= 0:
            return
        with self._lock:
            self._value += amount


class Gauge(_BaseMetric):
    """Last value set, e.g. the number of queued jobs."""

    def set(self, value: float) -> None:
        with self._lock:
            self._value = float(value)


@dataclass
class Timer:
    """Call durations in milliseconds: count, total and max."""

    name: str
    _count: int = 0
    _total_ms: float = 0.0
    _max_ms: float = 0.0
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def observe(self, duration_ms: float) -> None:
        with self._lock:
            self._count += 1
            self._total_ms += duration_ms
            self._max_ms = max(self._max_ms, duration_ms)

    def snapshot(self) -> Dict[str, float]:
        with self._lock:
            return {"count": float(self._count), "total_ms": round(self._total_ms, 3), "max_ms": round(self._max_ms, 3)}


Metric = Union[Counter, Gauge, Timer]


class MetricsRegistry:
    """Metrics by name; asking twice for the same name and kind returns the same object."""

    def __init__(self) -> None:
        self._metrics: Dict[str, Metric] = {}
        self._lock = threading.Lock()

    def _get_or_create(self, name: str, kind: type) -> Metric:
        with self._lock:
            existing = self._metrics.get(name)
            if isinstance(existing, kind):
                return existing
            created = kind(name=name)
            self._metrics[name] = created
            return created

    def counter(self, name: str) -> Counter:
        return self._get_or_create(name, Counter)  # type: ignore[return-value]

    def gauge(self, name: str) -> Gauge:
        return self._get_or_create(name, Gauge)  # type: ignore[return-value]

    def timer(self, name: str) -> Timer:
        return self._get_or_create(name, Timer)  # type: ignore[return-value]

    def snapshot(self) -> Dict[str, object]:
        with self._lock:
            items = sorted(self._metrics.items())
        return {name: metric.snapshot() for name, metric in items}


_REGISTRY = MetricsRegistry()


def get_registry() -> MetricsRegistry:
    return _REGISTRY


__all__ = ["Counter", "Gauge", "Metric", "MetricsRegistry", "Timer", "get_registry"]
