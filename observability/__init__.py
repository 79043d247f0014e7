"""Observability helpers."""

from .logger import (  # noqa: F401
    JsonFormatter,
    bind_trace_id,
    clear_trace_id,
    configure_logging,
    get_logger,
    job_context,
    log_stage,
)
from .metrics import Counter, Gauge, MetricsRegistry, Timer, get_registry  # noqa: F401

__all__ = [
    "JsonFormatter",
    "bind_trace_id",
    "clear_trace_id",
    "configure_logging",
    "get_logger",
    "job_context",
    "log_stage",
    "Counter",
    "Gauge",
    "MetricsRegistry",
    "Timer",
    "get_registry",
]
