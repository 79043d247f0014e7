"""Deterministic repair of generated markdown."""

from .blocks import Line, LineKind, render, tokenize  # noqa: F401
from .context import RepairContext, normalize_url  # noqa: F401
from .pipeline import REPAIR_PASSES, RepairReport, run_pass, run_repair_pipeline  # noqa: F401
from .structure import heading_slug  # noqa: F401

__all__ = [
    "Line",
    "LineKind",
    "REPAIR_PASSES",
    "RepairContext",
    "RepairReport",
    "heading_slug",
    "normalize_url",
    "render",
    "run_pass",
    "run_repair_pipeline",
    "tokenize",
]
