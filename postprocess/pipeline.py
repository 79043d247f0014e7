"""Ordered repair passes applied to the winning candidate."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Sequence, Tuple

from observability.logger import get_logger
from observability.metrics import get_registry

from .blocks import Line, render, tokenize
from .context import RepairContext
from .links import cap_repeated_links, clean_orphans, inject_internal_links, repair_urls, strip_unapproved_links
from .structure import (
    join_split_paragraphs,
    repair_faq,
    repair_toc,
    split_long_paragraphs,
    strip_opening_fragment,
)
from .style import final_cleanup, fix_stale_years, throttle_brand_mentions, throttle_first_person

LOGGER = get_logger("articleforge.postprocess")
REGISTRY = get_registry()

RepairPass = Callable[[List[Line], RepairContext], Tuple[List[Line], int]]

REPAIR_PASSES: Tuple[Tuple[str, RepairPass], ...] = (
    ("opening_fragment", strip_opening_fragment),
    ("paragraph_join", join_split_paragraphs),
    ("link_injection", inject_internal_links),
    ("url_repair", repair_urls),
    ("unapproved_links", strip_unapproved_links),
    ("repeated_links", cap_repeated_links),
    ("faq_structure", repair_faq),
    ("table_of_contents", repair_toc),
    ("paragraph_length", split_long_paragraphs),
    ("brand_mentions", throttle_brand_mentions),
    ("first_person", throttle_first_person),
    ("stale_years", fix_stale_years),
    ("orphan_fragments", clean_orphans),
    ("final_cleanup", final_cleanup),
)


@dataclass
class RepairReport:
    text: str
    changes: Dict[str, int] = field(default_factory=dict)
    rounds: int = 0
    failures: List[str] = field(default_factory=list)
    converged: bool = True


def run_pass(repair_pass: RepairPass, text: str, ctx: RepairContext) -> str:
    """Run one pass over ``text`` and render the result."""

    lines, _ = repair_pass(tokenize(text), ctx)
    return render(lines)


def run_repair_pipeline(
    text: str,
    ctx: RepairContext,
    *,
    passes: Sequence[Tuple[str, RepairPass]] = REPAIR_PASSES,
    max_rounds: int = 4,
) -> RepairReport:
    """Apply ``passes`` in order until a full round leaves the text unchanged.

    A pass that raises is logged and skipped for that round.
    """

    report = RepairReport(text=text)
    current = text
    for round_number in range(1, max(1, max_rounds) + 1):
        report.rounds = round_number
        lines = tokenize(current)
        for name, repair_pass in passes:
            try:
                updated, changed = repair_pass(lines, ctx)
            except Exception as exc:  # noqa: BLE001
                LOGGER.warning("repair_pass_failed", extra={"repair_pass": name, "error": str(exc)})
                if name not in report.failures:
                    report.failures.append(name)
                continue
            lines = updated
            if changed:
                report.changes[name] = report.changes.get(name, 0) + changed
                REGISTRY.counter("repair.items_changed_total").inc(changed)
                LOGGER.info("repair_pass", extra={"repair_pass": name, "changed": changed, "round": round_number})
        rendered = render(lines)
        if rendered == current:
            break
        current = rendered
    else:
        report.converged = False
        LOGGER.warning("repair_not_converged", extra={"rounds": report.rounds})
    report.text = current
    return report


__all__ = ["REPAIR_PASSES", "RepairPass", "RepairReport", "run_pass", "run_repair_pipeline"]
