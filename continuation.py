"""Continuation of truncated model output with restart/overlap guards."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from config import CONTINUATION_TAIL_CHARS, MAX_CONTINUATIONS
from helpers import count_words, is_cut_off
from observability.logger import get_logger
from observability.metrics import get_registry
from services.llm_client import (
    FINISH_INCOMPLETE,
    FINISH_STOP,
    GenerationOptions,
    GenerationResult,
    ProviderConfig,
)

LOGGER = get_logger("articleforge.continuation")
CONTINUATION_COUNTER = get_registry().counter("continuation.calls_total")

RESTART_PROBE_CHARS = 200
OVERLAP_WINDOW_CHARS = 300
OVERLAP_MAX_PREFIX = 150
OVERLAP_MIN_PREFIX = 30
OVERLAP_STEP = 10
MIN_CONTINUATION_TOKENS = 2048


@dataclass(slots=True)
class ContinuationResult:
    text: str
    truncated: bool
    finish_reason: str
    prompt_tokens: int = 0
    output_tokens: int = 0
    continuations: int = 0


def build_continuation_prompt(tail: str, *, current_words: int, min_words: int) -> str:
    below_min = ""
    if min_words > 0 and current_words < min_words:
        below_min = (
            f"\nThe article so far is only {current_words} words. It needs to be at least {min_words} words. "
            "There is significant content still missing.\n"
        )
    return (
        "A blog post was being written but the output was cut off. Continue writing from exactly where it stopped.\n"
        f"{below_min}"
        "Here is the tail end of the article so far. Do NOT repeat this content:\n"
        "---\n"
        f"{tail}\n"
        "---\n\n"
        "Continue the article from the very next word. Maintain the same writing style, tone, Markdown formatting, "
        "and heading structure. Do not add any introduction, preamble, or explanation. Just continue seamlessly."
    )


def restart_skip(accumulated: str, continuation: str) -> int:
    """Characters to drop when ``continuation`` restarted the article from scratch."""

    acc_lower = accumulated.lower()
    cont_lower = continuation.lower()
    if acc_lower[:RESTART_PROBE_CHARS] != cont_lower[:RESTART_PROBE_CHARS]:
        return 0
    limit = min(len(acc_lower), len(cont_lower))
    diverge_at = limit
    for index in range(limit):
        if acc_lower[index] != cont_lower[index]:
            diverge_at = index
            break
    if diverge_at > len(accumulated) * 0.5:
        return diverge_at
    return 0


def overlap_skip(accumulated: str, continuation: str) -> int:
    """Length of the longest prefix of ``continuation`` already present at the end of ``accumulated``."""

    window = accumulated[-OVERLAP_WINDOW_CHARS:].lower()
    length = min(OVERLAP_MAX_PREFIX, len(continuation))
    while length > OVERLAP_MIN_PREFIX:
        if continuation[:length].lower() in window:
            return length
        length -= OVERLAP_STEP
    return 0


def _needs_more(text: str, *, truncated: bool, min_words: int) -> bool:
    if truncated or is_cut_off(text):
        return True
    return min_words > 0 and count_words(text) < min_words


def generate_with_continuation(
    client,
    prompt: str,
    system_prompt: Optional[str],
    options: GenerationOptions,
    *,
    provider: Optional[ProviderConfig] = None,
    label: str = "generation",
    max_continuations: int = MAX_CONTINUATIONS,
    min_words: int = 0,
) -> ContinuationResult:
    """Generate text and keep asking for continuations while it is incomplete.

    Never raises for incompleteness: when the bounds run out the accumulated text
    is returned with ``truncated`` set.
    """

    first: GenerationResult = client.generate_text_with_meta(prompt, system_prompt, options, provider=provider)
    accumulated = first.text
    if not _needs_more(accumulated, truncated=first.truncated, min_words=min_words):
        return ContinuationResult(
            text=accumulated,
            truncated=first.truncated,
            finish_reason=first.finish_reason,
            prompt_tokens=first.prompt_tokens,
            output_tokens=first.output_tokens,
        )

    issued = 0
    for attempt in range(1, max_continuations + 1):
        current_words = count_words(accumulated)
        LOGGER.warning(
            "continuation_requested",
            extra={"label": label, "attempt": attempt, "words": current_words, "min_words": min_words},
        )
        tail = accumulated[-CONTINUATION_TAIL_CHARS:]
        remaining_tokens = max(MIN_CONTINUATION_TOKENS, options.max_tokens - math.ceil(current_words * 1.4))
        follow_up = client.generate_text_with_meta(
            build_continuation_prompt(tail, current_words=current_words, min_words=min_words),
            system_prompt,
            GenerationOptions(temperature=options.temperature, max_tokens=remaining_tokens),
            provider=provider,
        )
        issued += 1
        CONTINUATION_COUNTER.inc()

        text = follow_up.text.strip()
        if not text:
            break
        skip = restart_skip(accumulated, text)
        if skip:
            LOGGER.info("continuation_restart_detected", extra={"label": label, "skipped_chars": skip})
        else:
            skip = overlap_skip(accumulated, text)
        new_content = text[skip:].strip()
        if not new_content:
            break
        accumulated = accumulated.rstrip() + "\n\n" + new_content
        LOGGER.info(
            "continuation_appended",
            extra={"label": label, "attempt": attempt, "added_words": count_words(new_content), "words": count_words(accumulated)},
        )
        if not _needs_more(accumulated, truncated=follow_up.truncated, min_words=min_words):
            break

    cut_off = is_cut_off(accumulated)
    below_min = min_words > 0 and count_words(accumulated) < min_words
    incomplete = cut_off or below_min
    return ContinuationResult(
        text=accumulated,
        truncated=incomplete,
        finish_reason=FINISH_INCOMPLETE if incomplete else FINISH_STOP,
        prompt_tokens=first.prompt_tokens,
        output_tokens=first.output_tokens,
        continuations=issued,
    )


__all__ = [
    "ContinuationResult",
    "build_continuation_prompt",
    "generate_with_continuation",
    "overlap_skip",
    "restart_skip",
]
