"""Completeness ranking of article candidates."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence

from helpers import count_words, find_missing_sections, is_cut_off


@dataclass(frozen=True)
class Candidate:
    """One full version of an article produced by a stage."""

    label: str
    text: str
    words: int
    missing_sections: int
    cutoff: bool

    @classmethod
    def evaluate(cls, label: str, text: str, headings: Iterable[str], *, truncated: bool = False) -> "Candidate":
        return cls(
            label=label,
            text=text,
            words=count_words(text),
            missing_sections=len(find_missing_sections(text, headings)),
            cutoff=truncated or is_cut_off(text),
        )


def _rank_key(candidate: Candidate) -> tuple:
    return (candidate.cutoff, candidate.missing_sections, -candidate.words)


def rank_candidates(candidates: Sequence[Candidate]) -> List[Candidate]:
    """Order candidates best first; ties keep input order."""

    return sorted(candidates, key=_rank_key)


def rank(candidates: Sequence[Candidate]) -> Candidate:
    if not candidates:
        raise ValueError("rank() requires at least one candidate")
    return rank_candidates(candidates)[0]


__all__ = ["Candidate", "rank", "rank_candidates"]
