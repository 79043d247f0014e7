import pytest

from ranking import Candidate, rank, rank_candidates


def _candidate(label, *, words, missing, cutoff):
    return Candidate(label=label, text=label, words=words, missing_sections=missing, cutoff=cutoff)


def test_complete_candidate_beats_cut_off_one():
    complete = _candidate("complete", words=900, missing=1, cutoff=False)
    cut_off = _candidate("cut-off", words=1500, missing=0, cutoff=True)
    assert rank([complete, cut_off]).label == "complete"
    assert rank([cut_off, complete]).label == "complete"


def test_fewer_missing_sections_then_more_words():
    ordered = rank_candidates(
        [
            _candidate("short", words=800, missing=0, cutoff=False),
            _candidate("gappy", words=1400, missing=2, cutoff=False),
            _candidate("long", words=1200, missing=0, cutoff=False),
        ]
    )
    assert [item.label for item in ordered] == ["long", "short", "gappy"]


def test_ties_keep_input_order():
    first = _candidate("seo", words=1000, missing=0, cutoff=False)
    second = _candidate("tone", words=1000, missing=0, cutoff=False)
    assert rank([first, second]).label == "seo"


def test_evaluate_measures_text():
    text = "## Setup\n\nA full sentence here.\n\n## Pricing\n\nAnother sentence that stops"
    candidate = Candidate.evaluate("draft", text, ["Setup", "Pricing", "Integrations"])
    assert candidate.missing_sections == 1
    assert candidate.cutoff is True
    assert candidate.words == 12


def test_rank_requires_candidates():
    with pytest.raises(ValueError):
        rank([])
