from __future__ import annotations

from conftest import ScriptedTransport, build_client
from continuation import generate_with_continuation, overlap_skip, restart_skip
from services.llm_client import GenerationOptions, GenerationResult

CONTINUE_PREFIX = "A blog post was being written"

OPENING = (
    "Agency owners juggle dozens of client threads every week, and most of them still track deals in scattered "
    "spreadsheets. A shared CRM changes that by giving every account manager the same view of the pipeline. "
    "The first paragraph sets the stage for the rest of this guide and names the problems a CRM must solve. "
    "The second paragraph explains how weekly reporting keeps every client informed and"
)


def _run(routes, **kwargs):
    transport = ScriptedTransport(routes)
    client = build_client(transport)
    result = generate_with_continuation(
        client, "Write the article", None, GenerationOptions(max_tokens=4096), label="test", **kwargs
    )
    return result, transport


def _truncated(text: str) -> GenerationResult:
    return GenerationResult(text=text, finish_reason="MAX_TOKENS", truncated=True)


def test_complete_output_needs_no_continuation():
    result, transport = _run([("Write", "A complete answer.")])
    assert result.text == "A complete answer."
    assert result.truncated is False
    assert result.continuations == 0
    assert len(transport.calls) == 1


def test_overlapping_continuation_is_trimmed():
    continuation = "how weekly reporting keeps every client informed and happy with results."
    result, transport = _run([("Write", _truncated(OPENING)), (CONTINUE_PREFIX, continuation)])

    assert result.text.count("how weekly reporting") == 1
    assert result.text.endswith("happy with results.")
    assert result.truncated is False
    assert result.finish_reason == "STOP"
    assert result.continuations == 1
    follow_up = transport.prompts(CONTINUE_PREFIX)[0]
    assert OPENING[-200:] in follow_up


def test_restarted_continuation_keeps_only_new_text():
    restarted = OPENING + " ready for the next quarter."
    result, _ = _run([("Write", _truncated(OPENING)), (CONTINUE_PREFIX, restarted)])

    assert result.text.count(OPENING[:200]) == 1
    assert result.text.endswith("ready for the next quarter.")


def test_continuations_are_bounded():
    result, transport = _run(
        [("Write", _truncated("Alpha beta gamma")), (CONTINUE_PREFIX, ["delta epsilon zeta", "eta theta iota"])],
        max_continuations=2,
    )
    assert result.continuations == 2
    assert result.truncated is True
    assert result.finish_reason == "INCOMPLETE"
    assert len(transport.prompts(CONTINUE_PREFIX)) == 2
    assert "delta epsilon zeta" in result.text and result.text.endswith("eta theta iota")


def test_empty_continuation_stops_the_loop():
    result, transport = _run([("Write", _truncated("Alpha beta gamma")), (CONTINUE_PREFIX, "   ")])
    assert result.continuations == 1
    assert result.text == "Alpha beta gamma"
    assert result.truncated is True


def test_short_output_asks_for_more_words():
    result, transport = _run(
        [("Write", "Short but complete."), (CONTINUE_PREFIX, "Another full sentence with several more words.")],
        min_words=6,
    )
    prompt = transport.prompts(CONTINUE_PREFIX)[0]
    assert "It needs to be at least 6 words" in prompt
    assert result.truncated is False
    assert result.text.endswith("several more words.")


def test_restart_skip_ignores_unrelated_text():
    assert restart_skip(OPENING, "Something entirely different.") == 0


def test_overlap_skip_requires_a_meaningful_prefix():
    assert overlap_skip(OPENING, "and then the story moves on to the next topic.") == 0
