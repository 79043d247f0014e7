import pytest
from jsonschema.exceptions import SchemaError

from services.guardrails import JsonParseResult, parse_json_payload, repair_json_text
from services.schemas import OUTLINE_SCHEMA, RESEARCH_SCHEMA


def test_parse_json_payload_success():
    result = parse_json_payload('{"title": "Guide", "sections": [{"heading": "Intro"}]}', OUTLINE_SCHEMA)
    assert isinstance(result, JsonParseResult)
    assert result.ok is True
    assert result.repaired is False
    assert result.data["sections"][0]["heading"] == "Intro"


def test_parse_json_payload_repairs_prose_wrapper_and_smart_quotes():
    payload = 'Here is the outline: {“title”: “Guide”, “sections”: [{“heading”: “Intro”}]} Hope it helps.'
    result = parse_json_payload(payload, OUTLINE_SCHEMA)
    assert result.ok is True
    assert result.repaired is True
    assert result.data["title"] == "Guide"


def test_repair_json_text_drops_fences_and_trailing_commas():
    assert repair_json_text('```json\n{"a": [1, 2,],}\n```') == '{"a": [1, 2]}'


def test_schema_errors_carry_field_paths():
    result = parse_json_payload('{"contentGaps": "one", "missingSubtopics": [], "keyStatistics": [3]}', RESEARCH_SCHEMA)
    assert result.ok is False
    assert any(error.startswith("$.contentGaps:") for error in result.errors)
    assert any(error.startswith("$.keyStatistics[0]:") for error in result.errors)


def test_empty_payload_is_reported():
    result = parse_json_payload("", OUTLINE_SCHEMA)
    assert result.ok is False
    assert result.errors == ["empty response"]


def test_invalid_schema_raises():
    with pytest.raises(SchemaError):
        parse_json_payload("{}", {"type": "not-a-type"})
