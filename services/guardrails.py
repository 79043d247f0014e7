"""Guardrails for structured model output: JSON repair and schema validation."""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError as JSONSchemaError

LOGGER = logging.getLogger("articleforge.guardrails")

_FENCE_OPEN_RE = re.compile(r"^\s*```(?:json|JSON)?\s*\n?")
_FENCE_CLOSE_RE = re.compile(r"\n?\s*```\s*$")
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")
_TRAILING_COMMA_RE = re.compile(r",\s*([\]}])")
_SMART_QUOTES = {
    "“": '"',
    "”": '"',
    "«": '"',
    "»": '"',
}


@dataclass(slots=True)
class JsonParseResult:
    """Outcome of parsing model output against an optional JSON schema."""

    ok: bool
    data: Any = None
    errors: List[str] = field(default_factory=list)
    repaired: bool = False
    raw_excerpt: str = ""


def repair_json_text(text: str) -> str:
    """Strip code fences, isolate the JSON body and drop trailing commas."""

    cleaned = (text or "").strip()
    cleaned = _FENCE_OPEN_RE.sub("", cleaned)
    cleaned = _FENCE_CLOSE_RE.sub("", cleaned).strip()
    if cleaned and cleaned[0] not in "{[":
        match = _OBJECT_RE.search(cleaned) or _ARRAY_RE.search(cleaned)
        if match:
            cleaned = match.group(0)
    cleaned = _TRAILING_COMMA_RE.sub(r"\1", cleaned)
    return cleaned


def _candidates(text: str) -> List[str]:
    stripped = (text or "").strip()
    repaired = repair_json_text(stripped)
    candidates = [stripped]
    if repaired and repaired not in candidates:
        candidates.append(repaired)
    unquoted = repaired.translate(str.maketrans(_SMART_QUOTES))
    if unquoted and unquoted not in candidates:
        candidates.append(unquoted)
    return candidates


def validate_schema(schema: Dict[str, Any]) -> None:
    """Raise ``jsonschema.SchemaError`` when ``schema`` itself is malformed."""

    Draft7Validator.check_schema(schema)


def schema_errors(schema: Dict[str, Any], instance: Any) -> List[str]:
    """Return field-level diagnostics (``path: message``) for ``instance``."""

    validator = Draft7Validator(schema)
    errors: List[str] = []
    for error in sorted(validator.iter_errors(instance), key=lambda item: list(item.absolute_path)):
        path = "$"
        for part in error.absolute_path:
            path += f"[{part}]" if isinstance(part, int) else f".{part}"
        errors.append(f"{path}: {error.message}")
    return errors


def parse_json_payload(text: str, schema: Optional[Dict[str, Any]] = None) -> JsonParseResult:
    """Parse ``text`` as JSON, applying repairs, then validate against ``schema``."""

    excerpt = (text or "")[:300]
    if schema is not None:
        try:
            validate_schema(schema)
        except JSONSchemaError as exc:
            LOGGER.error("json_schema_invalid", extra={"error": exc.message})
            raise

    decode_error = "empty response"
    for index, candidate in enumerate(_candidates(text)):
        if not candidate:
            continue
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError as exc:
            decode_error = f"invalid JSON: {exc.msg} at line {exc.lineno} column {exc.colno}"
            continue
        if schema is not None:
            errors = schema_errors(schema, data)
            if errors:
                return JsonParseResult(ok=False, data=data, errors=errors, repaired=index > 0, raw_excerpt=excerpt)
        return JsonParseResult(ok=True, data=data, repaired=index > 0, raw_excerpt=excerpt)
    return JsonParseResult(ok=False, errors=[decode_error], raw_excerpt=excerpt)


__all__ = ["JsonParseResult", "parse_json_payload", "repair_json_text", "schema_errors", "validate_schema"]
