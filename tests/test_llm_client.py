import sys
from pathlib import Path

import httpx
import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from conftest import TEST_PROVIDER, ScriptedTransport, build_client  # noqa: E402
from services.llm_client import (  # noqa: E402
    PROVIDER_ANTHROPIC,
    PROVIDER_GEMINI,
    PROVIDER_OPENAI,
    AnthropicTransport,
    ContentBlockedError,
    GeminiTransport,
    GenerationOptions,
    GenerationResult,
    JSONGenerationError,
    ModelClient,
    ProviderConfig,
    ProviderConfigError,
    ProviderRequestError,
    RetryPolicy,
)
from services.schemas import OUTLINE_SCHEMA  # noqa: E402


def _status_error(status_code: int, payload=None) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "https://provider.test/generate")
    response = httpx.Response(status_code, request=request, json=payload or {})
    return httpx.HTTPStatusError(f"HTTP {status_code}", request=request, response=response)


class DummyHttpClient:
    def __init__(self, payload):
        self.payload = payload
        self.requests = []

    def post(self, url, headers=None, json=None, **kwargs):
        self.requests.append({"url": url, "headers": headers, "json": json})
        return httpx.Response(200, request=httpx.Request("POST", url), json=self.payload)


def test_retries_transient_status_then_succeeds():
    sleeps = []
    transport = ScriptedTransport([("ping", [_status_error(503), "pong"])])
    client = build_client(transport, sleeps=sleeps)

    assert client.generate_text("ping") == "pong"
    assert len(transport.calls) == 2
    assert sleeps == [1.0]


def test_non_retryable_status_fails_immediately_with_detail():
    sleeps = []
    transport = ScriptedTransport([("ping", _status_error(400, {"error": {"message": "bad temperature"}}))])
    client = build_client(transport, sleeps=sleeps)

    with pytest.raises(ProviderRequestError) as excinfo:
        client.generate_text("ping")
    assert excinfo.value.status_code == 400
    assert "bad temperature" in str(excinfo.value)
    assert len(transport.calls) == 1
    assert sleeps == []


def test_timeouts_exhaust_retry_budget():
    sleeps = []
    transport = ScriptedTransport([("ping", httpx.ReadTimeout("slow"))])
    client = build_client(transport, sleeps=sleeps)

    with pytest.raises(ProviderRequestError) as excinfo:
        client.generate_text("ping")
    assert excinfo.value.status_code == 504
    assert len(transport.calls) == 3
    assert sleeps == [1.0, 2.0]


def test_empty_retry_budget_raises_provider_error():
    transport = ScriptedTransport([("ping", "pong")])
    client = build_client(transport, max_attempts=0)

    with pytest.raises(ProviderRequestError, match="never attempted"):
        client.generate_text("ping")
    assert transport.calls == []


def test_retry_delay_is_exponential_and_capped():
    policy = RetryPolicy(max_attempts=6, base_delay=1.0, max_delay=8.0)
    assert [policy.delay_for(attempt) for attempt in range(1, 6)] == [1.0, 2.0, 4.0, 8.0, 8.0]


def test_safety_block_with_partial_text_is_truncated():
    transport = ScriptedTransport([("ping", GenerationResult(text="x" * 150, finish_reason="SAFETY"))])
    result = build_client(transport).generate_text_with_meta("ping")
    assert result.truncated is True
    assert len(result.text) == 150


def test_safety_block_without_text_raises():
    transport = ScriptedTransport([("ping", GenerationResult(text="sorry", finish_reason="SAFETY"))])
    with pytest.raises(ContentBlockedError):
        build_client(transport).generate_text("ping")


def test_generate_json_repairs_fenced_payload():
    raw = '```json\n{"title": "CRM guide", "sections": [{"heading": "Why it matters"},]}\n```'
    transport = ScriptedTransport([("outline", raw)])
    data = build_client(transport).generate_json("outline please", schema=OUTLINE_SCHEMA, label="outline")
    assert data["title"] == "CRM guide"
    assert data["sections"][0]["heading"] == "Why it matters"
    assert "Respond with valid JSON only" in transport.calls[0]["prompt"]


def test_generate_json_feeds_schema_errors_back():
    valid = {"title": "CRM guide", "sections": [{"heading": "Setup"}]}
    transport = ScriptedTransport([("outline", ['{"title": 5}', valid])])
    data = build_client(transport).generate_json("outline please", schema=OUTLINE_SCHEMA, label="outline")

    assert data == valid
    retry_prompt = transport.calls[1]["prompt"]
    assert "Your previous answer was rejected:" in retry_prompt
    assert "$.title" in retry_prompt
    assert "'sections' is a required property" in retry_prompt


def test_generate_json_raises_after_three_failures():
    transport = ScriptedTransport([("outline", "not json at all")])
    with pytest.raises(JSONGenerationError) as excinfo:
        build_client(transport).generate_json("outline please", schema=OUTLINE_SCHEMA, label="outline")
    assert len(transport.calls) == 3
    assert excinfo.value.label == "outline"
    assert excinfo.value.errors


def test_generate_json_without_attempts_raises(monkeypatch):
    monkeypatch.setattr("services.llm_client.JSON_MAX_ATTEMPTS", 0)
    transport = ScriptedTransport([("outline", "{}")])
    with pytest.raises(JSONGenerationError) as excinfo:
        build_client(transport).generate_json("outline please", label="outline")
    assert transport.calls == []
    assert excinfo.value.errors == []


@pytest.mark.parametrize(
    "model, provider",
    [
        ("claude-sonnet-4-20250514", PROVIDER_ANTHROPIC),
        ("gpt-4o", PROVIDER_OPENAI),
        ("o3-mini", PROVIDER_OPENAI),
        ("gemini-2.5-pro", PROVIDER_GEMINI),
    ],
)
def test_provider_config_routes_by_model_name(model, provider):
    config = ProviderConfig.for_model(model)
    assert config.provider == provider
    assert config.model == model


def test_explicit_provider_overrides_default_per_call():
    gemini = ScriptedTransport([("ping", "from gemini")])
    anthropic = ScriptedTransport([("ping", "from claude")])
    client = ModelClient(
        TEST_PROVIDER,
        transports={PROVIDER_GEMINI: gemini, PROVIDER_ANTHROPIC: anthropic},
        sleep=lambda _delay: None,
        rps=1000,
        rpm=100000,
    )
    claude = ProviderConfig.for_model("claude-sonnet-4-20250514", api_key="k")

    assert client.generate_text("ping", provider=claude) == "from claude"
    assert client.generate_text("ping") == "from gemini"
    assert anthropic.calls[0]["config"].model == "claude-sonnet-4-20250514"


def test_unknown_provider_is_a_config_error():
    client = build_client(ScriptedTransport([]))
    with pytest.raises(ProviderConfigError):
        client.generate_text("ping", provider=ProviderConfig(provider="mystery", model="m", api_key="k"))


def test_gemini_transport_skips_thought_parts_and_flags_max_tokens():
    http = DummyHttpClient(
        {
            "candidates": [
                {
                    "content": {"parts": [{"text": "thinking...", "thought": True}, {"text": "Answer text"}]},
                    "finishReason": "MAX_TOKENS",
                }
            ],
            "usageMetadata": {"promptTokenCount": 12, "candidatesTokenCount": 34},
        }
    )
    transport = GeminiTransport(client_factory=lambda _timeout: http)
    result = transport.complete("ping", "be brief", GenerationOptions(max_tokens=64), TEST_PROVIDER)

    assert result.text == "Answer text"
    assert result.truncated is True
    assert result.output_tokens == 34
    body = http.requests[0]["json"]
    assert body["generationConfig"]["maxOutputTokens"] == 64
    assert body["systemInstruction"]["parts"][0]["text"] == "be brief"
    assert http.requests[0]["url"].endswith("/models/test-model:generateContent")


def test_anthropic_transport_maps_stop_reason():
    http = DummyHttpClient(
        {
            "content": [{"type": "text", "text": "Hello"}],
            "stop_reason": "end_turn",
            "usage": {"input_tokens": 3, "output_tokens": 1},
        }
    )
    transport = AnthropicTransport(client_factory=lambda _timeout: http)
    config = ProviderConfig.for_model("claude-sonnet-4-20250514", api_key="secret")
    result = transport.complete("ping", None, GenerationOptions(), config)

    assert result.text == "Hello"
    assert result.finish_reason == "STOP"
    assert result.truncated is False
    assert http.requests[0]["headers"]["x-api-key"] == "secret"
    assert "system" not in http.requests[0]["json"]
