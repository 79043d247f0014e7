import pytest

import orchestrate
from services.llm_client import ProviderConfig


@pytest.fixture(autouse=True)
def _no_env_keys(monkeypatch):
    monkeypatch.setattr(orchestrate, "GOOGLE_AI_API_KEY", "")
    monkeypatch.setattr(orchestrate, "OPENAI_API_KEY", "")
    monkeypatch.setattr(orchestrate, "ANTHROPIC_API_KEY", "")
    monkeypatch.setattr(orchestrate, "PUBLISH_WEBHOOK_URL", "")
    yield


def test_health_reports_masked_provider_key():
    result = orchestrate.gather_health_status(
        ProviderConfig(provider="openai", model="gpt-4o", api_key="sk-live-1234567890")
    )
    assert result["ok"] is True
    assert result["checks"]["provider_key"]["message"] == "openai/gpt-4o key found (sk***7890)"
    assert result["checks"]["publish_hook"]["message"].startswith("no webhook")


def test_health_falls_back_to_environment_key(monkeypatch):
    monkeypatch.setattr(orchestrate, "ANTHROPIC_API_KEY", "anthropic-secret")
    result = orchestrate.gather_health_status(ProviderConfig(provider="anthropic", model="claude-sonnet-4-20250514"))
    assert result["checks"]["provider_key"]["ok"] is True
    assert "an***cret" in result["checks"]["provider_key"]["message"]


def test_health_fails_without_key(monkeypatch):
    monkeypatch.setattr(orchestrate, "PUBLISH_WEBHOOK_URL", "https://hooks.example.com/publish")
    result = orchestrate.gather_health_status(ProviderConfig(provider="gemini", model="gemini-2.5-pro"))
    assert result["ok"] is False
    assert result["checks"]["provider_key"] == {"ok": False, "message": "GOOGLE_AI_API_KEY is not set"}
    assert result["checks"]["publish_hook"]["message"] == "webhook configured"


@pytest.mark.parametrize("raw, masked", [("", "****"), ("abcd", "****"), ("abcdefgh", "ab***efgh")])
def test_mask_key(raw, masked):
    assert orchestrate._mask_key(raw) == masked
