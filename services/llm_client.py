"""Provider-agnostic model client with retry, rate limiting and JSON repair."""
from __future__ import annotations

import random
import threading
import time
from collections import OrderedDict, deque
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, NoReturn, Optional, Protocol

import httpx
import openai
from openai import OpenAI

from config import (
    ANTHROPIC_API_KEY,
    ANTHROPIC_BASE_URL,
    ANTHROPIC_VERSION,
    DEFAULT_CLAUDE_MODEL,
    DEFAULT_GEMINI_MODEL,
    DEFAULT_OPENAI_MODEL,
    GEMINI_BASE_URL,
    GOOGLE_AI_API_KEY,
    JSON_MAX_ATTEMPTS,
    JSON_TEMPERATURE,
    LLM_BACKOFF_BASE_S,
    LLM_BACKOFF_CAP_S,
    LLM_DEFAULT_MAX_TOKENS,
    LLM_DEFAULT_TEMPERATURE,
    LLM_MAX_ATTEMPTS,
    LLM_MAX_PENDING,
    LLM_MODEL,
    LLM_PROVIDER,
    LLM_RPM,
    LLM_RPS,
    LLM_TIMEOUT_S,
    OPENAI_API_KEY,
)
from observability.logger import get_logger
from observability.metrics import get_registry

from .guardrails import JsonParseResult, parse_json_payload

LOGGER = get_logger("articleforge.llm_client")
REGISTRY = get_registry()
REQUEST_COUNTER = REGISTRY.counter("llm.requests_total")
RETRY_COUNTER = REGISTRY.counter("llm.retries_total")
JSON_REPAIR_COUNTER = REGISTRY.counter("llm.json_repairs_total")
REQUEST_TIMER = REGISTRY.timer("llm.request_duration")

PROVIDER_GEMINI = "gemini"
PROVIDER_ANTHROPIC = "anthropic"
PROVIDER_OPENAI = "openai"
SUPPORTED_PROVIDERS = (PROVIDER_GEMINI, PROVIDER_ANTHROPIC, PROVIDER_OPENAI)

FINISH_STOP = "STOP"
FINISH_MAX_TOKENS = "MAX_TOKENS"
FINISH_SAFETY = "SAFETY"
FINISH_INCOMPLETE = "INCOMPLETE"

RETRYABLE_STATUS_CODES = {408, 409, 425, 429, 500, 502, 503, 504}
SAFETY_TEXT_FLOOR = 100
JSON_ONLY_INSTRUCTION = "\n\nRespond with valid JSON only. No markdown code blocks."

_DEFAULT_MODELS = {
    PROVIDER_GEMINI: DEFAULT_GEMINI_MODEL,
    PROVIDER_ANTHROPIC: DEFAULT_CLAUDE_MODEL,
    PROVIDER_OPENAI: DEFAULT_OPENAI_MODEL,
}
_OPENAI_PREFIXES = ("gpt-", "o1", "o3", "o4")

_HTTP_CLIENT_LIMITS = httpx.Limits(
    max_connections=16,
    max_keepalive_connections=16,
    keepalive_expiry=120.0,
)
_HTTP_CLIENTS: "OrderedDict[float, httpx.Client]" = OrderedDict()
_HTTP_CLIENTS_LOCK = threading.Lock()


class ModelClientError(RuntimeError):
    """Base error raised by the model client."""

    status_code = 502

    def __init__(self, message: str, *, provider: Optional[str] = None, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.provider = provider
        if status_code is not None:
            self.status_code = status_code


class ProviderConfigError(ModelClientError):
    """Raised when a provider is unknown or has no credentials."""

    status_code = 500


class ProviderRequestError(ModelClientError):
    """Raised when a provider call fails permanently or exhausts its retries."""


class ContentBlockedError(ModelClientError):
    """Raised when a safety block leaves no usable text."""

    status_code = 422


class JSONGenerationError(ModelClientError):
    """Raised when a structured call keeps returning unparseable or invalid JSON."""

    def __init__(self, label: str, errors: List[str], raw_excerpt: str = "", *, provider: Optional[str] = None) -> None:
        summary = "; ".join(errors[:5]) or "unknown error"
        super().__init__(
            f"Failed to get valid JSON for {label} after {JSON_MAX_ATTEMPTS} attempts: {summary}",
            provider=provider,
        )
        self.label = label
        self.errors = list(errors)
        self.raw_excerpt = raw_excerpt


@dataclass
class RetryPolicy:
    max_attempts: int = LLM_MAX_ATTEMPTS
    base_delay: float = LLM_BACKOFF_BASE_S
    max_delay: float = LLM_BACKOFF_CAP_S
    jitter: float = 0.0

    def delay_for(self, attempt: int) -> float:
        delay = self.base_delay * (2 ** max(0, attempt - 1))
        if self.jitter:
            delay += random.uniform(0.0, self.jitter)
        return min(delay, self.max_delay)


def provider_for_model(model: str) -> str:
    normalized = (model or "").strip().lower()
    if normalized.startswith("claude-"):
        return PROVIDER_ANTHROPIC
    if normalized.startswith(_OPENAI_PREFIXES):
        return PROVIDER_OPENAI
    return PROVIDER_GEMINI


@dataclass(frozen=True)
class ProviderConfig:
    """Explicit provider/model selection threaded through every stage call."""

    provider: str = PROVIDER_GEMINI
    model: str = DEFAULT_GEMINI_MODEL
    api_key: str = ""
    timeout_s: float = LLM_TIMEOUT_S
    base_url: Optional[str] = None

    @classmethod
    def for_model(cls, model: str, *, api_key: str = "", timeout_s: Optional[float] = None) -> "ProviderConfig":
        provider = provider_for_model(model)
        return cls(
            provider=provider,
            model=model or _DEFAULT_MODELS[provider],
            api_key=api_key,
            timeout_s=timeout_s or LLM_TIMEOUT_S,
        )

    @classmethod
    def from_env(cls) -> "ProviderConfig":
        if LLM_MODEL:
            return cls.for_model(LLM_MODEL)
        provider = LLM_PROVIDER if LLM_PROVIDER in SUPPORTED_PROVIDERS else PROVIDER_GEMINI
        return cls(provider=provider, model=_DEFAULT_MODELS[provider])

    def with_timeout(self, timeout_s: float) -> "ProviderConfig":
        return replace(self, timeout_s=min(self.timeout_s, timeout_s))

    def resolved_api_key(self) -> str:
        if self.api_key:
            return self.api_key
        return {
            PROVIDER_GEMINI: GOOGLE_AI_API_KEY,
            PROVIDER_ANTHROPIC: ANTHROPIC_API_KEY,
            PROVIDER_OPENAI: OPENAI_API_KEY,
        }.get(self.provider, "")


@dataclass(frozen=True)
class GenerationOptions:
    temperature: float = LLM_DEFAULT_TEMPERATURE
    max_tokens: int = LLM_DEFAULT_MAX_TOKENS


@dataclass(frozen=True)
class GenerationResult:
    text: str
    finish_reason: str = FINISH_STOP
    prompt_tokens: int = 0
    output_tokens: int = 0
    truncated: bool = False


class ProviderTransport(Protocol):
    def complete(
        self,
        prompt: str,
        system_prompt: Optional[str],
        options: GenerationOptions,
        config: ProviderConfig,
    ) -> GenerationResult:
        ...


def reset_http_client_cache() -> None:
    """Close and clear pooled HTTP clients."""

    with _HTTP_CLIENTS_LOCK:
        while _HTTP_CLIENTS:
            _, pooled_client = _HTTP_CLIENTS.popitem(last=False)
            pooled_client.close()


def _get_http_client(timeout_s: float) -> httpx.Client:
    key = float(timeout_s)
    with _HTTP_CLIENTS_LOCK:
        client = _HTTP_CLIENTS.get(key)
        if client is not None:
            _HTTP_CLIENTS.move_to_end(key)
            return client
        timeout = httpx.Timeout(
            timeout=key,
            connect=min(20.0, key),
            read=key,
            write=key,
        )
        client = httpx.Client(
            timeout=timeout,
            limits=_HTTP_CLIENT_LIMITS,
            headers={"Connection": "keep-alive"},
        )
        _HTTP_CLIENTS[key] = client
        while len(_HTTP_CLIENTS) > 4:
            _, old_client = _HTTP_CLIENTS.popitem(last=False)
            old_client.close()
        return client


def _require_key(config: ProviderConfig) -> str:
    api_key = config.resolved_api_key()
    if not api_key:
        raise ProviderConfigError(f"No API key configured for provider '{config.provider}'", provider=config.provider)
    return api_key


class GeminiTransport:
    """Google Generative Language REST API."""

    _FINISH_MAP = {
        "STOP": FINISH_STOP,
        "MAX_TOKENS": FINISH_MAX_TOKENS,
        "SAFETY": FINISH_SAFETY,
        "RECITATION": FINISH_SAFETY,
        "BLOCKLIST": FINISH_SAFETY,
        "PROHIBITED_CONTENT": FINISH_SAFETY,
    }

    def __init__(self, client_factory: Callable[[float], httpx.Client] = _get_http_client) -> None:
        self._client_factory = client_factory

    def complete(self, prompt, system_prompt, options, config):
        api_key = _require_key(config)
        base_url = (config.base_url or GEMINI_BASE_URL).rstrip("/")
        payload: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": options.temperature,
                "maxOutputTokens": options.max_tokens,
            },
        }
        if system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}
        client = self._client_factory(config.timeout_s)
        response = client.post(
            f"{base_url}/models/{config.model}:generateContent",
            headers={"x-goog-api-key": api_key, "Content-Type": "application/json"},
            json=payload,
        )
        response.raise_for_status()
        data = response.json()
        candidates = data.get("candidates") or []
        candidate = candidates[0] if candidates else {}
        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict) and not part.get("thought"))
        raw_reason = str(candidate.get("finishReason") or "STOP").upper()
        if not candidates and (data.get("promptFeedback") or {}).get("blockReason"):
            raw_reason = "SAFETY"
        finish_reason = self._FINISH_MAP.get(raw_reason, raw_reason)
        usage = data.get("usageMetadata") or {}
        return GenerationResult(
            text=text,
            finish_reason=finish_reason,
            prompt_tokens=int(usage.get("promptTokenCount") or 0),
            output_tokens=int(usage.get("candidatesTokenCount") or 0),
            truncated=finish_reason == FINISH_MAX_TOKENS,
        )


class AnthropicTransport:
    """Anthropic Messages REST API."""

    _FINISH_MAP = {
        "end_turn": FINISH_STOP,
        "stop_sequence": FINISH_STOP,
        "max_tokens": FINISH_MAX_TOKENS,
        "refusal": FINISH_SAFETY,
    }

    def __init__(self, client_factory: Callable[[float], httpx.Client] = _get_http_client) -> None:
        self._client_factory = client_factory

    def complete(self, prompt, system_prompt, options, config):
        api_key = _require_key(config)
        base_url = (config.base_url or ANTHROPIC_BASE_URL).rstrip("/")
        payload: Dict[str, Any] = {
            "model": config.model,
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            payload["system"] = system_prompt
        client = self._client_factory(config.timeout_s)
        response = client.post(
            f"{base_url}/messages",
            headers={
                "x-api-key": api_key,
                "anthropic-version": ANTHROPIC_VERSION,
                "Content-Type": "application/json",
            },
            json=payload,
        )
        response.raise_for_status()
        data = response.json()
        blocks = data.get("content") or []
        text = "".join(block.get("text", "") for block in blocks if isinstance(block, dict) and block.get("type") == "text")
        raw_reason = str(data.get("stop_reason") or "end_turn")
        finish_reason = self._FINISH_MAP.get(raw_reason, raw_reason.upper())
        usage = data.get("usage") or {}
        return GenerationResult(
            text=text,
            finish_reason=finish_reason,
            prompt_tokens=int(usage.get("input_tokens") or 0),
            output_tokens=int(usage.get("output_tokens") or 0),
            truncated=finish_reason == FINISH_MAX_TOKENS,
        )


class OpenAITransport:
    """OpenAI chat completions through the official SDK."""

    _FINISH_MAP = {
        "stop": FINISH_STOP,
        "length": FINISH_MAX_TOKENS,
        "content_filter": FINISH_SAFETY,
    }

    def __init__(self, client_factory: Optional[Callable[[ProviderConfig], OpenAI]] = None) -> None:
        self._client_factory = client_factory or self._build_client
        self._clients: Dict[tuple, OpenAI] = {}
        self._lock = threading.Lock()

    def _build_client(self, config: ProviderConfig) -> OpenAI:
        api_key = _require_key(config)
        key = (api_key, config.base_url, config.timeout_s)
        with self._lock:
            client = self._clients.get(key)
            if client is None:
                # Retries are owned by ModelClient.
                client = OpenAI(api_key=api_key, base_url=config.base_url, timeout=config.timeout_s, max_retries=0)
                self._clients[key] = client
            return client

    def complete(self, prompt, system_prompt, options, config):
        client = self._client_factory(config)
        messages: List[Dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        completion = client.chat.completions.create(
            model=config.model,
            messages=messages,
            temperature=options.temperature,
            max_tokens=options.max_tokens,
        )
        choice = completion.choices[0] if completion.choices else None
        text = (choice.message.content or "") if choice else ""
        raw_reason = (choice.finish_reason if choice else None) or "stop"
        finish_reason = self._FINISH_MAP.get(raw_reason, raw_reason.upper())
        usage = completion.usage
        return GenerationResult(
            text=text,
            finish_reason=finish_reason,
            prompt_tokens=int(getattr(usage, "prompt_tokens", 0) or 0),
            output_tokens=int(getattr(usage, "completion_tokens", 0) or 0),
            truncated=finish_reason == FINISH_MAX_TOKENS,
        )


_TRANSPORT_ERRORS = (httpx.HTTPError, openai.OpenAIError)


def _should_retry(exc: BaseException) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS_CODES
    if isinstance(exc, (httpx.TimeoutException, httpx.TransportError)):
        return True
    if isinstance(exc, openai.APIStatusError):
        return exc.status_code in RETRYABLE_STATUS_CODES
    if isinstance(exc, (openai.APITimeoutError, openai.APIConnectionError)):
        return True
    return False


def _extract_error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        error_block = payload.get("error")
        if isinstance(error_block, dict):
            message = error_block.get("message")
            if isinstance(message, str) and message.strip():
                return message.strip()
        elif isinstance(error_block, str) and error_block.strip():
            return error_block.strip()
        message = payload.get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()
    return (response.text or "").strip()[:300]


def _describe_error(exc: BaseException) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"http {exc.response.status_code}"
    if isinstance(exc, openai.APIStatusError):
        return f"http {exc.status_code}"
    return exc.__class__.__name__


def _raise_for_last_error(last_error: Optional[BaseException], config: ProviderConfig) -> NoReturn:
    provider = config.provider
    if last_error is None:
        raise ProviderRequestError(f"{provider} request was never attempted", provider=provider)
    if isinstance(last_error, httpx.HTTPStatusError):
        status_code = last_error.response.status_code
        detail = _extract_error_message(last_error.response)
        message = f"{provider} request failed with HTTP {status_code}"
        if detail:
            message = f"{message}: {detail}"
        raise ProviderRequestError(message, provider=provider, status_code=status_code) from last_error
    if isinstance(last_error, openai.APIStatusError):
        message = f"{provider} request failed with HTTP {last_error.status_code}: {last_error.message}"
        raise ProviderRequestError(message, provider=provider, status_code=last_error.status_code) from last_error
    if isinstance(last_error, (httpx.TimeoutException, openai.APITimeoutError)):
        raise ProviderRequestError(f"{provider} request timed out", provider=provider, status_code=504) from last_error
    raise ProviderRequestError(
        f"{provider} request failed: {_describe_error(last_error)}",
        provider=provider,
    ) from last_error


class _RateLimiter:
    def __init__(self, *, rps: int, rpm: int) -> None:
        self._rps = max(1, rps)
        self._rpm = max(self._rps, rpm)
        self._per_second: deque[float] = deque()
        self._per_minute: deque[float] = deque()
        self._lock = threading.Lock()

    def acquire(self) -> None:
        while True:
            with self._lock:
                now = time.monotonic()
                self._trim(now)
                if len(self._per_second) < self._rps and len(self._per_minute) < self._rpm:
                    self._per_second.append(now)
                    self._per_minute.append(now)
                    return
                wait_options: List[float] = []
                if len(self._per_second) >= self._rps:
                    wait_options.append(1.0 - (now - self._per_second[0]))
                if len(self._per_minute) >= self._rpm:
                    wait_options.append(60.0 - (now - self._per_minute[0]))
            delay = max(0.05, max(wait_options) if wait_options else 0.05)
            time.sleep(delay)

    def _trim(self, now: float) -> None:
        while self._per_second and now - self._per_second[0] >= 1.0:
            self._per_second.popleft()
        while self._per_minute and now - self._per_minute[0] >= 60.0:
            self._per_minute.popleft()


class ModelClient:
    """Uniform text/JSON generation over interchangeable providers."""

    def __init__(
        self,
        default_provider: Optional[ProviderConfig] = None,
        *,
        transports: Optional[Dict[str, ProviderTransport]] = None,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
        rps: int = LLM_RPS,
        rpm: int = LLM_RPM,
        max_pending: int = LLM_MAX_PENDING,
    ) -> None:
        self._default_provider = default_provider or ProviderConfig.from_env()
        self._transports: Dict[str, ProviderTransport] = {
            PROVIDER_GEMINI: GeminiTransport(),
            PROVIDER_ANTHROPIC: AnthropicTransport(),
            PROVIDER_OPENAI: OpenAITransport(),
        }
        if transports:
            self._transports.update(transports)
        self._retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep
        self._limiter = _RateLimiter(rps=rps, rpm=rpm)
        self._max_pending = max(1, max_pending)
        self._pending_lock = threading.Condition()
        self._pending_requests = 0

    @property
    def default_provider(self) -> ProviderConfig:
        return self._default_provider

    def _acquire_slot(self) -> None:
        with self._pending_lock:
            while self._pending_requests >= self._max_pending:
                self._pending_lock.wait()
            self._pending_requests += 1

    def _release_slot(self) -> None:
        with self._pending_lock:
            self._pending_requests = max(0, self._pending_requests - 1)
            self._pending_lock.notify()

    def _transport_for(self, config: ProviderConfig) -> ProviderTransport:
        transport = self._transports.get(config.provider)
        if transport is None:
            raise ProviderConfigError(f"Unknown model provider '{config.provider}'", provider=config.provider)
        return transport

    def generate_text(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        options: Optional[GenerationOptions] = None,
        *,
        provider: Optional[ProviderConfig] = None,
    ) -> str:
        return self.generate_text_with_meta(prompt, system_prompt, options, provider=provider).text

    def generate_text_with_meta(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        options: Optional[GenerationOptions] = None,
        *,
        provider: Optional[ProviderConfig] = None,
    ) -> GenerationResult:
        config = provider or self._default_provider
        opts = options or GenerationOptions()
        transport = self._transport_for(config)
        result = self._call_with_retry(transport, prompt, system_prompt, opts, config)
        if result.finish_reason != FINISH_SAFETY:
            return result
        if len(result.text.strip()) > SAFETY_TEXT_FLOOR:
            LOGGER.warning(
                "llm_safety_partial",
                extra={"provider": config.provider, "model": config.model, "chars": len(result.text)},
            )
            return replace(result, truncated=True)
        raise ContentBlockedError(
            f"{config.provider} blocked the response for safety reasons",
            provider=config.provider,
        )

    def _call_with_retry(
        self,
        transport: ProviderTransport,
        prompt: str,
        system_prompt: Optional[str],
        options: GenerationOptions,
        config: ProviderConfig,
    ) -> GenerationResult:
        policy = self._retry_policy
        attempts = 0
        last_error: Optional[BaseException] = None
        self._acquire_slot()
        try:
            while attempts < policy.max_attempts:
                attempts += 1
                self._limiter.acquire()
                REQUEST_COUNTER.inc()
                started_at = time.perf_counter()
                try:
                    result = transport.complete(prompt, system_prompt, options, config)
                except _TRANSPORT_ERRORS as exc:
                    last_error = exc
                    retryable = _should_retry(exc)
                    LOGGER.warning(
                        "llm_request_failed",
                        extra={
                            "provider": config.provider,
                            "model": config.model,
                            "attempt": attempts,
                            "retryable": retryable,
                            "error": _describe_error(exc),
                        },
                    )
                    if not retryable or attempts >= policy.max_attempts:
                        break
                    RETRY_COUNTER.inc()
                    self._sleep(policy.delay_for(attempts))
                    continue
                duration_ms = (time.perf_counter() - started_at) * 1000
                REQUEST_TIMER.observe(duration_ms)
                LOGGER.info(
                    "llm_request_succeeded",
                    extra={
                        "provider": config.provider,
                        "model": config.model,
                        "attempt": attempts,
                        "duration_ms": int(duration_ms),
                        "max_tokens": options.max_tokens,
                        "finish_reason": result.finish_reason,
                    },
                )
                return result
        finally:
            self._release_slot()
        _raise_for_last_error(last_error, config)

    def generate_json(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        *,
        schema: Optional[Dict[str, Any]] = None,
        provider: Optional[ProviderConfig] = None,
        max_tokens: int = LLM_DEFAULT_MAX_TOKENS,
        label: str = "json",
    ) -> Any:
        """Return parsed JSON validated against ``schema``.

        Each failed parse or validation is retried with the diagnostics appended to
        the prompt. After ``JSON_MAX_ATTEMPTS`` failures a ``JSONGenerationError``
        carrying the field-level errors is raised.
        """

        config = provider or self._default_provider
        options = GenerationOptions(temperature=JSON_TEMPERATURE, max_tokens=max_tokens)
        request_prompt = prompt + JSON_ONLY_INSTRUCTION
        last: Optional[JsonParseResult] = None
        for attempt in range(1, JSON_MAX_ATTEMPTS + 1):
            result = self.generate_text_with_meta(request_prompt, system_prompt, options, provider=config)
            parsed = parse_json_payload(result.text, schema)
            if parsed.ok:
                if parsed.repaired:
                    JSON_REPAIR_COUNTER.inc()
                return parsed.data
            last = parsed
            LOGGER.warning(
                "llm_json_invalid",
                extra={"label": label, "attempt": attempt, "errors": parsed.errors[:5]},
            )
            feedback = "\n".join(f"- {error}" for error in parsed.errors[:5])
            request_prompt = (
                f"{prompt}\n\nYour previous answer was rejected:\n{feedback}{JSON_ONLY_INSTRUCTION}"
            )
        if last is None:
            raise JSONGenerationError(label, [], provider=config.provider)
        raise JSONGenerationError(label, last.errors, last.raw_excerpt, provider=config.provider)


_DEFAULT_CLIENT: Optional[ModelClient] = None
_DEFAULT_CLIENT_LOCK = threading.Lock()


def get_default_client() -> ModelClient:
    global _DEFAULT_CLIENT
    with _DEFAULT_CLIENT_LOCK:
        if _DEFAULT_CLIENT is None:
            _DEFAULT_CLIENT = ModelClient()
        return _DEFAULT_CLIENT


__all__ = [
    "AnthropicTransport",
    "ContentBlockedError",
    "FINISH_INCOMPLETE",
    "FINISH_MAX_TOKENS",
    "FINISH_SAFETY",
    "FINISH_STOP",
    "GeminiTransport",
    "GenerationOptions",
    "GenerationResult",
    "JSONGenerationError",
    "ModelClient",
    "ModelClientError",
    "OpenAITransport",
    "ProviderConfig",
    "ProviderConfigError",
    "ProviderRequestError",
    "RetryPolicy",
    "get_default_client",
    "provider_for_model",
    "reset_http_client_cache",
]
