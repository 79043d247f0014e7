# -*- coding: utf-8 -*-

import os


def _env_str(name: str, default: str) -> str:
    value = str(os.getenv(name, "")).strip()
    return value or default


def _env_int(name: str, default: int) -> int:
    value = str(os.getenv(name, "")).strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    value = str(os.getenv(name, "")).strip()
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = str(os.getenv(name, "")).strip().lower()
    if not raw:
        return default
    return raw not in {"0", "false", "off", "no"}


LOG_LEVEL = _env_str("LOG_LEVEL", "INFO").upper()
if LOG_LEVEL not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
    LOG_LEVEL = "INFO"

# Provider selection
DEFAULT_GEMINI_MODEL = "gemini-3.1-pro-preview"
DEFAULT_CLAUDE_MODEL = "claude-sonnet-4-20250514"
DEFAULT_OPENAI_MODEL = "gpt-4o"

LLM_PROVIDER = _env_str("LLM_PROVIDER", "gemini").lower()
LLM_MODEL = str(os.getenv("LLM_MODEL", "")).strip()

GOOGLE_AI_API_KEY = str(os.getenv("GOOGLE_AI_API_KEY", "")).strip()
ANTHROPIC_API_KEY = str(os.getenv("ANTHROPIC_API_KEY", "")).strip()
OPENAI_API_KEY = str(os.getenv("OPENAI_API_KEY", "")).strip()

GEMINI_BASE_URL = _env_str("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta")
ANTHROPIC_BASE_URL = _env_str("ANTHROPIC_BASE_URL", "https://api.anthropic.com/v1")
ANTHROPIC_VERSION = "2023-06-01"

# Request limits
LLM_TIMEOUT_S = max(1.0, _env_float("LLM_TIMEOUT_S", 120.0))
LLM_MAX_ATTEMPTS = max(1, _env_int("LLM_MAX_ATTEMPTS", 3))
LLM_BACKOFF_BASE_S = max(0.0, _env_float("LLM_BACKOFF_BASE_S", 1.0))
LLM_BACKOFF_CAP_S = max(LLM_BACKOFF_BASE_S, _env_float("LLM_BACKOFF_CAP_S", 8.0))
LLM_RPS = max(1, _env_int("LLM_RPS", 5))
LLM_RPM = max(LLM_RPS, _env_int("LLM_RPM", 300))
LLM_MAX_PENDING = max(1, _env_int("LLM_MAX_PENDING", 16))
LLM_DEFAULT_TEMPERATURE = 0.7
LLM_DEFAULT_MAX_TOKENS = 8192
JSON_MAX_ATTEMPTS = 3
JSON_TEMPERATURE = 0.3

RESEARCH_TIMEOUT_S = max(1.0, _env_float("RESEARCH_TIMEOUT_S", 30.0))
CITATION_CHECK_TIMEOUT_S = max(1.0, _env_float("CITATION_CHECK_TIMEOUT_S", 8.0))
MAX_CITATIONS = 5

# Continuation
MAX_CONTINUATIONS = max(0, _env_int("MAX_CONTINUATIONS", 5))
CONTINUATION_TAIL_CHARS = 1400

# Queue and worker
JOB_STUCK_THRESHOLD_S = max(60, _env_int("JOB_STUCK_THRESHOLD_S", 600))
JOB_MAX_AUTO_RETRIES = max(0, _env_int("JOB_MAX_AUTO_RETRIES", 2))
WORKER_POLL_INTERVAL_S = max(0.1, _env_float("WORKER_POLL_INTERVAL_S", 5.0))
WORKER_HEARTBEAT_S = max(1, _env_int("WORKER_HEARTBEAT_S", 300))
WORKER_AUTOSTART = _env_bool("WORKER_AUTOSTART", True)
SECTION_FALLBACK_WORKERS = max(1, _env_int("SECTION_FALLBACK_WORKERS", 4))

# Images and publishing
IMAGES_ENABLED = _env_bool("IMAGES_ENABLED", True)
IMAGE_SERVICE_URL = str(os.getenv("IMAGE_SERVICE_URL", "")).strip()
IMAGE_TIMEOUT_S = max(1.0, _env_float("IMAGE_TIMEOUT_S", 90.0))
PUBLISH_WEBHOOK_URL = str(os.getenv("PUBLISH_WEBHOOK_URL", "")).strip()
PUBLISH_TIMEOUT_S = max(1.0, _env_float("PUBLISH_TIMEOUT_S", 15.0))

# Content repair limits
MAX_INTERNAL_LINKS = 15
MAX_LINK_REPEATS = 2
MAX_BRAND_MENTIONS = 3
MAX_FIRST_PERSON_PHRASES = 4
PARAGRAPH_SPLIT_WORDS = 60
PARAGRAPH_TARGET_WORDS = 50
MAX_PROMPT_LINKS = 25
