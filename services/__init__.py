"""Service layer utilities."""

from .llm_client import (  # noqa: F401
    ContentBlockedError,
    GenerationOptions,
    GenerationResult,
    JSONGenerationError,
    ModelClient,
    ModelClientError,
    ProviderConfig,
    ProviderConfigError,
    ProviderRequestError,
    RetryPolicy,
    get_default_client,
)
from .guardrails import JsonParseResult, parse_json_payload, repair_json_text  # noqa: F401
from .images import HttpImagePipeline, ImageGenerationError, ImagePipeline, build_image_pipeline  # noqa: F401
from .publishing import NullPublishHook, PublishHook, WebhookPublishHook, build_publish_hook  # noqa: F401

__all__ = [
    "ContentBlockedError",
    "GenerationOptions",
    "GenerationResult",
    "JSONGenerationError",
    "ModelClient",
    "ModelClientError",
    "ProviderConfig",
    "ProviderConfigError",
    "ProviderRequestError",
    "RetryPolicy",
    "get_default_client",
    "JsonParseResult",
    "parse_json_payload",
    "repair_json_text",
    "HttpImagePipeline",
    "ImageGenerationError",
    "ImagePipeline",
    "build_image_pipeline",
    "NullPublishHook",
    "PublishHook",
    "WebhookPublishHook",
    "build_publish_hook",
]
