"""Pydantic models for provider requests and responses.

A ProviderRequest exists per attempt and carries the cache key used by the
rate limiter. A ProviderResponse is the only thing a provider ever returns:
transport errors become a failed response with an error kind instead of an
exception.
"""

import hashlib
import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProviderOperation(str, Enum):
    EXTRACT_TEXT = "extract_text"
    PARSE_RESERVATION = "parse_reservation"
    GENERATE_TEXT = "generate_text"


class ProviderErrorKind(str, Enum):
    """Classification of a failed provider call."""

    AUTH = "auth"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    TIMEOUT = "timeout"
    INVALID_RESPONSE = "invalid_response"
    UNSUPPORTED = "unsupported"


def make_cache_key(operation: ProviderOperation | str, payload: str | bytes, options: dict[str, Any] | None = None) -> str:
    """Stable cache key from operation and normalized input.

    Text is whitespace-normalized so trivially different renderings of the
    same document share a key. Bytes are hashed as-is. The provider name is
    deliberately absent: any provider's answer to the same input is reusable.

    Args:
        operation: Provider operation.
        payload: Prompt text or document bytes.
        options: Extra generation options that change the output.

    Returns:
        Hex SHA-256 digest.
    """
    op = operation.value if isinstance(operation, ProviderOperation) else str(operation)
    digest = hashlib.sha256()
    digest.update(op.encode("utf-8"))
    digest.update(b"\x00")
    if isinstance(payload, bytes):
        digest.update(payload)
    else:
        digest.update(" ".join(payload.split()).encode("utf-8"))
    if options:
        digest.update(b"\x00")
        digest.update(json.dumps(options, sort_keys=True, default=str).encode("utf-8"))
    return digest.hexdigest()


class ProviderRequest(BaseModel):
    """One attempt at a provider operation."""

    provider: str
    operation: ProviderOperation
    payload: str | bytes
    options: dict[str, Any] = Field(default_factory=dict)

    @property
    def cache_key(self) -> str:
        return make_cache_key(self.operation, self.payload, self.options)


class ProviderResponse(BaseModel):
    """Result of one provider attempt. Never mutated after creation.

    Attributes:
        provider: Provider that produced the response.
        operation: Operation that was requested.
        success: Whether the call returned usable text.
        text: Raw response text (empty on failure).
        latency_ms: Wall time of the call.
        error_kind: Failure classification, None on success.
        error_message: Human-readable failure detail.
        status_code: HTTP status when the transport reported one.
        model: Model route used.
        prompt_tokens: Input tokens reported by the provider.
        completion_tokens: Output tokens reported by the provider.
        cached: True when served from the response cache.
    """

    model_config = ConfigDict(frozen=True)

    provider: str
    operation: ProviderOperation
    success: bool
    text: str = ""
    latency_ms: float = 0.0
    error_kind: ProviderErrorKind | None = None
    error_message: str | None = None
    status_code: int | None = None
    model: str | None = None
    prompt_tokens: int = 0
    completion_tokens: int = 0
    cached: bool = False

    @classmethod
    def ok(cls, provider: str, operation: ProviderOperation, text: str, **extra: Any) -> "ProviderResponse":
        return cls(provider=provider, operation=operation, success=True, text=text, **extra)

    @classmethod
    def failure(
        cls,
        provider: str,
        operation: ProviderOperation,
        error_kind: ProviderErrorKind,
        error_message: str,
        **extra: Any,
    ) -> "ProviderResponse":
        return cls(
            provider=provider,
            operation=operation,
            success=False,
            error_kind=error_kind,
            error_message=error_message,
            **extra,
        )

    @property
    def is_rate_limited(self) -> bool:
        return self.error_kind == ProviderErrorKind.RATE_LIMITED

    def as_cached(self) -> "ProviderResponse":
        return self.model_copy(update={"cached": True, "latency_ms": 0.0})
