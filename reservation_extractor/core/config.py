"""Centralized configuration for the reservation extraction pipeline.

All magic numbers, thresholds, and configuration constants are documented here.
Each constant includes:
- What it controls
- What changing it affects

Runtime settings that operators change per deployment (pinned provider,
priority order, rate-limit ceiling, cache TTL) are read from the environment
by ``PipelineSettings.from_env()``. The CLI loads a ``.env`` file first.
"""

import os
from dataclasses import dataclass, field
from typing import Final


# =============================================================================
# Provider Configuration
# =============================================================================
#
# Providers are selected by priority order, skipping any whose API key is not
# set. To force one provider, set PIPELINE_PROVIDER:
#   - "gemini": Google Gemini (GOOGLE_GEMINI_API_KEY / GOOGLE_API_KEY)
#   - "openrouter": OpenRouter gateway (OPENROUTER_API_KEY)
#   - "mistral": Mistral AI (MISTRAL_API_KEY)
#
# To change the automatic order, set PROVIDER_PRIORITY="openrouter,gemini".
#
# =============================================================================

DEFAULT_PROVIDER_PRIORITY: Final[tuple[str, ...]] = ("gemini", "openrouter", "mistral")
"""Automatic selection order when no provider is pinned.

Gemini comes first because it reads PDF bytes natively, which also makes it
the best OCR fallback for scanned documents. Mistral is last because it only
accepts text.
"""

API_KEY_ENV_VARS: Final[dict[str, tuple[str, ...]]] = {
    "gemini": ("GOOGLE_GEMINI_API_KEY", "GOOGLE_API_KEY", "GEMINI_API_KEY"),
    "openrouter": ("OPENROUTER_API_KEY",),
    "mistral": ("MISTRAL_API_KEY",),
}
"""Environment variables checked (in order) for each provider's credential."""

DEFAULT_MODELS: Final[dict[str, str]] = {
    "gemini": os.environ.get("GEMINI_MODEL", "gemini/gemini-1.5-flash"),
    "openrouter": os.environ.get("OPENROUTER_MODEL", "openrouter/google/gemini-flash-1.5"),
    "mistral": os.environ.get("MISTRAL_MODEL", "mistral/mistral-large-latest"),
}
"""litellm model routes per provider. Override with <PROVIDER>_MODEL env vars."""


def resolve_api_key(provider: str) -> str | None:
    """Return the first configured credential for a provider, if any.

    Args:
        provider: Provider name (e.g., "gemini").

    Returns:
        The API key string, or None when no env var is set.
    """
    for env_var in API_KEY_ENV_VARS.get(provider, ()):
        value = os.environ.get(env_var)
        if value:
            return value
    return None


class ProviderConfig:
    """Request settings shared by every provider call."""

    TEMPERATURE: Final[float] = 0.0
    """Deterministic output. Parsing the same document twice should agree."""

    TIMEOUT: Final[float] = 60.0
    """Seconds before a provider call is abandoned and classified as a timeout."""

    MAX_OUTPUT_TOKENS: Final[int] = 4096
    """Upper bound on response length. Control sheets with many rows need room."""

    RETRIES_PER_PROVIDER: Final[int] = 0
    """Extra attempts on the same provider for timeout/server errors before
    failing over. 0 means fail over immediately."""

    RATE_LIMIT_MARKERS: Final[tuple[str, ...]] = (
        "rate limit",
        "quota exceeded",
        "too many requests",
        "resource exhausted",
    )
    """Message fragments that identify a rate-limit error when no 429 status
    is attached to the exception."""


class RateLimitConfig:
    """Sliding-window limiter settings.

    Used by: core/rate_limiter.py
    """

    WINDOW_SECONDS: Final[float] = 60.0
    """Length of the sliding window."""

    MAX_REQUESTS: Final[int] = 5
    """Configured ceiling per window. Free-tier Gemini allows roughly this."""

    MIN_CEILING: Final[int] = 1
    """Floor for the adaptive ceiling. Halving never goes below this."""

    RECOVERY_THRESHOLD: Final[int] = 3
    """Consecutive successes needed before the adaptive ceiling grows by one."""

    BACKOFF_BASE: Final[float] = 1.0
    """First backoff delay in seconds after a provider rate-limit error."""

    BACKOFF_MAX: Final[float] = 30.0
    """Backoff cap in seconds."""

    QUEUE_TIMEOUT: Final[float] = 30.0
    """Seconds a queued request waits for admission before RateLimitedError."""

    POLL_INTERVAL: Final[float] = 0.05
    """Seconds between admission checks while queued."""


class CacheConfig:
    """Response cache settings.

    Used by: core/rate_limiter.py
    """

    TTL_SECONDS: Final[float] = 300.0
    """Default time-to-live for cached responses (5 minutes)."""

    MAX_ENTRIES: Final[int] = 100
    """LRU bound. Oldest entries are evicted beyond this."""


class ConfidenceWeights:
    """Weights that combine into a draft's confidence score.

    Used by: core/validation.py, core/property_resolver.py
    """

    EXACT: Final[float] = 1.0
    ALIAS: Final[float] = 0.95
    NORMALIZED: Final[float] = 0.85
    PARTIAL: Final[float] = 0.65
    """Property match tier confidences. Partial matches are the weakest signal
    because "Aroeira" is contained in every "Aroeira N"."""

    UNRESOLVED_PROPERTY: Final[float] = 0.5
    """Multiplier applied when no catalog entry could be matched."""

    TABULAR_BASE: Final[float] = 0.95
    """Base confidence of the deterministic tabular path."""

    MODEL_BASE: Final[float] = 0.85
    """Base confidence of the model path before repair-tier scaling."""

    REPAIR_TIER_FACTORS: Final[dict[str, float]] = {
        "strict": 1.0,
        "code_fence": 1.0,
        "syntax_repair": 0.9,
        "list_isolation": 0.8,
        "field_scavenge": 0.5,
        "failed": 0.2,
    }
    """Scaling applied to MODEL_BASE depending on how the response was parsed."""

    WARNING_PENALTY: Final[float] = 0.05
    ERROR_PENALTY: Final[float] = 0.2


class ValidationConfig:
    """Field rules for draft validation.

    Used by: core/validation.py
    """

    REQUIRED_FIELDS: Final[tuple[str, ...]] = ("guest_name", "check_in_date", "check_out_date")
    """Blocking when missing."""

    RECOMMENDED_FIELDS: Final[tuple[str, ...]] = ("num_guests", "platform", "total_amount")
    """Warning when missing."""

    AMOUNT_FIELDS: Final[tuple[str, ...]] = ("total_amount", "platform_fee", "cleaning_fee")
    """Monetary fields that must be non-negative."""


class WorkerConfig:
    """Background worker pool settings.

    Used by: worker.py
    """

    WORKERS: Final[int] = 2
    MAX_ATTEMPTS: Final[int] = 3
    BACKOFF_BASE: Final[float] = 1.0
    """Delay before the second attempt. Doubles for each further attempt."""


class ResolverConfig:
    """Property resolver settings.

    Used by: core/property_resolver.py
    """

    SUGGESTION_LIMIT: Final[int] = 3
    SUGGESTION_MIN_SCORE: Final[float] = 60.0
    """Minimum rapidfuzz WRatio (0-100) for a catalog entry to be suggested
    to a reviewer. Suggestions never become matches."""


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_priority(name: str) -> tuple[str, ...]:
    value = os.environ.get(name)
    if not value:
        return DEFAULT_PROVIDER_PRIORITY
    return tuple(p.strip().lower() for p in value.split(",") if p.strip())


@dataclass(frozen=True)
class PipelineSettings:
    """Deployment settings for one process.

    Attributes:
        pinned_provider: Provider forced by configuration, or None for
            automatic selection.
        provider_priority: Order used for automatic selection and fallback.
        max_requests: Rate-limit ceiling per window.
        adaptive: Whether the ceiling adapts to provider rate-limit errors.
        cache_ttl: Seconds cached responses stay valid.
        provider_timeout: Seconds per provider call.
        retries_per_provider: Same-provider retries before failing over.
        models: litellm model route per provider.
    """

    pinned_provider: str | None = None
    provider_priority: tuple[str, ...] = DEFAULT_PROVIDER_PRIORITY
    max_requests: int = RateLimitConfig.MAX_REQUESTS
    adaptive: bool = True
    cache_ttl: float = CacheConfig.TTL_SECONDS
    provider_timeout: float = ProviderConfig.TIMEOUT
    retries_per_provider: int = ProviderConfig.RETRIES_PER_PROVIDER
    models: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_MODELS))

    @classmethod
    def from_env(cls) -> "PipelineSettings":
        """Build settings from environment variables."""
        pinned = os.environ.get("PIPELINE_PROVIDER", "").strip().lower() or None
        models = {
            "gemini": os.environ.get("GEMINI_MODEL", DEFAULT_MODELS["gemini"]),
            "openrouter": os.environ.get("OPENROUTER_MODEL", DEFAULT_MODELS["openrouter"]),
            "mistral": os.environ.get("MISTRAL_MODEL", DEFAULT_MODELS["mistral"]),
        }
        return cls(
            pinned_provider=pinned,
            provider_priority=_env_priority("PROVIDER_PRIORITY"),
            max_requests=int(os.environ.get("RATE_LIMIT_MAX_REQUESTS", RateLimitConfig.MAX_REQUESTS)),
            adaptive=_env_bool("RATE_LIMIT_ADAPTIVE", True),
            cache_ttl=float(os.environ.get("RESPONSE_CACHE_TTL", CacheConfig.TTL_SECONDS)),
            provider_timeout=float(os.environ.get("PROVIDER_TIMEOUT", ProviderConfig.TIMEOUT)),
            retries_per_provider=int(
                os.environ.get("PROVIDER_RETRIES", ProviderConfig.RETRIES_PER_PROVIDER)
            ),
            models=models,
        )
