"""Provider adapter: the single entry point for provider calls.

Owns the provider registry, applies the selection policy, routes every
call through the shared RateLimiter and records usage in the CostTracker.
The adapter makes one attempt per call; retry and failover decisions belong
to the orchestrator, which walks ``fallback_chain()``.
"""

import logging
from typing import Any, Iterable

from reservation_extractor.core.config import PipelineSettings
from reservation_extractor.core.cost_tracker import CostTracker
from reservation_extractor.core.errors import ProviderUnavailableError, RateLimitedError
from reservation_extractor.core.rate_limiter import RateLimiter
from reservation_extractor.prompts import build_parse_prompt
from reservation_extractor.providers.base import Provider
from reservation_extractor.providers.gemini import GeminiProvider
from reservation_extractor.providers.mistral import MistralProvider
from reservation_extractor.providers.openrouter import OpenRouterProvider
from reservation_extractor.providers.selection import fallback_order, select_provider
from reservation_extractor.pydantic_models import (
    DocumentKind,
    ProviderErrorKind,
    ProviderOperation,
    ProviderRequest,
    ProviderResponse,
    RawDocument,
)

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: dict[str, type[Provider]] = {
    "gemini": GeminiProvider,
    "openrouter": OpenRouterProvider,
    "mistral": MistralProvider,
}


class ProviderAdapter:
    """Uniform access to the configured providers.

    Usage:
        limiter = RateLimiter.from_settings(settings)
        adapter = ProviderAdapter.from_settings(settings, limiter)

        response = await adapter.parse_reservation(text)
        response = await adapter.parse_reservation(text, provider="mistral")
    """

    def __init__(
        self,
        providers: Iterable[Provider],
        rate_limiter: RateLimiter,
        priority: Iterable[str] | None = None,
        pinned: str | None = None,
        cost_tracker: CostTracker | None = None,
    ):
        """Initialize the adapter.

        Args:
            providers: Provider instances, keyed by their ``name``.
            rate_limiter: Shared limiter/cache for every call.
            priority: Selection order. Defaults to the order of ``providers``.
            pinned: Provider forced by configuration.
            cost_tracker: Optional usage tracker.
        """
        self.providers: dict[str, Provider] = {p.name: p for p in providers}
        self.priority: tuple[str, ...] = tuple(priority) if priority else tuple(self.providers)
        self.pinned = pinned
        self.rate_limiter = rate_limiter
        self.cost_tracker = cost_tracker

    @classmethod
    def from_settings(
        cls,
        settings: PipelineSettings,
        rate_limiter: RateLimiter,
        cost_tracker: CostTracker | None = None,
    ) -> "ProviderAdapter":
        """Build Gemini, OpenRouter and Mistral providers from settings."""
        providers = [
            provider_cls(model=settings.models.get(name), timeout=settings.provider_timeout)
            for name, provider_cls in PROVIDER_CLASSES.items()
        ]
        return cls(
            providers=providers,
            rate_limiter=rate_limiter,
            priority=settings.provider_priority,
            pinned=settings.pinned_provider,
            cost_tracker=cost_tracker,
        )

    # -- Selection --

    def available(self) -> list[str]:
        """Names of providers with a configured credential."""
        return [name for name, p in self.providers.items() if p.is_configured]

    def selected(self) -> str | None:
        return select_provider(self.priority, self.available(), self.pinned)

    def get(self, name: str) -> Provider:
        """Look up a configured provider by name.

        Raises:
            ProviderUnavailableError: Unknown name or no credential.
        """
        provider = self.providers.get(name)
        if provider is None:
            raise ProviderUnavailableError(name, "unknown provider")
        if not provider.is_configured:
            raise ProviderUnavailableError(name, "no API key configured")
        return provider

    def fallback_chain(self, override: str | None = None) -> list[Provider]:
        """Providers to try in order. An override forces a single provider."""
        if override:
            return [self.get(override)]
        return [self.providers[name] for name in fallback_order(self.priority, self.available(), self.pinned)]

    def _resolve(self, provider: str | None) -> Provider:
        if provider:
            return self.get(provider)
        name = self.selected()
        if name is None:
            raise ProviderUnavailableError("any", "no provider has an API key configured")
        return self.providers[name]

    # -- Calls --

    async def call(
        self,
        provider: Provider,
        operation: ProviderOperation,
        payload: str | bytes,
        invoke,
        options: dict[str, Any] | None = None,
        use_cache: bool = True,
    ) -> ProviderResponse:
        """Run one provider call through the rate limiter.

        Args:
            provider: Provider performing the call.
            operation: Operation kind (for the cache key).
            payload: Normalized input (for the cache key).
            invoke: Zero-argument coroutine factory doing the call.
            options: Output-affecting options (for the cache key).
            use_cache: Bypass the cache lookup.

        Raises:
            RateLimitedError: Not admitted by the limiter in time.
        """
        request = ProviderRequest(provider=provider.name, operation=operation, payload=payload, options=options or {})
        response = await self.rate_limiter.call(request, invoke, use_cache=use_cache)
        if self.cost_tracker and not response.cached:
            self.cost_tracker.record(response)
        return response

    async def extract_text_with(self, provider: Provider, document: RawDocument) -> ProviderResponse:
        payload = document.content if isinstance(document.content, bytes) else str(document.content)
        return await self.call(
            provider, ProviderOperation.EXTRACT_TEXT, payload,
            lambda: provider.extract_text(document),
        )

    async def parse_reservation_with(
        self,
        provider: Provider,
        text: str,
        file_name: str | None = None,
        use_cache: bool = True,
    ) -> ProviderResponse:
        prompt = build_parse_prompt(text, file_name)
        return await self.call(
            provider, ProviderOperation.PARSE_RESERVATION, prompt,
            lambda: provider.parse_reservation(prompt),
            use_cache=use_cache,
        )

    async def generate_text_with(
        self,
        provider: Provider,
        prompt: str,
        options: dict[str, Any] | None = None,
    ) -> ProviderResponse:
        return await self.call(
            provider, ProviderOperation.GENERATE_TEXT, prompt,
            lambda: provider.generate_text(prompt, options),
            options=options,
        )

    async def extract_text(self, document: RawDocument, provider: str | None = None) -> ProviderResponse:
        """Transcribe a document with the selected (or named) provider.

        Automatic selection skips providers that cannot read PDFs.
        """
        if provider is None and document.kind == DocumentKind.PDF:
            for candidate in self.fallback_chain():
                if candidate.supports_documents:
                    return await self.extract_text_with(candidate, document)
            raise ProviderUnavailableError("any", "no configured provider accepts PDF input")
        return await self.extract_text_with(self._resolve(provider), document)

    async def parse_reservation(
        self,
        text: str,
        provider: str | None = None,
        file_name: str | None = None,
    ) -> ProviderResponse:
        """Parse reservation JSON with the selected (or named) provider."""
        return await self.parse_reservation_with(self._resolve(provider), text, file_name)

    async def generate_text(
        self,
        prompt: str,
        options: dict[str, Any] | None = None,
        provider: str | None = None,
    ) -> ProviderResponse:
        return await self.generate_text_with(self._resolve(provider), prompt, options)

    async def compare_providers(self, text: str, file_name: str | None = None) -> dict[str, ProviderResponse]:
        """Run parse_reservation on every configured provider (diagnostics).

        Calls are sequential and bypass the cache so each provider answers
        for itself. A provider the limiter rejects is reported as rate limited.
        """
        results: dict[str, ProviderResponse] = {}
        for name in fallback_order(self.priority, self.available()):
            provider = self.providers[name]
            try:
                results[name] = await self.parse_reservation_with(provider, text, file_name, use_cache=False)
            except RateLimitedError as e:
                results[name] = ProviderResponse.failure(
                    name, ProviderOperation.PARSE_RESERVATION,
                    ProviderErrorKind.RATE_LIMITED, str(e),
                )
        return results

    def status(self) -> dict:
        return {
            "providers": {name: p.is_configured for name, p in self.providers.items()},
            "selected": self.selected(),
            "priority": list(self.priority),
            "pinned": self.pinned,
            "rate_limiter": self.rate_limiter.status(),
        }
