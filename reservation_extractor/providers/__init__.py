"""Language-model providers and the adapter that routes calls to them."""

from reservation_extractor.providers.base import Provider, classify_error
from reservation_extractor.providers.gemini import GeminiProvider
from reservation_extractor.providers.openrouter import OpenRouterProvider
from reservation_extractor.providers.mistral import MistralProvider
from reservation_extractor.providers.selection import select_provider, fallback_order
from reservation_extractor.providers.adapter import ProviderAdapter, PROVIDER_CLASSES

__all__ = [
    "Provider",
    "classify_error",
    "GeminiProvider",
    "OpenRouterProvider",
    "MistralProvider",
    "select_provider",
    "fallback_order",
    "ProviderAdapter",
    "PROVIDER_CLASSES",
]
