"""Mistral AI provider. Chat models only, no PDF input."""

from reservation_extractor.providers.base import Provider


class MistralProvider(Provider):
    name = "mistral"
    supports_documents = False
