"""OpenRouter provider (OpenAI-compatible gateway)."""

from typing import Any

from reservation_extractor.providers.base import Provider
from reservation_extractor.pydantic_models import RawDocument


class OpenRouterProvider(Provider):
    name = "openrouter"
    supports_documents = True

    def document_part(self, document: RawDocument) -> dict[str, Any]:
        """OpenRouter's file part also carries a file name."""
        part = super().document_part(document)
        part["file"]["filename"] = document.file_name or "document.pdf"
        return part

    def completion_options(self) -> dict[str, Any]:
        return {"extra_headers": {"X-Title": "reservation-extractor"}}
