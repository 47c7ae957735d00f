"""Google Gemini provider (generativelanguage API via litellm's gemini/ route)."""

from typing import Any

from reservation_extractor.providers.base import Provider


class GeminiProvider(Provider):
    """Gemini reads PDFs natively, so it doubles as the OCR fallback."""

    name = "gemini"
    supports_documents = True

    def completion_options(self) -> dict[str, Any]:
        # Booking documents routinely contain names/addresses that trip the
        # default safety filters.
        return {
            "safety_settings": [
                {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_NONE"},
                {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_NONE"},
            ],
        }
