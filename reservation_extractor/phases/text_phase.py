"""Text phase - turn the submitted document into normalized text.

PDFs with a text layer and plain text are read locally. A PDF that yields
no text is sent to the document-capable providers for transcription.
"""

from reservation_extractor.core.errors import UnreadableDocumentError
from reservation_extractor.core.text_extractor import extract_text, normalize_text
from reservation_extractor.phases.phase_base import PhaseRunner
from reservation_extractor.pydantic_models import DocumentKind, ExtractedText


class TextPhase(PhaseRunner[ExtractedText]):
    """Phase 1: Text extraction with provider OCR fallback."""

    name = "Text"

    async def run(self) -> ExtractedText:
        """Extract text from the run's document.

        Returns:
            Non-empty ExtractedText.

        Raises:
            UnreadableDocumentError: The document cannot be decoded, or it is
                an image-only PDF and no provider could transcribe it.
            ProvidersExhaustedError: Every OCR-capable provider failed.
        """
        document = self.context.document
        self.start(document.source_label)

        extracted = extract_text(document)
        if extracted.is_empty and document.kind == DocumentKind.PDF:
            self.log(f"No text layer in {extracted.page_count} page(s), trying provider OCR")
            extracted = await self._transcribe()

        self.finish(
            "text ready",
            extractor=extracted.extractor,
            chars=len(extracted.text),
            pages=extracted.page_count,
        )
        return extracted

    async def _transcribe(self) -> ExtractedText:
        document = self.context.document
        adapter = self.context.adapter
        chain = [p for p in adapter.fallback_chain(self.context.provider_override) if p.supports_documents]
        if not chain:
            raise UnreadableDocumentError(
                f"{document.source_label} has no text layer and no configured provider accepts PDF input"
            )

        response = await self.call_with_fallback(
            "extract_text",
            chain,
            lambda provider: adapter.extract_text_with(provider, document),
        )
        text = normalize_text(response.text or "")
        if not text:
            raise UnreadableDocumentError(f"Provider OCR returned no text for {document.source_label}")

        self.logger.milestone(f"Transcribed by {response.provider}", cached=response.cached)
        return ExtractedText(text=text, extractor=f"provider:{response.provider}")
