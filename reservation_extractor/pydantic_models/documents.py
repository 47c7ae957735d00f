"""Pydantic models for submitted documents and their extracted text."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class DocumentKind(str, Enum):
    """Content kind of a submitted document."""

    PDF = "pdf"
    TEXT = "text"

    @classmethod
    def from_declared(cls, declared: "str | DocumentKind") -> "DocumentKind":
        """Map a declared MIME type or short name to a DocumentKind.

        Args:
            declared: e.g. "application/pdf", "pdf", "text/plain", "txt".

        Returns:
            The matching DocumentKind.

        Raises:
            ValueError: If the declared kind is not supported.
        """
        if isinstance(declared, DocumentKind):
            return declared
        value = declared.strip().lower().split(";")[0].strip()
        if value in ("pdf", "application/pdf", "application/x-pdf"):
            return cls.PDF
        if value in ("text", "txt", "plain") or value.startswith("text/"):
            return cls.TEXT
        raise ValueError(f"Unsupported document kind: {declared!r}")


class RawDocument(BaseModel):
    """A document as submitted by the caller.

    Attributes:
        content: PDF bytes, or text as str/bytes.
        kind: Declared content kind.
        file_name: Original file name. A weak signal for property identity.
    """

    model_config = ConfigDict(frozen=True)

    content: bytes | str
    kind: DocumentKind
    file_name: str | None = None

    @property
    def source_label(self) -> str:
        """Name used in logs."""
        return self.file_name or f"<{self.kind.value} input>"


class ExtractedText(BaseModel):
    """Normalized text plus provenance.

    Attributes:
        text: Normalized document text.
        extractor: Which extractor produced it ("pymupdf", "plain",
            or "provider:<name>" for OCR fallback).
        page_count: Number of PDF pages, None for text input.
    """

    model_config = ConfigDict(frozen=True)

    text: str
    extractor: str
    page_count: int | None = None

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()
