"""Text extraction for submitted documents.

Pure Python + PyMuPDF. PDFs with a text layer are read locally; PDFs
without one come back empty and the text phase falls back to provider OCR.
"""

import logging
import re

import fitz  # PyMuPDF

from reservation_extractor.core.errors import UnreadableDocumentError
from reservation_extractor.pydantic_models import DocumentKind, ExtractedText, RawDocument

logger = logging.getLogger(__name__)

# Below U+0020, except \t (09) and \n (0A). \r is handled before this runs.
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b-\x1f]")
_HORIZONTAL_WS = re.compile(r"[^\S\n]+")
_SPACE_AROUND_NEWLINE = re.compile(r" ?\n ?")
_BLANK_LINES = re.compile(r"\n{2,}")


def normalize_text(text: str) -> str:
    """Normalize whitespace and strip control characters.

    - CRLF / CR line endings become LF
    - control characters other than newline and tab are removed
    - runs of other whitespace (tabs included) collapse to one space
    - two or more consecutive newlines collapse to exactly one
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _CONTROL_CHARS.sub("", text)
    text = _HORIZONTAL_WS.sub(" ", text)
    text = _SPACE_AROUND_NEWLINE.sub("\n", text)
    text = _BLANK_LINES.sub("\n", text)
    return text.strip()


class PDFReader:
    """PDF reader over an in-memory byte stream with page-level access."""

    def __init__(self, data: bytes, name: str | None = None):
        """Open a PDF from bytes.

        Args:
            data: PDF file content.
            name: File name for messages.

        Raises:
            UnreadableDocumentError: If the bytes are empty, not a PDF,
                or the PDF is password protected.
        """
        self.name = name or "document.pdf"
        if not data:
            raise UnreadableDocumentError(f"Empty PDF: {self.name}")
        try:
            self._doc = fitz.open(stream=data, filetype="pdf")
        except (RuntimeError, ValueError) as e:
            raise UnreadableDocumentError(f"Cannot open PDF {self.name}: {e}") from e
        if self._doc.needs_pass:
            self._doc.close()
            raise UnreadableDocumentError(f"PDF is password protected: {self.name}")
        if len(self._doc) == 0:
            self._doc.close()
            raise UnreadableDocumentError(f"PDF has no pages: {self.name}")

    @property
    def page_count(self) -> int:
        return len(self._doc)

    def read_page(self, page_num: int) -> str:
        """Read text from a single page (1-indexed)."""
        if page_num < 1 or page_num > self.page_count:
            raise IndexError(f"Page {page_num} out of range (1-{self.page_count})")
        return self._doc[page_num - 1].get_text()

    def read_all(self) -> str:
        """Read every page, joined by newlines."""
        return "\n".join(self.read_page(n) for n in range(1, self.page_count + 1))

    def close(self):
        self._doc.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def decode_text(content: bytes | str) -> str:
    """Decode text input: UTF-8 (BOM tolerated), then CP-1252.

    Raises:
        UnreadableDocumentError: If neither encoding applies.
    """
    if isinstance(content, str):
        return content
    for encoding in ("utf-8-sig", "cp1252"):
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise UnreadableDocumentError("Text document is not valid UTF-8 or CP-1252")


def extract_text(document: RawDocument) -> ExtractedText:
    """Pull normalized text out of a document.

    Args:
        document: The submitted document.

    Returns:
        ExtractedText. For a PDF without a text layer ``text`` is empty;
        the caller decides whether to try OCR.

    Raises:
        UnreadableDocumentError: Empty input, corrupt PDF or undecodable text.
    """
    if document.kind == DocumentKind.PDF:
        if isinstance(document.content, str):
            raise UnreadableDocumentError(f"PDF content must be bytes: {document.source_label}")
        with PDFReader(document.content, document.file_name) as reader:
            text = normalize_text(reader.read_all())
            pages = reader.page_count
        logger.debug(f"PyMuPDF read {pages} pages, {len(text)} chars from {document.source_label}")
        return ExtractedText(text=text, extractor="pymupdf", page_count=pages)

    text = normalize_text(decode_text(document.content))
    if not text:
        raise UnreadableDocumentError(f"Empty text document: {document.source_label}")
    return ExtractedText(text=text, extractor="plain")
