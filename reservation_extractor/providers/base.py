"""Provider base class.

Every provider exposes the same three operations and returns a
ProviderResponse for each; transport errors never escape as exceptions.
The HTTP call goes through ``litellm.acompletion`` with the provider's own
model route, credential and content shape. litellm maps each API's HTTP
failures onto one exception hierarchy, which ``classify_error`` turns into
a ProviderErrorKind.
"""

import asyncio
import base64
import logging
import time
from abc import ABC
from typing import Any

import litellm
from litellm import acompletion

from reservation_extractor.core.config import DEFAULT_MODELS, ProviderConfig, resolve_api_key
from reservation_extractor.core.text_extractor import decode_text
from reservation_extractor.prompts import OCR_SYSTEM_PROMPT, PARSE_SYSTEM_PROMPT
from reservation_extractor.pydantic_models import (
    DocumentKind,
    ProviderErrorKind,
    ProviderOperation,
    ProviderResponse,
    RawDocument,
)

logger = logging.getLogger(__name__)


def classify_error(exc: BaseException) -> tuple[ProviderErrorKind, int | None]:
    """Map a transport exception to an error kind and HTTP status.

    litellm.Timeout is checked first because it subclasses
    APIConnectionError.
    """
    status = getattr(exc, "status_code", None)
    status = status if isinstance(status, int) else None
    message = str(exc).lower()

    if isinstance(exc, (litellm.Timeout, asyncio.TimeoutError)):
        return ProviderErrorKind.TIMEOUT, status
    if isinstance(exc, litellm.RateLimitError) or status == 429:
        return ProviderErrorKind.RATE_LIMITED, status or 429
    if any(marker in message for marker in ProviderConfig.RATE_LIMIT_MARKERS):
        return ProviderErrorKind.RATE_LIMITED, status
    if isinstance(exc, litellm.AuthenticationError) or status in (401, 403):
        return ProviderErrorKind.AUTH, status
    if isinstance(exc, (litellm.ServiceUnavailableError, litellm.InternalServerError, litellm.APIConnectionError)):
        return ProviderErrorKind.SERVER_ERROR, status
    if status == 408:
        return ProviderErrorKind.TIMEOUT, status
    if status is not None and status >= 500:
        return ProviderErrorKind.SERVER_ERROR, status
    if isinstance(exc, litellm.BadRequestError) or (status is not None and 400 <= status < 500):
        return ProviderErrorKind.INVALID_RESPONSE, status
    return ProviderErrorKind.SERVER_ERROR, status


def _token_count(usage: Any, attr: str) -> int:
    value = getattr(usage, attr, 0)
    return value if isinstance(value, int) else 0


class Provider(ABC):
    """A language-model provider.

    Subclasses set ``name`` and ``supports_documents`` and may override
    ``document_part`` and ``completion_options`` for their payload shape.
    """

    name: str = "base"
    supports_documents: bool = True

    def __init__(self, model: str | None = None, api_key: str | None = None, timeout: float = ProviderConfig.TIMEOUT):
        """Initialize the provider.

        Args:
            model: litellm model route. Defaults to DEFAULT_MODELS[name].
            api_key: Explicit credential. Defaults to the provider's env vars.
            timeout: Seconds per call.
        """
        self.model = model or DEFAULT_MODELS.get(self.name, "")
        self._api_key = api_key
        self.timeout = timeout

    @property
    def api_key(self) -> str | None:
        return self._api_key or resolve_api_key(self.name)

    @property
    def is_configured(self) -> bool:
        """True when a credential is available."""
        return bool(self.api_key)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.model!r}, configured={self.is_configured})"

    # -- Payload shape --

    def document_part(self, document: RawDocument) -> dict[str, Any]:
        """Message content part carrying a PDF."""
        encoded = base64.b64encode(document.content).decode("ascii")
        return {
            "type": "file",
            "file": {"file_data": f"data:application/pdf;base64,{encoded}"},
        }

    def completion_options(self) -> dict[str, Any]:
        """Extra keyword arguments for acompletion."""
        return {}

    # -- Operations --

    async def extract_text(self, document: RawDocument) -> ProviderResponse:
        """Transcribe a document (OCR for scanned PDFs)."""
        operation = ProviderOperation.EXTRACT_TEXT
        if document.kind == DocumentKind.PDF:
            if not self.supports_documents:
                return ProviderResponse.failure(
                    self.name, operation, ProviderErrorKind.UNSUPPORTED,
                    f"{self.name} does not accept PDF input",
                )
            if isinstance(document.content, str):
                return ProviderResponse.failure(
                    self.name, operation, ProviderErrorKind.UNSUPPORTED, "PDF content must be bytes",
                )
            content: list[dict[str, Any]] = [
                {"type": "text", "text": "Transcribe this document."},
                self.document_part(document),
            ]
        else:
            content = [{"type": "text", "text": decode_text(document.content)}]

        messages = [
            {"role": "system", "content": OCR_SYSTEM_PROMPT},
            {"role": "user", "content": content},
        ]
        return await self._complete(operation, messages)

    async def parse_reservation(self, prompt: str) -> ProviderResponse:
        """Ask for reservation JSON for the given prompt text."""
        messages = [
            {"role": "system", "content": PARSE_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        return await self._complete(
            ProviderOperation.PARSE_RESERVATION,
            messages,
            response_format={"type": "json_object"},
        )

    async def generate_text(self, prompt: str, options: dict[str, Any] | None = None) -> ProviderResponse:
        """Free-form completion.

        Args:
            prompt: User prompt.
            options: Extra acompletion arguments (e.g. max_tokens).
        """
        messages = [{"role": "user", "content": prompt}]
        return await self._complete(ProviderOperation.GENERATE_TEXT, messages, **(options or {}))

    async def _complete(self, operation: ProviderOperation, messages: list[dict[str, Any]], **options: Any) -> ProviderResponse:
        """Perform one acompletion call and wrap the outcome."""
        if not self.is_configured:
            return ProviderResponse.failure(
                self.name, operation, ProviderErrorKind.AUTH, f"No API key configured for {self.name}",
                model=self.model,
            )

        kwargs: dict[str, Any] = {
            "temperature": ProviderConfig.TEMPERATURE,
            "max_tokens": ProviderConfig.MAX_OUTPUT_TOKENS,
        }
        kwargs.update(self.completion_options())
        kwargs.update(options)

        start = time.perf_counter()
        try:
            response = await acompletion(
                model=self.model,
                messages=messages,
                api_key=self.api_key,
                timeout=self.timeout,
                num_retries=0,
                **kwargs,
            )
        except Exception as e:
            latency = (time.perf_counter() - start) * 1000
            kind, status = classify_error(e)
            logger.warning(f"{self.name} {operation.value} failed: {kind.value} ({type(e).__name__}: {e})")
            return ProviderResponse.failure(
                self.name, operation, kind, f"{type(e).__name__}: {e}",
                status_code=status, latency_ms=latency, model=self.model,
            )

        latency = (time.perf_counter() - start) * 1000
        usage = getattr(response, "usage", None)
        prompt_tokens = _token_count(usage, "prompt_tokens")
        completion_tokens = _token_count(usage, "completion_tokens")

        try:
            text = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError):
            text = None
        if not isinstance(text, str) or not text.strip():
            return ProviderResponse.failure(
                self.name, operation, ProviderErrorKind.INVALID_RESPONSE, "Empty response content",
                latency_ms=latency, model=self.model,
                prompt_tokens=prompt_tokens, completion_tokens=completion_tokens,
            )

        logger.debug(f"{self.name} {operation.value} ok in {latency:.0f}ms ({prompt_tokens}+{completion_tokens} tokens)")
        return ProviderResponse.ok(
            self.name, operation, text,
            latency_ms=latency, model=self.model,
            prompt_tokens=prompt_tokens, completion_tokens=completion_tokens,
        )
