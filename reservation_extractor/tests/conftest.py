"""Pytest configuration and shared fixtures.

Provides reusable test fixtures for:
- Property catalog entries
- Mock acompletion responses
- Providers, rate limiter and adapter wired without network access
- Orchestrator and service instances
- Generated PDFs
"""

import pytest
from unittest.mock import MagicMock

import fitz  # PyMuPDF

from reservation_extractor.core import PipelineLogger, RateLimiter, StaticPropertyCatalog
from reservation_extractor.core.config import API_KEY_ENV_VARS
from reservation_extractor.core.cost_tracker import CostTracker
from reservation_extractor.orchestrator import ExtractionOrchestrator
from reservation_extractor.providers import GeminiProvider, MistralProvider, OpenRouterProvider, ProviderAdapter
from reservation_extractor.pydantic_models import PropertyCatalogEntry
from reservation_extractor.service import ExtractionService


# =============================================================================
# Environment
# =============================================================================


@pytest.fixture(autouse=True)
def no_api_keys(monkeypatch):
    """Keep real credentials from leaking into tests."""
    for env_vars in API_KEY_ENV_VARS.values():
        for name in env_vars:
            monkeypatch.delenv(name, raising=False)
    for name in ("PIPELINE_PROVIDER", "PROVIDER_PRIORITY", "RATE_LIMIT_MAX_REQUESTS",
                 "RATE_LIMIT_ADAPTIVE", "RESPONSE_CACHE_TTL", "PROVIDER_TIMEOUT", "PROVIDER_RETRIES"):
        monkeypatch.delenv(name, raising=False)


# =============================================================================
# Catalog
# =============================================================================


@pytest.fixture
def catalog_entries():
    return [
        PropertyCatalogEntry(id=1, name="Sete Rios", aliases=("7 Rios",)),
        PropertyCatalogEntry(id=2, name="Aroeira I", aliases=("Aroeira 1",)),
        PropertyCatalogEntry(id=3, name="Aroeira II", aliases=("Aroeira 2",)),
        PropertyCatalogEntry(id=4, name="Graça Loft", aliases=("Loft da Graça",)),
    ]


@pytest.fixture
def catalog(catalog_entries):
    return StaticPropertyCatalog(catalog_entries)


# =============================================================================
# Mock acompletion responses
# =============================================================================


@pytest.fixture
def completion_response():
    """Factory for mock litellm completion responses."""
    def _create(content: str | None):
        return MagicMock(
            choices=[MagicMock(message=MagicMock(content=content))],
            usage=MagicMock(prompt_tokens=100, completion_tokens=50),
        )

    return _create


class StatusError(Exception):
    """Exception carrying an HTTP status like litellm's exceptions do."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


@pytest.fixture
def status_error():
    return StatusError


# =============================================================================
# Providers and limiter
# =============================================================================


@pytest.fixture
def providers():
    return [
        GeminiProvider(api_key="test-gemini-key"),
        OpenRouterProvider(api_key="test-openrouter-key"),
        MistralProvider(api_key="test-mistral-key"),
    ]


@pytest.fixture
def limiter():
    """A roomy limiter that never makes tests wait."""
    return RateLimiter(
        max_requests=100, window_seconds=60, queue_timeout=1.0, poll_interval=0.001, backoff_base=0.001,
    )


@pytest.fixture
def cost_tracker():
    return CostTracker()


@pytest.fixture
def adapter(providers, limiter, cost_tracker):
    return ProviderAdapter(
        providers,
        limiter,
        priority=("gemini", "openrouter", "mistral"),
        cost_tracker=cost_tracker,
    )


@pytest.fixture
def run_logger():
    return PipelineLogger(name="reservation_extractor.tests")


@pytest.fixture
def orchestrator(adapter, catalog, run_logger, cost_tracker):
    return ExtractionOrchestrator(adapter, catalog, logger=run_logger, cost_tracker=cost_tracker)


@pytest.fixture
def service(orchestrator):
    return ExtractionService(orchestrator)


# =============================================================================
# PDFs
# =============================================================================


@pytest.fixture
def make_pdf():
    """Factory building an in-memory PDF with one line of text per entry.

    Passing no lines gives a PDF without a text layer.
    """
    def _create(lines: list[str] | None = None, pages: int = 1) -> bytes:
        doc = fitz.open()
        try:
            for _ in range(pages):
                page = doc.new_page()
                for i, line in enumerate(lines or []):
                    page.insert_text((50, 72 + 14 * i), line, fontsize=10)
            return doc.tobytes()
        finally:
            doc.close()

    return _create
