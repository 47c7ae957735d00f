"""Reservation Extraction Pipeline.

Turns booking documents (control-file PDFs, confirmation emails, free text)
into validated reservation drafts linked to a property catalog.

Architecture:
    core/       - text extraction, control-file parser, response repair,
                  property resolver, rate limiter, logging, errors
    prompts/    - provider prompt templates
    providers/  - Gemini, OpenRouter and Mistral behind one adapter
    pydantic_models/ - Pydantic models for documents, drafts and results
    phases/     - Phase runner classes for the state machine

Usage:
    from reservation_extractor import ExtractionService, PipelineSettings, StaticPropertyCatalog

    service = ExtractionService.from_settings(PipelineSettings.from_env(), StaticPropertyCatalog(entries))
    result = await service.extract(pdf_bytes, "application/pdf", "Controlo_Sete Rios.pdf")

CLI:
    reservation-extract "Controlo_Sete Rios.pdf" --catalog properties.json
"""

from reservation_extractor.core import (
    PipelineSettings,
    RateLimiter,
    StaticPropertyCatalog,
    PropertyCatalog,
    load_catalog,
)
from reservation_extractor.orchestrator import ExtractionOrchestrator
from reservation_extractor.service import ExtractionService
from reservation_extractor.worker import ExtractionJob, ExtractionWorkerPool
from reservation_extractor.pydantic_models import (
    DocumentKind,
    RawDocument,
    ReservationDraft,
    PropertyReference,
    PropertyCatalogEntry,
    ExtractionResult,
    DraftOutcome,
    RunStatus,
    RunState,
)

__all__ = [
    # Entry points
    "ExtractionService",
    "ExtractionOrchestrator",
    "ExtractionWorkerPool",
    "ExtractionJob",
    # Configuration and shared collaborators
    "PipelineSettings",
    "RateLimiter",
    "PropertyCatalog",
    "StaticPropertyCatalog",
    "load_catalog",
    # Models
    "DocumentKind",
    "RawDocument",
    "ReservationDraft",
    "PropertyReference",
    "PropertyCatalogEntry",
    "ExtractionResult",
    "DraftOutcome",
    "RunStatus",
    "RunState",
]
