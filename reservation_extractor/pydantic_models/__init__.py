"""Pydantic models for pipeline inputs, intermediate data and results.

- documents: RawDocument, DocumentKind, ExtractedText
- providers: ProviderRequest, ProviderResponse, error kinds
- reservation: ReservationDraft, PropertyReference, MatchTier
- results: ValidationResult, DraftOutcome, ExtractionResult, run states
- catalog: PropertyCatalogEntry
"""

from reservation_extractor.pydantic_models.documents import (
    DocumentKind,
    RawDocument,
    ExtractedText,
)
from reservation_extractor.pydantic_models.providers import (
    ProviderOperation,
    ProviderErrorKind,
    ProviderRequest,
    ProviderResponse,
    make_cache_key,
)
from reservation_extractor.pydantic_models.reservation import (
    MatchTier,
    PropertyReference,
    ReservationDraft,
)
from reservation_extractor.pydantic_models.results import (
    ValidationStatus,
    FieldIssue,
    ValidationResult,
    RunStatus,
    RunState,
    DraftOutcome,
    ExtractionResult,
)
from reservation_extractor.pydantic_models.catalog import PropertyCatalogEntry

__all__ = [
    # Documents
    "DocumentKind",
    "RawDocument",
    "ExtractedText",
    # Providers
    "ProviderOperation",
    "ProviderErrorKind",
    "ProviderRequest",
    "ProviderResponse",
    "make_cache_key",
    # Reservations
    "MatchTier",
    "PropertyReference",
    "ReservationDraft",
    # Results
    "ValidationStatus",
    "FieldIssue",
    "ValidationResult",
    "RunStatus",
    "RunState",
    "DraftOutcome",
    "ExtractionResult",
    # Catalog
    "PropertyCatalogEntry",
]
