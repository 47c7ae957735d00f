"""Core utilities for the extraction pipeline."""

from reservation_extractor.core.config import (
    DEFAULT_PROVIDER_PRIORITY,
    API_KEY_ENV_VARS,
    DEFAULT_MODELS,
    resolve_api_key,
    ProviderConfig,
    RateLimitConfig,
    CacheConfig,
    ConfidenceWeights,
    ValidationConfig,
    WorkerConfig,
    ResolverConfig,
    PipelineSettings,
)
from reservation_extractor.core.errors import (
    PipelineError,
    UnreadableDocumentError,
    ProviderUnavailableError,
    RateLimitedError,
    ProvidersExhaustedError,
    AmbiguousPropertyError,
    IssueSeverity,
    IssueCategory,
    ExtractionIssue,
    RunIssues,
    provider_issue,
    response_issue,
    property_issue,
    validation_issue,
    document_issue,
)
from reservation_extractor.core.pipeline_logger import PipelineLogger, get_logger, reset_logger
from reservation_extractor.core.text_extractor import PDFReader, extract_text, normalize_text
from reservation_extractor.core.control_file_parser import (
    ControlFileFormat,
    CONTROL_FILE_FORMATS,
    TabularParseResult,
    TabularRow,
    parse_control_file,
    property_name_from_file_name,
)
from reservation_extractor.core.response_repair import (
    RepairTier,
    RepairOutcome,
    repair_response,
    coerce_records,
)
from reservation_extractor.core.property_resolver import (
    PropertyMatch,
    resolve_property,
    suggest_properties,
    normalize_name,
)
from reservation_extractor.core.normalization import (
    parse_date,
    parse_amount,
    normalize_platform,
    draft_from_record,
)
from reservation_extractor.core.rate_limiter import RateLimiter
from reservation_extractor.core.cost_tracker import CostTracker, CallUsage
from reservation_extractor.core.catalog import PropertyCatalog, StaticPropertyCatalog, load_catalog
from reservation_extractor.core.validation import validate_draft, build_outcome

__all__ = [
    # Configuration
    "DEFAULT_PROVIDER_PRIORITY",
    "API_KEY_ENV_VARS",
    "DEFAULT_MODELS",
    "resolve_api_key",
    "ProviderConfig",
    "RateLimitConfig",
    "CacheConfig",
    "ConfidenceWeights",
    "ValidationConfig",
    "WorkerConfig",
    "ResolverConfig",
    "PipelineSettings",
    # Errors
    "PipelineError",
    "UnreadableDocumentError",
    "ProviderUnavailableError",
    "RateLimitedError",
    "ProvidersExhaustedError",
    "AmbiguousPropertyError",
    "IssueSeverity",
    "IssueCategory",
    "ExtractionIssue",
    "RunIssues",
    "provider_issue",
    "response_issue",
    "property_issue",
    "validation_issue",
    "document_issue",
    # Logging
    "PipelineLogger",
    "get_logger",
    "reset_logger",
    # Text extraction
    "PDFReader",
    "extract_text",
    "normalize_text",
    # Control files
    "ControlFileFormat",
    "CONTROL_FILE_FORMATS",
    "TabularParseResult",
    "TabularRow",
    "parse_control_file",
    "property_name_from_file_name",
    # Response repair
    "RepairTier",
    "RepairOutcome",
    "repair_response",
    "coerce_records",
    # Property resolution
    "PropertyMatch",
    "resolve_property",
    "suggest_properties",
    "normalize_name",
    # Normalization
    "parse_date",
    "parse_amount",
    "normalize_platform",
    "draft_from_record",
    # Rate limiting and cost
    "RateLimiter",
    "CostTracker",
    "CallUsage",
    # Catalog
    "PropertyCatalog",
    "StaticPropertyCatalog",
    "load_catalog",
    # Validation
    "validate_draft",
    "build_outcome",
]
