"""Structured error types for the extraction pipeline.

Two layers:
- Exceptions that change control flow (unreadable document, provider
  unavailable, rate limited, providers exhausted, ambiguous property).
- ExtractionIssue records that are collected, not raised, so a run can
  report every degraded field alongside its best-effort result.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# =============================================================================
# Exceptions
# =============================================================================


class PipelineError(Exception):
    """Base class for pipeline exceptions."""


class UnreadableDocumentError(PipelineError):
    """The document could not be decoded at all. Fatal, never retried."""


class ProviderUnavailableError(PipelineError):
    """A provider cannot serve requests (unknown name or no credential)."""

    def __init__(self, provider: str, reason: str = "not configured"):
        self.provider = provider
        self.reason = reason
        super().__init__(f"Provider '{provider}' unavailable: {reason}")


class RateLimitedError(PipelineError):
    """A request could not be admitted within the queue-wait timeout."""

    def __init__(self, message: str = "Rate limit queue timeout", wait_seconds: float | None = None):
        self.wait_seconds = wait_seconds
        super().__init__(message)


class ProvidersExhaustedError(PipelineError):
    """Every provider in the fallback chain failed.

    Attributes:
        attempts: (provider, error_kind, message) for each failed attempt.
    """

    def __init__(self, operation: str, attempts: list[tuple[str, str, str]]):
        self.operation = operation
        self.attempts = attempts
        tried = ", ".join(f"{p}={kind}" for p, kind, _ in attempts) or "none configured"
        super().__init__(f"All providers failed for {operation}: {tried}")


class AmbiguousPropertyError(PipelineError):
    """More than one catalog entry matched at the same tier."""

    def __init__(self, raw_name: str, candidates: list[Any], tier: str):
        self.raw_name = raw_name
        self.candidates = candidates
        self.tier = tier
        names = ", ".join(getattr(c, "name", str(c)) for c in candidates)
        super().__init__(f"'{raw_name}' is ambiguous at {tier} tier: {names}")


# =============================================================================
# Issue records
# =============================================================================


class IssueSeverity(Enum):
    """Severity levels for recorded issues."""
    WARNING = "warning"   # Result degraded, run continued
    ERROR = "error"       # Stage failed, run continued via fallback
    CRITICAL = "critical" # Run failed


class IssueCategory(Enum):
    """Categories of recorded issues."""
    DOCUMENT = "document"         # Decoding / text extraction problems
    PROVIDER = "provider"         # Provider call failures
    RATE_LIMIT = "rate_limit"     # Limiter rejections and 429s
    RESPONSE = "response"         # Malformed provider output
    PROPERTY = "property"         # Unresolved / ambiguous property
    VALIDATION = "validation"     # Draft field problems
    UNKNOWN = "unknown"


@dataclass
class ExtractionIssue:
    """Structured issue with context."""

    category: IssueCategory
    severity: IssueSeverity
    message: str
    stage: str
    provider: str | None = None
    context: dict[str, Any] = field(default_factory=dict)
    # Must follow every field() default in this body, it shadows dataclasses.field
    field: str | None = None
    original_error: Exception | None = None

    def __str__(self) -> str:
        parts = [f"[{self.severity.value.upper()}] {self.category.value}: {self.message}"]
        if self.provider:
            parts.append(f"provider={self.provider}")
        if self.field:
            parts.append(f"field={self.field}")
        if self.stage:
            parts.append(f"stage={self.stage}")
        return " | ".join(parts)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "stage": self.stage,
            "provider": self.provider,
            "field": self.field,
            "context": self.context,
        }


@dataclass
class RunIssues:
    """Aggregate issues across one extraction run."""

    errors: list[ExtractionIssue] = field(default_factory=list)
    warnings: list[ExtractionIssue] = field(default_factory=list)

    def add(self, issue: ExtractionIssue):
        """Add an error or warning."""
        if issue.severity == IssueSeverity.WARNING:
            self.warnings.append(issue)
        else:
            self.errors.append(issue)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def summary(self) -> dict:
        """Get summary statistics."""
        by_category: dict[str, int] = {}
        for issue in self.errors + self.warnings:
            cat = issue.category.value
            by_category[cat] = by_category.get(cat, 0) + 1

        return {
            "total_errors": self.error_count,
            "total_warnings": self.warning_count,
            "issues_by_category": by_category,
        }

    def to_list(self) -> list[dict]:
        """All issues, errors first, for embedding in a result."""
        return [i.to_dict() for i in self.errors] + [w.to_dict() for w in self.warnings]


# Factory functions for common issue types

def provider_issue(
    message: str,
    stage: str,
    provider: str,
    error_kind: str | None = None,
) -> ExtractionIssue:
    """Create a provider failure issue."""
    category = IssueCategory.RATE_LIMIT if error_kind == "rate_limited" else IssueCategory.PROVIDER
    return ExtractionIssue(
        category=category,
        severity=IssueSeverity.ERROR,
        message=message,
        stage=stage,
        provider=provider,
        context={"error_kind": error_kind} if error_kind else {},
    )


def response_issue(
    message: str,
    stage: str,
    provider: str | None = None,
    raw_response: str | None = None,
) -> ExtractionIssue:
    """Create a malformed-response issue (never fatal)."""
    return ExtractionIssue(
        category=IssueCategory.RESPONSE,
        severity=IssueSeverity.WARNING,
        message=message,
        stage=stage,
        provider=provider,
        context={"raw_response": raw_response[:500] if raw_response else None},
    )


def property_issue(
    message: str,
    stage: str,
    raw_name: str | None = None,
    suggestions: list[str] | None = None,
) -> ExtractionIssue:
    """Create an unresolved/ambiguous property issue."""
    return ExtractionIssue(
        category=IssueCategory.PROPERTY,
        severity=IssueSeverity.WARNING,
        message=message,
        stage=stage,
        field="property",
        context={"raw_name": raw_name, "suggestions": suggestions or []},
    )


def validation_issue(
    message: str,
    stage: str,
    field_name: str | None = None,
    blocking: bool = False,
) -> ExtractionIssue:
    """Create a validation issue. Blocking issues are recorded as errors."""
    return ExtractionIssue(
        category=IssueCategory.VALIDATION,
        severity=IssueSeverity.ERROR if blocking else IssueSeverity.WARNING,
        message=message,
        stage=stage,
        field=field_name,
    )


def document_issue(
    message: str,
    stage: str,
    original: Exception | None = None,
) -> ExtractionIssue:
    """Create a fatal document issue."""
    return ExtractionIssue(
        category=IssueCategory.DOCUMENT,
        severity=IssueSeverity.CRITICAL,
        message=message,
        stage=stage,
        original_error=original,
    )
