"""Pydantic models for validation and run results."""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, computed_field

from reservation_extractor.pydantic_models.reservation import ReservationDraft


class ValidationStatus(str, Enum):
    VALID = "valid"
    WARNING = "warning"
    INVALID = "invalid"


class FieldIssue(BaseModel):
    """A field-level validation finding."""

    field: str
    message: str


class ValidationResult(BaseModel):
    """Validation of one draft. Computed fresh, never stored on its own.

    Status precedence: invalid (any error) > warning (warnings only) > valid.
    """

    errors: list[FieldIssue] = Field(default_factory=list)
    warnings: list[FieldIssue] = Field(default_factory=list)

    @computed_field
    @property
    def is_valid(self) -> bool:
        return not self.errors

    @computed_field
    @property
    def status(self) -> ValidationStatus:
        if self.errors:
            return ValidationStatus.INVALID
        if self.warnings:
            return ValidationStatus.WARNING
        return ValidationStatus.VALID


class RunStatus(str, Enum):
    """Caller-visible status of a run or a single draft."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    NEEDS_REVIEW = "needs_review"
    FAILED = "failed"


class RunState(str, Enum):
    """Orchestrator state machine states."""

    RECEIVED = "received"
    TEXT_EXTRACTED = "text_extracted"
    TABULAR_PARSED = "tabular_parsed"
    MODEL_PARSED = "model_parsed"
    PROPERTY_RESOLVED = "property_resolved"
    VALIDATED = "validated"
    ACCEPTED = "accepted"
    NEEDS_REVIEW = "needs_review"
    FAILED = "failed"


class DraftOutcome(BaseModel):
    """One draft with its validation, missing fields and confidence."""

    draft: ReservationDraft
    validation: ValidationResult
    missing_fields: list[str] = Field(default_factory=list)
    confidence: float = 0.0
    status: RunStatus = RunStatus.NEEDS_REVIEW
    property_suggestions: list[str] = Field(default_factory=list)


class ExtractionResult(BaseModel):
    """Terminal (or pending) result of an extraction run.

    ``draft``, ``validation`` and ``missing_fields`` expose the first
    reservation for callers that expect one reservation per document.
    """

    run_id: str
    status: RunStatus = RunStatus.PENDING
    reservations: list[DraftOutcome] = Field(default_factory=list)
    path: Literal["tabular", "model"] | None = None
    final_state: RunState = RunState.RECEIVED
    state_history: list[RunState] = Field(default_factory=list)
    provider: str | None = None
    repair_tier: str | None = None
    text_extractor: str | None = None
    failure_reason: str | None = None
    retryable: bool = False
    attempts: int = 0
    issues: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def draft(self) -> ReservationDraft | None:
        return self.reservations[0].draft if self.reservations else None

    @property
    def validation(self) -> ValidationResult | None:
        return self.reservations[0].validation if self.reservations else None

    @property
    def missing_fields(self) -> list[str]:
        return self.reservations[0].missing_fields if self.reservations else []

    def to_output(self) -> dict[str, Any]:
        """JSON-ready output with camelCase reservation records."""
        return {
            "runId": self.run_id,
            "status": self.status.value,
            "path": self.path,
            "provider": self.provider,
            "repairTier": self.repair_tier,
            "failureReason": self.failure_reason,
            "stateHistory": [s.value for s in self.state_history],
            "reservations": [
                {
                    **outcome.draft.to_record(),
                    "status": outcome.status.value,
                    "confidence": round(outcome.confidence, 3),
                    "missingFields": outcome.missing_fields,
                    "propertySuggestions": outcome.property_suggestions,
                    "validation": outcome.validation.model_dump(mode="json"),
                }
                for outcome in self.reservations
            ],
            "issues": self.issues,
        }
