"""Draft validation and confidence scoring.

Blocking errors: a required field is missing, check-out is not after
check-in, an amount is negative, or the guest count is below one.
Warnings: a recommended field is missing, or an upstream stage reported a
problem with a field (unparseable date, dropped check-out).
"""

from reservation_extractor.core.config import ConfidenceWeights, ValidationConfig
from reservation_extractor.pydantic_models import (
    DraftOutcome,
    FieldIssue,
    ReservationDraft,
    RunStatus,
    ValidationResult,
)

_FIELD_LABELS: dict[str, str] = {
    "guest_name": "Guest name",
    "check_in_date": "Check-in date",
    "check_out_date": "Check-out date",
    "num_guests": "Guest count",
    "platform": "Platform",
    "total_amount": "Total amount",
    "platform_fee": "Platform fee",
    "cleaning_fee": "Cleaning fee",
}


def validate_draft(draft: ReservationDraft, extra_warnings: list[FieldIssue] | None = None) -> ValidationResult:
    """Validate a draft.

    Args:
        draft: The draft to check.
        extra_warnings: Non-blocking findings from earlier stages.

    Returns:
        A fresh ValidationResult.
    """
    errors: list[FieldIssue] = []
    warnings: list[FieldIssue] = list(extra_warnings or [])

    for name in ValidationConfig.REQUIRED_FIELDS:
        if getattr(draft, name) in (None, ""):
            errors.append(FieldIssue(field=name, message=f"{_FIELD_LABELS[name]} is required"))

    if draft.check_in_date and draft.check_out_date and draft.check_out_date <= draft.check_in_date:
        errors.append(FieldIssue(field="check_out_date", message="Check-out date must be after check-in date"))

    for name in ValidationConfig.AMOUNT_FIELDS:
        value = getattr(draft, name)
        if value is not None and value < 0:
            errors.append(FieldIssue(field=name, message=f"{_FIELD_LABELS[name]} cannot be negative"))

    if draft.num_guests is not None and draft.num_guests < 1:
        errors.append(FieldIssue(field="num_guests", message="Guest count must be at least 1"))

    for name in ValidationConfig.RECOMMENDED_FIELDS:
        if getattr(draft, name) in (None, ""):
            warnings.append(FieldIssue(field=name, message=f"{_FIELD_LABELS[name]} is missing"))

    return ValidationResult(errors=errors, warnings=warnings)


def missing_fields(draft: ReservationDraft, validation: ValidationResult) -> list[str]:
    """Fields a reviewer must supply or fix, in a stable order."""
    fields: list[str] = []
    for issue in validation.errors:
        if issue.field not in fields:
            fields.append(issue.field)
    if not draft.property_ref.is_resolved:
        fields.append("property")
    return fields


def score_confidence(
    draft: ReservationDraft,
    validation: ValidationResult,
    repair_tier: str | None = None,
) -> float:
    """Combine path, repair tier, property tier and validation into [0, 1]."""
    if draft.source == "tabular":
        base = ConfidenceWeights.TABULAR_BASE
    else:
        factor = ConfidenceWeights.REPAIR_TIER_FACTORS.get(repair_tier or "strict", 1.0)
        base = ConfidenceWeights.MODEL_BASE * factor

    if draft.property_ref.is_resolved:
        base *= draft.property_ref.confidence
    else:
        base *= ConfidenceWeights.UNRESOLVED_PROPERTY

    base -= ConfidenceWeights.WARNING_PENALTY * len(validation.warnings)
    base -= ConfidenceWeights.ERROR_PENALTY * len(validation.errors)
    return round(min(1.0, max(0.0, base)), 4)


def build_outcome(
    draft: ReservationDraft,
    extra_warnings: list[FieldIssue] | None = None,
    repair_tier: str | None = None,
    property_suggestions: list[str] | None = None,
) -> DraftOutcome:
    """Validate and score a draft, deciding accepted vs needs_review.

    A draft is accepted only with no blocking errors and a resolved property.
    """
    validation = validate_draft(draft, extra_warnings)
    missing = missing_fields(draft, validation)
    status = RunStatus.ACCEPTED if validation.is_valid and draft.property_ref.is_resolved else RunStatus.NEEDS_REVIEW
    return DraftOutcome(
        draft=draft,
        validation=validation,
        missing_fields=missing,
        confidence=score_confidence(draft, validation, repair_tier),
        status=status,
        property_suggestions=property_suggestions or [],
    )
