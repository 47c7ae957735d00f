"""Tests for reservation_extractor.core.validation module.

Tests:
- validate_draft(): blocking errors vs warnings
- score_confidence(): path, repair tier and property tier weighting
- build_outcome(): accepted vs needs_review
- ExtractionResult output shape
"""

from datetime import date

import pytest

from reservation_extractor.core.validation import (
    build_outcome,
    missing_fields,
    score_confidence,
    validate_draft,
)
from reservation_extractor.pydantic_models import (
    DraftOutcome,
    ExtractionResult,
    FieldIssue,
    MatchTier,
    PropertyReference,
    ReservationDraft,
    RunState,
    RunStatus,
    ValidationStatus,
)


def resolved_ref(tier: MatchTier = MatchTier.EXACT, confidence: float = 1.0) -> PropertyReference:
    return PropertyReference(
        property_id=1, raw_name="Sete Rios", matched_name="Sete Rios", match_tier=tier, confidence=confidence,
    )


def complete_draft(**overrides) -> ReservationDraft:
    values = dict(
        guest_name="Camila Souza",
        property_ref=resolved_ref(),
        check_in_date=date(2025, 3, 1),
        check_out_date=date(2025, 3, 5),
        num_guests=2,
        platform="airbnb",
        total_amount=450.0,
        source="tabular",
    )
    values.update(overrides)
    return ReservationDraft(**values)


# =============================================================================
# validate_draft
# =============================================================================


class TestValidateDraft:
    def test_complete_draft_is_valid(self):
        result = validate_draft(complete_draft())
        assert result.is_valid
        assert result.status == ValidationStatus.VALID

    def test_missing_required_fields(self):
        result = validate_draft(ReservationDraft())
        assert [e.field for e in result.errors] == ["guest_name", "check_in_date", "check_out_date"]
        assert result.status == ValidationStatus.INVALID

    def test_empty_guest_name_is_missing(self):
        result = validate_draft(complete_draft(guest_name=""))
        assert [e.field for e in result.errors] == ["guest_name"]

    @pytest.mark.parametrize("check_out", [date(2025, 3, 1), date(2025, 2, 28)])
    def test_check_out_must_follow_check_in(self, check_out):
        result = validate_draft(complete_draft(check_out_date=check_out))
        assert [e.field for e in result.errors] == ["check_out_date"]

    def test_negative_amount(self):
        result = validate_draft(complete_draft(cleaning_fee=-10.0))
        assert result.errors[0].field == "cleaning_fee"

    def test_zero_guests(self):
        result = validate_draft(complete_draft(num_guests=0))
        assert result.errors[0].field == "num_guests"

    def test_missing_recommended_fields_warn(self):
        result = validate_draft(complete_draft(num_guests=None, platform=None, total_amount=None))
        assert result.is_valid
        assert result.status == ValidationStatus.WARNING
        assert [w.field for w in result.warnings] == ["num_guests", "platform", "total_amount"]

    def test_extra_warnings_carried(self):
        extra = [FieldIssue(field="check_in_date", message="Unparseable date '31/02/2025'")]
        result = validate_draft(complete_draft(), extra)
        assert result.warnings == extra

    def test_fresh_result_each_time(self):
        extra = [FieldIssue(field="notes", message="x")]
        validate_draft(complete_draft(), extra)
        assert len(validate_draft(complete_draft(), extra).warnings) == 1


class TestMissingFields:
    def test_unresolved_property_listed_last(self):
        draft = complete_draft(guest_name=None, property_ref=PropertyReference(raw_name="Aroeira V"))
        assert missing_fields(draft, validate_draft(draft)) == ["guest_name", "property"]

    def test_missing_dates(self):
        draft = complete_draft(check_in_date=None, check_out_date=None)
        validation = validate_draft(draft)
        assert missing_fields(draft, validation) == ["check_in_date", "check_out_date"]


# =============================================================================
# Confidence
# =============================================================================


class TestScoreConfidence:
    def test_tabular_exact_match(self):
        draft = complete_draft()
        assert score_confidence(draft, validate_draft(draft)) == 0.95

    def test_model_path_scaled_by_repair_tier(self):
        draft = complete_draft(source="model")
        validation = validate_draft(draft)
        strict = score_confidence(draft, validation, "strict")
        scavenged = score_confidence(draft, validation, "field_scavenge")
        assert strict == pytest.approx(0.85)
        assert scavenged < strict

    def test_partial_match_lowers_confidence(self):
        exact = complete_draft()
        partial = complete_draft(property_ref=resolved_ref(MatchTier.PARTIAL, 0.65))
        assert score_confidence(partial, validate_draft(partial)) < score_confidence(exact, validate_draft(exact))

    def test_bounded(self):
        draft = ReservationDraft(source="model", num_guests=-1, total_amount=-1.0)
        assert score_confidence(draft, validate_draft(draft), "failed") == 0.0


# =============================================================================
# build_outcome
# =============================================================================


class TestBuildOutcome:
    def test_accepted(self):
        outcome = build_outcome(complete_draft())
        assert outcome.status == RunStatus.ACCEPTED
        assert outcome.missing_fields == []

    def test_unresolved_property_needs_review(self):
        draft = complete_draft(property_ref=PropertyReference(raw_name="Aroeira V"))
        outcome = build_outcome(draft, property_suggestions=["Aroeira I", "Aroeira II"])
        assert outcome.status == RunStatus.NEEDS_REVIEW
        assert outcome.missing_fields == ["property"]
        assert outcome.property_suggestions == ["Aroeira I", "Aroeira II"]

    def test_blocking_error_needs_review(self):
        outcome = build_outcome(complete_draft(check_out_date=None))
        assert outcome.status == RunStatus.NEEDS_REVIEW
        assert "check_out_date" in outcome.missing_fields

    def test_warnings_do_not_block(self):
        outcome = build_outcome(complete_draft(platform=None))
        assert outcome.status == RunStatus.ACCEPTED
        assert outcome.validation.status == ValidationStatus.WARNING


# =============================================================================
# ExtractionResult
# =============================================================================


class TestExtractionResult:
    def test_first_reservation_shortcuts(self):
        outcome = build_outcome(complete_draft(check_out_date=None))
        result = ExtractionResult(run_id="r1", status=RunStatus.NEEDS_REVIEW, reservations=[outcome])
        assert result.draft.guest_name == "Camila Souza"
        assert not result.validation.is_valid
        assert result.missing_fields == ["check_out_date"]

    def test_empty_result_shortcuts(self):
        result = ExtractionResult(run_id="r1")
        assert result.draft is None
        assert result.validation is None
        assert result.missing_fields == []

    def test_to_output(self):
        outcome = build_outcome(complete_draft())
        result = ExtractionResult(
            run_id="r1",
            status=RunStatus.ACCEPTED,
            reservations=[outcome],
            path="tabular",
            final_state=RunState.ACCEPTED,
            state_history=[RunState.RECEIVED, RunState.ACCEPTED],
        )
        output = result.to_output()
        assert output["status"] == "accepted"
        assert output["stateHistory"] == ["received", "accepted"]

        record = output["reservations"][0]
        assert record["propertyId"] == 1
        assert record["checkInDate"] == "2025-03-01"
        assert record["status"] == "accepted"
        assert record["validation"]["is_valid"] is True

    def test_outcome_is_pydantic(self):
        assert isinstance(build_outcome(complete_draft()), DraftOutcome)
