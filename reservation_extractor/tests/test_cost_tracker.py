"""Tests for reservation_extractor.core.cost_tracker module."""

import pytest
from unittest.mock import patch

from reservation_extractor.core.cost_tracker import CallUsage, CostTracker, _normalize_model_name
from reservation_extractor.pydantic_models import ProviderErrorKind, ProviderOperation, ProviderResponse


def response(provider: str = "gemini", model: str | None = "gemini/gemini-1.5-flash", **extra) -> ProviderResponse:
    values = dict(prompt_tokens=1000, completion_tokens=200, model=model)
    values.update(extra)
    return ProviderResponse.ok(provider, ProviderOperation.PARSE_RESERVATION, "{}", **values)


class TestCallUsage:
    def test_total_tokens(self):
        assert CallUsage(model="m", prompt_tokens=10, completion_tokens=5).total_tokens == 15

    def test_uses_litellm_pricing(self):
        with patch("litellm.cost_per_token", return_value=(0.001, 0.002)):
            assert CallUsage(model="gemini/gemini-1.5-flash", prompt_tokens=10, completion_tokens=5).cost == pytest.approx(0.003)

    def test_fallback_pricing(self):
        with patch("litellm.cost_per_token", side_effect=Exception("unknown model")):
            usage = CallUsage(model="mistral/mistral-large-latest", prompt_tokens=1_000_000, completion_tokens=0)
            assert usage.cost == pytest.approx(2.0)

    def test_unknown_model_costs_nothing(self):
        with patch("litellm.cost_per_token", side_effect=Exception("unknown model")):
            assert CallUsage(model="acme/unknown", prompt_tokens=10, completion_tokens=5).cost == 0.0

    @pytest.mark.parametrize("model,expected", [
        ("gemini/gemini-1.5-flash", "gemini-1.5-flash"),
        ("openrouter/google/gemini-flash-1.5", "google/gemini-flash-1.5"),
        ("mistral-small-latest", "mistral-small-latest"),
    ])
    def test_normalize_model_name(self, model, expected):
        assert _normalize_model_name(model) == expected


class TestCostTracker:
    def test_record(self):
        tracker = CostTracker()
        usage = tracker.record(response())
        assert usage.provider == "gemini"
        assert usage.operation == "parse_reservation"
        assert tracker.total_tokens == 1200

    def test_cached_and_modelless_responses_skipped(self):
        tracker = CostTracker()
        assert tracker.record(response(cached=True)) is None
        assert tracker.record(response(model=None)) is None
        assert tracker.call_count == 0

    def test_failures_recorded(self):
        tracker = CostTracker()
        failure = ProviderResponse.failure(
            "mistral", ProviderOperation.PARSE_RESERVATION, ProviderErrorKind.TIMEOUT, "slow",
            model="mistral/mistral-large-latest",
        )
        tracker.record(failure)
        assert tracker.call_count == 1

    def test_by_provider(self):
        tracker = CostTracker()
        tracker.record(response("gemini"))
        tracker.record(response("gemini"))
        tracker.record(response("mistral", model="mistral/mistral-large-latest"))

        breakdown = tracker.by_provider()
        assert breakdown["gemini"]["calls"] == 2
        assert breakdown["mistral"]["prompt_tokens"] == 1000

    def test_summary_and_dict(self):
        tracker = CostTracker()
        tracker.record(response())
        assert "COST SUMMARY" in tracker.summary()
        data = tracker.to_dict()
        assert data["total_calls"] == 1
        assert set(data["by_provider"]) == {"gemini"}
