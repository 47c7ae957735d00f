"""Tests for reservation_extractor.core.property_resolver module.

Tests the tiered alias resolver:
- Tier order: exact > alias > normalized > partial
- Ambiguity at a tier raises instead of guessing
- Suggestions for unresolved names
"""

import pytest

from reservation_extractor.core.errors import AmbiguousPropertyError
from reservation_extractor.core.property_resolver import (
    normalize_name,
    resolve_property,
    suggest_properties,
)
from reservation_extractor.pydantic_models import MatchTier, PropertyCatalogEntry


class TestNormalizeName:
    def test_folds_and_strips_punctuation(self):
        assert normalize_name("Aroeira-3 - Casa de Férias") == "aroeira 3 casa de ferias"

    def test_underscores_and_slashes(self):
        assert normalize_name("Sete_Rios/T2") == "sete rios t2"


# =============================================================================
# Tiers
# =============================================================================


class TestResolveProperty:
    def test_exact(self, catalog_entries):
        match = resolve_property("  sete rios ", catalog_entries)
        assert match.entry.id == 1
        assert match.tier == MatchTier.EXACT
        assert match.confidence == 1.0

    def test_alias(self, catalog_entries):
        match = resolve_property("7 Rios", catalog_entries)
        assert match.entry.id == 1
        assert match.tier == MatchTier.ALIAS
        assert match.confidence == 0.95

    def test_alias_tier_is_case_insensitive(self):
        entries = [PropertyCatalogEntry(id=3, name="Aroeira 3", aliases=("Aroeira III",))]
        match = resolve_property("AROEIRA III", entries)
        assert match.entry.id == 3
        assert match.tier == MatchTier.ALIAS

    def test_normalized(self, catalog_entries):
        match = resolve_property("Graca-Loft", catalog_entries)
        assert match.entry.id == 4
        assert match.tier == MatchTier.NORMALIZED
        assert match.confidence == 0.85

    def test_partial_catalog_name_inside_raw(self, catalog_entries):
        match = resolve_property("Reserva Sete Rios", catalog_entries)
        assert match.entry.name == "Sete Rios"
        assert match.tier == MatchTier.PARTIAL
        assert match.confidence == 0.65

    def test_partial_respects_word_boundaries(self, catalog_entries):
        # "aroeira i" must not match inside "aroeira ii"
        match = resolve_property("Apartamento Aroeira II", catalog_entries)
        assert match.entry.id == 3

    def test_ambiguous_partial(self, catalog_entries):
        with pytest.raises(AmbiguousPropertyError) as exc_info:
            resolve_property("Aroeira", catalog_entries)
        assert exc_info.value.tier == "partial"
        assert {c.id for c in exc_info.value.candidates} == {2, 3}

    def test_ambiguous_exact_duplicates(self):
        entries = [
            PropertyCatalogEntry(id=1, name="Casa Azul"),
            PropertyCatalogEntry(id=2, name="casa azul"),
        ]
        with pytest.raises(AmbiguousPropertyError) as exc_info:
            resolve_property("Casa Azul", entries)
        assert exc_info.value.tier == "exact"

    def test_same_entry_by_name_and_alias_is_not_ambiguous(self):
        entries = [PropertyCatalogEntry(id=9, name="Casa Azul", aliases=("Casa-Azul",))]
        match = resolve_property("casa azul!", entries)
        assert match.entry.id == 9

    def test_unresolved(self, catalog_entries):
        assert resolve_property("Aroeira V", catalog_entries) is None

    def test_empty_inputs(self, catalog_entries):
        assert resolve_property(None, catalog_entries) is None
        assert resolve_property("   ", catalog_entries) is None
        assert resolve_property("Sete Rios", []) is None

    def test_idempotent(self, catalog_entries):
        first = resolve_property("Reserva Sete Rios", catalog_entries)
        second = resolve_property("Reserva Sete Rios", catalog_entries)
        assert (first.entry.id, first.tier) == (second.entry.id, second.tier)

    def test_to_reference(self, catalog_entries):
        ref = resolve_property("7 Rios", catalog_entries).to_reference()
        assert ref.property_id == 1
        assert ref.raw_name == "7 Rios"
        assert ref.matched_name == "Sete Rios"
        assert ref.match_tier == MatchTier.ALIAS
        assert ref.is_resolved


# =============================================================================
# Suggestions
# =============================================================================


class TestSuggestProperties:
    def test_close_names_suggested(self, catalog_entries):
        suggestions = suggest_properties("Aroeira V", catalog_entries)
        assert "Aroeira I" in suggestions
        assert "Aroeira II" in suggestions
        assert "Sete Rios" not in suggestions

    def test_limit(self, catalog_entries):
        assert len(suggest_properties("Aroeira V", catalog_entries, limit=1)) == 1

    def test_nothing_similar(self, catalog_entries):
        assert suggest_properties("zzzz qqqq", catalog_entries) == []

    def test_empty(self, catalog_entries):
        assert suggest_properties(None, catalog_entries) == []
        assert suggest_properties("Sete Rios", []) == []
