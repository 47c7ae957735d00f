"""Property alias resolution.

Matches a free-text property name against the property catalog through
tiers, returning at the first tier with exactly one candidate:

    1. exact       name, case-insensitive, trimmed
    2. alias       any alias, same normalization
    3. normalized  diacritics stripped, hyphens/whitespace collapsed,
                   against names and aliases
    4. partial     normalized text contains, or is contained by, a
                   normalized name/alias on word boundaries

More than one candidate at a tier raises AmbiguousPropertyError: a wrong
property is worse than no property. Fuzzy scoring (rapidfuzz) is only used
to suggest entries to a reviewer, never to pick a match.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable

from rapidfuzz import fuzz, process

from reservation_extractor.core.config import ConfidenceWeights, ResolverConfig
from reservation_extractor.core.errors import AmbiguousPropertyError
from reservation_extractor.core.normalization import fold_text
from reservation_extractor.pydantic_models import MatchTier, PropertyCatalogEntry, PropertyReference

logger = logging.getLogger(__name__)

TIER_CONFIDENCE: dict[MatchTier, float] = {
    MatchTier.EXACT: ConfidenceWeights.EXACT,
    MatchTier.ALIAS: ConfidenceWeights.ALIAS,
    MatchTier.NORMALIZED: ConfidenceWeights.NORMALIZED,
    MatchTier.PARTIAL: ConfidenceWeights.PARTIAL,
}


@dataclass(frozen=True)
class PropertyMatch:
    """A resolved property and how it was matched."""

    entry: PropertyCatalogEntry
    tier: MatchTier
    raw_name: str
    matched_text: str

    @property
    def confidence(self) -> float:
        return TIER_CONFIDENCE[self.tier]

    def to_reference(self) -> PropertyReference:
        return PropertyReference(
            property_id=self.entry.id,
            raw_name=self.raw_name,
            matched_name=self.entry.name,
            match_tier=self.tier,
            confidence=self.confidence,
        )


def simple_key(name: str) -> str:
    """Tier 1/2 normalization: trimmed and case-folded."""
    return name.strip().casefold()


_SEPARATORS = re.compile(r"[\-\u2010-\u2015_/]+")
_PUNCTUATION = re.compile(r"[^\w\s]")


def normalize_name(name: str) -> str:
    """Tier 3/4 normalization.

    "Aroeira-3 - Casa de Férias" -> "aroeira 3 casa de ferias"
    """
    text = fold_text(name)
    text = _SEPARATORS.sub(" ", text)
    text = _PUNCTUATION.sub(" ", text)
    return " ".join(text.split())


def _contains_on_boundary(haystack: str, needle: str) -> bool:
    return f" {needle} " in f" {haystack} "


def _unique(entries: Iterable[tuple[PropertyCatalogEntry, str]]) -> list[tuple[PropertyCatalogEntry, str]]:
    seen: dict[object, tuple[PropertyCatalogEntry, str]] = {}
    for entry, text in entries:
        seen.setdefault(entry.id, (entry, text))
    return list(seen.values())


def _tier_candidates(raw: str, catalog: list[PropertyCatalogEntry], tier: MatchTier) -> list[tuple[PropertyCatalogEntry, str]]:
    if tier == MatchTier.EXACT:
        key = simple_key(raw)
        return _unique((e, e.name) for e in catalog if simple_key(e.name) == key)

    if tier == MatchTier.ALIAS:
        key = simple_key(raw)
        return _unique((e, a) for e in catalog for a in e.aliases if simple_key(a) == key)

    norm = normalize_name(raw)
    if not norm:
        return []
    names = [(e, text) for e in catalog for text in (e.name, *e.aliases)]

    if tier == MatchTier.NORMALIZED:
        return _unique((e, text) for e, text in names if normalize_name(text) == norm)

    matches = []
    for entry, text in names:
        candidate = normalize_name(text)
        if candidate and (_contains_on_boundary(norm, candidate) or _contains_on_boundary(candidate, norm)):
            matches.append((entry, text))
    return _unique(matches)


def resolve_property(raw_name: str | None, catalog: list[PropertyCatalogEntry]) -> PropertyMatch | None:
    """Resolve a free-text property name against the catalog.

    Idempotent and side-effect free: the same inputs always give the same
    tier and entry.

    Args:
        raw_name: Property text from the document or file name.
        catalog: Catalog entries (read-only).

    Returns:
        PropertyMatch, or None when no tier finds a candidate.

    Raises:
        AmbiguousPropertyError: If a tier finds more than one distinct entry.
    """
    if not raw_name or not raw_name.strip() or not catalog:
        return None

    for tier in MatchTier:
        candidates = _tier_candidates(raw_name, catalog, tier)
        if len(candidates) == 1:
            entry, text = candidates[0]
            logger.debug(f"Property '{raw_name}' -> {entry.id} ({entry.name}) via {tier.value}")
            return PropertyMatch(entry=entry, tier=tier, raw_name=raw_name, matched_text=text)
        if len(candidates) > 1:
            raise AmbiguousPropertyError(raw_name, [e for e, _ in candidates], tier.value)

    logger.debug(f"Property '{raw_name}' unresolved")
    return None


def suggest_properties(
    raw_name: str | None,
    catalog: list[PropertyCatalogEntry],
    limit: int = ResolverConfig.SUGGESTION_LIMIT,
) -> list[str]:
    """Rank catalog names that look like ``raw_name`` for a reviewer.

    Uses rapidfuzz WRatio over normalized names and aliases. Scores below
    ResolverConfig.SUGGESTION_MIN_SCORE are dropped.
    """
    if not raw_name or not catalog:
        return []
    choices: list[str] = []
    owners: list[PropertyCatalogEntry] = []
    for entry in catalog:
        for text in (entry.name, *entry.aliases):
            choices.append(normalize_name(text))
            owners.append(entry)

    results = process.extract(
        normalize_name(raw_name),
        choices,
        scorer=fuzz.WRatio,
        limit=len(choices),
        score_cutoff=ResolverConfig.SUGGESTION_MIN_SCORE,
    )

    suggestions: list[str] = []
    for _choice, _score, index in results:
        name = owners[index].name
        if name not in suggestions:
            suggestions.append(name)
        if len(suggestions) >= limit:
            break
    return suggestions
