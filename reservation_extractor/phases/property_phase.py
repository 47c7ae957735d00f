"""Property phase - link every draft to a catalog entry.

The catalog is fetched once per run. An unresolved or ambiguous property is
recorded with reviewer suggestions and never blocks the run.
"""

from dataclasses import dataclass

from reservation_extractor.core.control_file_parser import property_name_from_file_name
from reservation_extractor.core.errors import AmbiguousPropertyError, property_issue
from reservation_extractor.core.property_resolver import resolve_property, suggest_properties
from reservation_extractor.phases.phase_base import PhaseRunner
from reservation_extractor.pydantic_models import PropertyCatalogEntry, PropertyReference, ReservationDraft


@dataclass
class PropertyResolutionResult:
    """Counts from the property phase."""

    resolved: int = 0
    ambiguous: int = 0
    unresolved: int = 0


class PropertyPhase(PhaseRunner[PropertyResolutionResult]):
    """Phase 3: Alias resolution against the property catalog."""

    name = "Property"

    async def run(self) -> PropertyResolutionResult:
        state = self.context.state
        self.start(f"{len(state.drafts)} draft(s)")

        catalog = await self.context.catalog.list_properties()
        if not catalog:
            self.log("Property catalog is empty, nothing can resolve", level="warning")

        hint = property_name_from_file_name(self.context.document.file_name)
        result = PropertyResolutionResult()
        resolved_drafts: list[ReservationDraft] = []
        suggestions: list[list[str]] = []

        for draft in state.drafts:
            raw_name = draft.property_ref.raw_name or hint
            reference, names = self._resolve(raw_name, catalog, result)
            resolved_drafts.append(draft.model_copy(update={"property_ref": reference}))
            suggestions.append(names)

        state.drafts = resolved_drafts
        state.suggestions = suggestions
        self.finish(
            f"{result.resolved}/{len(resolved_drafts)} resolved",
            ambiguous=result.ambiguous,
            unresolved=result.unresolved,
        )
        return result

    def _resolve(
        self,
        raw_name: str | None,
        catalog: list[PropertyCatalogEntry],
        result: PropertyResolutionResult,
    ) -> tuple[PropertyReference, list[str]]:
        """Resolve one raw name, returning the reference and suggestions."""
        try:
            match = resolve_property(raw_name, catalog)
        except AmbiguousPropertyError as e:
            result.ambiguous += 1
            names = [c.name for c in e.candidates]
            self.context.issues.add(property_issue(str(e), self.name, raw_name, names))
            self.log(str(e), level="warning")
            return PropertyReference(raw_name=raw_name), names

        if match is not None:
            result.resolved += 1
            self.log(f"'{raw_name}' -> {match.entry.name} ({match.tier.value})", level="debug")
            return match.to_reference(), []

        result.unresolved += 1
        names = suggest_properties(raw_name, catalog)
        message = f"Property '{raw_name}' not found in catalog" if raw_name else "No property name in document"
        self.context.issues.add(property_issue(message, self.name, raw_name, names))
        self.log(message, level="warning", suggestions=names)
        return PropertyReference(raw_name=raw_name), names
