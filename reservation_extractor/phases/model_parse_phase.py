"""Model parse phase - provider extraction with response repair.

Used when no control-file layout applies. The prompt goes down the provider
fallback chain; the first successful response is repaired and normalized
into drafts. A malformed response degrades the result instead of failing
the run.
"""

from dataclasses import dataclass

from reservation_extractor.core.errors import response_issue
from reservation_extractor.core.normalization import draft_from_record, infer_platform
from reservation_extractor.core.response_repair import RepairTier, coerce_records, repair_response
from reservation_extractor.phases.phase_base import PhaseRunner
from reservation_extractor.pydantic_models import FieldIssue, ReservationDraft


@dataclass
class ModelParseResult:
    """Result from the model parse phase.

    Attributes:
        provider: Provider whose response was used.
        repair_tier: Tier at which the response was recovered.
        record_count: Records recovered (0 means an empty draft was emitted).
        cached: True when the response came from the cache.
    """

    provider: str
    repair_tier: RepairTier
    record_count: int
    cached: bool = False


class ModelParsePhase(PhaseRunner[ModelParseResult]):
    """Phase 2b: Provider parse, repair and normalization."""

    name = "ModelParse"

    async def run(self) -> ModelParseResult:
        """Parse the extracted text with the first provider that answers.

        Raises:
            ProvidersExhaustedError: Every provider in the chain failed.
        """
        state = self.context.state
        adapter = self.context.adapter
        file_name = self.context.document.file_name
        chain = adapter.fallback_chain(self.context.provider_override)
        self.start(" > ".join(p.name for p in chain) or "no providers")

        response = await self.call_with_fallback(
            "parse_reservation",
            chain,
            lambda provider: adapter.parse_reservation_with(provider, state.extracted.text, file_name),
        )
        self.logger.milestone(f"Parsed by {response.provider}", cached=response.cached, latency_ms=response.latency_ms)

        outcome = repair_response(response.text)
        if outcome.tier != RepairTier.STRICT:
            self.context.issues.add(response_issue(
                f"Response recovered at tier '{outcome.tier.value}'",
                self.name,
                response.provider,
                response.text,
            ))

        drafts: list[ReservationDraft] = []
        warnings: list[list[FieldIssue]] = []
        records = coerce_records(outcome.value)
        document_platform = infer_platform(state.extracted.text)
        for record in records:
            draft, unparseable = draft_from_record(record)
            if draft.platform is None and document_platform:
                draft = draft.model_copy(update={"platform": document_platform})
            drafts.append(draft)
            warnings.append([
                FieldIssue(field=name, message=f"Unparseable value for {name} dropped")
                for name in unparseable
            ])

        if not drafts:
            self.log("No records recovered, emitting an empty draft for review", level="warning")
            drafts.append(ReservationDraft(source="model"))
            warnings.append([])

        state.drafts = drafts
        state.draft_warnings = warnings
        state.provider = response.provider
        state.repair_tier = outcome.tier.value

        self.finish(
            f"{len(records)} record(s)",
            provider=response.provider,
            repair_tier=outcome.tier.value,
        )
        return ModelParseResult(
            provider=response.provider,
            repair_tier=outcome.tier,
            record_count=len(records),
            cached=response.cached,
        )
