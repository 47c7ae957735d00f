"""Validation phase - check, score and classify every draft."""

from reservation_extractor.core.errors import validation_issue
from reservation_extractor.core.validation import build_outcome
from reservation_extractor.phases.phase_base import PhaseRunner
from reservation_extractor.pydantic_models import DraftOutcome, RunStatus


class ValidationPhase(PhaseRunner[list[DraftOutcome]]):
    """Phase 4: Validation and confidence scoring."""

    name = "Validation"

    async def run(self) -> list[DraftOutcome]:
        state = self.context.state
        self.start(f"{len(state.drafts)} draft(s)")

        outcomes: list[DraftOutcome] = []
        for index, draft in enumerate(state.drafts):
            extra = state.draft_warnings[index] if index < len(state.draft_warnings) else []
            names = state.suggestions[index] if index < len(state.suggestions) else []
            outcome = build_outcome(draft, extra, state.repair_tier, names)
            outcomes.append(outcome)

            for issue in outcome.validation.errors:
                self.context.issues.add(validation_issue(
                    f"Reservation {index + 1}: {issue.message}", self.name, issue.field, blocking=True,
                ))

        state.outcomes = outcomes
        accepted = sum(1 for o in outcomes if o.status == RunStatus.ACCEPTED)
        self.finish(
            f"{accepted}/{len(outcomes)} accepted",
            needs_review=len(outcomes) - accepted,
        )
        return outcomes
