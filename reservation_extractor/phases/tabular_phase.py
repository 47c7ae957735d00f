"""Tabular phase - deterministic parse of known control-file layouts.

No provider calls. Returns None when no layout applies so the orchestrator
falls through to the model phase.
"""

from reservation_extractor.core.control_file_parser import TabularParseResult, parse_control_file
from reservation_extractor.phases.phase_base import PhaseRunner


class TabularPhase(PhaseRunner[TabularParseResult | None]):
    """Phase 2a: Control-file parsing."""

    name = "Tabular"

    async def run(self) -> TabularParseResult | None:
        state = self.context.state
        self.start()

        result = parse_control_file(state.extracted.text, self.context.document.file_name)
        if result is None:
            self.finish("no control-file layout applies")
            return None

        state.tabular = result
        state.drafts = result.drafts
        state.draft_warnings = [list(row.warnings) for row in result.rows]

        dropped = sum(len(w) for w in state.draft_warnings)
        if dropped:
            self.log(f"{dropped} field value(s) dropped while parsing rows", level="warning")
        self.finish(
            f"{len(result.rows)} row(s)",
            format=result.format_name,
            property=result.property_name,
        )
        return result
