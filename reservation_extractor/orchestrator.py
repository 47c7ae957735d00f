"""Pipeline orchestrator - drives one document through the extraction state machine.

Phases are separate classes so each one can be tested and reasoned about in
isolation. Between phases, data flows through a per-run PipelineState (see
phase_base.py): one phase writes its output, the next phase reads it.

High-level flow:
  Text -> {Tabular | ModelParse} -> Property -> Validation

States:
  received -> text_extracted -> {tabular_parsed | model_parsed}
  -> property_resolved -> validated -> {accepted | needs_review}

Fatal errors (unreadable document, every provider exhausted, an unusable
provider override) end the run in ``failed`` with a result, never an
exception. Anything else propagates to the caller.
"""

import uuid

from reservation_extractor.core import (
    CostTracker,
    PipelineLogger,
    ProviderConfig,
    ProvidersExhaustedError,
    ProviderUnavailableError,
    UnreadableDocumentError,
    document_issue,
    get_logger,
    provider_issue,
)
from reservation_extractor.core.catalog import PropertyCatalog
from reservation_extractor.phases import (
    ExtractionConfig,
    ExtractionResources,
    ModelParsePhase,
    PhaseContext,
    PipelineState,
    PropertyPhase,
    TabularPhase,
    TextPhase,
    ValidationPhase,
)
from reservation_extractor.providers import ProviderAdapter
from reservation_extractor.pydantic_models import ExtractionResult, RawDocument, RunState, RunStatus


class ExtractionOrchestrator:
    """Pipeline orchestrator coordinating phase runners.

    One orchestrator serves many runs; every run gets its own PhaseContext
    around the shared adapter, catalog, logger and cost tracker.
    """

    def __init__(
        self,
        adapter: ProviderAdapter,
        catalog: PropertyCatalog,
        logger: PipelineLogger | None = None,
        cost_tracker: CostTracker | None = None,
        retries_per_provider: int = ProviderConfig.RETRIES_PER_PROVIDER,
    ):
        """Initialize the orchestrator.

        Args:
            adapter: Provider adapter (carries the shared rate limiter).
            catalog: Read-only property catalog.
            logger: Run logger. Defaults to the global PipelineLogger.
            cost_tracker: Usage tracker. Defaults to the adapter's tracker.
            retries_per_provider: Same-provider retries for timeouts and
                server errors before failing over.
        """
        self.adapter = adapter
        self.catalog = catalog
        self.logger = logger or get_logger()
        self.cost_tracker = cost_tracker or adapter.cost_tracker or CostTracker()
        self.retries_per_provider = retries_per_provider

    def _context(self, run_id: str, document: RawDocument, provider: str | None) -> PhaseContext:
        resources = ExtractionResources(
            adapter=self.adapter,
            catalog=self.catalog,
            logger=self.logger,
            cost_tracker=self.cost_tracker,
        )
        config = ExtractionConfig(
            provider_override=provider,
            retries_per_provider=self.retries_per_provider,
        )
        return PhaseContext(resources=resources, config=config, state=PipelineState(run_id=run_id, document=document))

    async def run(
        self,
        document: RawDocument,
        run_id: str | None = None,
        provider: str | None = None,
    ) -> ExtractionResult:
        """Run the complete extraction pipeline for one document.

        Args:
            document: The submitted document.
            run_id: Identifier for logs and the result. Generated when omitted.
            provider: Force a single provider for model calls.

        Returns:
            A terminal ExtractionResult (accepted, needs_review or failed).
        """
        run_id = run_id or uuid.uuid4().hex
        context = self._context(run_id, document, provider)
        state = context.state
        self.logger.start_run(run_id, document.source_label)

        try:
            # Phase 1: Text
            state.extracted = await TextPhase(context).run()
            state.transition(RunState.TEXT_EXTRACTED)

            # Phase 2: Tabular when a control-file layout applies, else model
            tabular = await TabularPhase(context).run()
            if tabular is not None:
                state.path = "tabular"
                state.transition(RunState.TABULAR_PARSED)
            else:
                state.path = "model"
                await ModelParsePhase(context).run()
                state.transition(RunState.MODEL_PARSED)
            self.logger.milestone(f"Path: {state.path}", drafts=len(state.drafts))

            # Phase 3: Property
            await PropertyPhase(context).run()
            state.transition(RunState.PROPERTY_RESOLVED)

            # Phase 4: Validation
            outcomes = await ValidationPhase(context).run()
            state.transition(RunState.VALIDATED)

            if all(o.status == RunStatus.ACCEPTED for o in outcomes):
                state.transition(RunState.ACCEPTED)
            else:
                state.transition(RunState.NEEDS_REVIEW)

        except UnreadableDocumentError as e:
            state.issues.add(document_issue(str(e), state.current.value, e))
            return self._fail(state, str(e), retryable=False)
        except ProvidersExhaustedError as e:
            return self._fail(state, str(e), retryable=True)
        except ProviderUnavailableError as e:
            state.issues.add(provider_issue(str(e), state.current.value, e.provider))
            return self._fail(state, str(e), retryable=False)
        except Exception as e:
            self.logger.error(f"Run {run_id} failed unexpectedly", exc=e)
            self._end_run(state, "failed")
            raise

        result = self._result(state)
        self._end_run(state, result.status.value)
        return result

    def _fail(self, state: PipelineState, reason: str, retryable: bool) -> ExtractionResult:
        self.logger.error(f"Run {state.run_id} failed in {state.current.value}: {reason}")
        state.transition(RunState.FAILED)
        result = self._result(state, failure_reason=reason, retryable=retryable)
        self._end_run(state, result.status.value)
        return result

    def _result(
        self,
        state: PipelineState,
        failure_reason: str | None = None,
        retryable: bool = False,
    ) -> ExtractionResult:
        status = {
            RunState.ACCEPTED: RunStatus.ACCEPTED,
            RunState.NEEDS_REVIEW: RunStatus.NEEDS_REVIEW,
        }.get(state.current, RunStatus.FAILED)
        return ExtractionResult(
            run_id=state.run_id,
            status=status,
            reservations=state.outcomes if status != RunStatus.FAILED else [],
            path=state.path,
            final_state=state.current,
            state_history=list(state.history),
            provider=state.provider,
            repair_tier=state.repair_tier,
            text_extractor=state.extracted.extractor if state.extracted else None,
            failure_reason=failure_reason,
            retryable=retryable,
            issues=state.issues.to_list(),
        )

    def _end_run(self, state: PipelineState, status: str):
        self.logger.end_run(state.run_id, status, elapsed=state.elapsed, stats=self.get_stats(state))

    @staticmethod
    def get_stats(state: PipelineState) -> dict:
        """Statistics for one run."""
        accepted = sum(1 for o in state.outcomes if o.status == RunStatus.ACCEPTED)
        return {
            "state": state.current.value,
            "path": state.path,
            "provider": state.provider,
            "repair_tier": state.repair_tier,
            "drafts": len(state.drafts),
            "accepted": accepted,
            "needs_review": len(state.outcomes) - accepted,
            "average_confidence": (
                round(sum(o.confidence for o in state.outcomes) / len(state.outcomes), 4)
                if state.outcomes else 0.0
            ),
            "elapsed_seconds": round(state.elapsed, 3),
            "errors": state.issues.summary(),
        }
