"""Submission and result lookup for extraction runs.

Callers submit a document, get a run id back immediately, and poll for the
result. ``run`` performs the extraction for a submitted id; the worker pool
calls it from its workers, the CLI calls ``extract`` directly.
"""

import logging
import uuid

from reservation_extractor.core import (
    CostTracker,
    PipelineLogger,
    PipelineSettings,
    RateLimiter,
    get_logger,
)
from reservation_extractor.core.catalog import PropertyCatalog
from reservation_extractor.orchestrator import ExtractionOrchestrator
from reservation_extractor.providers import ProviderAdapter
from reservation_extractor.pydantic_models import (
    DocumentKind,
    ExtractionResult,
    RawDocument,
    RunState,
    RunStatus,
)

logger = logging.getLogger(__name__)


class ExtractionService:
    """In-memory run registry in front of the orchestrator.

    Usage:
        service = ExtractionService.from_settings(PipelineSettings.from_env(), catalog)
        run_id = service.submit_document(pdf_bytes, "application/pdf", "Controlo_Sete Rios.pdf")
        await service.run(run_id)
        result = service.get_result(run_id)
    """

    def __init__(self, orchestrator: ExtractionOrchestrator):
        self.orchestrator = orchestrator
        self._documents: dict[str, RawDocument] = {}
        self._results: dict[str, ExtractionResult] = {}

    @classmethod
    def from_settings(
        cls,
        settings: PipelineSettings,
        catalog: PropertyCatalog,
        cost_tracker: CostTracker | None = None,
        logger: PipelineLogger | None = None,
    ) -> "ExtractionService":
        """Wire limiter, adapter and orchestrator from settings.

        One RateLimiter is created here and shared by every run of the service.
        """
        cost_tracker = cost_tracker or CostTracker()
        limiter = RateLimiter.from_settings(settings)
        adapter = ProviderAdapter.from_settings(settings, limiter, cost_tracker)
        orchestrator = ExtractionOrchestrator(
            adapter=adapter,
            catalog=catalog,
            logger=logger or get_logger(),
            cost_tracker=cost_tracker,
            retries_per_provider=settings.retries_per_provider,
        )
        return cls(orchestrator)

    def submit_document(
        self,
        content: bytes | str,
        declared_kind: str | DocumentKind,
        file_name: str | None = None,
    ) -> str:
        """Register a document for extraction.

        Args:
            content: PDF bytes, or text as str/bytes.
            declared_kind: MIME type or short name ("pdf", "text/plain", ...).
            file_name: Original file name, a hint for the property.

        Returns:
            The new run id. Its result is ``pending`` until the run completes.

        Raises:
            ValueError: If the declared kind is not supported.
        """
        document = RawDocument(content=content, kind=DocumentKind.from_declared(declared_kind), file_name=file_name)
        run_id = uuid.uuid4().hex
        self._documents[run_id] = document
        self._results[run_id] = ExtractionResult(
            run_id=run_id,
            status=RunStatus.PENDING,
            state_history=[RunState.RECEIVED],
        )
        logger.debug(f"Submitted {document.source_label} as run {run_id}")
        return run_id

    def get_result(self, run_id: str) -> ExtractionResult:
        """Current result for a run.

        Raises:
            KeyError: Unknown run id.
        """
        if run_id not in self._results:
            raise KeyError(f"Unknown run id: {run_id}")
        return self._results[run_id]

    async def run(self, run_id: str, provider: str | None = None) -> ExtractionResult:
        """Execute the pipeline for a submitted run and store the result.

        Never raises for pipeline failures: an unexpected exception becomes a
        ``failed`` result marked retryable.

        Raises:
            KeyError: Unknown run id, or its document was already released.
        """
        previous = self.get_result(run_id)
        if run_id not in self._documents:
            raise KeyError(f"Document for run {run_id} was released")
        document = self._documents[run_id]
        attempts = previous.attempts + 1

        try:
            result = await self.orchestrator.run(document, run_id=run_id, provider=provider)
        except Exception as e:
            logger.exception(f"Run {run_id} raised an unexpected error")
            result = ExtractionResult(
                run_id=run_id,
                status=RunStatus.FAILED,
                final_state=RunState.FAILED,
                state_history=[RunState.RECEIVED, RunState.FAILED],
                failure_reason=f"{type(e).__name__}: {e}",
                retryable=True,
            )

        result = result.model_copy(update={"attempts": attempts})
        self._results[run_id] = result
        return result

    async def extract(
        self,
        content: bytes | str,
        declared_kind: str | DocumentKind,
        file_name: str | None = None,
        provider: str | None = None,
    ) -> ExtractionResult:
        """Submit and run in one call, releasing the document afterwards."""
        run_id = self.submit_document(content, declared_kind, file_name)
        try:
            return await self.run(run_id, provider=provider)
        finally:
            self.release_document(run_id)

    def mark_retrying(self, run_id: str) -> ExtractionResult:
        """Put a failed run back to ``pending`` ahead of a retry."""
        result = self.get_result(run_id).model_copy(update={"status": RunStatus.PENDING})
        self._results[run_id] = result
        return result

    def release_document(self, run_id: str):
        """Drop the stored document once its run is final. The result is kept."""
        self._documents.pop(run_id, None)

    @property
    def cost_tracker(self) -> CostTracker:
        return self.orchestrator.cost_tracker

    @property
    def adapter(self) -> ProviderAdapter:
        return self.orchestrator.adapter
