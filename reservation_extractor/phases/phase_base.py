"""Base classes for pipeline phases.

The context is split into three parts so responsibilities are clear:
- **ExtractionResources** (frozen): shared collaborators created once per
  process - provider adapter, property catalog, logger, cost tracker.
- **ExtractionConfig** (frozen): per-run settings - provider override,
  same-provider retries.
- **PipelineState** (mutable): the data that accumulates as each phase
  runs - extracted text, drafts, property suggestions, outcomes, issues,
  and the state machine history.

PhaseContext wraps all three and exposes convenience properties so phases can
write ``ctx.adapter`` instead of ``ctx.resources.adapter``.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, TypeVar

from reservation_extractor.core import CostTracker, PipelineLogger, RunIssues
from reservation_extractor.core.catalog import PropertyCatalog
from reservation_extractor.core.config import ProviderConfig
from reservation_extractor.core.control_file_parser import TabularParseResult
from reservation_extractor.core.errors import ProvidersExhaustedError, RateLimitedError, provider_issue
from reservation_extractor.providers import Provider, ProviderAdapter
from reservation_extractor.pydantic_models import (
    DraftOutcome,
    ExtractedText,
    FieldIssue,
    ProviderErrorKind,
    ProviderResponse,
    RawDocument,
    ReservationDraft,
    RunState,
)

# Allowed state machine transitions. FAILED is reachable from any
# non-terminal state and is handled separately.
TRANSITIONS: dict[RunState, tuple[RunState, ...]] = {
    RunState.RECEIVED: (RunState.TEXT_EXTRACTED,),
    RunState.TEXT_EXTRACTED: (RunState.TABULAR_PARSED, RunState.MODEL_PARSED),
    RunState.TABULAR_PARSED: (RunState.PROPERTY_RESOLVED,),
    RunState.MODEL_PARSED: (RunState.PROPERTY_RESOLVED,),
    RunState.PROPERTY_RESOLVED: (RunState.VALIDATED,),
    RunState.VALIDATED: (RunState.ACCEPTED, RunState.NEEDS_REVIEW),
    RunState.ACCEPTED: (),
    RunState.NEEDS_REVIEW: (),
    RunState.FAILED: (),
}

TERMINAL_STATES = (RunState.ACCEPTED, RunState.NEEDS_REVIEW, RunState.FAILED)

RETRYABLE_KINDS = (ProviderErrorKind.TIMEOUT, ProviderErrorKind.SERVER_ERROR)


# Split Context Classes

@dataclass(frozen=True)
class ExtractionResources:
    """Shared collaborators - created once, never modified."""

    adapter: ProviderAdapter
    catalog: PropertyCatalog
    logger: PipelineLogger
    cost_tracker: CostTracker


@dataclass(frozen=True)
class ExtractionConfig:
    """Per-run settings - set at run start, never modified.

    Attributes:
        provider_override: Force one named provider for model calls.
        retries_per_provider: Extra same-provider attempts for timeouts and
            server errors before failing over.
    """

    provider_override: str | None = None
    retries_per_provider: int = ProviderConfig.RETRIES_PER_PROVIDER


@dataclass
class PipelineState:
    """Mutable state that accumulates during one run.

    Each field is written by exactly one phase and read by downstream phases:
    - extracted: Written by Text, read by Tabular/ModelParse
    - tabular: Written by Tabular, read by Property
    - drafts / draft_warnings: Written by Tabular or ModelParse, updated by
      Property, read by Validation
    - provider / repair_tier: Written by ModelParse, read by Validation
    - suggestions: Written by Property, read by Validation
    - outcomes: Written by Validation
    - issues / history: Accumulated by all phases
    - started_at: Set when the run is created, read for run timing
    """

    run_id: str
    document: RawDocument
    current: RunState = RunState.RECEIVED
    history: list[RunState] = field(default_factory=lambda: [RunState.RECEIVED])

    extracted: ExtractedText | None = None
    path: str | None = None
    tabular: TabularParseResult | None = None
    drafts: list[ReservationDraft] = field(default_factory=list)
    draft_warnings: list[list[FieldIssue]] = field(default_factory=list)
    provider: str | None = None
    repair_tier: str | None = None
    suggestions: list[list[str]] = field(default_factory=list)
    outcomes: list[DraftOutcome] = field(default_factory=list)
    issues: RunIssues = field(default_factory=RunIssues)
    started_at: float = field(default_factory=time.time)

    @property
    def elapsed(self) -> float:
        """Seconds since the run was received."""
        return time.time() - self.started_at

    def transition(self, target: RunState):
        """Move the state machine.

        Raises:
            ValueError: If the transition is not allowed.
        """
        if target == RunState.FAILED:
            if self.current in TERMINAL_STATES:
                raise ValueError(f"Cannot fail a run already in {self.current.value}")
        elif target not in TRANSITIONS[self.current]:
            raise ValueError(f"Illegal transition {self.current.value} -> {target.value}")
        self.current = target
        self.history.append(target)


class PhaseContext:
    """Slim context holding references to the three component contexts."""

    def __init__(self, resources: ExtractionResources, config: ExtractionConfig, state: PipelineState):
        self.resources = resources
        self.config = config
        self.state = state

    # -- Resource properties (read-only) --

    @property
    def adapter(self) -> ProviderAdapter:
        return self.resources.adapter

    @property
    def catalog(self) -> PropertyCatalog:
        return self.resources.catalog

    @property
    def logger(self) -> PipelineLogger:
        return self.resources.logger

    # -- Config properties (read-only) --

    @property
    def provider_override(self) -> str | None:
        return self.config.provider_override

    @property
    def retries_per_provider(self) -> int:
        return self.config.retries_per_provider

    # -- State shortcuts --

    @property
    def document(self) -> RawDocument:
        return self.state.document

    @property
    def issues(self) -> RunIssues:
        return self.state.issues


T = TypeVar("T")


class PhaseRunner(ABC, Generic[T]):
    """Base class for pipeline phase runners.

    Each phase:
    - Has a name for logging
    - Takes a PhaseContext with shared state
    - Produces a typed result
    """

    name: str = "unnamed"

    def __init__(self, context: PhaseContext):
        self.context = context
        self.logger = context.logger
        self._started_at: float | None = None

    @abstractmethod
    async def run(self) -> T:
        """Execute the phase."""
        pass

    def log(self, message: str, level: str = "info", **data):
        """Log a message with phase context."""
        if level == "debug":
            self.logger.debug(f"[{self.name}] {message}", **data)
        elif level == "warning":
            self.logger.warning(f"[{self.name}] {message}", **data)
        elif level == "error":
            self.logger.error(f"[{self.name}] {message}", **data)
        else:
            self.logger.info(f"[{self.name}] {message}", **data)

    def start(self, detail: str = ""):
        self._started_at = time.time()
        self.logger.stage(self.name, detail)

    def finish(self, result: str, **metrics):
        """Log the phase result with its duration."""
        elapsed = time.time() - self._started_at if self._started_at is not None else None
        self.logger.stage_result(result, elapsed=elapsed, **metrics)

    async def call_with_fallback(
        self,
        operation: str,
        chain: list[Provider],
        invoke: Callable[[Provider], Awaitable[ProviderResponse]],
    ) -> ProviderResponse:
        """Try providers in order until one succeeds.

        Strictly sequential. Timeouts and server errors are retried on the
        same provider up to ``retries_per_provider`` times; every other
        failure, including a limiter rejection, moves to the next provider.

        Args:
            operation: Operation name for logs and errors.
            chain: Providers in fallback order.
            invoke: Performs one attempt with the given provider.

        Returns:
            The first successful response.

        Raises:
            ProvidersExhaustedError: Every provider failed (or none configured).
        """
        attempts: list[tuple[str, str, str]] = []
        for provider in chain:
            for attempt in range(self.context.retries_per_provider + 1):
                try:
                    response = await invoke(provider)
                except RateLimitedError as e:
                    attempts.append((provider.name, ProviderErrorKind.RATE_LIMITED.value, str(e)))
                    self.context.issues.add(provider_issue(
                        str(e), self.name, provider.name, ProviderErrorKind.RATE_LIMITED.value,
                    ))
                    self.log(f"{provider.name} not admitted by rate limiter, trying next", level="warning")
                    break

                if response.success:
                    return response

                kind = response.error_kind.value if response.error_kind else "unknown"
                attempts.append((provider.name, kind, response.error_message or ""))
                self.context.issues.add(provider_issue(
                    response.error_message or kind, self.name, provider.name, kind,
                ))
                retry = response.error_kind in RETRYABLE_KINDS and attempt < self.context.retries_per_provider
                self.log(
                    f"{provider.name} {operation} failed ({kind})"
                    + (", retrying" if retry else ", trying next"),
                    level="warning",
                )
                if not retry:
                    break

        raise ProvidersExhaustedError(operation, attempts)
