"""Phase runners for the extraction pipeline.

Each phase is encapsulated in its own runner class with:
- Clear inputs and outputs
- Error handling
- Logging
"""

from reservation_extractor.phases.phase_base import (
    PhaseRunner,
    PhaseContext,
    ExtractionResources,
    ExtractionConfig,
    PipelineState,
    TRANSITIONS,
)
from reservation_extractor.phases.text_phase import TextPhase
from reservation_extractor.phases.tabular_phase import TabularPhase
from reservation_extractor.phases.model_parse_phase import ModelParsePhase, ModelParseResult
from reservation_extractor.phases.property_phase import PropertyPhase, PropertyResolutionResult
from reservation_extractor.phases.validation_phase import ValidationPhase

__all__ = [
    "PhaseRunner",
    "PhaseContext",
    "ExtractionResources",
    "ExtractionConfig",
    "PipelineState",
    "TRANSITIONS",
    "TextPhase",
    "TabularPhase",
    "ModelParsePhase",
    "ModelParseResult",
    "PropertyPhase",
    "PropertyResolutionResult",
    "ValidationPhase",
]
