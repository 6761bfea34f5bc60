"""Domain model for the content promotion pipeline."""

from __future__ import annotations

from .enums import (
    ApprovalType,
    DataType,
    PipelineEventType,
    ProcessingStep,
    ReviewDecision,
    Stage,
    TaskStatus,
)
from .errors import InvalidTransitionError, ItemNotFoundError, PayloadError, PipelineError
from .items import BatchReport, PipelineItem, PipelineResult, StepMetrics, StepResult
from .payloads import (
    ORTHOGRAPHY_CATEGORY,
    ContentPayload,
    ExercisePayload,
    MeaningPayload,
    RulePayload,
    UtterancePayload,
    parse_payload,
    read_confidence,
)
from .records import (
    ApprovalEvent,
    FailureRecord,
    Metric,
    PipelineEvent,
    PipelineTask,
    ReviewQueueEntry,
    SimilarMatch,
)
from .stages import PROCESSING_ORDER, TRANSITIONS, Transition, is_terminal, transition_from

__all__ = [
    "ORTHOGRAPHY_CATEGORY",
    "PROCESSING_ORDER",
    "TRANSITIONS",
    "ApprovalEvent",
    "ApprovalType",
    "BatchReport",
    "ContentPayload",
    "DataType",
    "ExercisePayload",
    "FailureRecord",
    "InvalidTransitionError",
    "ItemNotFoundError",
    "MeaningPayload",
    "Metric",
    "PayloadError",
    "PipelineError",
    "PipelineEvent",
    "PipelineEventType",
    "PipelineItem",
    "PipelineResult",
    "PipelineTask",
    "ProcessingStep",
    "ReviewDecision",
    "ReviewQueueEntry",
    "RulePayload",
    "SimilarMatch",
    "Stage",
    "StepMetrics",
    "StepResult",
    "TaskStatus",
    "Transition",
    "UtterancePayload",
    "is_terminal",
    "parse_payload",
    "read_confidence",
    "transition_from",
]
