"""Append-only audit and operator-facing records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from .enums import ApprovalType

if TYPE_CHECKING:
    from uuid import UUID

    from .enums import (
        DataType,
        PipelineEventType,
        ProcessingStep,
        ReviewDecision,
        Stage,
        TaskStatus,
    )


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True, slots=True)
class FailureRecord:
    item_id: UUID
    data_type: DataType
    stage: Stage
    error_message: str
    timestamp: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True, slots=True)
class Metric:
    stage: ProcessingStep
    data_type: DataType
    items_processed: int
    items_failed: int
    avg_duration_ms: float
    recorded_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True, slots=True)
class ReviewQueueEntry:
    item_id: UUID
    data_type: DataType
    priority: int
    queued_at: datetime = field(default_factory=_utcnow)
    reviewed_at: datetime | None = None
    decision: ReviewDecision | None = None

    @property
    def pending(self) -> bool:
        return self.reviewed_at is None


@dataclass(frozen=True, slots=True)
class ApprovalEvent:
    """Records how a validated item reached permanent storage."""

    validated_id: UUID
    approved_table: str
    approved_id: UUID
    approval_type: ApprovalType = ApprovalType.AUTOMATIC
    operator_id: str | None = None
    notes: str | None = None
    created_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True, slots=True)
class PipelineEvent:
    """One entry of the structured stage-transition audit trail."""

    lineage_id: UUID
    item_id: UUID
    data_type: DataType
    event_type: PipelineEventType
    stage: Stage
    from_stage: Stage | None = None
    to_stage: Stage | None = None
    status: TaskStatus | None = None
    success: bool | None = None
    error_message: str | None = None
    duration_ms: float | None = None
    payload: dict[str, Any] = field(default_factory=dict[str, Any])
    created_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True, slots=True)
class PipelineTask:
    """Lineage tracking row: where an item currently is, keyed by its draft id."""

    lineage_id: UUID
    data_type: DataType
    current_stage: Stage
    current_status: TaskStatus
    retry_count: int = 0
    error_message: str | None = None
    updated_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True, slots=True)
class SimilarMatch:
    id: UUID
    text: str
    similarity: float
