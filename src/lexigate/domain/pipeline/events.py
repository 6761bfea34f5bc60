"""Structured audit trail of pipeline activity.

Every event is appended to the event log and folded into the lineage's tracking
row, so ``PipelineTask`` always reflects the latest event for that draft.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from lexigate.domain.model import (
    PipelineEvent,
    PipelineEventType,
    PipelineTask,
    Stage,
    TaskStatus,
)

if TYPE_CHECKING:
    from collections.abc import Iterable
    from uuid import UUID

    from lexigate.domain.model import PipelineItem
    from lexigate.domain.ports import PipelineEventRepository

log = logging.getLogger(__name__)


class PipelineEventLogger:
    def __init__(self, repository: PipelineEventRepository) -> None:
        self._repository = repository

    def log_event(self, event: PipelineEvent) -> UUID:
        event_id = self._repository.add_event(event)
        self._track(event)
        log.debug(
            "Event %s for lineage %s at %s", event.event_type, event.lineage_id, event.stage
        )
        return event_id

    def log_transition(
        self,
        item: PipelineItem,
        to_stage: Stage,
        *,
        new_item_id: UUID | None = None,
        duration_ms: float | None = None,
    ) -> UUID:
        status = TaskStatus.COMPLETED if to_stage is Stage.APPROVED else TaskStatus.PENDING
        payload: dict[str, Any] = {}
        if new_item_id is not None:
            payload["new_item_id"] = str(new_item_id)
        return self.log_event(
            PipelineEvent(
                lineage_id=item.lineage_id,
                item_id=item.id,
                data_type=item.data_type,
                event_type=PipelineEventType.STAGE_TRANSITION,
                stage=to_stage,
                from_stage=item.stage,
                to_stage=to_stage,
                status=status,
                success=True,
                duration_ms=duration_ms,
                payload=payload,
            )
        )

    def log_failure(
        self,
        item: PipelineItem,
        event_type: PipelineEventType,
        errors: Iterable[str],
        *,
        status: TaskStatus = TaskStatus.FAILED,
        duration_ms: float | None = None,
    ) -> UUID:
        messages = list(errors)
        return self.log_event(
            PipelineEvent(
                lineage_id=item.lineage_id,
                item_id=item.id,
                data_type=item.data_type,
                event_type=event_type,
                stage=item.stage,
                status=status,
                success=False,
                error_message="; ".join(messages) or None,
                duration_ms=duration_ms,
                payload={"errors": messages},
            )
        )

    def task_history(self, lineage_id: UUID) -> list[PipelineEvent]:
        return self._repository.list_events(lineage_id)

    def _track(self, event: PipelineEvent) -> None:
        current = self._repository.get_task(event.lineage_id)
        stage = event.to_stage or event.stage
        status = event.status or TaskStatus.PENDING
        if current is None:
            task = PipelineTask(
                lineage_id=event.lineage_id,
                data_type=event.data_type,
                current_stage=stage,
                current_status=status,
                retry_count=1 if status is TaskStatus.FAILED else 0,
                error_message=event.error_message,
                updated_at=event.created_at,
            )
        else:
            task = replace(
                current,
                current_stage=stage,
                current_status=status,
                retry_count=current.retry_count + (1 if status is TaskStatus.FAILED else 0),
                error_message=event.error_message,
                updated_at=event.created_at,
            )
        self._repository.save_task(task)
