"""Process-local storage used by the in-memory adapter."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, Any

from lexigate.domain.model import DataType, Stage

if TYPE_CHECKING:
    from uuid import UUID

    from lexigate.domain.model import (
        ApprovalEvent,
        FailureRecord,
        Metric,
        PipelineEvent,
        PipelineItem,
        PipelineTask,
        ReviewQueueEntry,
    )


def _approved_tables() -> dict[DataType, dict[UUID, dict[str, Any]]]:
    return {data_type: {} for data_type in DataType}


@dataclass(slots=True)
class InMemoryStore:
    """Mirror of the SQL schema: one mapping per staging and approved table.

    Staging mappings preserve insertion order, which is the FIFO order the
    pipeline fetches in.
    """

    drafts: dict[UUID, PipelineItem] = field(default_factory=dict)
    candidates: dict[UUID, PipelineItem] = field(default_factory=dict)
    validated: dict[UUID, PipelineItem] = field(default_factory=dict)
    approved: dict[DataType, dict[UUID, dict[str, Any]]] = field(default_factory=_approved_tables)
    failures: list[FailureRecord] = field(default_factory=list)
    metrics: list[Metric] = field(default_factory=list)
    reviews: dict[UUID, ReviewQueueEntry] = field(default_factory=dict)
    approvals: list[ApprovalEvent] = field(default_factory=list)
    events: list[tuple[UUID, PipelineEvent]] = field(default_factory=list)
    tasks: dict[UUID, PipelineTask] = field(default_factory=dict)

    def stage(self, stage: Stage) -> dict[UUID, PipelineItem]:
        match stage:
            case Stage.DRAFT:
                return self.drafts
            case Stage.CANDIDATE:
                return self.candidates
            case Stage.VALIDATED:
                return self.validated
            case _:
                raise KeyError(stage)

    def snapshot(self) -> InMemoryStore:
        return copy.deepcopy(self)

    def restore(self, other: InMemoryStore) -> None:
        """Replace this store's contents with a deep copy of ``other``."""

        for item in fields(self):
            setattr(self, item.name, copy.deepcopy(getattr(other, item.name)))
