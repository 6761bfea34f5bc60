"""Operator actions on the review queue."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from lexigate.domain.model import (
    ApprovalType,
    ItemNotFoundError,
    PipelineEvent,
    PipelineEventType,
    ReviewDecision,
    Stage,
    TaskStatus,
    parse_payload,
)

from .events import PipelineEventLogger
from .promotion import promote_validated
from .similarity import DEFAULT_SIMILARITY_THRESHOLD
from .validation import describe_payload

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence
    from uuid import UUID

    from lexigate.domain.model import (
        FailureRecord,
        PipelineItem,
        ReviewQueueEntry,
        SimilarMatch,
    )
    from lexigate.domain.ports import PipelineRepositories, PipelineUnitOfWork

log = logging.getLogger(__name__)


class ReviewService:
    """Approve, reject and inspect VALIDATED items waiting for an operator.

    Every action runs in its own unit of work and commits on success.
    """

    def __init__(self, unit_of_work_factory: Callable[[], PipelineUnitOfWork]) -> None:
        self._unit_of_work_factory = unit_of_work_factory

    def pending(self, limit: int = 50) -> Sequence[ReviewQueueEntry]:
        with self._unit_of_work_factory() as uow:
            return uow.repositories.approval.pending_reviews(limit)

    def approve(
        self,
        item_id: UUID,
        *,
        operator_id: str | None = None,
        notes: str | None = None,
    ) -> UUID:
        with self._unit_of_work_factory() as uow:
            repositories = uow.repositories
            item = _require_validated(repositories, item_id)
            approved_id = promote_validated(
                repositories,
                item,
                approval_type=ApprovalType.MANUAL,
                operator_id=operator_id,
                notes=notes,
            )
            _log_decision(
                repositories,
                item,
                PipelineEventType.ITEM_APPROVED,
                operator_id=operator_id,
                notes=notes,
                approved_id=approved_id,
            )
            uow.commit()
        log.info(
            "Operator %s approved %s %s as %s", operator_id, item.data_type, item_id, approved_id
        )
        return approved_id

    def reject(
        self,
        item_id: UUID,
        *,
        operator_id: str | None = None,
        notes: str | None = None,
    ) -> None:
        with self._unit_of_work_factory() as uow:
            repositories = uow.repositories
            item = _require_validated(repositories, item_id)
            if repositories.approval.get_review(item_id) is not None:
                repositories.approval.resolve_review(item_id, ReviewDecision.REJECT)
            repositories.pipeline.delete_validated(item_id)
            _log_decision(
                repositories,
                item,
                PipelineEventType.ITEM_REJECTED,
                operator_id=operator_id,
                notes=notes,
            )
            uow.commit()
        log.info("Operator %s rejected %s %s", operator_id, item.data_type, item_id)

    def bulk_approve(
        self,
        item_ids: Iterable[UUID],
        *,
        operator_id: str | None = None,
        notes: str | None = None,
    ) -> list[UUID]:
        """Approve each item independently; items no longer in VALIDATED are skipped."""

        approved: list[UUID] = []
        for item_id in item_ids:
            try:
                approved.append(self.approve(item_id, operator_id=operator_id, notes=notes))
            except ItemNotFoundError:
                log.warning("Skipping %s: not in validated storage", item_id)
        return approved

    def near_duplicates(
        self,
        item_id: UUID,
        *,
        threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    ) -> list[SimilarMatch]:
        with self._unit_of_work_factory() as uow:
            repositories = uow.repositories
            item = _require_validated(repositories, item_id)
            payload = parse_payload(item.data_type, item.data)
            return repositories.duplication.find_similar(
                describe_payload(payload), payload.language, item.data_type, threshold
            )

    def failures(self, *, stage: Stage | None = None, limit: int = 50) -> Sequence[FailureRecord]:
        with self._unit_of_work_factory() as uow:
            return uow.repositories.pipeline.list_failures(stage=stage, limit=limit)

    def task_history(self, lineage_id: UUID) -> list[PipelineEvent]:
        with self._unit_of_work_factory() as uow:
            return PipelineEventLogger(uow.repositories.events).task_history(lineage_id)


def _require_validated(repositories: PipelineRepositories, item_id: UUID) -> PipelineItem:
    item = repositories.pipeline.get_validated(item_id)
    if item is None:
        raise ItemNotFoundError(item_id, Stage.VALIDATED)
    return item


def _log_decision(
    repositories: PipelineRepositories,
    item: PipelineItem,
    event_type: PipelineEventType,
    *,
    operator_id: str | None,
    notes: str | None,
    approved_id: UUID | None = None,
) -> None:
    approved = event_type is PipelineEventType.ITEM_APPROVED
    payload: dict[str, Any] = {}
    if operator_id is not None:
        payload["operator_id"] = operator_id
    if notes is not None:
        payload["notes"] = notes
    if approved_id is not None:
        payload["approved_id"] = str(approved_id)
    PipelineEventLogger(repositories.events).log_event(
        PipelineEvent(
            lineage_id=item.lineage_id,
            item_id=item.id,
            data_type=item.data_type,
            event_type=event_type,
            stage=Stage.APPROVED if approved else Stage.VALIDATED,
            from_stage=Stage.VALIDATED,
            to_stage=Stage.APPROVED if approved else None,
            status=TaskStatus.COMPLETED if approved else TaskStatus.DISCARDED,
            success=approved,
            payload=payload,
        )
    )
