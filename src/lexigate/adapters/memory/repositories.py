"""In-memory repository implementations over an ``InMemoryStore``."""

from __future__ import annotations

import copy
import uuid
from dataclasses import replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from lexigate.domain.model import (
    DataType,
    FailureRecord,
    Metric,
    PipelineItem,
    ReviewQueueEntry,
    SimilarMatch,
    Stage,
    parse_payload,
)
from lexigate.domain.pipeline.promotion import HEADLINE_FIELDS, approved_record
from lexigate.domain.pipeline.similarity import similarity

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from lexigate.domain.model import (
        ApprovalEvent,
        PipelineEvent,
        PipelineTask,
        ProcessingStep,
        ReviewDecision,
        TaskStatus,
    )

    from .store import InMemoryStore

MAX_SIMILAR_MATCHES = 5


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class InMemoryPipelineRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    def fetch_drafts(self, limit: int) -> list[PipelineItem]:
        return self._fetch(Stage.DRAFT, limit)

    def fetch_candidates(self, limit: int) -> list[PipelineItem]:
        return self._fetch(Stage.CANDIDATE, limit)

    def fetch_validated(self, limit: int) -> list[PipelineItem]:
        return self._fetch(Stage.VALIDATED, limit)

    def get_validated(self, item_id: uuid.UUID) -> PipelineItem | None:
        item = self.store.validated.get(item_id)
        return None if item is None else copy.deepcopy(item)

    def add_draft(
        self,
        data_type: DataType,
        data: dict[str, Any],
        *,
        created_at: datetime | None = None,
    ) -> uuid.UUID:
        draft_id = uuid.uuid4()
        self.store.drafts[draft_id] = PipelineItem(
            id=draft_id,
            data_type=data_type,
            stage=Stage.DRAFT,
            data=copy.deepcopy(data),
            created_at=created_at or _utcnow(),
        )
        return draft_id

    def move_to_candidates(self, item: PipelineItem) -> uuid.UUID:
        return self._insert(Stage.CANDIDATE, item)

    def move_to_validated(self, item: PipelineItem) -> uuid.UUID:
        return self._insert(Stage.VALIDATED, item)

    def copy_to_approved(self, item: PipelineItem) -> uuid.UUID:
        record = approved_record(parse_payload(item.data_type, item.data))
        approved_id = uuid.uuid4()
        self.store.approved[item.data_type][approved_id] = {
            "id": approved_id,
            "created_at": _utcnow(),
            **copy.deepcopy(record),
        }
        return approved_id

    def delete_draft(self, item_id: uuid.UUID) -> None:
        self.store.drafts.pop(item_id, None)

    def delete_candidate(self, item_id: uuid.UUID) -> None:
        self.store.candidates.pop(item_id, None)

    def delete_validated(self, item_id: uuid.UUID) -> None:
        self.store.validated.pop(item_id, None)

    def record_failure(
        self,
        item_id: uuid.UUID,
        data_type: DataType,
        stage: Stage,
        message: str,
    ) -> None:
        self.store.failures.append(
            FailureRecord(item_id=item_id, data_type=data_type, stage=stage, error_message=message)
        )

    def get_normalization_failure_count(self, item_id: uuid.UUID) -> int:
        return sum(
            1
            for failure in self.store.failures
            if failure.item_id == item_id and failure.stage is Stage.DRAFT
        )

    def list_failures(
        self,
        *,
        stage: Stage | None = None,
        limit: int = 50,
    ) -> Sequence[FailureRecord]:
        matching = [
            failure
            for failure in reversed(self.store.failures)
            if stage is None or failure.stage is stage
        ]
        return matching[:limit]

    def record_metrics(
        self,
        stage: ProcessingStep,
        data_type: DataType,
        processed: int,
        failed: int,
        avg_duration_ms: float,
    ) -> None:
        self.store.metrics.append(
            Metric(
                stage=stage,
                data_type=data_type,
                items_processed=processed,
                items_failed=failed,
                avg_duration_ms=avg_duration_ms,
            )
        )

    def _fetch(self, stage: Stage, limit: int) -> list[PipelineItem]:
        items = sorted(
            self.store.stage(stage).values(),
            key=lambda item: item.created_at or datetime.min.replace(tzinfo=UTC),
        )
        return [copy.deepcopy(item) for item in items[:limit]]

    def _insert(self, stage: Stage, item: PipelineItem) -> uuid.UUID:
        new_id = uuid.uuid4()
        self.store.stage(stage)[new_id] = PipelineItem(
            id=new_id,
            data_type=item.data_type,
            stage=stage,
            data=copy.deepcopy(item.data),
            draft_id=item.lineage_id,
            created_at=_utcnow(),
        )
        return new_id


class InMemoryValidationRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    def check_duplicate_meaning(
        self,
        word: str,
        language: str,
        level: str,
        exclude_id: uuid.UUID,
    ) -> bool:
        if self._approved_match(DataType.MEANING, text=word, language=language, level=level):
            return True
        staged = (*self.store.drafts.values(), *self.store.candidates.values())
        return _staged_match(
            staged, DataType.MEANING, exclude_id, word=word, language=language, level=level
        )

    def check_duplicate_utterance(self, text: str, language: str, exclude_id: uuid.UUID) -> bool:
        if self._approved_match(DataType.UTTERANCE, text=text, language=language):
            return True
        return _staged_match(
            self.store.drafts.values(), DataType.UTTERANCE, exclude_id, text=text, language=language
        )

    def check_duplicate_rule(
        self,
        title: str,
        language: str,
        level: str,
        exclude_id: uuid.UUID,
    ) -> bool:
        if self._approved_match(DataType.RULE, topic=title, language=language, level=level):
            return True
        return _staged_match(
            self.store.drafts.values(),
            DataType.RULE,
            exclude_id,
            title=title,
            language=language,
            level=level,
        )

    def meaning_exists(self, meaning_id: str) -> bool:
        try:
            identifier = uuid.UUID(str(meaning_id))
        except ValueError:
            return False
        if identifier in self.store.approved[DataType.MEANING]:
            return True
        candidate = self.store.candidates.get(identifier)
        return candidate is not None and candidate.data_type is DataType.MEANING

    def _approved_match(self, data_type: DataType, **expected: str) -> bool:
        return any(
            all(row.get(key) == value for key, value in expected.items())
            for row in self.store.approved[data_type].values()
        )


def _staged_match(
    items: Iterable[PipelineItem],
    data_type: DataType,
    exclude_id: uuid.UUID,
    **expected: str,
) -> bool:
    return any(
        item.data_type is data_type
        and item.id != exclude_id
        and all(item.data.get(key) == value for key, value in expected.items())
        for item in items
    )


class InMemoryApprovalRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    def get_approved_count(self, data_type: DataType, language: str) -> int:
        return sum(
            1 for row in self.store.approved[data_type].values() if row.get("language") == language
        )

    def queue_for_review(self, item_id: uuid.UUID, data_type: DataType, priority: int) -> None:
        existing = self.store.reviews.get(item_id)
        if existing is None:
            self.store.reviews[item_id] = ReviewQueueEntry(
                item_id=item_id, data_type=data_type, priority=priority
            )
            return
        self.store.reviews[item_id] = replace(existing, data_type=data_type, priority=priority)

    def pending_reviews(self, limit: int = 50) -> Sequence[ReviewQueueEntry]:
        pending = [entry for entry in self.store.reviews.values() if entry.pending]
        pending.sort(key=lambda entry: (entry.priority, entry.queued_at))
        return pending[:limit]

    def get_review(self, item_id: uuid.UUID) -> ReviewQueueEntry | None:
        return self.store.reviews.get(item_id)

    def resolve_review(self, item_id: uuid.UUID, decision: ReviewDecision) -> None:
        existing = self.store.reviews.get(item_id)
        if existing is None:
            return
        self.store.reviews[item_id] = replace(
            existing, reviewed_at=_utcnow(), decision=decision
        )

    def record_approval(self, event: ApprovalEvent) -> None:
        self.store.approvals.append(event)


class InMemoryDuplicationRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    def find_exact_match(
        self, text: str, language: str, content_type: DataType
    ) -> uuid.UUID | None:
        column = HEADLINE_FIELDS[content_type]
        for approved_id, row in self.store.approved[content_type].items():
            if row.get(column) == text and row.get("language") == language:
                return approved_id
        return None

    def find_similar(
        self,
        text: str,
        language: str,
        content_type: DataType,
        threshold: float,
    ) -> list[SimilarMatch]:
        column = HEADLINE_FIELDS[content_type]
        matches = [
            SimilarMatch(id=approved_id, text=row[column], similarity=similarity(row[column], text))
            for approved_id, row in self.store.approved[content_type].items()
            if row.get("language") == language
        ]
        ranked = sorted(
            (match for match in matches if match.similarity >= threshold),
            key=lambda match: match.similarity,
            reverse=True,
        )
        return ranked[:MAX_SIMILAR_MATCHES]


class InMemoryPipelineEventRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    def get_task(self, lineage_id: uuid.UUID) -> PipelineTask | None:
        return self.store.tasks.get(lineage_id)

    def save_task(self, task: PipelineTask) -> None:
        self.store.tasks[task.lineage_id] = task

    def add_event(self, event: PipelineEvent) -> uuid.UUID:
        event_id = uuid.uuid4()
        self.store.events.append((event_id, event))
        return event_id

    def list_events(self, lineage_id: uuid.UUID) -> list[PipelineEvent]:
        return [event for _, event in self.store.events if event.lineage_id == lineage_id]

    def count_tasks(self, *, status: TaskStatus | None = None) -> int:
        return sum(
            1
            for task in self.store.tasks.values()
            if status is None or task.current_status is status
        )


if TYPE_CHECKING:
    from lexigate.domain.ports import (
        ApprovalRepository,
        DuplicationRepository,
        PipelineEventRepository,
        PipelineRepository,
        ValidationRepository,
    )

    from .store import InMemoryStore as _Store

    _store_stub = _Store()
    _pipeline_check: PipelineRepository = InMemoryPipelineRepository(_store_stub)
    _validation_check: ValidationRepository = InMemoryValidationRepository(_store_stub)
    _approval_check: ApprovalRepository = InMemoryApprovalRepository(_store_stub)
    _duplication_check: DuplicationRepository = InMemoryDuplicationRepository(_store_stub)
    _events_check: PipelineEventRepository = InMemoryPipelineEventRepository(_store_stub)
