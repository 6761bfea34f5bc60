"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import delete, func, insert, select, update

from lexigate.adapters.sqlalchemy.tables import (
    APPROVED_TABLES,
    STAGE_TABLES,
    approval_event_table,
    approved_meaning_table,
    approved_rule_table,
    approved_utterance_table,
    candidate_table,
    draft_table,
    pipeline_event_table,
    pipeline_failure_table,
    pipeline_metric_table,
    pipeline_task_table,
    review_queue_table,
    validated_table,
)
from lexigate.domain.model import (
    DataType,
    FailureRecord,
    PipelineEvent,
    PipelineItem,
    PipelineTask,
    ReviewQueueEntry,
    SimilarMatch,
    Stage,
    parse_payload,
)
from lexigate.domain.pipeline.promotion import HEADLINE_FIELDS, approved_record
from lexigate.domain.pipeline.similarity import similarity

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy import ColumnElement, Row, Table
    from sqlalchemy.orm import Session

    from lexigate.domain.model import (
        ApprovalEvent,
        ProcessingStep,
        ReviewDecision,
        TaskStatus,
    )

MAX_SIMILAR_MATCHES = 5


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _row_to_item(row: Row[Any], stage: Stage) -> PipelineItem:
    mapping = row._mapping  # noqa: SLF001
    return PipelineItem(
        id=mapping["id"],
        data_type=mapping["data_type"],
        stage=stage,
        data=dict(cast("dict[str, Any]", mapping["data"])),
        draft_id=mapping.get("draft_id"),
        created_at=mapping["created_at"],
    )


def _json_text(table: Table, key: str) -> ColumnElement[str]:
    return table.c.data[key].as_string()


class SqlAlchemyPipelineRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def fetch_drafts(self, limit: int) -> list[PipelineItem]:
        return self._fetch(Stage.DRAFT, limit)

    def fetch_candidates(self, limit: int) -> list[PipelineItem]:
        return self._fetch(Stage.CANDIDATE, limit)

    def fetch_validated(self, limit: int) -> list[PipelineItem]:
        return self._fetch(Stage.VALIDATED, limit)

    def get_validated(self, item_id: uuid.UUID) -> PipelineItem | None:
        stmt = select(validated_table).where(validated_table.c.id == item_id)
        row = self.session.execute(stmt).one_or_none()
        return None if row is None else _row_to_item(row, Stage.VALIDATED)

    def add_draft(
        self,
        data_type: DataType,
        data: dict[str, Any],
        *,
        created_at: datetime | None = None,
    ) -> uuid.UUID:
        """Insert a new DRAFT row; ingestion's entry point into the pipeline."""

        draft_id = uuid.uuid4()
        self.session.execute(
            insert(draft_table).values(
                id=draft_id,
                data_type=data_type,
                data=data,
                created_at=created_at or _utcnow(),
            )
        )
        return draft_id

    def move_to_candidates(self, item: PipelineItem) -> uuid.UUID:
        candidate_id = uuid.uuid4()
        self.session.execute(
            insert(candidate_table).values(
                id=candidate_id,
                draft_id=item.lineage_id,
                data_type=item.data_type,
                data=item.data,
                created_at=_utcnow(),
            )
        )
        return candidate_id

    def move_to_validated(self, item: PipelineItem) -> uuid.UUID:
        validated_id = uuid.uuid4()
        self.session.execute(
            insert(validated_table).values(
                id=validated_id,
                draft_id=item.lineage_id,
                candidate_id=item.id,
                data_type=item.data_type,
                data=item.data,
                created_at=_utcnow(),
            )
        )
        return validated_id

    def copy_to_approved(self, item: PipelineItem) -> uuid.UUID:
        payload = parse_payload(item.data_type, item.data)
        approved_id = uuid.uuid4()
        table = APPROVED_TABLES[item.data_type]
        values = approved_record(payload)
        self.session.execute(
            insert(table).values(id=approved_id, created_at=_utcnow(), **values)
        )
        return approved_id

    def delete_draft(self, item_id: uuid.UUID) -> None:
        self.session.execute(delete(draft_table).where(draft_table.c.id == item_id))

    def delete_candidate(self, item_id: uuid.UUID) -> None:
        self.session.execute(delete(candidate_table).where(candidate_table.c.id == item_id))

    def delete_validated(self, item_id: uuid.UUID) -> None:
        self.session.execute(delete(validated_table).where(validated_table.c.id == item_id))

    def record_failure(
        self,
        item_id: uuid.UUID,
        data_type: DataType,
        stage: Stage,
        message: str,
    ) -> None:
        self.session.execute(
            insert(pipeline_failure_table).values(
                id=uuid.uuid4(),
                item_id=item_id,
                data_type=data_type,
                stage=stage,
                error_message=message,
                timestamp=_utcnow(),
            )
        )

    def get_normalization_failure_count(self, item_id: uuid.UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(pipeline_failure_table)
            .where(pipeline_failure_table.c.item_id == item_id)
            .where(pipeline_failure_table.c.stage == Stage.DRAFT)
        )
        return int(self.session.execute(stmt).scalar_one())

    def list_failures(
        self,
        *,
        stage: Stage | None = None,
        limit: int = 50,
    ) -> Sequence[FailureRecord]:
        stmt = select(pipeline_failure_table).order_by(
            pipeline_failure_table.c.timestamp.desc()
        )
        if stage is not None:
            stmt = stmt.where(pipeline_failure_table.c.stage == stage)
        rows = self.session.execute(stmt.limit(limit)).mappings()
        return [
            FailureRecord(
                item_id=row["item_id"],
                data_type=row["data_type"],
                stage=row["stage"],
                error_message=row["error_message"],
                timestamp=row["timestamp"],
            )
            for row in rows
        ]

    def record_metrics(
        self,
        stage: ProcessingStep,
        data_type: DataType,
        processed: int,
        failed: int,
        avg_duration_ms: float,
    ) -> None:
        self.session.execute(
            insert(pipeline_metric_table).values(
                id=uuid.uuid4(),
                stage=stage,
                data_type=data_type,
                items_processed=processed,
                items_failed=failed,
                avg_duration_ms=avg_duration_ms,
                recorded_at=_utcnow(),
            )
        )

    def _fetch(self, stage: Stage, limit: int) -> list[PipelineItem]:
        table = STAGE_TABLES[stage]
        stmt = select(table).order_by(table.c.created_at.asc()).limit(limit)
        return [_row_to_item(row, stage) for row in self.session.execute(stmt)]


class SqlAlchemyValidationRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def check_duplicate_meaning(
        self,
        word: str,
        language: str,
        level: str,
        exclude_id: uuid.UUID,
    ) -> bool:
        approved = (
            select(approved_meaning_table.c.id)
            .where(approved_meaning_table.c.text == word)
            .where(approved_meaning_table.c.language == language)
            .where(approved_meaning_table.c.level == level)
        )
        if self._exists(approved):
            return True
        return any(
            self._exists(
                self._staged(table, DataType.MEANING, exclude_id)
                .where(_json_text(table, "word") == word)
                .where(_json_text(table, "language") == language)
                .where(_json_text(table, "level") == level)
            )
            for table in (draft_table, candidate_table)
        )

    def check_duplicate_utterance(
        self, text: str, language: str, exclude_id: uuid.UUID
    ) -> bool:
        approved = (
            select(approved_utterance_table.c.id)
            .where(approved_utterance_table.c.text == text)
            .where(approved_utterance_table.c.language == language)
        )
        if self._exists(approved):
            return True
        return self._exists(
            self._staged(draft_table, DataType.UTTERANCE, exclude_id)
            .where(_json_text(draft_table, "text") == text)
            .where(_json_text(draft_table, "language") == language)
        )

    def check_duplicate_rule(
        self,
        title: str,
        language: str,
        level: str,
        exclude_id: uuid.UUID,
    ) -> bool:
        approved = (
            select(approved_rule_table.c.id)
            .where(approved_rule_table.c.topic == title)
            .where(approved_rule_table.c.language == language)
            .where(approved_rule_table.c.level == level)
        )
        if self._exists(approved):
            return True
        return self._exists(
            self._staged(draft_table, DataType.RULE, exclude_id)
            .where(_json_text(draft_table, "title") == title)
            .where(_json_text(draft_table, "language") == language)
            .where(_json_text(draft_table, "level") == level)
        )

    def meaning_exists(self, meaning_id: str) -> bool:
        try:
            identifier = uuid.UUID(str(meaning_id))
        except ValueError:
            return False
        approved = select(approved_meaning_table.c.id).where(
            approved_meaning_table.c.id == identifier
        )
        candidate = (
            select(candidate_table.c.id)
            .where(candidate_table.c.id == identifier)
            .where(candidate_table.c.data_type == DataType.MEANING)
        )
        return self._exists(approved) or self._exists(candidate)

    @staticmethod
    def _staged(table: Table, data_type: DataType, exclude_id: uuid.UUID) -> Any:
        return (
            select(table.c.id)
            .where(table.c.data_type == data_type)
            .where(table.c.id != exclude_id)
        )

    def _exists(self, stmt: Any) -> bool:
        return self.session.execute(stmt.limit(1)).first() is not None


class SqlAlchemyApprovalRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get_approved_count(self, data_type: DataType, language: str) -> int:
        table = APPROVED_TABLES[data_type]
        stmt = select(func.count()).select_from(table).where(table.c.language == language)
        return int(self.session.execute(stmt).scalar_one())

    def queue_for_review(self, item_id: uuid.UUID, data_type: DataType, priority: int) -> None:
        existing = self.session.execute(
            select(review_queue_table.c.item_id).where(review_queue_table.c.item_id == item_id)
        ).first()
        if existing is None:
            self.session.execute(
                insert(review_queue_table).values(
                    item_id=item_id,
                    data_type=data_type,
                    priority=priority,
                    queued_at=_utcnow(),
                )
            )
            return
        self.session.execute(
            update(review_queue_table)
            .where(review_queue_table.c.item_id == item_id)
            .values(priority=priority, data_type=data_type)
        )

    def pending_reviews(self, limit: int = 50) -> Sequence[ReviewQueueEntry]:
        stmt = (
            select(review_queue_table)
            .where(review_queue_table.c.reviewed_at.is_(None))
            .order_by(review_queue_table.c.priority.asc(), review_queue_table.c.queued_at.asc())
            .limit(limit)
        )
        return [_row_to_review(row) for row in self.session.execute(stmt).mappings()]

    def get_review(self, item_id: uuid.UUID) -> ReviewQueueEntry | None:
        stmt = select(review_queue_table).where(review_queue_table.c.item_id == item_id)
        row = self.session.execute(stmt).mappings().one_or_none()
        return None if row is None else _row_to_review(row)

    def resolve_review(self, item_id: uuid.UUID, decision: ReviewDecision) -> None:
        self.session.execute(
            update(review_queue_table)
            .where(review_queue_table.c.item_id == item_id)
            .values(reviewed_at=_utcnow(), decision=decision)
        )

    def record_approval(self, event: ApprovalEvent) -> None:
        self.session.execute(
            insert(approval_event_table).values(
                id=uuid.uuid4(),
                validated_id=event.validated_id,
                approved_table=event.approved_table,
                approved_id=event.approved_id,
                approval_type=event.approval_type,
                operator_id=event.operator_id,
                notes=event.notes,
                created_at=event.created_at,
            )
        )


def _row_to_review(row: Any) -> ReviewQueueEntry:
    return ReviewQueueEntry(
        item_id=row["item_id"],
        data_type=row["data_type"],
        priority=row["priority"],
        queued_at=row["queued_at"],
        reviewed_at=row["reviewed_at"],
        decision=row["decision"],
    )


class SqlAlchemyDuplicationRepository:
    """Exact and trigram lookups against approved content.

    Similarity is computed in Python over the candidate rows for the language,
    so the lookup behaves the same on SQLite and PostgreSQL.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def find_exact_match(
        self, text: str, language: str, content_type: DataType
    ) -> uuid.UUID | None:
        table, column = _headline_column(content_type)
        stmt = (
            select(table.c.id)
            .where(column == text)
            .where(table.c.language == language)
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def find_similar(
        self,
        text: str,
        language: str,
        content_type: DataType,
        threshold: float,
    ) -> list[SimilarMatch]:
        table, column = _headline_column(content_type)
        stmt = select(table.c.id, column).where(table.c.language == language)
        matches = [
            SimilarMatch(id=row_id, text=candidate, similarity=similarity(candidate, text))
            for row_id, candidate in self.session.execute(stmt)
        ]
        ranked = sorted(
            (match for match in matches if match.similarity >= threshold),
            key=lambda match: match.similarity,
            reverse=True,
        )
        return ranked[:MAX_SIMILAR_MATCHES]


def _headline_column(content_type: DataType) -> tuple[Table, ColumnElement[Any]]:
    table = APPROVED_TABLES[content_type]
    return table, table.c[HEADLINE_FIELDS[content_type]]


class SqlAlchemyPipelineEventRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get_task(self, lineage_id: uuid.UUID) -> PipelineTask | None:
        stmt = select(pipeline_task_table).where(pipeline_task_table.c.lineage_id == lineage_id)
        row = self.session.execute(stmt).mappings().one_or_none()
        if row is None:
            return None
        return PipelineTask(
            lineage_id=row["lineage_id"],
            data_type=row["data_type"],
            current_stage=row["current_stage"],
            current_status=row["current_status"],
            retry_count=row["retry_count"],
            error_message=row["error_message"],
            updated_at=row["updated_at"],
        )

    def save_task(self, task: PipelineTask) -> None:
        values = {
            "data_type": task.data_type,
            "current_stage": task.current_stage,
            "current_status": task.current_status,
            "retry_count": task.retry_count,
            "error_message": task.error_message,
            "updated_at": task.updated_at,
        }
        if self.get_task(task.lineage_id) is None:
            self.session.execute(
                insert(pipeline_task_table).values(lineage_id=task.lineage_id, **values)
            )
            return
        self.session.execute(
            update(pipeline_task_table)
            .where(pipeline_task_table.c.lineage_id == task.lineage_id)
            .values(**values)
        )

    def add_event(self, event: PipelineEvent) -> uuid.UUID:
        event_id = uuid.uuid4()
        self.session.execute(
            insert(pipeline_event_table).values(
                id=event_id,
                lineage_id=event.lineage_id,
                item_id=event.item_id,
                data_type=event.data_type,
                event_type=event.event_type,
                stage=event.stage,
                from_stage=event.from_stage,
                to_stage=event.to_stage,
                status=event.status,
                success=event.success,
                error_message=event.error_message,
                duration_ms=event.duration_ms,
                payload=event.payload,
                created_at=event.created_at,
            )
        )
        return event_id

    def list_events(self, lineage_id: uuid.UUID) -> list[PipelineEvent]:
        stmt = (
            select(pipeline_event_table)
            .where(pipeline_event_table.c.lineage_id == lineage_id)
            .order_by(pipeline_event_table.c.seq.asc())
        )
        return [
            PipelineEvent(
                lineage_id=row["lineage_id"],
                item_id=row["item_id"],
                data_type=row["data_type"],
                event_type=row["event_type"],
                stage=row["stage"],
                from_stage=row["from_stage"],
                to_stage=row["to_stage"],
                status=row["status"],
                success=row["success"],
                error_message=row["error_message"],
                duration_ms=row["duration_ms"],
                payload=dict(row["payload"] or {}),
                created_at=row["created_at"],
            )
            for row in self.session.execute(stmt).mappings()
        ]

    def count_tasks(self, *, status: TaskStatus | None = None) -> int:
        stmt = select(func.count()).select_from(pipeline_task_table)
        if status is not None:
            stmt = stmt.where(pipeline_task_table.c.current_status == status)
        return int(self.session.execute(stmt).scalar_one())


if TYPE_CHECKING:
    from lexigate.domain.ports import (
        ApprovalRepository,
        DuplicationRepository,
        PipelineEventRepository,
        PipelineRepository,
        ValidationRepository,
    )

    _session_stub = cast("Session", object())
    _pipeline_check: PipelineRepository = SqlAlchemyPipelineRepository(_session_stub)
    _validation_check: ValidationRepository = SqlAlchemyValidationRepository(_session_stub)
    _approval_check: ApprovalRepository = SqlAlchemyApprovalRepository(_session_stub)
    _duplication_check: DuplicationRepository = SqlAlchemyDuplicationRepository(_session_stub)
    _events_check: PipelineEventRepository = SqlAlchemyPipelineEventRepository(_session_stub)
