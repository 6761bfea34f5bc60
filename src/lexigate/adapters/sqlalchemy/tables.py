"""SQLAlchemy Core tables for staging, permanent storage and pipeline audit logs."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
    Uuid,
)

from lexigate.domain.model import (
    ApprovalType,
    DataType,
    PipelineEventType,
    ProcessingStep,
    ReviewDecision,
    Stage,
    TaskStatus,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.engine import Engine

UUIDColumnType = Uuid[uuid.UUID]


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)


def _data_type_column() -> Column[DataType]:
    return Column("data_type", Enum(DataType, native_enum=False), nullable=False)


def _created_at_column() -> Column[datetime]:
    return Column("created_at", UTCDateTime(), nullable=False, default=_utcnow)


# Staging ---------------------------------------------------------------------

draft_table = Table(
    "draft",
    metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    _data_type_column(),
    Column("data", JSON, nullable=False),
    _created_at_column(),
)

candidate_table = Table(
    "candidate",
    metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("draft_id", UUIDColumnType, nullable=True, index=True),
    _data_type_column(),
    Column("data", JSON, nullable=False),
    _created_at_column(),
)

validated_table = Table(
    "validated",
    metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("draft_id", UUIDColumnType, nullable=True, index=True),
    Column("candidate_id", UUIDColumnType, nullable=True),
    _data_type_column(),
    Column("data", JSON, nullable=False),
    _created_at_column(),
)

STAGE_TABLES: Final[Mapping[Stage, Table]] = {
    Stage.DRAFT: draft_table,
    Stage.CANDIDATE: candidate_table,
    Stage.VALIDATED: validated_table,
}

# Permanent storage -----------------------------------------------------------

approved_meaning_table = Table(
    "approved_meaning",
    metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("text", String(100), nullable=False),
    Column("language", String(2), nullable=False),
    Column("level", String(2), nullable=False),
    Column("definition", Text, nullable=False),
    Column("part_of_speech", String, nullable=False, default="unknown"),
    Column("usage_notes", Text, nullable=True),
    _created_at_column(),
    Index("ix_approved_meaning_text_language_level", "text", "language", "level"),
)

approved_utterance_table = Table(
    "approved_utterance",
    metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("text", Text, nullable=False),
    Column("language", String(2), nullable=False),
    Column("meaning_id", String, nullable=False),
    Column("translation", Text, nullable=True),
    _created_at_column(),
    Index("ix_approved_utterance_text_language", "text", "language"),
)

approved_rule_table = Table(
    "approved_rule",
    metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("topic", String, nullable=False),
    Column("language", String(2), nullable=False),
    Column("level", String(2), nullable=False),
    Column("category", String, nullable=False, default="general"),
    Column("explanation", Text, nullable=False),
    Column("examples", JSON, nullable=False),
    _created_at_column(),
    Index("ix_approved_rule_topic_language_level", "topic", "language", "level"),
)

approved_exercise_table = Table(
    "approved_exercise",
    metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("question", Text, nullable=False),
    Column("language", String(2), nullable=False),
    Column("level", String(2), nullable=False),
    Column("exercise_type", String, nullable=False, default="multiple_choice"),
    Column("correct_answer", Integer, nullable=False),
    Column("alternatives", JSON, nullable=False),
    _created_at_column(),
)

APPROVED_TABLES: Final[Mapping[DataType, Table]] = {
    DataType.MEANING: approved_meaning_table,
    DataType.UTTERANCE: approved_utterance_table,
    DataType.RULE: approved_rule_table,
    DataType.EXERCISE: approved_exercise_table,
}

# Audit and operator tables ---------------------------------------------------

pipeline_failure_table = Table(
    "pipeline_failure",
    metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("item_id", UUIDColumnType, nullable=False, index=True),
    _data_type_column(),
    Column("stage", Enum(Stage, native_enum=False), nullable=False),
    Column("error_message", Text, nullable=False),
    Column("timestamp", UTCDateTime(), nullable=False, default=_utcnow),
)

pipeline_metric_table = Table(
    "pipeline_metric",
    metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("stage", Enum(ProcessingStep, native_enum=False), nullable=False),
    _data_type_column(),
    Column("items_processed", Integer, nullable=False),
    Column("items_failed", Integer, nullable=False),
    Column("avg_duration_ms", Float, nullable=False),
    Column("recorded_at", UTCDateTime(), nullable=False, default=_utcnow),
)

review_queue_table = Table(
    "review_queue",
    metadata,
    Column("item_id", UUIDColumnType, primary_key=True),
    _data_type_column(),
    Column("priority", Integer, nullable=False),
    Column("queued_at", UTCDateTime(), nullable=False, default=_utcnow),
    Column("reviewed_at", UTCDateTime(), nullable=True),
    Column("decision", Enum(ReviewDecision, native_enum=False), nullable=True),
)

approval_event_table = Table(
    "approval_event",
    metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("validated_id", UUIDColumnType, nullable=False),
    Column("approved_table", String, nullable=False),
    Column("approved_id", UUIDColumnType, nullable=False),
    Column("approval_type", Enum(ApprovalType, native_enum=False), nullable=False),
    Column("operator_id", String, nullable=True),
    Column("notes", Text, nullable=True),
    _created_at_column(),
)

pipeline_event_table = Table(
    "pipeline_event",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("id", UUIDColumnType, nullable=False, unique=True, default=uuid.uuid4),
    Column("lineage_id", UUIDColumnType, nullable=False, index=True),
    Column("item_id", UUIDColumnType, nullable=False),
    _data_type_column(),
    Column("event_type", Enum(PipelineEventType, native_enum=False), nullable=False),
    Column("stage", Enum(Stage, native_enum=False), nullable=False),
    Column("from_stage", Enum(Stage, native_enum=False), nullable=True),
    Column("to_stage", Enum(Stage, native_enum=False), nullable=True),
    Column("status", Enum(TaskStatus, native_enum=False), nullable=True),
    Column("success", Boolean, nullable=True),
    Column("error_message", Text, nullable=True),
    Column("duration_ms", Float, nullable=True),
    Column("payload", JSON, nullable=False),
    _created_at_column(),
)

pipeline_task_table = Table(
    "pipeline_task",
    metadata,
    Column("lineage_id", UUIDColumnType, primary_key=True),
    _data_type_column(),
    Column("current_stage", Enum(Stage, native_enum=False), nullable=False),
    Column("current_status", Enum(TaskStatus, native_enum=False), nullable=False),
    Column("retry_count", Integer, nullable=False, default=0),
    Column("error_message", Text, nullable=True),
    Column("updated_at", UTCDateTime(), nullable=False, default=_utcnow),
)


def create_all_tables(engine: Engine) -> None:
    metadata.create_all(engine)
