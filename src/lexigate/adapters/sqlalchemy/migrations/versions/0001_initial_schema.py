"""Initial pipeline schema.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-09-28 10:12:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

_DATA_TYPE = sa.Enum("MEANING", "UTTERANCE", "RULE", "EXERCISE", name="datatype", native_enum=False)
_STAGE = sa.Enum("DRAFT", "CANDIDATE", "VALIDATED", "APPROVED", name="stage", native_enum=False)
_STEP = sa.Enum(
    "NORMALIZATION", "VALIDATION", "APPROVAL", name="processingstep", native_enum=False
)
_TASK_STATUS = sa.Enum(
    "PENDING",
    "COMPLETED",
    "FAILED",
    "AWAITING_REVIEW",
    "DISCARDED",
    name="taskstatus",
    native_enum=False,
)
_EVENT_TYPE = sa.Enum(
    "STAGE_TRANSITION",
    "NORMALIZATION_FAILED",
    "VALIDATION_FAILED",
    "QUEUED_FOR_REVIEW",
    "DRAFT_DISCARDED",
    "PROCESSING_FAILED",
    "ITEM_APPROVED",
    "ITEM_REJECTED",
    name="pipelineeventtype",
    native_enum=False,
)


def _created_at() -> sa.Column[object]:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)


def upgrade() -> None:
    op.create_table(
        "draft",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("data_type", _DATA_TYPE, nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_draft")),
    )
    for name in ("candidate", "validated"):
        columns: list[sa.Column[object]] = [
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("draft_id", sa.Uuid(), nullable=True),
        ]
        if name == "validated":
            columns.append(sa.Column("candidate_id", sa.Uuid(), nullable=True))
        op.create_table(
            name,
            *columns,
            sa.Column("data_type", _DATA_TYPE, nullable=False),
            sa.Column("data", sa.JSON(), nullable=False),
            _created_at(),
            sa.PrimaryKeyConstraint("id", name=op.f(f"pk_{name}")),
        )
        op.create_index(op.f(f"ix_{name}_draft_id"), name, ["draft_id"])

    op.create_table(
        "approved_meaning",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("text", sa.String(length=100), nullable=False),
        sa.Column("language", sa.String(length=2), nullable=False),
        sa.Column("level", sa.String(length=2), nullable=False),
        sa.Column("definition", sa.Text(), nullable=False),
        sa.Column("part_of_speech", sa.String(), nullable=False),
        sa.Column("usage_notes", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_approved_meaning")),
    )
    op.create_index(
        "ix_approved_meaning_text_language_level",
        "approved_meaning",
        ["text", "language", "level"],
    )
    op.create_table(
        "approved_utterance",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("language", sa.String(length=2), nullable=False),
        sa.Column("meaning_id", sa.String(), nullable=False),
        sa.Column("translation", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_approved_utterance")),
    )
    op.create_index(
        "ix_approved_utterance_text_language", "approved_utterance", ["text", "language"]
    )
    op.create_table(
        "approved_rule",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("topic", sa.String(), nullable=False),
        sa.Column("language", sa.String(length=2), nullable=False),
        sa.Column("level", sa.String(length=2), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("explanation", sa.Text(), nullable=False),
        sa.Column("examples", sa.JSON(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_approved_rule")),
    )
    op.create_index(
        "ix_approved_rule_topic_language_level",
        "approved_rule",
        ["topic", "language", "level"],
    )
    op.create_table(
        "approved_exercise",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("language", sa.String(length=2), nullable=False),
        sa.Column("level", sa.String(length=2), nullable=False),
        sa.Column("exercise_type", sa.String(), nullable=False),
        sa.Column("correct_answer", sa.Integer(), nullable=False),
        sa.Column("alternatives", sa.JSON(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_approved_exercise")),
    )

    op.create_table(
        "pipeline_failure",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("item_id", sa.Uuid(), nullable=False),
        sa.Column("data_type", _DATA_TYPE, nullable=False),
        sa.Column("stage", _STAGE, nullable=False),
        sa.Column("error_message", sa.Text(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_pipeline_failure")),
    )
    op.create_index(op.f("ix_pipeline_failure_item_id"), "pipeline_failure", ["item_id"])
    op.create_table(
        "pipeline_metric",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("stage", _STEP, nullable=False),
        sa.Column("data_type", _DATA_TYPE, nullable=False),
        sa.Column("items_processed", sa.Integer(), nullable=False),
        sa.Column("items_failed", sa.Integer(), nullable=False),
        sa.Column("avg_duration_ms", sa.Float(), nullable=False),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_pipeline_metric")),
    )
    op.create_table(
        "review_queue",
        sa.Column("item_id", sa.Uuid(), nullable=False),
        sa.Column("data_type", _DATA_TYPE, nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("queued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "decision",
            sa.Enum("APPROVE", "REJECT", name="reviewdecision", native_enum=False),
            nullable=True,
        ),
        sa.PrimaryKeyConstraint("item_id", name=op.f("pk_review_queue")),
    )
    op.create_table(
        "approval_event",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("validated_id", sa.Uuid(), nullable=False),
        sa.Column("approved_table", sa.String(), nullable=False),
        sa.Column("approved_id", sa.Uuid(), nullable=False),
        sa.Column(
            "approval_type",
            sa.Enum("AUTOMATIC", "MANUAL", name="approvaltype", native_enum=False),
            nullable=False,
        ),
        sa.Column("operator_id", sa.String(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_approval_event")),
    )
    op.create_table(
        "pipeline_event",
        sa.Column("seq", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("lineage_id", sa.Uuid(), nullable=False),
        sa.Column("item_id", sa.Uuid(), nullable=False),
        sa.Column("data_type", _DATA_TYPE, nullable=False),
        sa.Column("event_type", _EVENT_TYPE, nullable=False),
        sa.Column("stage", _STAGE, nullable=False),
        sa.Column("from_stage", _STAGE, nullable=True),
        sa.Column("to_stage", _STAGE, nullable=True),
        sa.Column("status", _TASK_STATUS, nullable=True),
        sa.Column("success", sa.Boolean(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("duration_ms", sa.Float(), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("seq", name=op.f("pk_pipeline_event")),
        sa.UniqueConstraint("id", name=op.f("uq_pipeline_event_id")),
    )
    op.create_index(op.f("ix_pipeline_event_lineage_id"), "pipeline_event", ["lineage_id"])
    op.create_table(
        "pipeline_task",
        sa.Column("lineage_id", sa.Uuid(), nullable=False),
        sa.Column("data_type", _DATA_TYPE, nullable=False),
        sa.Column("current_stage", _STAGE, nullable=False),
        sa.Column("current_status", _TASK_STATUS, nullable=False),
        sa.Column("retry_count", sa.Integer(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("lineage_id", name=op.f("pk_pipeline_task")),
    )


def downgrade() -> None:
    for table in (
        "pipeline_task",
        "pipeline_event",
        "approval_event",
        "review_queue",
        "pipeline_metric",
        "pipeline_failure",
        "approved_exercise",
        "approved_rule",
        "approved_utterance",
        "approved_meaning",
        "validated",
        "candidate",
        "draft",
    ):
        op.drop_table(table)
