"""Moving a validated item into permanent storage."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Final

from lexigate.domain.model import (
    ApprovalEvent,
    ApprovalType,
    DataType,
    ExercisePayload,
    MeaningPayload,
    ReviewDecision,
    RulePayload,
    UtterancePayload,
)

if TYPE_CHECKING:
    from collections.abc import Mapping
    from uuid import UUID

    from lexigate.domain.model import ContentPayload, PipelineItem
    from lexigate.domain.ports import PipelineRepositories

HEADLINE_FIELDS: Final[Mapping[DataType, str]] = {
    DataType.MEANING: "text",
    DataType.UTTERANCE: "text",
    DataType.RULE: "topic",
    DataType.EXERCISE: "question",
}
"""Column of each approved table that duplicate lookups compare against."""

DEFAULT_PART_OF_SPEECH: Final[str] = "unknown"
DEFAULT_RULE_CATEGORY: Final[str] = "general"
DEFAULT_EXERCISE_TYPE: Final[str] = "multiple_choice"


def approved_table_name(data_type: DataType) -> str:
    return f"approved_{data_type}"


def approved_record(payload: ContentPayload) -> dict[str, Any]:
    """Map a typed payload onto the columns of its permanent table."""

    match payload:
        case MeaningPayload():
            return {
                "text": payload.word,
                "language": payload.language,
                "level": payload.level,
                "definition": payload.definition,
                "part_of_speech": payload.part_of_speech or DEFAULT_PART_OF_SPEECH,
                "usage_notes": payload.usage_notes,
            }
        case UtterancePayload():
            return {
                "text": payload.text,
                "language": payload.language,
                "meaning_id": payload.meaning_id,
                "translation": payload.translation,
            }
        case RulePayload():
            return {
                "topic": payload.title,
                "language": payload.language,
                "level": payload.level,
                "category": payload.category or DEFAULT_RULE_CATEGORY,
                "explanation": payload.explanation,
                "examples": payload.examples,
            }
        case ExercisePayload():
            return {
                "question": payload.prompt,
                "language": payload.language,
                "level": payload.level,
                "exercise_type": payload.exercise_type or DEFAULT_EXERCISE_TYPE,
                "correct_answer": payload.correct_index,
                "alternatives": payload.options,
            }
        case _:
            raise TypeError(f"Unsupported payload type: {type(payload).__name__}")


def promote_validated(
    repositories: PipelineRepositories,
    item: PipelineItem,
    *,
    approval_type: ApprovalType = ApprovalType.AUTOMATIC,
    operator_id: str | None = None,
    notes: str | None = None,
) -> UUID:
    """Copy ``item`` to its approved table, audit the approval and drop the staging row.

    A pending review-queue entry for the item is closed with an ``approve`` decision.
    The caller owns the transaction.
    """

    approved_id = repositories.pipeline.copy_to_approved(item)
    repositories.approval.record_approval(
        ApprovalEvent(
            validated_id=item.id,
            approved_table=approved_table_name(item.data_type),
            approved_id=approved_id,
            approval_type=approval_type,
            operator_id=operator_id,
            notes=notes,
        )
    )
    review = repositories.approval.get_review(item.id)
    if review is not None and review.pending:
        repositories.approval.resolve_review(item.id, ReviewDecision.APPROVE)
    repositories.pipeline.delete_validated(item.id)
    return approved_id
