"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class DataType(StrEnum):
    """Kind of learning content carried by a pipeline item."""

    MEANING = "meaning"
    UTTERANCE = "utterance"
    RULE = "rule"
    EXERCISE = "exercise"


class Stage(StrEnum):
    """Pipeline stages, in increasing order of trust."""

    DRAFT = "DRAFT"
    CANDIDATE = "CANDIDATE"
    VALIDATED = "VALIDATED"
    APPROVED = "APPROVED"


class ProcessingStep(StrEnum):
    """Step guarding the transition out of a stage."""

    NORMALIZATION = "normalization"
    VALIDATION = "validation"
    APPROVAL = "approval"


class ApprovalType(StrEnum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"


class ReviewDecision(StrEnum):
    APPROVE = "approve"
    REJECT = "reject"


class TaskStatus(StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    AWAITING_REVIEW = "awaiting_review"
    DISCARDED = "discarded"


class PipelineEventType(StrEnum):
    STAGE_TRANSITION = "stage_transition"
    NORMALIZATION_FAILED = "normalization_failed"
    VALIDATION_FAILED = "validation_failed"
    QUEUED_FOR_REVIEW = "queued_for_review"
    DRAFT_DISCARDED = "draft_discarded"
    PROCESSING_FAILED = "processing_failed"
    ITEM_APPROVED = "item_approved"
    ITEM_REJECTED = "item_rejected"
