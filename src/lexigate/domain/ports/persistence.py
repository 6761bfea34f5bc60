"""Ports for persisting pipeline items, audit records and review state."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from uuid import UUID

    from lexigate.domain.model import (
        ApprovalEvent,
        DataType,
        FailureRecord,
        PipelineEvent,
        PipelineItem,
        PipelineTask,
        ProcessingStep,
        ReviewDecision,
        ReviewQueueEntry,
        SimilarMatch,
        Stage,
        TaskStatus,
    )


@runtime_checkable
class PipelineRepository(Protocol):
    """Stage storage: fetch, move, copy and delete items plus failure/metric logs."""

    def fetch_drafts(self, limit: int) -> list[PipelineItem]: ...

    def fetch_candidates(self, limit: int) -> list[PipelineItem]: ...

    def fetch_validated(self, limit: int) -> list[PipelineItem]: ...

    def get_validated(self, item_id: UUID) -> PipelineItem | None: ...

    def add_draft(
        self,
        data_type: DataType,
        data: dict[str, Any],
        *,
        created_at: datetime | None = None,
    ) -> UUID:
        """Insert a new DRAFT row; the entry point used by ingestion."""
        ...

    def move_to_candidates(self, item: PipelineItem) -> UUID:
        """Insert a candidate row for the (normalized) draft ``item``; return its id."""
        ...

    def move_to_validated(self, item: PipelineItem) -> UUID:
        """Insert a validated row for candidate ``item``, keeping its draft lineage."""
        ...

    def copy_to_approved(self, item: PipelineItem) -> UUID:
        """Map ``item`` into its permanent table and return the permanent id."""
        ...

    def delete_draft(self, item_id: UUID) -> None: ...

    def delete_candidate(self, item_id: UUID) -> None: ...

    def delete_validated(self, item_id: UUID) -> None: ...

    def record_failure(
        self,
        item_id: UUID,
        data_type: DataType,
        stage: Stage,
        message: str,
    ) -> None: ...

    def get_normalization_failure_count(self, item_id: UUID) -> int: ...

    def list_failures(
        self,
        *,
        stage: Stage | None = None,
        limit: int = 50,
    ) -> Sequence[FailureRecord]: ...

    def record_metrics(
        self,
        stage: ProcessingStep,
        data_type: DataType,
        processed: int,
        failed: int,
        avg_duration_ms: float,
    ) -> None: ...


@runtime_checkable
class ValidationRepository(Protocol):
    """Duplicate and existence lookups used by the validation step."""

    def check_duplicate_meaning(
        self,
        word: str,
        language: str,
        level: str,
        exclude_id: UUID,
    ) -> bool:
        """Return whether (word, language, level) exists in draft, candidate or approved storage."""
        ...

    def check_duplicate_utterance(self, text: str, language: str, exclude_id: UUID) -> bool:
        """Return whether (text, language) exists in draft or approved storage."""
        ...

    def check_duplicate_rule(
        self,
        title: str,
        language: str,
        level: str,
        exclude_id: UUID,
    ) -> bool:
        """Return whether (title, language, level) exists in draft or approved storage."""
        ...

    def meaning_exists(self, meaning_id: str) -> bool:
        """Return whether ``meaning_id`` names an approved or candidate meaning."""
        ...


@runtime_checkable
class ApprovalRepository(Protocol):
    """Approval-count lookups plus the review queue and approval audit log."""

    def get_approved_count(self, data_type: DataType, language: str) -> int: ...

    def queue_for_review(self, item_id: UUID, data_type: DataType, priority: int) -> None:
        """Upsert the review-queue entry for ``item_id``; the latest priority wins."""
        ...

    def pending_reviews(self, limit: int = 50) -> Sequence[ReviewQueueEntry]:
        """Unreviewed entries ordered by priority, then queue time."""
        ...

    def get_review(self, item_id: UUID) -> ReviewQueueEntry | None: ...

    def resolve_review(self, item_id: UUID, decision: ReviewDecision) -> None: ...

    def record_approval(self, event: ApprovalEvent) -> None: ...


@runtime_checkable
class DuplicationRepository(Protocol):
    """Exact and fuzzy near-duplicate lookups against approved content."""

    def find_exact_match(self, text: str, language: str, content_type: DataType) -> UUID | None:
        ...

    def find_similar(
        self,
        text: str,
        language: str,
        content_type: DataType,
        threshold: float,
    ) -> list[SimilarMatch]:
        """Return matches at or above ``threshold``, most similar first."""
        ...


@runtime_checkable
class PipelineEventRepository(Protocol):
    """Append-only event log plus the lineage tracking rows it keeps current."""

    def get_task(self, lineage_id: UUID) -> PipelineTask | None: ...

    def save_task(self, task: PipelineTask) -> None:
        """Insert or replace the tracking row for ``task.lineage_id``."""
        ...

    def add_event(self, event: PipelineEvent) -> UUID: ...

    def list_events(self, lineage_id: UUID) -> list[PipelineEvent]:
        """Events for one lineage, oldest first."""
        ...

    def count_tasks(self, *, status: TaskStatus | None = None) -> int: ...
