"""Pipeline items and per-step / per-item outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime
    from uuid import UUID

    from .enums import DataType, ProcessingStep, Stage


@dataclass(eq=False)
class PipelineItem:
    """A learning item as stored in one of the staging collections.

    ``id`` is the row id within the current stage's storage. ``draft_id`` is the
    lineage reference back to the originating draft; it is copied forward when the
    candidate row is created so later hops never have to re-derive it.
    """

    id: UUID
    data_type: DataType
    stage: Stage
    data: dict[str, Any] = field(default_factory=dict[str, Any])
    draft_id: UUID | None = None
    created_at: datetime | None = None

    @property
    def lineage_id(self) -> UUID:
        """Identifier that stays stable across stage moves."""

        return self.draft_id if self.draft_id is not None else self.id

    @property
    def language(self) -> str | None:
        value = self.data.get("language")
        return value if isinstance(value, str) else None


@dataclass(frozen=True, slots=True)
class StepResult:
    success: bool
    errors: tuple[str, ...] = ()

    @classmethod
    def ok(cls) -> StepResult:
        return cls(success=True)

    @classmethod
    def failed(cls, errors: str | Iterable[str]) -> StepResult:
        messages = (errors,) if isinstance(errors, str) else tuple(errors)
        return cls(success=False, errors=messages)


@dataclass(frozen=True, slots=True)
class StepMetrics:
    duration_ms: float
    stage: ProcessingStep


@dataclass(frozen=True, slots=True)
class PipelineResult:
    """Public per-item outcome of ``PipelineOrchestrator.process_item``."""

    item_id: UUID
    success: bool
    new_state: Stage
    metrics: StepMetrics
    errors: tuple[str, ...] = ()
    discarded: bool = False


@dataclass(slots=True)
class BatchReport:
    """Results of one ``process_batch`` (or ``process_stage``) call."""

    results: list[PipelineResult] = field(default_factory=list[PipelineResult])

    def extend(self, results: Iterable[PipelineResult]) -> None:
        self.results.extend(results)

    @property
    def processed(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def failed(self) -> int:
        return self.processed - self.succeeded

    @property
    def discarded(self) -> int:
        return sum(1 for result in self.results if result.discarded)
