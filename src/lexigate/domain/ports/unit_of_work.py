"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from lexigate.domain.ports.persistence import (
        ApprovalRepository,
        DuplicationRepository,
        PipelineEventRepository,
        PipelineRepository,
        ValidationRepository,
    )


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Generic unit-of-work boundary around a repository collection."""

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class PipelineRepositories(RepositoryCollection):
    """Repositories shared by one pipeline transaction.

    Everything written through one collection becomes visible together on
    ``commit()``; a stage move, its audit event and its metric are never split.
    """

    pipeline: PipelineRepository
    validation: ValidationRepository
    approval: ApprovalRepository
    duplication: DuplicationRepository
    events: PipelineEventRepository


type PipelineUnitOfWork = UnitOfWork[PipelineRepositories]
