"""In-memory unit of work with snapshot isolation."""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING, Literal

from lexigate.domain.ports import PipelineRepositories

from .repositories import (
    InMemoryApprovalRepository,
    InMemoryDuplicationRepository,
    InMemoryPipelineEventRepository,
    InMemoryPipelineRepository,
    InMemoryValidationRepository,
)
from .store import InMemoryStore

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType


class InMemoryUnitOfWorkError(RuntimeError):
    """Raised when repositories are used outside of an active unit of work."""


class InMemoryPipelineUnitOfWork:
    """Unit of work over a shared ``InMemoryStore``.

    Repositories operate on a private working copy taken on ``__enter__``;
    ``commit()`` publishes it to the shared store. Anything not committed when the
    block exits is discarded, matching a rolled-back database transaction.
    """

    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        self._working: InMemoryStore | None = None
        self._repositories: PipelineRepositories | None = None
        self.commits = 0
        self.rollbacks = 0

    def __enter__(self) -> InMemoryPipelineUnitOfWork:
        self._working = self.store.snapshot()
        self._repositories = PipelineRepositories(
            pipeline=InMemoryPipelineRepository(self._working),
            validation=InMemoryValidationRepository(self._working),
            approval=InMemoryApprovalRepository(self._working),
            duplication=InMemoryDuplicationRepository(self._working),
            events=InMemoryPipelineEventRepository(self._working),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self._working = None
        self._repositories = None
        return False

    @property
    def repositories(self) -> PipelineRepositories:
        if self._repositories is None:
            raise InMemoryUnitOfWorkError("Unit of work not entered")
        return self._repositories

    def commit(self) -> None:
        if self._working is None:
            raise InMemoryUnitOfWorkError("Unit of work not entered")
        self.store.restore(self._working)
        self.commits += 1

    def rollback(self) -> None:
        if self._working is not None:
            self._working.restore(self.store)
        self.rollbacks += 1


def unit_of_work_factory(store: InMemoryStore) -> Callable[[], InMemoryPipelineUnitOfWork]:
    """Return a factory producing units of work that share ``store``."""

    return partial(InMemoryPipelineUnitOfWork, store)


if TYPE_CHECKING:
    from lexigate.domain.ports import PipelineUnitOfWork

    _uow_check: PipelineUnitOfWork = InMemoryPipelineUnitOfWork(InMemoryStore())
