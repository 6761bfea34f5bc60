"""In-memory adapter: the pipeline ports over plain Python containers."""

from __future__ import annotations

from .repositories import (
    InMemoryApprovalRepository,
    InMemoryDuplicationRepository,
    InMemoryPipelineEventRepository,
    InMemoryPipelineRepository,
    InMemoryValidationRepository,
)
from .store import InMemoryStore
from .unit_of_work import InMemoryPipelineUnitOfWork, InMemoryUnitOfWorkError, unit_of_work_factory

__all__ = [
    "InMemoryApprovalRepository",
    "InMemoryDuplicationRepository",
    "InMemoryPipelineEventRepository",
    "InMemoryPipelineRepository",
    "InMemoryPipelineUnitOfWork",
    "InMemoryStore",
    "InMemoryUnitOfWorkError",
    "InMemoryValidationRepository",
    "unit_of_work_factory",
]
