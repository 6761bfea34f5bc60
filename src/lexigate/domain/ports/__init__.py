"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import (
    ApprovalRepository,
    DuplicationRepository,
    PipelineEventRepository,
    PipelineRepository,
    ValidationRepository,
)
from .unit_of_work import (
    PipelineRepositories,
    PipelineUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "ApprovalRepository",
    "DuplicationRepository",
    "PipelineEventRepository",
    "PipelineRepositories",
    "PipelineRepository",
    "PipelineUnitOfWork",
    "RepositoryCollection",
    "UnitOfWork",
    "ValidationRepository",
]
