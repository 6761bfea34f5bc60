"""SQLAlchemy adapter package for lexigate."""

from __future__ import annotations

from .repositories import (
    SqlAlchemyApprovalRepository,
    SqlAlchemyDuplicationRepository,
    SqlAlchemyPipelineEventRepository,
    SqlAlchemyPipelineRepository,
    SqlAlchemyValidationRepository,
)
from .tables import create_all_tables, metadata
from .unit_of_work import (
    SqlAlchemyPipelineUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyApprovalRepository",
    "SqlAlchemyDuplicationRepository",
    "SqlAlchemyPipelineEventRepository",
    "SqlAlchemyPipelineRepository",
    "SqlAlchemyPipelineUnitOfWork",
    "SqlAlchemyValidationRepository",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "metadata",
    "shutdown",
    "startup",
]
