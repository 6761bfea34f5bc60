"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING, Any

from lexigate.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyPipelineUnitOfWork,
    is_started,
    startup,
)
from lexigate.config import get_pipeline_config
from lexigate.domain.model import BatchReport
from lexigate.domain.pipeline import PipelineOrchestrator, ReviewService
from lexigate.domain.ports import PipelineUnitOfWork

if TYPE_CHECKING:
    from collections.abc import Iterable
    from uuid import UUID

    from lexigate.config import PipelineConfig
    from lexigate.domain.model import DataType, Stage

UnitOfWorkFactory = Callable[[], PipelineUnitOfWork]


log = getLogger(__name__)


def _resolve_factory(unit_of_work_factory: UnitOfWorkFactory | None) -> UnitOfWorkFactory:
    if unit_of_work_factory is not None:
        return unit_of_work_factory
    if not is_started():
        startup()
    return SqlAlchemyPipelineUnitOfWork


def build_orchestrator(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: PipelineConfig | None = None,
    sampler: Callable[[], float] | None = None,
) -> PipelineOrchestrator:
    """Wire the orchestrator to the configured adapters and environment settings."""

    effective_config = config or get_pipeline_config()
    effective_uow = _resolve_factory(unit_of_work_factory)
    if sampler is None:
        return PipelineOrchestrator(effective_uow, effective_config)
    return PipelineOrchestrator(effective_uow, effective_config, sampler=sampler)


def build_review_service(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> ReviewService:
    return ReviewService(_resolve_factory(unit_of_work_factory))


def run_pipeline(
    *,
    stage: Stage | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: PipelineConfig | None = None,
) -> BatchReport:
    """Run one pipeline cycle, or a single stage when ``stage`` is given."""

    orchestrator = build_orchestrator(unit_of_work_factory=unit_of_work_factory, config=config)
    log.info(
        "Starting pipeline run: stage=%s, batch_size=%s, auto_approval=%s",
        stage or "all",
        orchestrator.config.batch_size,
        orchestrator.config.auto_approval,
    )
    if stage is None:
        return orchestrator.process_batch()
    return BatchReport(results=orchestrator.process_stage(stage))


def submit_drafts(
    drafts: Iterable[tuple[DataType, dict[str, Any]]],
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[UUID]:
    """Store ingested payloads as DRAFT items in one transaction."""

    effective_uow = _resolve_factory(unit_of_work_factory)
    with effective_uow() as uow:
        ids = [
            uow.repositories.pipeline.add_draft(data_type, data) for data_type, data in drafts
        ]
        uow.commit()
    log.info("Stored %d draft(s)", len(ids))
    return ids
