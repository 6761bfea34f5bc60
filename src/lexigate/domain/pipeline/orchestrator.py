"""Batch driver for the DRAFT -> CANDIDATE -> VALIDATED -> APPROVED pipeline.

Each ``process_item`` attempt runs in its own unit of work: the stage move, its audit
event, the lineage update and the metric are committed together or not at all.
Exceptions raised by storage are retried with exponential backoff and, once the
attempts are exhausted, turned into a ``FailureRecord`` instead of propagating.
"""

from __future__ import annotations

import logging
import random
import time
from typing import TYPE_CHECKING

from lexigate.config.pipeline import PipelineConfig
from lexigate.domain.model import (
    PROCESSING_ORDER,
    BatchReport,
    PipelineEventType,
    PipelineResult,
    ProcessingStep,
    Stage,
    StepMetrics,
    TaskStatus,
    transition_from,
)

from .approval import MANUAL_REVIEW_MESSAGE, ApprovalStep
from .events import PipelineEventLogger
from .normalization import NormalizationStep
from .promotion import promote_validated
from .validation import ValidationStep

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from lexigate.domain.model import PipelineItem, Transition
    from lexigate.domain.ports import PipelineRepositories, PipelineUnitOfWork

    type StageHandler = Callable[[PipelineRepositories, PipelineItem, float], PipelineResult]

log = logging.getLogger(__name__)


class PipelineOrchestrator:
    """Runs pipeline items through the step guarding their current stage."""

    def __init__(
        self,
        unit_of_work_factory: Callable[[], PipelineUnitOfWork],
        config: PipelineConfig | None = None,
        *,
        sampler: Callable[[], float] = random.random,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._unit_of_work_factory = unit_of_work_factory
        self._config = config or PipelineConfig()
        self._sampler = sampler
        self._sleep = sleep
        self._clock = clock
        self._normalization = NormalizationStep()
        self._handlers: Mapping[Stage, StageHandler] = {
            Stage.DRAFT: self._handle_draft,
            Stage.CANDIDATE: self._handle_candidate,
            Stage.VALIDATED: self._handle_validated,
        }

    @property
    def config(self) -> PipelineConfig:
        return self._config

    def process_batch(self) -> BatchReport:
        """Process one batch per stage, DRAFT first.

        VALIDATED items are only picked up when auto-approval is enabled; otherwise
        they wait for an operator (or an explicit ``process_stage`` call).
        """

        report = BatchReport()
        for stage in PROCESSING_ORDER:
            if stage is Stage.VALIDATED and not self._config.auto_approval:
                continue
            report.extend(self.process_stage(stage))
        log.info(
            "Batch finished: processed=%d, succeeded=%d, failed=%d, discarded=%d",
            report.processed,
            report.succeeded,
            report.failed,
            report.discarded,
        )
        return report

    def process_stage(self, stage: Stage) -> list[PipelineResult]:
        transition_from(stage)
        items = self._fetch(stage)
        log.info("Processing %d %s item(s)", len(items), stage)
        return [self.process_item(item) for item in items]

    def process_item(self, item: PipelineItem) -> PipelineResult:
        transition = transition_from(item.stage)
        handler = self._handlers[item.stage]
        attempts = self._config.retry_attempts
        last_error: Exception | None = None
        started = self._clock()

        for attempt in range(1, attempts + 1):
            started = self._clock()
            try:
                with self._unit_of_work_factory() as uow:
                    result = handler(uow.repositories, item, started)
                    uow.commit()
            except Exception as exc:  # noqa: BLE001
                last_error = exc
                log.warning(
                    "Attempt %d/%d for %s %s failed: %s",
                    attempt,
                    attempts,
                    item.data_type,
                    item.id,
                    exc,
                )
                if attempt < attempts:
                    self._sleep(2**attempt)
                continue
            return result

        return self._give_up(item, transition, last_error, started)

    def _fetch(self, stage: Stage) -> list[PipelineItem]:
        limit = self._config.batch_size
        with self._unit_of_work_factory() as uow:
            repository = uow.repositories.pipeline
            match stage:
                case Stage.DRAFT:
                    return repository.fetch_drafts(limit)
                case Stage.CANDIDATE:
                    return repository.fetch_candidates(limit)
                case _:
                    return repository.fetch_validated(limit)

    def _handle_draft(
        self, repositories: PipelineRepositories, item: PipelineItem, started: float
    ) -> PipelineResult:
        pipeline = repositories.pipeline
        events = PipelineEventLogger(repositories.events)
        outcome = self._normalization.normalize(item)
        metrics = self._metrics(ProcessingStep.NORMALIZATION, started)

        if not outcome.success:
            previous = pipeline.get_normalization_failure_count(item.id)
            message = "; ".join(outcome.errors)
            pipeline.record_failure(item.id, item.data_type, Stage.DRAFT, message)
            discarded = previous >= self._config.max_normalization_failures
            if discarded:
                pipeline.delete_draft(item.id)
                log.warning(
                    "Deleted draft %s after %d normalization failures: %s",
                    item.id,
                    previous + 1,
                    message,
                )
                events.log_failure(
                    item,
                    PipelineEventType.DRAFT_DISCARDED,
                    outcome.errors,
                    status=TaskStatus.DISCARDED,
                    duration_ms=metrics.duration_ms,
                )
            else:
                events.log_failure(
                    item,
                    PipelineEventType.NORMALIZATION_FAILED,
                    outcome.errors,
                    duration_ms=metrics.duration_ms,
                )
            self._record_metric(repositories, item, metrics, failed=True)
            return PipelineResult(
                item_id=item.id,
                success=False,
                new_state=Stage.DRAFT,
                metrics=metrics,
                errors=outcome.errors,
                discarded=discarded,
            )

        candidate_id = pipeline.move_to_candidates(item)
        pipeline.delete_draft(item.id)
        events.log_transition(
            item, Stage.CANDIDATE, new_item_id=candidate_id, duration_ms=metrics.duration_ms
        )
        self._record_metric(repositories, item, metrics, failed=False)
        log.info("Draft %s normalized into candidate %s", item.id, candidate_id)
        return PipelineResult(
            item_id=item.id, success=True, new_state=Stage.CANDIDATE, metrics=metrics
        )

    def _handle_candidate(
        self, repositories: PipelineRepositories, item: PipelineItem, started: float
    ) -> PipelineResult:
        pipeline = repositories.pipeline
        events = PipelineEventLogger(repositories.events)
        outcome = ValidationStep(repositories.validation).validate(item)
        metrics = self._metrics(ProcessingStep.VALIDATION, started)

        if not outcome.success:
            events.log_failure(
                item,
                PipelineEventType.VALIDATION_FAILED,
                outcome.errors,
                duration_ms=metrics.duration_ms,
            )
            self._record_metric(repositories, item, metrics, failed=True)
            log.info("Candidate %s failed validation: %s", item.id, "; ".join(outcome.errors))
            return PipelineResult(
                item_id=item.id,
                success=False,
                new_state=Stage.CANDIDATE,
                metrics=metrics,
                errors=outcome.errors,
            )

        validated_id = pipeline.move_to_validated(item)
        pipeline.delete_candidate(item.id)
        events.log_transition(
            item, Stage.VALIDATED, new_item_id=validated_id, duration_ms=metrics.duration_ms
        )
        self._record_metric(repositories, item, metrics, failed=False)
        log.info("Candidate %s validated as %s", item.id, validated_id)
        return PipelineResult(
            item_id=item.id, success=True, new_state=Stage.VALIDATED, metrics=metrics
        )

    def _handle_validated(
        self, repositories: PipelineRepositories, item: PipelineItem, started: float
    ) -> PipelineResult:
        events = PipelineEventLogger(repositories.events)
        step = ApprovalStep(
            repositories.approval,
            auto_approval_enabled=self._config.auto_approval,
            sampler=self._sampler,
            sample_rate=self._config.review_sample_rate,
        )
        outcome = step.approve(item)
        metrics = self._metrics(ProcessingStep.APPROVAL, started)

        if not outcome.success:
            queued = MANUAL_REVIEW_MESSAGE in outcome.errors
            event_type = (
                PipelineEventType.QUEUED_FOR_REVIEW
                if queued
                else PipelineEventType.PROCESSING_FAILED
            )
            events.log_failure(
                item,
                event_type,
                outcome.errors,
                status=TaskStatus.AWAITING_REVIEW if queued else TaskStatus.FAILED,
                duration_ms=metrics.duration_ms,
            )
            self._record_metric(repositories, item, metrics, failed=True)
            return PipelineResult(
                item_id=item.id,
                success=False,
                new_state=Stage.VALIDATED,
                metrics=metrics,
                errors=outcome.errors,
            )

        approved_id = promote_validated(repositories, item)
        events.log_transition(
            item, Stage.APPROVED, new_item_id=approved_id, duration_ms=metrics.duration_ms
        )
        self._record_metric(repositories, item, metrics, failed=False)
        log.info("Validated %s %s approved as %s", item.data_type, item.id, approved_id)
        return PipelineResult(
            item_id=item.id, success=True, new_state=Stage.APPROVED, metrics=metrics
        )

    def _give_up(
        self,
        item: PipelineItem,
        transition: Transition,
        error: Exception | None,
        started: float,
    ) -> PipelineResult:
        message = str(error) if error is not None else "Unknown error"
        metrics = self._metrics(transition.step, started)
        log.warning(
            "Giving up on %s %s after %d attempt(s): %s",
            item.data_type,
            item.id,
            self._config.retry_attempts,
            message,
        )
        try:
            with self._unit_of_work_factory() as uow:
                uow.repositories.pipeline.record_failure(
                    item.id, item.data_type, item.stage, message
                )
                PipelineEventLogger(uow.repositories.events).log_failure(
                    item,
                    PipelineEventType.PROCESSING_FAILED,
                    [message],
                    duration_ms=metrics.duration_ms,
                )
                uow.commit()
        except Exception:
            log.exception("Could not record failure for %s %s", item.data_type, item.id)
        return PipelineResult(
            item_id=item.id,
            success=False,
            new_state=item.stage,
            metrics=metrics,
            errors=(message,),
        )

    def _metrics(self, step: ProcessingStep, started: float) -> StepMetrics:
        return StepMetrics(duration_ms=(self._clock() - started) * 1000, stage=step)

    @staticmethod
    def _record_metric(
        repositories: PipelineRepositories,
        item: PipelineItem,
        metrics: StepMetrics,
        *,
        failed: bool,
    ) -> None:
        repositories.pipeline.record_metrics(
            metrics.stage,
            item.data_type,
            0 if failed else 1,
            1 if failed else 0,
            metrics.duration_ms,
        )
