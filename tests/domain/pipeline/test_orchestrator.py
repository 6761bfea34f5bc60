from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest

from lexigate.adapters.memory import InMemoryPipelineRepository
from lexigate.config import PipelineConfig
from lexigate.domain.model import (
    DataType,
    InvalidTransitionError,
    PipelineEventType,
    ProcessingStep,
    Stage,
    TaskStatus,
)
from lexigate.domain.pipeline import PipelineOrchestrator
from tests.helpers.pipeline_items import (
    FlakyUnitOfWork,
    meaning_data,
    rule_data,
    seed_approved,
    seed_approved_meanings,
    seed_stage,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from lexigate.adapters.memory import InMemoryPipelineUnitOfWork, InMemoryStore


def _never_sampled() -> float:
    return 0.99


def _orchestrator(
    factory: Callable[[], InMemoryPipelineUnitOfWork],
    sleeps: list[float] | None = None,
    **config: object,
) -> PipelineOrchestrator:
    recorded = sleeps if sleeps is not None else []
    return PipelineOrchestrator(
        factory,
        PipelineConfig(**config),  # type: ignore[arg-type]
        sampler=_never_sampled,
        sleep=recorded.append,
    )


def _flaky_factory(
    store: InMemoryStore, method: str, failures: int
) -> Callable[[], InMemoryPipelineUnitOfWork]:
    calls: list[str] = []

    def factory() -> InMemoryPipelineUnitOfWork:
        return FlakyUnitOfWork(store, method=method, failures=failures, calls=calls)

    return factory


def test_draft_is_normalized_into_candidate(
    memory_store: InMemoryStore,
    memory_unit_of_work: Callable[[], InMemoryPipelineUnitOfWork],
) -> None:
    draft = seed_stage(
        memory_store, Stage.DRAFT, DataType.MEANING, meaning_data(" hello ", "a greeting")
    )

    (result,) = _orchestrator(memory_unit_of_work).process_stage(Stage.DRAFT)

    assert result.success
    assert result.new_state is Stage.CANDIDATE
    assert result.metrics.stage is ProcessingStep.NORMALIZATION
    assert memory_store.drafts == {}
    (candidate,) = memory_store.candidates.values()
    assert candidate.data["word"] == "hello"
    assert candidate.data["definition"] == "A greeting"
    assert candidate.draft_id == draft.id
    (_, event) = memory_store.events[0]
    assert event.event_type is PipelineEventType.STAGE_TRANSITION
    assert event.payload == {"new_item_id": str(candidate.id)}
    (metric,) = memory_store.metrics
    assert (metric.items_processed, metric.items_failed) == (1, 0)


def test_duplicate_candidate_stays_in_place(
    memory_store: InMemoryStore,
    memory_unit_of_work: Callable[[], InMemoryPipelineUnitOfWork],
) -> None:
    seed_approved(memory_store, DataType.MEANING, meaning_data("hello", "A greeting"))
    candidate = seed_stage(
        memory_store, Stage.CANDIDATE, DataType.MEANING, meaning_data("hello", "A greeting")
    )

    (result,) = _orchestrator(memory_unit_of_work).process_stage(Stage.CANDIDATE)

    assert not result.success
    assert result.new_state is Stage.CANDIDATE
    assert any('Duplicate word "hello"' in error for error in result.errors)
    assert candidate.id in memory_store.candidates
    assert memory_store.failures == []
    (_, event) = memory_store.events[0]
    assert event.event_type is PipelineEventType.VALIDATION_FAILED
    (metric,) = memory_store.metrics
    assert (metric.stage, metric.items_processed, metric.items_failed) == (
        ProcessingStep.VALIDATION,
        0,
        1,
    )


@pytest.mark.parametrize(
    ("data_type", "data"),
    [
        (
            DataType.MEANING,
            meaning_data(
                " hello ",
                "a greeting",
                partOfSpeech="interjection",
                sourceMetadata={"model": "gpt", "confidence": "high"},
            ),
        ),
        (
            DataType.UTTERANCE,
            utterance_data(" see you soon ", translation="hasta pronto", sourceMetadata="llm"),
        ),
        (DataType.RULE, rule_data(category=None, sourceMetadata={"confidence": 0.4})),
        (DataType.EXERCISE, exercise_data(exerciseType=None, sourceMetadata=None)),
    ],
)
def test_each_data_type_reaches_validated(
    memory_store: InMemoryStore,
    memory_unit_of_work: Callable[[], InMemoryPipelineUnitOfWork],
    data_type: DataType,
    data: dict[str, object],
) -> None:
    meaning_id = seed_approved(memory_store, DataType.MEANING, meaning_data("bye", "a farewell"))
    if data_type is DataType.UTTERANCE:
        data["meaningId"] = str(meaning_id)
    draft = seed_stage(memory_store, Stage.DRAFT, data_type, data)
    orchestrator = _orchestrator(memory_unit_of_work)

    (normalized,) = orchestrator.process_stage(Stage.DRAFT)
    (validated,) = orchestrator.process_stage(Stage.CANDIDATE)

    assert normalized.success, normalized.errors
    assert validated.success, validated.errors
    assert validated.new_state is Stage.VALIDATED
    assert memory_store.drafts == {}
    assert memory_store.candidates == {}
    (item,) = memory_store.validated.values()
    assert item.data_type is data_type
    assert item.draft_id == draft.id


def test_retry_backoff_then_success(memory_store: InMemoryStore) -> None:
    seed_stage(memory_store, Stage.DRAFT, DataType.MEANING, meaning_data())
    sleeps: list[float] = []
    factory = _flaky_factory(memory_store, "move_to_candidates", failures=2)

    (result,) = _orchestrator(factory, sleeps, retry_attempts=3).process_stage(Stage.DRAFT)

    assert result.success
    assert sleeps == [2, 4]
    assert len(memory_store.candidates) == 1
    assert memory_store.failures == []


def test_exhausted_retries_record_failure(memory_store: InMemoryStore) -> None:
    draft = seed_stage(memory_store, Stage.DRAFT, DataType.MEANING, meaning_data())
    sleeps: list[float] = []
    factory = _flaky_factory(memory_store, "move_to_candidates", failures=10)

    (result,) = _orchestrator(factory, sleeps, retry_attempts=3).process_stage(Stage.DRAFT)

    assert not result.success
    assert result.new_state is Stage.DRAFT
    assert result.errors == ("database unavailable",)
    assert sleeps == [2, 4]
    assert draft.id in memory_store.drafts
    assert memory_store.candidates == {}
    (failure,) = memory_store.failures
    assert failure.item_id == draft.id
    assert failure.stage is Stage.DRAFT
    assert failure.error_message == "database unavailable"
    (_, event) = memory_store.events[-1]
    assert event.event_type is PipelineEventType.PROCESSING_FAILED


def test_failed_attempt_rolls_back_partial_move(memory_store: InMemoryStore) -> None:
    seed_stage(memory_store, Stage.DRAFT, DataType.MEANING, meaning_data())
    sleeps: list[float] = []
    factory = _flaky_factory(memory_store, "delete_draft", failures=1)

    (result,) = _orchestrator(factory, sleeps).process_stage(Stage.DRAFT)

    assert result.success
    assert sleeps == [2]
    assert len(memory_store.candidates) == 1
    assert memory_store.drafts == {}
    assert len(memory_store.metrics) == 1


def test_unrecordable_failure_does_not_propagate(memory_store: InMemoryStore) -> None:
    seed_stage(memory_store, Stage.DRAFT, DataType.MEANING, meaning_data())

    def broken_factory() -> InMemoryPipelineUnitOfWork:
        raise ConnectionError("database unavailable")

    orchestrator = _orchestrator(broken_factory, retry_attempts=1)
    item = next(iter(memory_store.drafts.values()))

    result = orchestrator.process_item(item)

    assert not result.success
    assert result.errors == ("database unavailable",)


def test_fourth_normalization_failure_discards_draft(
    memory_store: InMemoryStore,
    memory_unit_of_work: Callable[[], InMemoryPipelineUnitOfWork],
) -> None:
    draft = seed_stage(memory_store, Stage.DRAFT, DataType.MEANING, {"word": "hello"})
    orchestrator = _orchestrator(memory_unit_of_work)

    for _ in range(3):
        (result,) = orchestrator.process_stage(Stage.DRAFT)
        assert not result.discarded
        assert draft.id in memory_store.drafts

    (result,) = orchestrator.process_stage(Stage.DRAFT)

    assert result.discarded
    assert draft.id not in memory_store.drafts
    assert len(memory_store.failures) == 4
    (_, event) = memory_store.events[-1]
    assert event.event_type is PipelineEventType.DRAFT_DISCARDED
    assert memory_store.tasks[draft.id].current_status is TaskStatus.DISCARDED
    assert orchestrator.process_stage(Stage.DRAFT) == []


def test_batch_continues_after_item_failure(
    memory_store: InMemoryStore,
    memory_unit_of_work: Callable[[], InMemoryPipelineUnitOfWork],
) -> None:
    now = datetime.now(tz=UTC)
    with memory_unit_of_work() as uow:
        uow.repositories.pipeline.add_draft(
            DataType.MEANING, {"word": ""}, created_at=now - timedelta(minutes=2)
        )
        uow.repositories.pipeline.add_draft(
            DataType.MEANING, meaning_data("world", "the earth"), created_at=now
        )
        uow.commit()

    report = _orchestrator(memory_unit_of_work).process_batch()

    assert report.processed == 3
    assert report.failed == 1
    (validated,) = memory_store.validated.values()
    assert validated.data["word"] == "world"
    assert len(memory_store.drafts) == 1


def test_batch_size_takes_oldest_first(
    memory_store: InMemoryStore,
    memory_unit_of_work: Callable[[], InMemoryPipelineUnitOfWork],
) -> None:
    now = datetime.now(tz=UTC)
    repository = InMemoryPipelineRepository(memory_store)
    repository.add_draft(DataType.MEANING, meaning_data("newer", "a definition"), created_at=now)
    oldest = repository.add_draft(
        DataType.MEANING,
        meaning_data("older", "a definition"),
        created_at=now - timedelta(hours=1),
    )

    (result,) = _orchestrator(memory_unit_of_work, batch_size=1).process_stage(Stage.DRAFT)

    assert result.item_id == oldest


def test_validated_items_wait_without_auto_approval(
    memory_store: InMemoryStore,
    memory_unit_of_work: Callable[[], InMemoryPipelineUnitOfWork],
) -> None:
    seed_stage(memory_store, Stage.VALIDATED, DataType.MEANING, meaning_data())

    report = _orchestrator(memory_unit_of_work).process_batch()

    assert report.processed == 0
    assert len(memory_store.validated) == 1


def test_rule_is_queued_for_review(
    memory_store: InMemoryStore,
    memory_unit_of_work: Callable[[], InMemoryPipelineUnitOfWork],
) -> None:
    rule = seed_stage(memory_store, Stage.VALIDATED, DataType.RULE, rule_data())

    (result,) = _orchestrator(memory_unit_of_work).process_stage(Stage.VALIDATED)

    assert not result.success
    assert result.new_state is Stage.VALIDATED
    assert rule.id in memory_store.validated
    assert memory_store.reviews[rule.id].priority == 4
    (_, event) = memory_store.events[-1]
    assert event.event_type is PipelineEventType.QUEUED_FOR_REVIEW
    assert memory_store.tasks[rule.id].current_status is TaskStatus.AWAITING_REVIEW


def test_confident_meaning_is_promoted(
    memory_store: InMemoryStore,
    memory_unit_of_work: Callable[[], InMemoryPipelineUnitOfWork],
) -> None:
    seed_approved_meanings(memory_store, 15)
    item = seed_stage(
        memory_store,
        Stage.VALIDATED,
        DataType.MEANING,
        meaning_data(sourceMetadata={"confidence": 0.95}),
    )

    (result,) = _orchestrator(memory_unit_of_work).process_stage(Stage.VALIDATED)

    assert result.success
    assert result.new_state is Stage.APPROVED
    assert item.id not in memory_store.validated
    assert len(memory_store.approved[DataType.MEANING]) == 16
    assert memory_store.tasks[item.id].current_status is TaskStatus.COMPLETED


def test_auto_approval_runs_every_stage_in_one_batch(
    memory_store: InMemoryStore,
    memory_unit_of_work: Callable[[], InMemoryPipelineUnitOfWork],
) -> None:
    draft = seed_stage(memory_store, Stage.DRAFT, DataType.RULE, rule_data())

    report = _orchestrator(memory_unit_of_work, auto_approval=True).process_batch()

    assert report.processed == 3
    assert report.succeeded == 3
    (approved,) = memory_store.approved[DataType.RULE].values()
    assert approved["topic"] == "Present simple"
    stages = [event.to_stage for _, event in memory_store.events]
    assert stages == [Stage.CANDIDATE, Stage.VALIDATED, Stage.APPROVED]
    assert {event.lineage_id for _, event in memory_store.events} == {draft.id}


def test_terminal_stage_cannot_be_processed(
    memory_unit_of_work: Callable[[], InMemoryPipelineUnitOfWork],
) -> None:
    with pytest.raises(InvalidTransitionError):
        _orchestrator(memory_unit_of_work).process_stage(Stage.APPROVED)
