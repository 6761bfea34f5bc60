from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from lexigate.adapters.memory import InMemoryApprovalRepository
from lexigate.domain.model import DataType, Stage
from lexigate.domain.pipeline import MANUAL_REVIEW_MESSAGE, ApprovalStep, review_priority
from tests.helpers.pipeline_items import (
    exercise_data,
    make_item,
    meaning_data,
    rule_data,
    seed_approved_meanings,
    utterance_data,
)

if TYPE_CHECKING:
    from lexigate.adapters.memory import InMemoryStore


def _never_sampled() -> float:
    return 0.99


def _always_sampled() -> float:
    return 0.0


def test_review_priority_ordering() -> None:
    priorities = [
        review_priority(DataType.RULE, "orthography"),
        review_priority(DataType.MEANING),
        review_priority(DataType.UTTERANCE),
        review_priority(DataType.RULE, "tense"),
        review_priority(DataType.EXERCISE),
        review_priority("sentence"),
    ]

    assert priorities == [1, 2, 3, 4, 5, 10]


def test_orthography_category_only_matters_for_rules() -> None:
    assert review_priority(DataType.MEANING, "orthography") == 2


@pytest.mark.parametrize(
    ("category", "priority"),
    [(None, 4), ("orthography", 1)],
)
def test_rules_are_always_queued(
    memory_store: InMemoryStore, category: str | None, priority: int
) -> None:
    seed_approved_meanings(memory_store, 15)
    repository = InMemoryApprovalRepository(memory_store)
    data = rule_data(sourceMetadata={"confidence": 0.99})
    if category is not None:
        data["category"] = category
    item = make_item(DataType.RULE, data, stage=Stage.VALIDATED)
    step = ApprovalStep(repository, sampler=_never_sampled)

    result = step.approve(item)

    assert not result.success
    assert result.errors == (MANUAL_REVIEW_MESSAGE,)
    entry = repository.get_review(item.id)
    assert entry is not None
    assert entry.priority == priority
    assert entry.data_type is DataType.RULE


def test_exercises_are_always_queued(memory_store: InMemoryStore) -> None:
    repository = InMemoryApprovalRepository(memory_store)
    item = make_item(DataType.EXERCISE, exercise_data(), stage=Stage.VALIDATED)

    assert not ApprovalStep(repository, sampler=_never_sampled).approve(item).success
    entry = repository.get_review(item.id)
    assert entry is not None
    assert entry.priority == 5


def test_confident_meaning_with_history_is_auto_approved(memory_store: InMemoryStore) -> None:
    seed_approved_meanings(memory_store, 15)
    repository = InMemoryApprovalRepository(memory_store)
    item = make_item(
        DataType.MEANING,
        meaning_data(sourceMetadata={"confidence": 0.95}),
        stage=Stage.VALIDATED,
    )

    result = ApprovalStep(repository, sampler=_never_sampled).approve(item)

    assert result.success
    assert repository.get_review(item.id) is None


def test_low_confidence_is_queued(memory_store: InMemoryStore) -> None:
    seed_approved_meanings(memory_store, 15)
    repository = InMemoryApprovalRepository(memory_store)
    item = make_item(
        DataType.MEANING,
        meaning_data(sourceMetadata={"confidence": 0.5}),
        stage=Stage.VALIDATED,
    )

    assert not ApprovalStep(repository, sampler=_never_sampled).approve(item).success
    entry = repository.get_review(item.id)
    assert entry is not None
    assert entry.priority == 2


def test_cold_start_is_queued(memory_store: InMemoryStore) -> None:
    seed_approved_meanings(memory_store, 9)
    repository = InMemoryApprovalRepository(memory_store)
    item = make_item(DataType.MEANING, meaning_data(), stage=Stage.VALIDATED)

    assert ApprovalStep(repository, sampler=_never_sampled).requires_manual_review(item)


def test_cold_start_counts_per_language(memory_store: InMemoryStore) -> None:
    seed_approved_meanings(memory_store, 15, language="ES")
    repository = InMemoryApprovalRepository(memory_store)
    item = make_item(DataType.MEANING, meaning_data(), stage=Stage.VALIDATED)

    assert ApprovalStep(repository, sampler=_never_sampled).requires_manual_review(item)


def test_random_sample_is_queued(memory_store: InMemoryStore) -> None:
    seed_approved_meanings(memory_store, 15)
    repository = InMemoryApprovalRepository(memory_store)
    item = make_item(DataType.MEANING, meaning_data(), stage=Stage.VALIDATED)

    result = ApprovalStep(repository, sampler=_always_sampled).approve(item)

    assert not result.success
    assert repository.get_review(item.id) is not None


def test_auto_approval_bypasses_review(memory_store: InMemoryStore) -> None:
    repository = InMemoryApprovalRepository(memory_store)
    item = make_item(
        DataType.UTTERANCE,
        utterance_data(sourceMetadata={"confidence": 0.1}),
        stage=Stage.VALIDATED,
    )
    step = ApprovalStep(repository, auto_approval_enabled=True, sampler=_always_sampled)

    assert step.approve(item).success
    assert memory_store.reviews == {}


def test_requeue_updates_existing_entry(memory_store: InMemoryStore) -> None:
    repository = InMemoryApprovalRepository(memory_store)
    item = make_item(DataType.EXERCISE, exercise_data(), stage=Stage.VALIDATED)
    step = ApprovalStep(repository, sampler=_never_sampled)

    step.approve(item)
    step.approve(item)

    assert len(memory_store.reviews) == 1
