"""VALIDATED -> APPROVED routing: auto-approve or queue for an operator."""

from __future__ import annotations

import logging
import random
from typing import TYPE_CHECKING, Final

from lexigate.domain.model import ORTHOGRAPHY_CATEGORY, DataType, StepResult, read_confidence

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from lexigate.domain.model import PipelineItem
    from lexigate.domain.ports import ApprovalRepository

log = logging.getLogger(__name__)

MIN_CONFIDENCE: Final[float] = 0.7
COLD_START_THRESHOLD: Final[int] = 10
DEFAULT_SAMPLE_RATE: Final[float] = 0.1
MANUAL_REVIEW_MESSAGE: Final[str] = "Item requires manual operator review"

ORTHOGRAPHY_RULE_PRIORITY: Final[int] = 1
UNCLASSIFIED_PRIORITY: Final[int] = 10
REVIEW_PRIORITIES: Final[Mapping[DataType, int]] = {
    DataType.MEANING: 2,
    DataType.UTTERANCE: 3,
    DataType.RULE: 4,
    DataType.EXERCISE: 5,
}

_ALWAYS_REVIEWED: Final[frozenset[DataType]] = frozenset({DataType.RULE, DataType.EXERCISE})


def review_priority(data_type: DataType | str, category: str | None = None) -> int:
    """Queue priority for an item; lower values are reviewed first."""

    if data_type == DataType.RULE and category == ORTHOGRAPHY_CATEGORY:
        return ORTHOGRAPHY_RULE_PRIORITY
    try:
        return REVIEW_PRIORITIES[DataType(data_type)]
    except ValueError:
        return UNCLASSIFIED_PRIORITY


class ApprovalStep:
    """Decides whether a validated item may be promoted without an operator.

    ``sampler`` returns a float in ``[0, 1)``; an item whose draw falls below
    ``sample_rate`` is routed to review even when every other heuristic passes.
    """

    def __init__(
        self,
        repository: ApprovalRepository,
        *,
        auto_approval_enabled: bool = False,
        sampler: Callable[[], float] = random.random,
        sample_rate: float = DEFAULT_SAMPLE_RATE,
    ) -> None:
        self._repository = repository
        self._auto_approval_enabled = auto_approval_enabled
        self._sampler = sampler
        self._sample_rate = sample_rate

    def approve(self, item: PipelineItem) -> StepResult:
        if self._auto_approval_enabled:
            return StepResult.ok()

        if not self.requires_manual_review(item):
            return StepResult.ok()

        priority = review_priority(item.data_type, _category(item))
        self._repository.queue_for_review(item.id, item.data_type, priority)
        log.info("Queued %s %s for review with priority %d", item.data_type, item.id, priority)
        return StepResult.failed(MANUAL_REVIEW_MESSAGE)

    def requires_manual_review(self, item: PipelineItem) -> bool:
        confidence = read_confidence(item.data.get("sourceMetadata"))
        if confidence is not None and confidence < MIN_CONFIDENCE:
            return True

        if item.data_type in _ALWAYS_REVIEWED:
            return True

        approved = self._repository.get_approved_count(item.data_type, item.language or "")
        if approved < COLD_START_THRESHOLD:
            return True

        return self._sampler() < self._sample_rate


def _category(item: PipelineItem) -> str | None:
    value = item.data.get("category")
    return value if isinstance(value, str) else None
