"""Authoritative stage transition table for the promotion pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from .enums import ProcessingStep, Stage
from .errors import InvalidTransitionError

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(frozen=True, slots=True)
class Transition:
    """A single promotion hop and the step that guards it."""

    source: Stage
    target: Stage
    step: ProcessingStep


TRANSITIONS: Final[Mapping[Stage, Transition]] = MappingProxyType(
    {
        Stage.DRAFT: Transition(Stage.DRAFT, Stage.CANDIDATE, ProcessingStep.NORMALIZATION),
        Stage.CANDIDATE: Transition(Stage.CANDIDATE, Stage.VALIDATED, ProcessingStep.VALIDATION),
        Stage.VALIDATED: Transition(Stage.VALIDATED, Stage.APPROVED, ProcessingStep.APPROVAL),
    }
)

PROCESSING_ORDER: Final[tuple[Stage, ...]] = (Stage.DRAFT, Stage.CANDIDATE, Stage.VALIDATED)


def transition_from(stage: Stage) -> Transition:
    """Return the transition leaving ``stage`` or raise for terminal stages."""

    try:
        return TRANSITIONS[stage]
    except KeyError:
        raise InvalidTransitionError(stage) from None


def is_terminal(stage: Stage) -> bool:
    return stage not in TRANSITIONS
