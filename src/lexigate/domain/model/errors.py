"""Domain error definitions."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from .enums import Stage


class PipelineError(RuntimeError):
    """Base class for pipeline domain errors."""


class InvalidTransitionError(PipelineError):
    """Raised when an item is asked to leave a terminal stage."""

    def __init__(self, stage: Stage) -> None:
        super().__init__(f"No transition defined out of stage {stage}")
        self.stage = stage


class PayloadError(PipelineError, ValueError):
    """Raised when a payload cannot be read as its typed variant."""

    def __init__(self, message: str, *, errors: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.errors = tuple(errors) or (message,)


class ItemNotFoundError(PipelineError, LookupError):
    """Raised when an operator action targets an item that is not in the expected stage."""

    def __init__(self, item_id: UUID, stage: Stage) -> None:
        super().__init__(f"Item {item_id} not found in {stage} storage")
        self.item_id = item_id
        self.stage = stage
