"""DRAFT -> CANDIDATE normalization.

Normalization is pure and collects every violated constraint of a payload, so a
single failed run reports all problems at once. On success the payload is cleaned
in place (trimmed, capitalized, array fields decoded) and re-running the step on the
result is a no-op.
"""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING, Any, Final

from lexigate.domain.model import DataType, StepResult

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from lexigate.domain.model import PipelineItem

MAX_WORD_LENGTH: Final[int] = 100
MAX_DEFINITION_LENGTH: Final[int] = 1000
MIN_UTTERANCE_WORDS: Final[int] = 2
MAX_UTTERANCE_WORDS: Final[int] = 50
MIN_EXERCISE_OPTIONS: Final[int] = 2
MAX_EXERCISE_OPTIONS: Final[int] = 6

_TERMINAL_PUNCTUATION = re.compile(r"[.!?。？！]$")


class NormalizationStep:
    """Per-data-type field cleanup and structural checks."""

    def __init__(self) -> None:
        self._handlers: Mapping[DataType, Callable[[dict[str, Any]], list[str]]] = {
            DataType.MEANING: self._normalize_meaning,
            DataType.UTTERANCE: self._normalize_utterance,
            DataType.RULE: self._normalize_rule,
            DataType.EXERCISE: self._normalize_exercise,
        }

    def normalize(self, item: PipelineItem) -> StepResult:
        handler = self._handlers.get(item.data_type)
        if handler is None:
            return StepResult.failed(f"Unknown data type: {item.data_type}")
        try:
            errors = handler(item.data)
        except (TypeError, ValueError, AttributeError) as exc:
            return StepResult.failed(str(exc) or type(exc).__name__)
        if errors:
            return StepResult.failed(errors)
        return StepResult.ok()

    def _normalize_meaning(self, data: dict[str, Any]) -> list[str]:
        errors: list[str] = []
        word = _trim(data.get("word"))
        definition = _trim(data.get("definition"))

        if not word:
            errors.append("Word is required")
        if not definition:
            errors.append("Definition is required")
        if word and len(word) > MAX_WORD_LENGTH:
            errors.append(f"Word is too long (max {MAX_WORD_LENGTH} characters)")
        if definition and len(definition) > MAX_DEFINITION_LENGTH:
            errors.append(f"Definition is too long (max {MAX_DEFINITION_LENGTH} characters)")
        errors.extend(_require_language_and_level(data))

        if errors:
            return errors

        data["word"] = word
        data["definition"] = _capitalize_first(definition or "")
        return errors

    def _normalize_utterance(self, data: dict[str, Any]) -> list[str]:
        errors: list[str] = []
        text = _trim(data.get("text"))
        translation = _trim(data.get("translation"))

        if not text:
            errors.append("Text is required")
        if not data.get("meaningId"):
            errors.append("Meaning ID is required")
        if text:
            word_count = len(text.split())
            if word_count < MIN_UTTERANCE_WORDS:
                errors.append(f"Utterance too short (min {MIN_UTTERANCE_WORDS} words)")
            if word_count > MAX_UTTERANCE_WORDS:
                errors.append(f"Utterance too long (max {MAX_UTTERANCE_WORDS} words)")

        if errors:
            return errors

        normalized_text = _capitalize_first(text or "")
        if not _TERMINAL_PUNCTUATION.search(normalized_text):
            normalized_text += "."
        data["text"] = normalized_text
        if translation:
            data["translation"] = _capitalize_first(translation)
        return errors

    def _normalize_rule(self, data: dict[str, Any]) -> list[str]:
        errors: list[str] = []
        title = _trim(data.get("title"))
        explanation = _trim(data.get("explanation"))

        if not title:
            errors.append("Title is required")
        if not explanation:
            errors.append("Explanation is required")
        errors.extend(_require_language_and_level(data))

        examples = parse_array(data.get("examples"))
        if not examples:
            errors.append("At least one example is required")

        if errors:
            return errors

        data["title"] = title
        data["explanation"] = explanation
        data["examples"] = examples
        return errors

    def _normalize_exercise(self, data: dict[str, Any]) -> list[str]:
        errors: list[str] = []
        prompt = _trim(data.get("prompt"))

        if not prompt:
            errors.append("Prompt is required")

        options = parse_array(data.get("options"))
        if options is None:
            errors.append("Options must be a valid array")
        elif len(options) < MIN_EXERCISE_OPTIONS:
            errors.append(f"At least {MIN_EXERCISE_OPTIONS} options required")
        elif len(options) > MAX_EXERCISE_OPTIONS:
            errors.append(f"Maximum {MAX_EXERCISE_OPTIONS} options allowed")

        raw_index = data.get("correctIndex")
        correct_index = _as_index(raw_index)
        if raw_index is None:
            errors.append("Correct answer index is required")
        elif correct_index is None:
            errors.append("Correct answer index must be an integer")
        elif options is not None and not 0 <= correct_index < len(options):
            errors.append("Correct answer index out of range")

        errors.extend(_require_language_and_level(data))

        if errors:
            return errors

        data["prompt"] = prompt
        data["options"] = options
        data["correctIndex"] = correct_index
        return errors


def parse_array(value: object) -> list[Any] | None:
    """Return ``value`` as a list, decoding JSON-encoded strings; ``None`` otherwise."""

    if isinstance(value, list):
        return list(value)
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            return None
        if isinstance(parsed, list):
            return parsed
    return None


def _require_language_and_level(data: Mapping[str, Any]) -> list[str]:
    errors: list[str] = []
    if not data.get("language"):
        errors.append("Language is required")
    if not data.get("level"):
        errors.append("Level is required")
    return errors


def _trim(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    return value.strip()


def _capitalize_first(text: str) -> str:
    if not text:
        return text
    return text[0].upper() + text[1:]


def _as_index(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None
