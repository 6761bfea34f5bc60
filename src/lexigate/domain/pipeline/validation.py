"""CANDIDATE -> VALIDATED validation.

Checks run in stages and stop at the first failing stage; within a stage every
violation is reported:

1. type checks on fields the later stages rely on,
2. required-field presence,
3. supported language and CEFR level,
4. per-type semantic checks (duplicates, references, example/option structure).

Repository exceptions are not caught here; the orchestrator retries them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Final

from lexigate.domain.model import (
    DataType,
    ExercisePayload,
    MeaningPayload,
    PayloadError,
    RulePayload,
    StepResult,
    UtterancePayload,
    parse_payload,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from lexigate.domain.model import ContentPayload, PipelineItem
    from lexigate.domain.ports import ValidationRepository

SUPPORTED_LANGUAGES: Final[frozenset[str]] = frozenset({"EN", "ES", "IT", "PT", "SL"})
CEFR_LEVELS: Final[frozenset[str]] = frozenset({"A0", "A1", "A2", "B1", "B2", "C1", "C2"})

REQUIRED_FIELDS: Final[Mapping[DataType, tuple[str, ...]]] = {
    DataType.MEANING: ("word", "definition", "language", "level"),
    DataType.UTTERANCE: ("text", "language", "meaningId"),
    DataType.RULE: ("title", "explanation", "language", "level", "examples"),
    DataType.EXERCISE: ("prompt", "options", "correctIndex", "language", "level"),
}

MIN_DEFINITION_LENGTH: Final[int] = 5
MAX_DEFINITION_LENGTH: Final[int] = 1000


class ValidationStep:
    """Schema, referential and duplicate checks for candidates."""

    def __init__(self, repository: ValidationRepository) -> None:
        self._repository = repository

    def validate(self, item: PipelineItem) -> StepResult:
        checks: tuple[Callable[[PipelineItem], list[str]], ...] = (
            self._check_types,
            self._check_required_fields,
            self._check_language,
            self._check_semantics,
        )
        for check in checks:
            errors = check(item)
            if errors:
                return StepResult.failed(errors)
        return StepResult.ok()

    def _check_types(self, item: PipelineItem) -> list[str]:
        data = item.data
        if item.data_type is DataType.MEANING and not isinstance(data.get("word"), str):
            return ["Word must be a string"]
        if item.data_type is DataType.EXERCISE and not _is_number(data.get("correctIndex")):
            return ["Correct answer index must be a number"]
        return []

    def _check_required_fields(self, item: PipelineItem) -> list[str]:
        required = REQUIRED_FIELDS.get(item.data_type)
        if required is None:
            return [f"Unknown data type: {item.data_type}"]
        return [
            f"Missing required field: {name}" for name in required if item.data.get(name) is None
        ]

    def _check_language(self, item: PipelineItem) -> list[str]:
        errors: list[str] = []
        language = item.data.get("language")
        if language not in SUPPORTED_LANGUAGES:
            errors.append(f"Invalid language: {language}")
        level = item.data.get("level")
        if level is not None and level not in CEFR_LEVELS:
            errors.append(f"Invalid CEFR level: {level}")
        return errors

    def _check_semantics(self, item: PipelineItem) -> list[str]:
        try:
            payload = parse_payload(item.data_type, item.data)
        except PayloadError as exc:
            return list(exc.errors) or [str(exc)]

        match payload:
            case MeaningPayload():
                return self._validate_meaning(item, payload)
            case UtterancePayload():
                return self._validate_utterance(item, payload)
            case RulePayload():
                return self._validate_rule(item, payload)
            case ExercisePayload():
                return _validate_exercise(payload)
            case _:
                return [f"Unknown data type: {item.data_type}"]

    def _validate_meaning(self, item: PipelineItem, payload: MeaningPayload) -> list[str]:
        errors: list[str] = []
        if self._repository.check_duplicate_meaning(
            payload.word, payload.language, payload.level, item.id
        ):
            errors.append(f'Duplicate word "{payload.word}" already exists for this level')
        if len(payload.definition) < MIN_DEFINITION_LENGTH:
            errors.append(f"Definition too short (min {MIN_DEFINITION_LENGTH} characters)")
        if len(payload.definition) > MAX_DEFINITION_LENGTH:
            errors.append(f"Definition too long (max {MAX_DEFINITION_LENGTH} characters)")
        return errors

    def _validate_utterance(self, item: PipelineItem, payload: UtterancePayload) -> list[str]:
        errors: list[str] = []
        if not self._repository.meaning_exists(payload.meaning_id):
            errors.append(f"Meaning ID {payload.meaning_id} does not exist")
        if self._repository.check_duplicate_utterance(payload.text, payload.language, item.id):
            errors.append("Duplicate utterance text already exists")
        return errors

    def _validate_rule(self, item: PipelineItem, payload: RulePayload) -> list[str]:
        errors: list[str] = []
        if self._repository.check_duplicate_rule(
            payload.title, payload.language, payload.level, item.id
        ):
            errors.append(f'Duplicate grammar rule "{payload.title}" already exists')
        if not payload.examples:
            errors.append("Grammar rule must have at least 1 example")
        for example in payload.examples:
            if not isinstance(example, dict):
                errors.append("Each example must be an object")
                break
            if not _truthy(example, "correct"):
                errors.append('Each example must have a "correct" field')
                break
        return errors


def _validate_exercise(payload: ExercisePayload) -> list[str]:
    errors: list[str] = []
    options = payload.options
    if not 0 <= payload.correct_index < len(options):
        errors.append(f"Correct answer index {payload.correct_index} is out of range")
    if len({str(option) for option in options}) != len(options):
        errors.append("Exercise options must be unique")
    if any(not isinstance(option, str) or not option.strip() for option in options):
        errors.append("All exercise options must be non-empty strings")
    return errors


def _is_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _truthy(mapping: Mapping[str, Any], key: str) -> bool:
    return bool(mapping.get(key))


def describe_payload(payload: ContentPayload) -> str:
    """Return the human-facing headline of a payload (word, text, title or prompt)."""

    match payload:
        case MeaningPayload():
            return payload.word
        case UtterancePayload():
            return payload.text
        case RulePayload():
            return payload.title
        case ExercisePayload():
            return payload.prompt
        case _:
            return ""
