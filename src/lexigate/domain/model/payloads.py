"""Typed payload variants, one per data type.

Staging rows store payloads as JSON objects with camelCase keys, as produced by the
ingestion side. Once an item has passed the structural checks its payload can be read
as one of the models below; fields that do not take part in pipeline logic (source
metadata, authoring hints) remain available through ``model_extra``.

Source metadata and the rule/exercise hints never fail parsing: malformed values read
as ``None`` and defaults are applied when the item is promoted.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .enums import DataType
from .errors import PayloadError


class PayloadBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True, coerce_numbers_to_str=True)


def read_confidence(metadata: object) -> float | None:
    """Return the numeric ``confidence`` of a source metadata mapping, if any."""

    if not isinstance(metadata, Mapping):
        return None
    value = metadata.get("confidence")
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return float(value)


class ContentPayload(PayloadBaseModel):
    language: str
    level: str | None = None
    source_metadata: dict[str, Any] | None = Field(default=None, alias="sourceMetadata")

    @field_validator("source_metadata", mode="before")
    @classmethod
    def _drop_malformed_metadata(cls, value: object) -> object:
        return value if isinstance(value, Mapping) else None

    @property
    def confidence(self) -> float | None:
        return read_confidence(self.source_metadata)


class MeaningPayload(ContentPayload):
    word: str
    definition: str
    level: str
    part_of_speech: str | None = Field(default=None, alias="partOfSpeech")
    usage_notes: str | None = Field(default=None, alias="usageNotes")


class UtterancePayload(ContentPayload):
    text: str
    meaning_id: str = Field(alias="meaningId")
    translation: str | None = None


class RulePayload(ContentPayload):
    title: str
    explanation: str
    level: str
    examples: list[Any]
    category: str | None = None

    @field_validator("category", mode="before")
    @classmethod
    def _drop_non_string_category(cls, value: object) -> object:
        return value if isinstance(value, str) else None


class ExercisePayload(ContentPayload):
    prompt: str
    options: list[Any]
    correct_index: int = Field(alias="correctIndex")
    level: str
    exercise_type: str | None = Field(default=None, alias="exerciseType")

    @field_validator("exercise_type", mode="before")
    @classmethod
    def _drop_non_string_exercise_type(cls, value: object) -> object:
        return value if isinstance(value, str) else None


PAYLOAD_MODELS: Final[Mapping[DataType, type[ContentPayload]]] = {
    DataType.MEANING: MeaningPayload,
    DataType.UTTERANCE: UtterancePayload,
    DataType.RULE: RulePayload,
    DataType.EXERCISE: ExercisePayload,
}

ORTHOGRAPHY_CATEGORY: Final[str] = "orthography"


def parse_payload(data_type: DataType, data: Mapping[str, Any]) -> ContentPayload:
    """Read ``data`` as the typed payload for ``data_type``."""

    model = PAYLOAD_MODELS.get(data_type)
    if model is None:
        raise PayloadError(f"Unknown data type: {data_type}")
    try:
        return model.model_validate(dict(data))
    except ValidationError as exc:
        messages = [_format_error(error) for error in exc.errors()]
        raise PayloadError(f"Invalid {data_type} payload", errors=messages) from exc


def _format_error(error: Mapping[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    message = str(error.get("msg", "invalid value"))
    return f"{location}: {message}" if location else message
