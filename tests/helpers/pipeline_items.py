"""Payload factories and fault-injecting fakes for pipeline tests."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from lexigate.adapters.memory import InMemoryPipelineRepository, InMemoryPipelineUnitOfWork
from lexigate.domain.model import DataType, PipelineItem, Stage, parse_payload
from lexigate.domain.pipeline import approved_record

if TYPE_CHECKING:
    from lexigate.adapters.memory import InMemoryStore


def meaning_data(
    word: str = "hello",
    definition: str = "a common greeting",
    *,
    language: str = "EN",
    level: str = "A1",
    **extra: Any,
) -> dict[str, Any]:
    return {"word": word, "definition": definition, "language": language, "level": level, **extra}


def utterance_data(
    text: str = "hello there, my friend",
    meaning_id: str = "",
    *,
    language: str = "EN",
    level: str = "A1",
    **extra: Any,
) -> dict[str, Any]:
    return {"text": text, "meaningId": meaning_id, "language": language, "level": level, **extra}


def rule_data(
    title: str = "Present simple",
    explanation: str = "Used for habits and general truths.",
    *,
    language: str = "EN",
    level: str = "A1",
    examples: Any = None,
    **extra: Any,
) -> dict[str, Any]:
    return {
        "title": title,
        "explanation": explanation,
        "language": language,
        "level": level,
        "examples": examples
        if examples is not None
        else [{"correct": "She works here.", "incorrect": "She work here."}],
        **extra,
    }


def exercise_data(
    prompt: str = "Choose the greeting",
    options: Any = None,
    correct_index: Any = 0,
    *,
    language: str = "EN",
    level: str = "A1",
    **extra: Any,
) -> dict[str, Any]:
    return {
        "prompt": prompt,
        "options": options if options is not None else ["hello", "goodbye", "table"],
        "correctIndex": correct_index,
        "language": language,
        "level": level,
        **extra,
    }


def make_item(
    data_type: DataType,
    data: dict[str, Any],
    *,
    stage: Stage = Stage.DRAFT,
    item_id: uuid.UUID | None = None,
    draft_id: uuid.UUID | None = None,
) -> PipelineItem:
    return PipelineItem(
        id=item_id or uuid.uuid4(),
        data_type=data_type,
        stage=stage,
        data=data,
        draft_id=draft_id,
        created_at=datetime.now(tz=UTC),
    )


def seed_approved(store: InMemoryStore, data_type: DataType, data: dict[str, Any]) -> uuid.UUID:
    """Place a permanent record directly into ``store`` and return its id."""

    approved_id = uuid.uuid4()
    store.approved[data_type][approved_id] = {
        "id": approved_id,
        "created_at": datetime.now(tz=UTC),
        **approved_record(parse_payload(data_type, data)),
    }
    return approved_id


def seed_approved_meanings(store: InMemoryStore, count: int, *, language: str = "EN") -> None:
    for index in range(count):
        seed_approved(
            store,
            DataType.MEANING,
            meaning_data(f"word{index}", "an approved definition", language=language),
        )


def seed_stage(
    store: InMemoryStore,
    stage: Stage,
    data_type: DataType,
    data: dict[str, Any],
    *,
    draft_id: uuid.UUID | None = None,
) -> PipelineItem:
    item = make_item(data_type, data, stage=stage, draft_id=draft_id)
    store.stage(stage)[item.id] = item
    return item


class FlakyPipelineRepository:
    """Proxy that raises from ``method`` for the first ``failures`` calls.

    ``calls`` is shared between proxies so the failure budget spans retries.
    """

    def __init__(
        self,
        inner: InMemoryPipelineRepository,
        *,
        method: str,
        failures: int,
        calls: list[str],
        error: Exception | None = None,
    ) -> None:
        self._inner = inner
        self._method = method
        self._failures = failures
        self._calls = calls
        self._error = error or ConnectionError("database unavailable")

    def __getattr__(self, name: str) -> Any:
        attribute = getattr(self._inner, name)
        if name != self._method:
            return attribute

        def wrapper(*args: Any, **kwargs: Any) -> Any:
            self._calls.append(name)
            if self._calls.count(name) <= self._failures:
                raise self._error
            return attribute(*args, **kwargs)

        return wrapper


class FlakyUnitOfWork(InMemoryPipelineUnitOfWork):
    """In-memory unit of work whose pipeline repository fails on demand."""

    def __init__(
        self,
        store: InMemoryStore,
        *,
        method: str,
        failures: int,
        calls: list[str],
    ) -> None:
        super().__init__(store)
        self._method = method
        self._failures = failures
        self._calls = calls

    def __enter__(self) -> FlakyUnitOfWork:
        super().__enter__()
        repositories = self.repositories
        inner = repositories.pipeline
        assert isinstance(inner, InMemoryPipelineRepository)
        repositories.pipeline = FlakyPipelineRepository(  # type: ignore[assignment]
            inner, method=self._method, failures=self._failures, calls=self._calls
        )
        return self
