from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine, inspect

from lexigate.adapters.sqlalchemy import create_all_tables, metadata
from lexigate.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyPipelineUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from lexigate.domain.model import DataType
from tests.helpers.pipeline_items import meaning_data

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_sqlalchemy_unit_of_work_requires_startup() -> None:
    assert not is_started()
    with pytest.raises(StartupError):
        SqlAlchemyPipelineUnitOfWork()


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = create_engine("sqlite+pysqlite:///:memory:", future=True)
    engine_b = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    assert configured_engine() is engine_b
    assert is_started()


def test_startup_migrates_schema() -> None:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine)

    tables = set(inspect(engine).get_table_names())
    assert {
        "draft",
        "candidate",
        "validated",
        "approved_meaning",
        "approved_utterance",
        "approved_rule",
        "approved_exercise",
        "pipeline_failure",
        "pipeline_metric",
        "review_queue",
        "approval_event",
        "pipeline_event",
        "pipeline_task",
    } <= tables


def test_repositories_require_active_session(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    uow = SqlAlchemyPipelineUnitOfWork()

    with pytest.raises(StartupError):
        _ = uow.repositories


def test_unit_of_work_commits_drafts(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyPipelineUnitOfWork() as uow:
        draft_id = uow.repositories.pipeline.add_draft(DataType.MEANING, meaning_data())
        uow.commit()

    with SqlAlchemyPipelineUnitOfWork() as uow:
        (draft,) = uow.repositories.pipeline.fetch_drafts(10)
        assert draft.id == draft_id


def test_unit_of_work_rolls_back_on_error(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with pytest.raises(RuntimeError), SqlAlchemyPipelineUnitOfWork() as uow:
        uow.repositories.pipeline.add_draft(DataType.MEANING, meaning_data())
        raise RuntimeError("boom")

    with SqlAlchemyPipelineUnitOfWork() as uow:
        assert uow.repositories.pipeline.fetch_drafts(10) == []


def test_create_all_tables_matches_migrated_schema() -> None:
    metadata_engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    migrated_engine = create_engine("sqlite+pysqlite:///:memory:", future=True)

    create_all_tables(metadata_engine)
    startup(engine=migrated_engine)

    created = set(inspect(metadata_engine).get_table_names())
    migrated = set(inspect(migrated_engine).get_table_names()) - {"alembic_version"}
    assert created == set(metadata.tables) == migrated
