from __future__ import annotations

from pathlib import Path

import pytest

from lexigate.config import (
    ConfigurationError,
    InvalidConfigurationValueError,
    MissingConfigurationError,
    PipelineConfig,
    StorageConfig,
    get_database_uri,
    get_pipeline_config,
    get_storage_config,
    require_env_var,
    require_env_vars,
)

_PIPELINE_VARS = (
    "LEXIGATE_BATCH_SIZE",
    "LEXIGATE_RETRY_ATTEMPTS",
    "LEXIGATE_AUTO_APPROVAL",
    "LEXIGATE_MAX_NORMALIZATION_FAILURES",
    "LEXIGATE_REVIEW_SAMPLE_RATE",
)


@pytest.fixture
def clean_pipeline_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in _PIPELINE_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_lists_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_B", raising=False)
    monkeypatch.delenv("MISSING_A", raising=False)

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_B", "MISSING_A"])

    assert "MISSING_A, MISSING_B" in str(exc.value)


def test_require_env_var_handles_blank_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "   ")

    with pytest.raises(MissingConfigurationError):
        require_env_var("EXAMPLE_VAR")


def test_pipeline_defaults(clean_pipeline_env: pytest.MonkeyPatch) -> None:
    config = get_pipeline_config()

    assert config == PipelineConfig()
    assert config.batch_size == 50
    assert config.retry_attempts == 3
    assert config.auto_approval is False
    assert config.max_normalization_failures == 3
    assert config.review_sample_rate == pytest.approx(0.1)


def test_pipeline_reads_environment(clean_pipeline_env: pytest.MonkeyPatch) -> None:
    clean_pipeline_env.setenv("LEXIGATE_BATCH_SIZE", "10")
    clean_pipeline_env.setenv("LEXIGATE_RETRY_ATTEMPTS", "5")
    clean_pipeline_env.setenv("LEXIGATE_AUTO_APPROVAL", "yes")
    clean_pipeline_env.setenv("LEXIGATE_REVIEW_SAMPLE_RATE", "0.25")

    config = get_pipeline_config()

    assert config.batch_size == 10
    assert config.retry_attempts == 5
    assert config.auto_approval is True
    assert config.review_sample_rate == pytest.approx(0.25)


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("LEXIGATE_BATCH_SIZE", "many"),
        ("LEXIGATE_BATCH_SIZE", "0"),
        ("LEXIGATE_AUTO_APPROVAL", "maybe"),
        ("LEXIGATE_REVIEW_SAMPLE_RATE", "1.5"),
        ("LEXIGATE_RETRY_ATTEMPTS", "-1"),
    ],
)
def test_pipeline_rejects_invalid_values(
    clean_pipeline_env: pytest.MonkeyPatch, name: str, value: str
) -> None:
    clean_pipeline_env.setenv(name, value)

    with pytest.raises(InvalidConfigurationValueError) as exc:
        get_pipeline_config()

    assert isinstance(exc.value, ConfigurationError)


def test_database_uri_prefers_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "postgresql+psycopg://localhost/lexigate")

    assert get_database_uri() == "postgresql+psycopg://localhost/lexigate"


def test_database_uri_falls_back_to_data_dir(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.delenv("DATABASE_URI", raising=False)
    monkeypatch.setenv("LEXIGATE_DATA_DIR", str(tmp_path / "data"))

    uri = get_database_uri()

    assert uri == f"sqlite+pysqlite:///{tmp_path.resolve() / 'data' / 'lexigate.db'}"
    assert (tmp_path / "data").is_dir()


def test_storage_config_paths(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("LEXIGATE_DATA_DIR", str(tmp_path))

    storage = get_storage_config()

    assert storage.resolve_data_dir() == tmp_path.resolve()
    assert StorageConfig(data_dir=tmp_path, database_filename="x.db").database_path(
        ensure=False
    ) == Path(tmp_path.resolve() / "x.db")


def test_storage_config_carries_database_uri_override(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("LEXIGATE_DATA_DIR", str(tmp_path / "unused"))
    monkeypatch.setenv("DATABASE_URI", "postgresql+psycopg://db/lexigate")

    storage = get_storage_config()

    assert storage.database_uri_override == "postgresql+psycopg://db/lexigate"
    assert storage.database_uri() == "postgresql+psycopg://db/lexigate"
    assert not (tmp_path / "unused").exists()
    local = StorageConfig(data_dir=tmp_path)
    assert local.database_uri() == f"sqlite+pysqlite:///{tmp_path.resolve() / 'lexigate.db'}"
