"""Where lexigate keeps its database.

``DATABASE_URI`` points the pipeline at any SQLAlchemy database (PostgreSQL in
production). Without it a SQLite file under the per-user data directory is used;
``LEXIGATE_DATA_DIR`` moves that directory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

APP_DIR_NAME: Final[str] = "lexigate"
DEFAULT_DB_FILENAME: Final[str] = "lexigate.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME
    database_uri_override: str | None = None

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def database_path(self, *, ensure: bool = True) -> Path:
        data_dir = self.resolve_data_dir()
        if ensure:
            data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir / self.database_filename

    def database_uri(self) -> str:
        """Return the override when one is configured, else the local SQLite file."""

        if self.database_uri_override:
            return self.database_uri_override
        return f"sqlite+pysqlite:///{self.database_path()}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def _platform_data_home() -> Path:
    if os.name == "nt":
        local_app_data = os.getenv("LOCALAPPDATA")
        return Path(local_app_data) if local_app_data else Path.home() / "AppData" / "Local"
    xdg_data_home = os.getenv("XDG_DATA_HOME")
    return Path(xdg_data_home) if xdg_data_home else Path.home() / ".local" / "share"


def get_storage_config() -> StorageConfig:
    data_dir = os.getenv("LEXIGATE_DATA_DIR")
    return StorageConfig(
        data_dir=Path(data_dir) if data_dir else _platform_data_home() / APP_DIR_NAME,
        database_uri_override=os.getenv("DATABASE_URI") or None,
    )


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    return DatabaseConfig(uri=(storage or get_storage_config()).database_uri())


def get_database_uri() -> str:
    return get_database_config().uri
