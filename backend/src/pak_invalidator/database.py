"""Per-staging-folder SQLite engines for the offset cache."""

import logging
from pathlib import Path

from sqlalchemy import Engine, event
from sqlmodel import SQLModel, create_engine

import pak_invalidator.models  # noqa: F401 - register all tables
from pak_invalidator.constants import CACHE_DB_NAME

logger = logging.getLogger(__name__)

_engines: dict[Path, Engine] = {}


def _set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA synchronous=FULL")
    cursor.close()


def get_engine(staging_folder: Path) -> Engine:
    """Return the cached engine for *staging_folder*, creating tables on first use."""
    key = staging_folder.resolve()
    engine = _engines.get(key)
    if engine is None:
        key.mkdir(parents=True, exist_ok=True)
        db_path = key / CACHE_DB_NAME
        engine = create_engine(
            f"sqlite:///{db_path}",
            echo=False,
            connect_args={"timeout": 30, "check_same_thread": False},
        )
        event.listen(engine, "connect", _set_sqlite_pragma)
        SQLModel.metadata.create_all(engine)
        _engines[key] = engine
        logger.info("Offset cache opened at %s", db_path)
    return engine


def dispose_engines() -> None:
    for engine in _engines.values():
        engine.dispose()
    _engines.clear()
