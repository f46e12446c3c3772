"""Database engine and session management."""

from __future__ import annotations

import os

import structlog
from sqlalchemy import Engine
from sqlmodel import Session as DBSession
from sqlmodel import SQLModel, create_engine

from gitpanel.settings import settings

logger = structlog.get_logger(__name__)

DB_FILENAME = "changelists.db"

# Lazy-initialized engine
_engine: Engine | None = None


def get_db_url() -> str:
    """Return the SQLite URL inside the configured data directory."""
    return f"sqlite:///{os.path.join(settings.data_dir(), DB_FILENAME)}"


def _get_engine() -> Engine:
    """Get or create the database engine."""
    global _engine
    if _engine is None:
        os.makedirs(settings.data_dir(), exist_ok=True)
        _engine = create_engine(
            get_db_url(),
            echo=False,
            connect_args={"check_same_thread": False},
        )
    return _engine


def reset_engine() -> None:
    """Reset the engine so it will be recreated with current settings.

    Used by tests to point at a fresh database after changing GITPANEL_DATA_DIR.
    """
    global _engine
    if _engine is not None:
        _engine.dispose()
        _engine = None


def get_session() -> DBSession:
    """Get a new database session."""
    return DBSession(_get_engine())


def init_db() -> None:
    """Create any missing tables."""
    from gitpanel.db import tables  # noqa: F401 (registers table metadata)

    SQLModel.metadata.create_all(bind=_get_engine())
    logger.debug("Database initialized", url=get_db_url())


__all__ = [
    "get_session",
    "get_db_url",
    "init_db",
    "reset_engine",
    "DBSession",
]
