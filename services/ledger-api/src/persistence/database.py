"""Database handle for the ledger API."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, URL, make_url
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)


def _prepare_sqlite_path(url: URL) -> None:
    """Ensure on-disk SQLite paths exist before engine creation."""
    database = url.database
    if not database or database == ":memory:":
        return

    db_path = Path(database)
    if not db_path.is_absolute():
        db_path = (Path.cwd() / db_path).resolve()
    db_path.parent.mkdir(parents=True, exist_ok=True)


def build_engine(database_url: str) -> Engine:
    parsed_url = make_url(database_url)
    if parsed_url.drivername.startswith("sqlite"):
        _prepare_sqlite_path(parsed_url)
        connect_args = {"check_same_thread": False}
    else:
        connect_args = {}
    return create_engine(database_url, future=True, pool_pre_ping=True, connect_args=connect_args)


class Database:
    """
    Owns the engine and session factory for one record store.

    The application opens a Database at startup, keeps it on `app.state`, and
    disposes it at shutdown; request handlers receive sessions through
    `get_session` instead of reaching for a module-level connection.
    """

    def __init__(self, database_url: str, *, engine: Engine | None = None):
        self.url = database_url
        self.engine = engine or build_engine(database_url)
        self._session_factory = sessionmaker(
            bind=self.engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            future=True,
        )

    def session(self) -> Session:
        return self._session_factory()

    def init_schema(self) -> None:
        """Create tables if they are missing."""
        from . import models  # noqa: WPS433 (import inside function)

        models.Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info({"event": "database_closed", "url": make_url(self.url).render_as_string(hide_password=True)})


def get_session(request: Request) -> Generator[Session, None, None]:
    """FastAPI dependency for DB sessions (yield pattern)."""
    database: Database = request.app.state.database
    session = database.session()
    try:
        yield session
    finally:
        session.close()
