"""SQLAlchemy engine/session helpers for the workspace database.

There is no process-wide engine. Callers build a session factory once and
pass it to whatever needs a session.

Usage
-----
from db.client import create_session_factory, session_scope

factory = create_session_factory(database_url="sqlite+pysqlite:///ledger.db")
with session_scope(factory) as s:
    s.execute(...)
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker


def resolve_database_url(override: str | None = None) -> str:
    url = override or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not set; cannot initialize database client")
    return url


def create_db_engine(*, database_url: str | None = None) -> Engine:
    """Create an engine; SQLite connections get foreign keys switched on."""

    url = resolve_database_url(database_url)
    engine = create_engine(url, pool_pre_ping=True)
    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def _sqlite_pragmas(dbapi_conn, _):  # pragma: no cover - tiny bridge
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys = ON")
            cursor.close()

    return engine


def create_session_factory(
    *, database_url: str | None = None, engine: Engine | None = None
) -> sessionmaker[Session]:
    bound = engine if engine is not None else create_db_engine(database_url=database_url)
    return sessionmaker(bind=bound, expire_on_commit=False, class_=Session)


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = [
    "create_db_engine",
    "create_session_factory",
    "resolve_database_url",
    "session_scope",
]
