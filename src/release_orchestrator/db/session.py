"""
release_orchestrator.db.session

Async SQLAlchemy engine + session factory helpers.

Responsibilities:
- Create the async engine from settings, tuned for SQLite when that is the backend.
- Create the async sessionmaker used by `DeployStore`.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from release_orchestrator.settings import Settings

_SQLITE_LOCK_TIMEOUT_SECONDS = 30


def create_engine(settings: Settings) -> AsyncEngine:
    is_sqlite = settings.database_url.startswith("sqlite")
    connect_args: dict[str, Any] = {"timeout": _SQLITE_LOCK_TIMEOUT_SECONDS} if is_sqlite else {}
    engine = create_async_engine(
        settings.database_url,
        pool_pre_ping=True,
        connect_args=connect_args,
    )
    if is_sqlite:
        event.listen(engine.sync_engine, "connect", _sqlite_on_connect)
    return engine


def _sqlite_on_connect(dbapi_connection: Any, _: Any) -> None:
    # The poll loop writes while request handlers read; WAL keeps readers off the write lock.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Engine code keeps reading rows after their transaction closed.
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)
