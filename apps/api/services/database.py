from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import packages.db.models  # noqa: F401  registers the tables on SQLModel.metadata


def to_async_dsn(dsn: str) -> str:
    """Ensure the SQLAlchemy DSN uses an async driver."""

    if dsn.startswith("postgresql+asyncpg://"):
        return dsn
    if dsn.startswith("postgresql://"):
        return "postgresql+asyncpg://" + dsn[len("postgresql://") :]
    if dsn.startswith("postgres://"):
        return "postgresql+asyncpg://" + dsn[len("postgres://") :]
    if dsn.startswith("sqlite://"):
        return "sqlite+aiosqlite://" + dsn[len("sqlite://") :]
    return dsn


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Process-wide async engine and session factory.

    Created once by the application lifespan and disposed on shutdown; request
    handlers only ever borrow sessions from :attr:`session_factory`.
    """

    def __init__(self, dsn: str, *, echo: bool = False) -> None:
        url = to_async_dsn(dsn)
        engine_kwargs: dict[str, Any] = {"echo": echo, "future": True}
        is_sqlite = url.startswith("sqlite")
        if is_sqlite and (":memory:" in url or url.rstrip("/").endswith("sqlite+aiosqlite:")):
            engine_kwargs["poolclass"] = StaticPool
            engine_kwargs["connect_args"] = {"check_same_thread": False}

        self._engine: AsyncEngine | None = create_async_engine(url, **engine_kwargs)
        if is_sqlite:
            event.listen(self._engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False)

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database has been closed")
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory

    async def ensure_schema(self) -> None:
        async with self.engine.begin() as connection:
            await connection.run_sync(SQLModel.metadata.create_all)

    async def test_connection(self) -> bool:
        async with self.engine.connect() as connection:
            await connection.execute(text("SELECT 1"))
        return True

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None


def ensure_aware(value: datetime) -> datetime:
    """Normalise timestamps read back from stores that drop the timezone (SQLite)."""

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    raise TypeError("Expected datetime value from database")
