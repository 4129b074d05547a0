"""
Database manager.

Thin async wrapper around a SQLAlchemy engine. Every statement must be a
``text()`` clause or a SQLAlchemy construct; raw strings are rejected so that
values always travel as bound parameters.
"""
from __future__ import annotations

import sqlite3
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping, Sequence

from sqlalchemy import event
from sqlalchemy.engine import Engine, Result
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.sql.elements import TextClause, ClauseElement


# Per-connection pragmas for sqlite stores (tests, local replays).
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_connection: Any, connection_record: Any):
    if not isinstance(dbapi_connection, sqlite3.Connection):
        return
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


def _check_query(query: Any) -> None:
    if isinstance(query, str):
        raise TypeError("Raw SQL strings are disallowed. Use sqlalchemy.text().")
    if not isinstance(query, (TextClause, ClauseElement)):
        raise TypeError("Query must be a SQLAlchemy TextClause or ClauseElement.")


class DBM:
    def __init__(self, url: str, *, echo: bool = False):
        self.url = url
        self.engine: AsyncEngine = create_async_engine(
            url,
            echo=echo,
            future=True,
        )

        self.session_maker: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=self.engine,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Any) -> "DBM":
        db = settings.database
        if not db.url:
            raise ValueError("database url is not configured (set POOLSCORE_DATABASE__URL)")
        return cls(db.url, echo=db.echo)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self.session_maker() as session:
            yield session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncConnection]:
        """Run several statements on one connection; commit on success, roll back on error."""
        async with self.engine.begin() as conn:
            yield conn

    async def read(self, query: Any, params: Mapping[str, Any] | None = None) -> list[Any]:
        """Execute a read-only statement and return all rows as mappings."""
        _check_query(query)

        async with self.session() as session:
            result: Result = await session.execute(query, dict(params or {}))
            return list(result.mappings().all())

    async def write(self, query: Any, params: Mapping[str, Any] | None = None) -> int:
        """Execute a write statement inside a transaction and return row count."""
        _check_query(query)
        if not params:
            raise ValueError("Parameterized writes are required. Provide a params mapping.")

        async with self.session() as session:
            async with session.begin():
                result: Result = await session.execute(query, dict(params))
                return result.rowcount or 0

    async def write_many(
        self,
        query: Any,
        rows: Sequence[Mapping[str, Any]],
        *,
        chunk_size: int = 500,
    ) -> int:
        """Execute one statement for many parameter sets in a single transaction.

        Either every chunk is applied or none is.
        """
        _check_query(query)
        if not rows:
            return 0

        total = 0
        async with self.session() as session:
            async with session.begin():
                for start in range(0, len(rows), chunk_size):
                    chunk = [dict(r) for r in rows[start:start + chunk_size]]
                    result: Result = await session.execute(query, chunk)
                    total += max(result.rowcount or 0, 0)
        return total

    async def dispose(self) -> None:
        await self.engine.dispose()


__all__ = ["DBM"]
