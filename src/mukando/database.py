"""Async SQLAlchemy engine and session management for the local mirror."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from mukando.db.base import Base


def _is_memory_url(url: str) -> bool:
    return url.endswith(":memory:") or url.rstrip("/").endswith("sqlite+aiosqlite:")


class Database:
    """One engine and session factory, built explicitly and passed to whoever needs it.

    The schema is created lazily on the first session and only once per instance.
    """

    def __init__(self, url: str, echo: bool = False) -> None:
        self.url = url
        engine_kwargs: dict[str, object] = {"echo": echo}
        if _is_memory_url(url):
            # Every connection to :memory: is a new database; share one.
            engine_kwargs["poolclass"] = StaticPool
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        self._schema_ready = False
        self._schema_lock = asyncio.Lock()

    async def init_schema(self) -> None:
        """Issue CREATE TABLE IF NOT EXISTS for every mirrored entity."""
        if self._schema_ready:
            return
        async with self._schema_lock:
            if self._schema_ready:
                return
            # Import for side effect: registers the tables on Base.metadata.
            import mukando.db.models  # noqa: F401

            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            self._schema_ready = True

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Yield a session, creating the schema first if needed."""
        await self.init_schema()
        async with self.session_factory() as session:
            yield session

    async def ping(self) -> bool:
        async with self.engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            return result.scalar() == 1

    async def close(self) -> None:
        """Dispose of the engine."""
        await self.engine.dispose()


def get_database(request: Request) -> Database:
    """Get the Database attached to the running app."""
    return request.app.state.database


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session (FastAPI dependency)."""
    async with get_database(request).session() as session:
        yield session
