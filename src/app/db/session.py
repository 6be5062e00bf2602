"""Database engine, sessions and transaction helpers.

``create_application`` builds one ``DatabaseManager`` and keeps it on
``app.state``; requests get their session from ``get_db``. Repositories only
flush, services decide where a unit of work ends with ``atomic``.

Tables come from Alembic (``python scripts/migrate.py upgrade head``), never
from ``create_all`` at startup.
"""
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Annotated, Any, TypeVar

import structlog
from fastapi import Depends, Request
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from ..core.config import Settings

log = structlog.get_logger(__name__)

R = TypeVar("R")


class Base(DeclarativeBase):
    pass


class DatabaseManager:
    """Lazily creates the engine; ``close`` returns the pool on shutdown."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    def _engine_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {"echo": self.settings.DATABASE_ECHO, "pool_pre_ping": True}
        # SQLite (local runs, tests) uses a pool without size limits
        if make_url(self.settings.DATABASE_URL).get_backend_name() != "sqlite":
            options.update(
                pool_size=self.settings.DATABASE_POOL_SIZE,
                max_overflow=self.settings.DATABASE_MAX_OVERFLOW,
                pool_timeout=self.settings.DATABASE_POOL_TIMEOUT,
            )
        return options

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            options = self._engine_options()
            self._engine = create_async_engine(self.settings.DATABASE_URL, **options)
            log.info(
                "db_engine_created",
                backend=self._engine.dialect.name,
                pool_size=options.get("pool_size"),
            )
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                bind=self.engine,
                expire_on_commit=False,
                autoflush=False,
            )
        return self._session_factory

    async def close(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._session_factory = None
        log.info("db_connections_closed")

    async def ping(self) -> bool:
        """True when ``SELECT 1`` succeeds; failures are logged, not raised."""
        try:
            async with self.session_factory() as session:
                await session.execute(text("SELECT 1"))
        except Exception as exc:
            log.error("db_ping_failed", error=str(exc))
            return False
        return True

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session that commits on a clean exit and rolls back otherwise."""
        async with self.session_factory() as session:
            async with atomic(session):
                yield session


@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """Commit everything written inside the block, or roll all of it back."""
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise


async def run_atomic(
    session: AsyncSession,
    fn: Callable[[AsyncSession], Awaitable[R]],
) -> R:
    async with atomic(session):
        return await fn(session)


def get_db_manager(request: Request) -> DatabaseManager:
    return request.app.state.db_manager


async def get_db(
    manager: Annotated[DatabaseManager, Depends(get_db_manager)],
) -> AsyncGenerator[AsyncSession, None]:
    """One session per request, committed after the endpoint returns."""
    async with manager.session() as session:
        yield session


DbSession = Annotated[AsyncSession, Depends(get_db)]
