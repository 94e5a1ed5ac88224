"""Async engine, session factory and the unit-of-work helper."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.pool import StaticPool

from ..domain.errors import ConflictError
from ..models import Base
from ..obs.queries import add_query_logger

logger = logging.getLogger("tableorder.db")

# Populated by ``init_engine`` at startup, or by tests through
# ``create_test_session``.
engine: AsyncEngine | None = None
SessionLocal: async_sessionmaker[AsyncSession] | None = None


def _make_factory(eng: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(eng, expire_on_commit=False, class_=AsyncSession)


def init_engine(url: str) -> async_sessionmaker[AsyncSession]:
    """Create the process-wide engine for ``url`` and return its session factory."""
    global engine, SessionLocal

    kwargs: dict = {}
    if url.startswith("sqlite") and ":memory:" in url:
        kwargs = {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
    engine = create_async_engine(url, **kwargs)
    add_query_logger(engine, engine.url.database or "default")
    SessionLocal = _make_factory(engine)
    return SessionLocal


def create_test_session() -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """Return a session factory and engine backed by an in-memory SQLite database.

    The static pool makes every connection share the same database, so the
    schema created by :func:`create_schema` is visible to all sessions.
    """
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    add_query_logger(eng, "test")
    return _make_factory(eng), eng


async def create_schema(eng: AsyncEngine) -> None:
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose() -> None:
    global engine, SessionLocal
    if engine is not None:
        await engine.dispose()
    engine = None
    SessionLocal = None


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    if SessionLocal is None:
        raise RuntimeError("database engine is not initialised")
    async with SessionLocal() as session:
        yield session


@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Run the enclosed block as one transaction.

    Commits on success and rolls back on any exception. Unique-constraint
    violations and stale version counters mean another request won the race;
    they surface as :class:`ConflictError` so the client can retry.
    """
    try:
        yield session
        await session.commit()
    except (IntegrityError, StaleDataError) as exc:
        await session.rollback()
        logger.info("concurrent update rejected: %s", exc.__class__.__name__)
        raise ConflictError(
            "the resource was modified concurrently, retry the request"
        ) from exc
    except BaseException:
        await session.rollback()
        raise


__all__ = [
    "SessionLocal",
    "atomic",
    "create_schema",
    "create_test_session",
    "dispose",
    "engine",
    "get_session",
    "init_engine",
]
