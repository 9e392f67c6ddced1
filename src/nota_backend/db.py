from __future__ import annotations

from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from nota_backend.config import settings
from nota_backend.db_urls import normalize_database_url_for_async


def _sqlite_lower(value: object) -> object:
    return value.lower() if isinstance(value, str) else value


def _create_async_engine(database_url: str) -> AsyncEngine:
    url = normalize_database_url_for_async(database_url)
    engine = create_async_engine(url, echo=False, pool_pre_ping=True)

    if engine.dialect.name == "sqlite":
        # SQLite's built-in lower() only folds ASCII; search relies on Unicode folding.
        @event.listens_for(engine.sync_engine, "connect")
        def _register_sqlite_functions(dbapi_conn, _record):  # type: ignore[no-untyped-def]
            dbapi_conn.create_function("lower", 1, _sqlite_lower, deterministic=True)

    return engine


@lru_cache(maxsize=4)
def get_engine() -> AsyncEngine:
    # Rebuilt after tests/deployments override settings.database_url.
    return _create_async_engine(settings.database_url)


def reset_engine_cache() -> None:
    get_engine.cache_clear()


async def dispose_engine() -> None:
    # Shut down aiosqlite worker threads while the event loop is still alive.
    if get_engine.cache_info().currsize:
        await get_engine().dispose()
    get_engine.cache_clear()


async def init_db() -> None:
    # Local/test fallback only; production schema is owned by Alembic.
    from nota_backend import models  # noqa: F401

    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


def _session_maker() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(get_engine(), class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    async with _session_maker()() as session:
        yield session


async def get_session() -> AsyncIterator[AsyncSession]:
    async with _session_maker()() as session:
        yield session


@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Run a unit of work in one transaction.

    Request dependencies (like auth) may already have triggered an implicit
    transaction on the session. `session.begin()` would raise in that case,
    so we fall back to an explicit commit/rollback boundary.
    """
    if session.in_transaction():
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        return

    async with session.begin():
        yield session
