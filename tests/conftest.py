from __future__ import annotations

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from helpers import RecordingPublisher
from nota_backend.config import settings
from nota_backend.db import dispose_engine, init_db, reset_engine_cache


@pytest.fixture
def anyio_backend() -> str:
    # SQLAlchemy's async engine and aiosqlite only run on asyncio.
    return "asyncio"


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
async def db(tmp_path: Path, anyio_backend: object) -> AsyncGenerator[None, None]:
    """Point the app at a fresh SQLite file and create the schema."""
    _ = anyio_backend
    old_db = settings.database_url
    settings.database_url = f"sqlite:///{tmp_path / 'test.db'}"
    reset_engine_cache()
    try:
        await init_db()
        yield
    finally:
        # Shut down aiosqlite worker threads while the event loop is still alive.
        await dispose_engine()
        settings.database_url = old_db
        reset_engine_cache()
