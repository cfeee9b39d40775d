"""
Pytest configuration and fixtures

Every test gets its own SQLite database file under tmp_path, so nothing
leaks between tests. NullPool keeps connections from being shared across
event loops (pytest-asyncio loop vs. the TestClient loop).
"""
import os

# Settings are read at import time, point them at SQLite before importing the app
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./moodsignal-test.db"
os.environ.setdefault("STORE_TIMEOUT_S", "10")

import asyncio

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession

from helpers import create_schema, make_engine


@pytest.fixture
async def session_factory(tmp_path):
    engine = make_engine(tmp_path)
    await create_schema(engine)
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def sync_session_factory(tmp_path):
    """Session factory for sync tests (TestClient, CLI)."""
    engine = make_engine(tmp_path)
    asyncio.run(create_schema(engine))
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    asyncio.run(engine.dispose())
