"""Shared fixtures: an in-memory database and an app client bound to it."""

from __future__ import annotations

import os
import tempfile

# Keep the default SQLite file out of /data when the app module is imported
os.environ.setdefault("DATA_PATH", tempfile.mkdtemp(prefix="apimonitor-test-"))

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from apimonitor.database import Base, get_db  # noqa: E402


@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def client():
    """TestClient without lifespan, for routes that never reach the database."""
    from apimonitor.main import app

    return TestClient(app)


@pytest.fixture
async def api_client(session_factory):
    """Async client on the test's own loop, with get_db pointed at the in-memory database."""
    from apimonitor.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client
    app.dependency_overrides.clear()
