import os

import httpx
import pytest_asyncio
from sqlalchemy.pool import StaticPool

# Import Base + all models so metadata is complete
from app.models import Base
from app.core.db import Database
from app.main import app

from tests.fixtures_seed import (  # noqa: F401
    brand_profile,
    developer,
    other_developer,
    platform_admin,
    trusted_developer,
)


def _test_db_url() -> str:
    # in-memory SQLite unless a real database is provided
    return os.getenv("DATABASE_URL_TEST", "sqlite+aiosqlite:///:memory:")


@pytest_asyncio.fixture
async def database():
    """Fresh schema per test, built from the model metadata."""
    url = _test_db_url()
    if url.startswith("sqlite"):
        db = Database(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    else:
        db = Database(url, pool_pre_ping=True)
    try:
        async with db.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
        yield db
    finally:
        await db.dispose()


@pytest_asyncio.fixture
async def db_session(database):
    async with database.sessionmaker() as session:
        yield session


@pytest_asyncio.fixture
async def client(database):
    """
    HTTP client bound to the test database.
    ASGITransport does not run the lifespan, so the storage handle is injected directly.
    """
    app.state.database = database
    app.state.location_resolver = None

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    del app.state.database
