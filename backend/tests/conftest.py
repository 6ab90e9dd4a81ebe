import os

# Settings are read at import time; keep tests off Redis and the rate limiter
os.environ.setdefault("MANGA_CACHE_BACKEND", "memory")
os.environ.setdefault("MANGA_RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("MANGA_VIEW_STATS_BATCH_DELAY_MS", "0")

from collections.abc import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from manga_stats.core.cache import MemoryCacheBackend, set_cache_backend  # noqa: E402
from manga_stats.db.base import Base  # noqa: E402
from manga_stats.main import app  # noqa: E402
import manga_stats.models  # noqa: E402, F401

@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client wired to the FastAPI app (no real server)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

@pytest.fixture(autouse=True)
def fresh_cache():
    """Each test starts with an empty in-process response cache."""
    backend = MemoryCacheBackend()
    set_cache_backend(backend)
    yield backend
    set_cache_backend(None)

@pytest.fixture
async def engine(tmp_path):
    """File-backed SQLite so per-entity sessions can run side by side."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'manga_stats.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()

@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
