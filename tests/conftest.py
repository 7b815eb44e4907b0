from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tasktracker.database import Base, get_db
from tasktracker.main import app
from tasktracker.models.tasks import Tag
from tasktracker.models.user import User
from tasktracker.repository import TaskRepository

# Fixed reference time so due-date and overdue checks are deterministic
NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
async def engine():
    # In-memory SQLite shared across connections through a single static pool
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def repo(db) -> TaskRepository:
    return TaskRepository(db)


@pytest.fixture
async def seed(session_factory):
    """Two users and four tags, committed before the test body runs."""
    async with session_factory() as session:
        alice = User(name="Alice", email="alice@example.com")
        bob = User(name="Bob", email="bob@example.com")
        tags = [Tag(name=n) for n in ("bug", "feature", "refactor", "docs")]
        session.add_all([alice, bob, *tags])
        await session.commit()
        return {
            "alice": alice.id,
            "bob": bob.id,
            "tags": {t.name: t.id for t in tags},
        }


@pytest.fixture
async def client(session_factory, seed):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


