"""Pytest fixtures for testing."""
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from core.user_cache import InMemoryCacheBackend, UserCache
from db.session import create_session_factory
from models.base import Base
from models.user import Gender
from schemas.user import UserRecord
from services.user_store import UserStore


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """
    SQLite database file unique to the test.

    A fresh file per test means user ids always start at 1.
    """
    return f"sqlite+aiosqlite:///{tmp_path / 'users.db'}"


@pytest.fixture
async def async_engine(database_url: str) -> AsyncGenerator[AsyncEngine]:
    """Create an async engine with the users table in place."""
    engine = create_async_engine(database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test database."""
    return create_session_factory(async_engine)


@pytest.fixture
def user_store(session_factory: async_sessionmaker[AsyncSession]) -> UserStore:
    """Entity store over the test database."""
    return UserStore(session_factory)


@pytest.fixture
def cache_backend() -> InMemoryCacheBackend:
    """Process-local cache backend, empty for every test."""
    return InMemoryCacheBackend()


@pytest.fixture
def user_cache(cache_backend: InMemoryCacheBackend) -> UserCache:
    """Enabled user cache."""
    return UserCache(cache_backend, enabled=True)


@pytest.fixture
def disabled_cache(cache_backend: InMemoryCacheBackend) -> UserCache:
    """User cache with the process-wide switch turned off."""
    return UserCache(cache_backend, enabled=False)


@pytest.fixture
def users_to_save() -> list[UserRecord]:
    """Three valid transient users, in the order they are expected to get ids 1, 2, 3."""
    return [
        UserRecord(first_name="Alice", last_name="Smith", gender=Gender.FEMALE),
        UserRecord(first_name="Bob", last_name="Johnson", gender=Gender.MALE),
        UserRecord(first_name="Terry", last_name="Jerry", gender=Gender.ATTACK_HELICOPTER),
    ]


@pytest.fixture
def persisted_users() -> list[UserRecord]:
    """
    The users from users_to_save as they look after saving.

    Emails are set on purpose: equality ignores email.
    """
    return [
        UserRecord(
            id=1, first_name="Alice", last_name="Smith",
            gender=Gender.FEMALE, email="alice.smith@example.com",
        ),
        UserRecord(
            id=2, first_name="Bob", last_name="Johnson",
            gender=Gender.MALE, email="bob.johnson@example.com",
        ),
        UserRecord(
            id=3, first_name="Terry", last_name="Jerry",
            gender=Gender.ATTACK_HELICOPTER, email="terry.jerry@example.com",
        ),
    ]


@pytest.fixture
async def seeded_store(
    user_store: UserStore,
    users_to_save: list[UserRecord],
) -> UserStore:
    """Store holding the three users with ids 1, 2, 3."""
    for user in users_to_save:
        await user_store.save(user)
    return user_store
