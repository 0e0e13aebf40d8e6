"""Tests for the user cache and its in-memory backend."""
import json
from unittest.mock import AsyncMock

from core.redis import RedisClient
from core.user_cache import (
    ALL_USERS_KEY,
    CACHE_SCHEMA_VERSION,
    InMemoryCacheBackend,
    UserCache,
)
from models.user import Gender
from schemas.user import UserRecord


class TestCacheKeys:
    """Backend key layout."""

    def test__cache_key__includes_schema_version(self) -> None:
        assert UserCache.cache_key(ALL_USERS_KEY) == f"users:v{CACHE_SCHEMA_VERSION}:all"
        assert UserCache.cache_key(7) == f"users:v{CACHE_SCHEMA_VERSION}:7"


class TestUserCache:
    """get / put / evict behaviour with the cache enabled."""

    async def test__get__miss_returns_none(self, user_cache: UserCache) -> None:
        assert await user_cache.get(ALL_USERS_KEY) is None
        assert await user_cache.get(1) is None

    async def test__put_get__user_list(
        self,
        user_cache: UserCache,
        persisted_users: list[UserRecord],
    ) -> None:
        await user_cache.put(ALL_USERS_KEY, persisted_users)

        cached = await user_cache.get(ALL_USERS_KEY)

        assert cached == persisted_users
        assert [user.email for user in cached] == [user.email for user in persisted_users]

    async def test__put_get__single_user(
        self,
        user_cache: UserCache,
        persisted_users: list[UserRecord],
    ) -> None:
        await user_cache.put(3, persisted_users[2])

        cached = await user_cache.get(3)

        assert isinstance(cached, UserRecord)
        assert cached.gender is Gender.ATTACK_HELICOPTER
        assert cached == persisted_users[2]

    async def test__put_get__empty_list_is_a_hit(self, user_cache: UserCache) -> None:
        """An empty user list is cached, not treated as a miss."""
        await user_cache.put(ALL_USERS_KEY, [])

        assert await user_cache.get(ALL_USERS_KEY) == []

    async def test__put__stores_json(
        self,
        user_cache: UserCache,
        cache_backend: InMemoryCacheBackend,
        persisted_users: list[UserRecord],
    ) -> None:
        await user_cache.put(1, persisted_users[0])

        raw = await cache_backend.get(UserCache.cache_key(1))

        assert json.loads(raw) == {
            "id": 1,
            "first_name": "Alice",
            "last_name": "Smith",
            "gender": "FEMALE",
            "email": "alice.smith@example.com",
        }

    async def test__put__replaces_existing_entry(
        self,
        user_cache: UserCache,
        persisted_users: list[UserRecord],
    ) -> None:
        await user_cache.put(ALL_USERS_KEY, persisted_users)
        await user_cache.put(ALL_USERS_KEY, persisted_users[:1])

        assert await user_cache.get(ALL_USERS_KEY) == persisted_users[:1]

    async def test__evict__removes_only_that_key(
        self,
        user_cache: UserCache,
        persisted_users: list[UserRecord],
    ) -> None:
        await user_cache.put(ALL_USERS_KEY, persisted_users)
        await user_cache.put(1, persisted_users[0])

        await user_cache.evict(1)

        assert await user_cache.get(1) is None
        assert await user_cache.get(ALL_USERS_KEY) == persisted_users

    async def test__evict__missing_key_is_noop(self, user_cache: UserCache) -> None:
        await user_cache.evict(42)

    async def test__evict_all__removes_user_entries_only(
        self,
        user_cache: UserCache,
        cache_backend: InMemoryCacheBackend,
        persisted_users: list[UserRecord],
    ) -> None:
        await cache_backend.set("other:key", "keep")
        await user_cache.put(ALL_USERS_KEY, persisted_users)
        await user_cache.put(2, persisted_users[1])

        await user_cache.evict_all()

        assert await user_cache.get(ALL_USERS_KEY) is None
        assert await user_cache.get(2) is None
        assert await cache_backend.get("other:key") == b"keep"


class TestDisabledUserCache:
    """With enabled=False every operation is a no-op."""

    async def test__put__stores_nothing(
        self,
        disabled_cache: UserCache,
        cache_backend: InMemoryCacheBackend,
        persisted_users: list[UserRecord],
    ) -> None:
        await disabled_cache.put(ALL_USERS_KEY, persisted_users)
        await disabled_cache.put(1, persisted_users[0])

        assert len(cache_backend) == 0
        assert disabled_cache.enabled is False

    async def test__get__always_misses(
        self,
        disabled_cache: UserCache,
        cache_backend: InMemoryCacheBackend,
        persisted_users: list[UserRecord],
    ) -> None:
        """Entries already in the backend are ignored."""
        enabled = UserCache(cache_backend)
        await enabled.put(ALL_USERS_KEY, persisted_users)

        assert await disabled_cache.get(ALL_USERS_KEY) is None

    async def test__evict__leaves_backend_untouched(
        self,
        disabled_cache: UserCache,
        cache_backend: InMemoryCacheBackend,
        persisted_users: list[UserRecord],
    ) -> None:
        await UserCache(cache_backend).put(1, persisted_users[0])

        await disabled_cache.evict(1)
        await disabled_cache.evict_all()

        assert len(cache_backend) == 1


class TestUserCacheOverRedis:
    """UserCache on a RedisClient that cannot reach Redis."""

    async def test__disconnected_redis__behaves_as_empty_cache(
        self,
        persisted_users: list[UserRecord],
    ) -> None:
        client = RedisClient("redis://localhost:6379", enabled=False)
        await client.connect()
        cache = UserCache(client)

        await cache.put(ALL_USERS_KEY, persisted_users)

        assert await cache.get(ALL_USERS_KEY) is None
        await cache.evict(ALL_USERS_KEY)
        await cache.evict_all()

    async def test__redis_get__uses_versioned_key(self) -> None:
        client = RedisClient("redis://localhost:6379")
        client.get = AsyncMock(return_value=None)
        cache = UserCache(client)

        await cache.get(5)

        client.get.assert_awaited_once_with(f"users:v{CACHE_SCHEMA_VERSION}:5")
