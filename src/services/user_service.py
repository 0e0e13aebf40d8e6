"""
User services: interchangeable cache-consistency strategies over UserStore.

Three implementations share the UserService protocol and are picked when the
service is built (create_user_service):

- BulkInvalidateUserService: the user list is read through the "all" key;
  any write evicts "all".
- KeyedInvalidateUserService: the user list is read through the "all" key;
  writes touch only the per-id key. The "all" entry stays stale after writes
  until reload_users() is called.
- TransactionalUserService: no cache at all, straight to the store. Used as a
  throughput baseline and as ground truth when checking the cached services.

Store errors (NullInputError, UserValidationError) propagate unchanged through
every service. The store call always runs before the cache is touched, so a
failed write never mutates the cache. Writes and cache mutations are not
atomic: another worker can observe the store change before the cache change.

Cache entries have no TTL, so a failed eviction is raised to the caller (the
store change is already committed at that point) rather than hidden.
"""
import logging
from collections.abc import Iterable
from typing import Protocol

from core.config import ConsistencyStrategy
from core.user_cache import ALL_USERS_KEY, UserCache
from schemas.user import UserRecord
from services.user_store import UserStore

logger = logging.getLogger(__name__)


class UserService(Protocol):
    """Operations every consistency strategy provides."""

    async def list_users(self) -> list[UserRecord]: ...

    async def save_user(self, user: UserRecord | None) -> UserRecord: ...

    async def delete_user(self, user_id: int | None) -> None: ...


async def _read_through_all(cache: UserCache, store: UserStore) -> list[UserRecord]:
    """Return the cached user list, loading and caching it from the store on a miss."""
    cached = await cache.get(ALL_USERS_KEY)
    if cached is not None:
        return cached
    users = await store.list_all()
    await cache.put(ALL_USERS_KEY, users)
    return users


class BulkInvalidateUserService:
    """Cache the full user list; invalidate it on every write."""

    def __init__(self, store: UserStore, cache: UserCache) -> None:
        self._store = store
        self._cache = cache

    async def list_users(self) -> list[UserRecord]:
        if not self._cache.enabled:
            return await self._store.list_all()
        return await _read_through_all(self._cache, self._store)

    async def save_user(self, user: UserRecord | None) -> UserRecord:
        saved = await self._store.save(user)
        if self._cache.enabled:
            await self._cache.evict(ALL_USERS_KEY)
        return saved

    async def delete_user(self, user_id: int | None) -> None:
        await self._store.delete_by_id(user_id)
        if self._cache.enabled:
            await self._cache.evict(ALL_USERS_KEY)


class KeyedInvalidateUserService:
    """
    Cache the full user list and individual users under their id.

    save_user writes the saved user to its id key and delete_user evicts the
    id key. Neither touches the "all" entry, so list_users can return a list
    that predates recent writes. Call reload_users() to drop it.
    """

    def __init__(self, store: UserStore, cache: UserCache) -> None:
        self._store = store
        self._cache = cache

    async def list_users(self) -> list[UserRecord]:
        if not self._cache.enabled:
            return await self._store.list_all()
        return await _read_through_all(self._cache, self._store)

    async def find_user(self, user_id: int | None) -> UserRecord | None:
        """Read one user through its id key."""
        if not self._cache.enabled:
            return await self._store.find_by_id(user_id)
        if user_id is not None:
            cached = await self._cache.get(user_id)
            if cached is not None:
                return cached
        user = await self._store.find_by_id(user_id)
        if user is not None:
            await self._cache.put(user.id, user)
        return user

    async def save_user(self, user: UserRecord | None) -> UserRecord:
        saved = await self._store.save(user)
        if self._cache.enabled:
            # Evict first: a failed set then leaves a miss, not the old value
            await self._cache.evict(saved.id)
            await self._cache.put(saved.id, saved)
        return saved

    async def delete_user(self, user_id: int | None) -> None:
        await self._store.delete_by_id(user_id)
        if self._cache.enabled:
            await self._cache.evict(user_id)

    async def reload_users(self) -> None:
        """Drop the cached user list so the next list_users reads the store."""
        if not self._cache.enabled:
            return
        await self._cache.evict(ALL_USERS_KEY)
        logger.debug("user_list_reload_requested")


class TransactionalUserService:
    """Every call goes straight to the store; the cache is never consulted."""

    def __init__(self, store: UserStore) -> None:
        self._store = store

    async def list_users(self) -> list[UserRecord]:
        return await self._store.list_all()

    async def list_user_ids(self) -> list[int]:
        return await self._store.list_ids()

    async def find_user(self, user_id: int | None) -> UserRecord | None:
        return await self._store.find_by_id(user_id)

    async def find_users_by_ids(
        self, user_ids: Iterable[int | None] | None,
    ) -> list[UserRecord]:
        return await self._store.find_by_ids(user_ids)

    async def save_user(self, user: UserRecord | None) -> UserRecord:
        return await self._store.save(user)

    async def save_users(
        self, users: Iterable[UserRecord | None] | None,
    ) -> list[UserRecord]:
        return await self._store.save_all(users)

    async def update_user(self, user: UserRecord | None) -> UserRecord:
        return await self._store.update(user)

    async def delete_user(self, user_id: int | None) -> None:
        await self._store.delete_by_id(user_id)

    async def delete_users_by_ids(self, user_ids: Iterable[int | None] | None) -> None:
        await self._store.delete_by_ids(user_ids)

    async def delete_all_users(self) -> None:
        await self._store.delete_all()


def create_user_service(
    strategy: ConsistencyStrategy | str,
    store: UserStore,
    cache: UserCache,
) -> UserService:
    """
    Build the UserService for a strategy name.

    Raises:
        ValueError: If the strategy name is unknown.
    """
    strategy = ConsistencyStrategy(strategy)
    if strategy == ConsistencyStrategy.BULK_INVALIDATE:
        return BulkInvalidateUserService(store, cache)
    if strategy == ConsistencyStrategy.KEYED_INVALIDATE:
        return KeyedInvalidateUserService(store, cache)
    return TransactionalUserService(store)
