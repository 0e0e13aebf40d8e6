"""Side cache for user lookups, keyed by the full collection or by user id."""
import fnmatch
import logging
from typing import Literal, Protocol

from schemas.user import UserRecord, user_list_adapter

logger = logging.getLogger(__name__)

# Cache schema version - included in all cache keys (e.g., "users:v1:all")
#
# Bump this version when UserRecord fields are added, removed, or renamed.
# New code then looks for "users:v2:..." keys and never decodes entries written
# with the previous shape. There is no TTL, so stale-version keys linger until
# evict_all() or a flush.
CACHE_SCHEMA_VERSION = 1

ALL_USERS_KEY: Literal["all"] = "all"

CacheKey = int | Literal["all"]
CacheValue = UserRecord | list[UserRecord]


class CacheBackend(Protocol):
    """
    Minimal key/value operations the user cache needs from a backend.

    get and set may fail open (miss / False). delete and delete_pattern must
    raise when they cannot remove an entry that may still be served.
    """

    async def get(self, key: str) -> bytes | None: ...

    async def set(self, key: str, value: str | bytes) -> bool: ...

    async def delete(self, *keys: str) -> bool: ...

    async def delete_pattern(self, pattern: str) -> bool: ...


class InMemoryCacheBackend:
    """
    Process-local backend holding serialized values in a dict.

    Used for single-process runs and tests. Values are stored as bytes so the
    serialization path is the same as with Redis.
    """

    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}

    async def get(self, key: str) -> bytes | None:
        return self._data.get(key)

    async def set(self, key: str, value: str | bytes) -> bool:
        self._data[key] = value.encode() if isinstance(value, str) else value
        return True

    async def delete(self, *keys: str) -> bool:
        for key in keys:
            self._data.pop(key, None)
        return True

    async def delete_pattern(self, pattern: str) -> bool:
        for key in [k for k in self._data if fnmatch.fnmatchcase(k, pattern)]:
            del self._data[key]
        return True

    def __len__(self) -> int:
        return len(self._data)


class UserCache:
    """
    Key/value cache of serialized users.

    The "all" key holds the whole user list ordered by id; an integer key holds
    a single user. Presence is binary: there is no TTL and no size-based
    eviction.

    When constructed with enabled=False every method is a no-op and get()
    always misses, so callers fall through to the store.
    """

    def __init__(self, backend: CacheBackend, enabled: bool = True) -> None:
        self._backend = backend
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        """Process-wide cache switch, fixed at construction."""
        return self._enabled

    @staticmethod
    def cache_key(key: CacheKey) -> str:
        """Namespaced backend key for a logical cache key."""
        return f"users:v{CACHE_SCHEMA_VERSION}:{key}"

    async def get(self, key: CacheKey) -> CacheValue | None:
        """
        Get a cached value.

        Returns:
            list[UserRecord] for the "all" key, UserRecord for an id key,
            None on a miss or when the cache is disabled.
        """
        if not self._enabled:
            return None
        data = await self._backend.get(self.cache_key(key))
        if data is None:
            logger.debug("user_cache_miss key=%s", key)
            return None
        logger.debug("user_cache_hit key=%s", key)
        return self._deserialize(key, data)

    async def put(self, key: CacheKey, value: CacheValue) -> None:
        """Store a value under key, replacing any previous entry."""
        if not self._enabled:
            return
        await self._backend.set(self.cache_key(key), self._serialize(value))
        logger.debug("user_cache_put key=%s", key)

    async def evict(self, key: CacheKey) -> None:
        """Remove a single entry. Missing keys are ignored; backend failures propagate."""
        if not self._enabled:
            return
        await self._backend.delete(self.cache_key(key))
        logger.debug("user_cache_evict key=%s", key)

    async def evict_all(self) -> None:
        """
        Remove every user cache entry of the current schema version.

        Backend failures propagate.
        """
        if not self._enabled:
            return
        await self._backend.delete_pattern(f"users:v{CACHE_SCHEMA_VERSION}:*")
        logger.debug("user_cache_evict_all")

    @staticmethod
    def _serialize(value: CacheValue) -> bytes:
        if isinstance(value, UserRecord):
            return value.model_dump_json().encode()
        return user_list_adapter.dump_json(value)

    @staticmethod
    def _deserialize(key: CacheKey, data: bytes) -> CacheValue:
        if key == ALL_USERS_KEY:
            return user_list_adapter.validate_json(data)
        return UserRecord.model_validate_json(data)
