"""Build and tear down the store, cache and services for one process."""
import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncEngine

from core.config import CacheBackendType, ConsistencyStrategy, Settings, get_settings
from core.redis import RedisClient
from core.user_cache import InMemoryCacheBackend, UserCache
from db.session import create_engine_from_settings, create_session_factory, create_tables
from services.user_service import UserService, create_user_service
from services.user_store import UserStore

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Everything a caller needs to issue user operations."""

    settings: Settings
    engine: AsyncEngine
    store: UserStore
    cache: UserCache
    redis_client: RedisClient | None = None
    services: dict[ConsistencyStrategy, UserService] = field(default_factory=dict)

    def service(self, strategy: ConsistencyStrategy | str | None = None) -> UserService:
        """Return the service for strategy, or the configured default."""
        name = strategy if strategy is not None else self.settings.consistency_strategy
        return self.services[ConsistencyStrategy(name)]

    async def close(self) -> None:
        """Close Redis and dispose of the engine."""
        if self.redis_client is not None:
            await self.redis_client.close()
        await self.engine.dispose()


async def create_app_context(settings: Settings | None = None) -> AppContext:
    """
    Wire up the application from settings.

    Redis is only contacted when the cache is enabled and Redis-backed. If the
    connection fails the client stays disconnected and every cache read misses,
    so the services keep working against the database alone.
    """
    settings = settings or get_settings()

    engine = create_engine_from_settings(settings)
    if settings.db_create_tables:
        await create_tables(engine)
    store = UserStore(create_session_factory(engine))

    redis_client: RedisClient | None = None
    if settings.cache_backend == CacheBackendType.REDIS:
        redis_client = RedisClient(
            url=settings.redis_url,
            enabled=settings.cache_enabled,
            pool_size=settings.redis_pool_size,
        )
        await redis_client.connect()
        cache = UserCache(redis_client, enabled=settings.cache_enabled)
    else:
        cache = UserCache(InMemoryCacheBackend(), enabled=settings.cache_enabled)

    services = {
        strategy: create_user_service(strategy, store, cache)
        for strategy in ConsistencyStrategy
    }
    logger.info(
        "App context ready: cache_enabled=%s backend=%s default_strategy=%s",
        settings.cache_enabled,
        settings.cache_backend,
        settings.consistency_strategy,
    )
    return AppContext(
        settings=settings,
        engine=engine,
        store=store,
        cache=cache,
        redis_client=redis_client,
        services=services,
    )
