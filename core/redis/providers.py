from dishka import Provider, Scope, provide, FromComponent
from typing import Annotated, Any, AsyncIterable
from core.environment.config import Settings
from redis.asyncio import Redis
import json
import logging


class RedisProvider(Provider):
    """
    Provider for Redis client.
    """

    scope = Scope.APP
    component = "redis"

    @provide(scope=Scope.APP)
    async def provide_redis_client(
        self,
        settings: Annotated[Settings, FromComponent("environment")]
    ) -> AsyncIterable[Redis]:
        """
        Create Redis client for the application.

        Parameters
        ----------
        settings : Settings
            Application settings

        Yields
        ------
        Redis
            Redis client instance
        """
        redis_client = Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            db=settings.redis_db,
            password=settings.redis_password if settings.redis_password else None,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )

        try:
            await redis_client.ping()
            yield redis_client
        except Exception as e:
            raise ConnectionError(f"Failed to connect to Redis: {e}")
        finally:
            await redis_client.aclose()


class CacheService:
    """
    JSON document storage on top of Redis.

    Read and write failures are logged and reported through the return
    value; callers decide whether a missed write matters.

    Parameters
    ----------
    redis_client : Redis
        Redis client instance
    logger : logging.Logger
        Logger instance
    """

    def __init__(self, redis_client: Redis, logger: logging.Logger):
        self.redis = redis_client
        self.logger = logger

    async def get(self, key: str) -> Any | None:
        """
        Get stored value.

        Parameters
        ----------
        key : str
            Storage key

        Returns
        -------
        Any | None
            Decoded value or None when missing or unreadable
        """
        try:
            value = await self.redis.get(key)
            if value:
                return json.loads(value)
        except Exception as e:
            self.logger.warning(f"Redis read failed for {key}: {e}")
        return None

    async def set(self, key: str, value: Any) -> bool:
        """
        Store value.

        Parameters
        ----------
        key : str
            Storage key
        value : Any
            JSON-serializable value

        Returns
        -------
        bool
            Success status
        """
        try:
            await self.redis.set(key, json.dumps(value))
            return True
        except Exception as e:
            self.logger.warning(f"Redis write failed for {key}: {e}")
            return False


class CacheProvider(Provider):
    """
    Provider for cache service.
    """

    component = "cache"
    scope = Scope.APP

    @provide(scope=Scope.APP)
    def provide_cache_service(
        self,
        redis_client: Annotated[Redis, FromComponent("redis")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> CacheService:
        """
        Provide cache service.

        Parameters
        ----------
        redis_client : Redis
            Redis client instance
        logger : logging.Logger
            Logger instance

        Returns
        -------
        CacheService
            Cache service instance
        """
        return CacheService(redis_client, logger)
