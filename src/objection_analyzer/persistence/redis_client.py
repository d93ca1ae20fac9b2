"""
Redis client with connection pooling for the persistence layer.

One process-wide pool is shared by the category store, the case store and
the Celery tasks.
"""

from typing import Optional

import structlog
from redis import ConnectionPool, Redis

from objection_analyzer.config import Settings

logger = structlog.get_logger(__name__)


class RedisClient:
    """Redis client factory backed by a lazily created connection pool."""

    _pool: Optional[ConnectionPool] = None

    @classmethod
    def get_client(cls, settings: Settings) -> Redis:
        """
        Get a Redis client bound to the shared pool.

        Args:
            settings: Application settings

        Returns:
            Redis client instance (str responses)
        """
        if cls._pool is None:
            cls._pool = ConnectionPool.from_url(
                settings.REDIS_URL,
                max_connections=settings.REDIS_MAX_CONNECTIONS,
                decode_responses=True,  # Auto-decode bytes to str
                socket_timeout=5,
                socket_connect_timeout=5,
                retry_on_timeout=True,
            )
            logger.info("Initialized Redis connection pool", max_connections=settings.REDIS_MAX_CONNECTIONS)

        return Redis(connection_pool=cls._pool)

    @classmethod
    def close_pool(cls) -> None:
        """Close the connection pool (cleanup on shutdown)."""
        if cls._pool is not None:
            cls._pool.disconnect()
            cls._pool = None
            logger.info("Closed Redis connection pool")
