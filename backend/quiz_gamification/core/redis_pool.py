"""One Redis connection pool for every Redis consumer in the service.

Locks, the question-pool cache, quiz sessions and the submit rate limiter
all go through ``get_redis()``. Each caller decides for itself what a
``redis.RedisError`` means; none of them treat Redis as a source of truth.
"""

import logging

import redis

from quiz_gamification.config import settings

logger = logging.getLogger(__name__)

_pool: redis.ConnectionPool | None = None


def get_redis() -> redis.Redis:
    global _pool
    if _pool is None:
        logger.debug("Opening Redis pool at %s", settings.redis_url)
        _pool = redis.ConnectionPool.from_url(
            settings.redis_url,
            decode_responses=True,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
        )
    return redis.Redis(connection_pool=_pool)


def reset_pool() -> None:
    """Drop the pool so the next call reconnects (tests, forked workers)."""
    global _pool
    if _pool is not None:
        _pool.disconnect()
    _pool = None
