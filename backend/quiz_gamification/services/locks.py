"""Per-user serialization of progression, achievement and leaderboard writes.

Two backends, selected by ``USER_LOCK_BACKEND``:

- ``redis`` – a redis-py ``Lock`` named ``lock:user:{user_id}`` that expires
  after ``USER_LOCK_TIMEOUT_SECONDS``. Works across workers.
- ``local`` – an in-process lock per user id (single worker, tests).

Usage
-----
```python
with user_lock(user_id) as acquired:
    if not acquired:
        ...  # defer the writes to the outbox
```
"""

import logging
import threading
import weakref
from contextlib import contextmanager
from typing import Iterator

import redis

from quiz_gamification.config import settings
from quiz_gamification.core.redis_pool import get_redis

logger = logging.getLogger(__name__)

# Entries vanish once no caller holds or waits on the user's lock.
_local_locks: "weakref.WeakValueDictionary[str, _UserLock]" = weakref.WeakValueDictionary()
_local_registry = threading.Lock()


class _UserLock:
    """A plain lock that can be weakly referenced (``threading.Lock`` cannot)."""

    __slots__ = ("_lock", "__weakref__")

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def acquire(self, timeout: float) -> bool:
        return self._lock.acquire(timeout=timeout)

    def release(self) -> None:
        self._lock.release()


def _local_lock(user_id: str) -> _UserLock:
    with _local_registry:
        lock = _local_locks.get(user_id)
        if lock is None:
            lock = _UserLock()
            _local_locks[user_id] = lock
        return lock


@contextmanager
def user_lock(user_id: str, wait: float | None = None) -> Iterator[bool]:
    """Hold the user's lock for the duration of the block.

    Yields False when the lock could not be taken within *wait* seconds.
    A Redis outage yields True (the block runs unlocked).
    """
    wait = settings.USER_LOCK_WAIT_SECONDS if wait is None else wait

    if settings.USER_LOCK_BACKEND == "local":
        lock = _local_lock(user_id)
        acquired = lock.acquire(timeout=wait)
        if not acquired:
            logger.warning("User lock busy user=%s waited=%.1fs", user_id, wait)
        try:
            yield acquired
        finally:
            if acquired:
                lock.release()
        return

    try:
        rlock = get_redis().lock(
            f"lock:user:{user_id}",
            timeout=settings.USER_LOCK_TIMEOUT_SECONDS,
            blocking_timeout=wait,
        )
        acquired = rlock.acquire()
    except redis.RedisError as e:
        logger.warning("User lock Redis error (proceeding unlocked) user=%s: %s", user_id, e)
        yield True
        return

    if not acquired:
        logger.warning("User lock busy user=%s waited=%.1fs", user_id, wait)
    try:
        yield bool(acquired)
    finally:
        if acquired:
            try:
                rlock.release()
            except redis.RedisError as e:
                # expired while held
                logger.warning("User lock release failed user=%s: %s", user_id, e)
