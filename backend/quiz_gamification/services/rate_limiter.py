"""Per-user leaky bucket in front of the two scoring endpoints.

Every accepted submission pours one unit into the user's bucket, which
drains at ``RATE_LIMIT_SUBMIT_RPM / 60`` units per second and holds at
most ``RATE_LIMIT_SUBMIT_BURST`` units. A submission that would overflow
the bucket is refused with 429 and a ``Retry-After`` header. Both
``POST /quiz-service/{id}/submit`` and ``POST /quiz-gamification-processor``
pour into the same bucket, so switching endpoints does not double the
allowance.

The route must depend on ``get_current_user`` first: the bucket is keyed
by the authenticated user id stored on ``request.state``.
"""

import logging
import math
import time

import redis
from fastapi import HTTPException, Request, status

from quiz_gamification.config import settings
from quiz_gamification.core.redis_pool import get_redis

logger = logging.getLogger(__name__)

# KEYS[1] bucket; ARGV: capacity, drain rate (units/s), now (s), key ttl (s).
# Returns the wait in seconds as a string ("0" when the unit was poured).
_POUR = """
local capacity = tonumber(ARGV[1])
local drain    = tonumber(ARGV[2])
local now      = tonumber(ARGV[3])

local state = redis.call('HMGET', KEYS[1], 'level', 'at')
local level = tonumber(state[1]) or 0
local at    = tonumber(state[2]) or now

level = math.max(0, level - math.max(0, now - at) * drain)

local wait = 0
if level + 1 > capacity then
    wait = (level + 1 - capacity) / drain
else
    level = level + 1
end

redis.call('HSET', KEYS[1], 'level', level, 'at', now)
redis.call('EXPIRE', KEYS[1], tonumber(ARGV[4]))
return tostring(wait)
"""


def bucket_key(user_id: str) -> str:
    return f"rl:submit:{user_id}"


def pour(key: str, per_minute: int, capacity: int) -> float:
    """Pour one submission into *key*; return 0 if accepted, else seconds to wait.

    Redis errors admit the submission.
    """
    drain = per_minute / 60.0
    ttl = math.ceil(capacity / drain) + 1
    try:
        wait = get_redis().eval(_POUR, 1, key, capacity, drain, time.time(), ttl)
    except redis.RedisError as e:
        logger.warning("Rate limiter unavailable, admitting key=%s: %s", key, e)
        return 0.0
    return float(wait)


def require_submit_rate_limit(request: Request) -> None:
    """FastAPI dependency: 429 once the caller's bucket is full."""
    per_minute = settings.RATE_LIMIT_SUBMIT_RPM
    if per_minute <= 0:
        return

    user_id = getattr(request.state, "user_id", None)
    if user_id is None:
        user_id = f"ip:{request.client.host}" if request.client else "anonymous"

    wait = pour(bucket_key(user_id), per_minute, settings.RATE_LIMIT_SUBMIT_BURST)
    if wait > 0:
        logger.info("Submission rate limited user=%s retry_after=%.1fs", user_id, wait)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many submissions, please slow down.",
            headers={"Retry-After": str(math.ceil(wait))},
        )
