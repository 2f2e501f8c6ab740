"""Redis-backed cache for quiz question pools.

Pools are read on every quiz fetch and every submission but change only
when an author edits the quiz, so they are cached for
``QUESTION_CACHE_TTL_SECONDS``. Redis problems are never fatal: a failed
read is a miss and a failed write is skipped. Progression state is never
cached here.
"""

import json
import logging
from typing import Any

import redis

from quiz_gamification.config import settings
from quiz_gamification.core.redis_pool import get_redis
from quiz_gamification.store.base import QUESTIONS, RecordStore

logger = logging.getLogger(__name__)


def _make_key(quiz_id: int) -> str:
    return f"question_pool:{quiz_id}"


def cache_get(quiz_id: int) -> list[dict[str, Any]] | None:
    """Retrieve a cached pool (or None on miss/disabled)."""
    if not settings.QUESTION_CACHE_ENABLED:
        return None
    try:
        raw = get_redis().get(_make_key(quiz_id))
        if raw:
            logger.debug("Question cache HIT: quiz=%s", quiz_id)
            return json.loads(raw)
        logger.debug("Question cache MISS: quiz=%s", quiz_id)
        return None
    except redis.RedisError as e:
        logger.warning("Question cache read failed (non-fatal): %s", e)
        return None


def cache_set(quiz_id: int, questions: list[dict[str, Any]], ttl: int | None = None) -> None:
    if not settings.QUESTION_CACHE_ENABLED:
        return
    ttl = ttl or settings.QUESTION_CACHE_TTL_SECONDS
    try:
        get_redis().setex(_make_key(quiz_id), ttl, json.dumps(questions, default=str))
        logger.debug("Question cache SET: quiz=%s (ttl=%ds)", quiz_id, ttl)
    except redis.RedisError as e:
        logger.warning("Question cache write failed (non-fatal): %s", e)


def get_question_pool(store: RecordStore, quiz_id: int) -> list[dict[str, Any]]:
    """The quiz's full question pool, ordered by id."""
    cached = cache_get(quiz_id)
    if cached is not None:
        return cached
    questions = store.get(QUESTIONS, {"quiz_id": quiz_id}, order_by=[("id", False)])
    cache_set(quiz_id, questions)
    return questions
