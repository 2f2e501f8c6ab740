"""Which questions a quiz session served.

``GET /quiz-service/{quiz_id}`` samples up to ``MAX_SESSION_QUESTIONS``
questions and records their ids under the ``session_id`` it returns. On
submit the session is graded against exactly those questions, so
unanswered ones still count towards the maximum score.

Sessions live in Redis for ``QUIZ_SESSION_TTL_SECONDS``. A Redis failure
is logged and treated as an unknown session; callers then fall back to
the quiz's whole question pool.
"""

import json
import logging
import uuid
from typing import Iterable

import redis

from quiz_gamification.config import settings
from quiz_gamification.core.redis_pool import get_redis

logger = logging.getLogger(__name__)


def new_session_id(quiz_id: int) -> str:
    return f"quiz_{quiz_id}_{uuid.uuid4().hex[:12]}"


def _make_key(session_id: str) -> str:
    return f"quiz_session:{session_id}"


def remember(session_id: str, quiz_id: int, question_ids: Iterable[int]) -> None:
    if not settings.QUIZ_SESSIONS_ENABLED:
        return
    record = json.dumps({"quiz_id": quiz_id, "question_ids": list(question_ids)})
    try:
        get_redis().setex(_make_key(session_id), settings.QUIZ_SESSION_TTL_SECONDS, record)
    except redis.RedisError as e:
        logger.warning("Quiz session not stored session=%s: %s", session_id, e)


def served_question_ids(session_id: str | None, quiz_id: int) -> list[int] | None:
    """Ids served by *session_id*, or None when the session is unknown.

    A session minted for a different quiz is treated as unknown.
    """
    if not session_id or not settings.QUIZ_SESSIONS_ENABLED:
        return None
    try:
        raw = get_redis().get(_make_key(session_id))
    except redis.RedisError as e:
        logger.warning("Quiz session lookup failed session=%s: %s", session_id, e)
        return None
    if not raw:
        logger.info("Unknown or expired quiz session %s", session_id)
        return None

    record = json.loads(raw)
    if record.get("quiz_id") != quiz_id:
        logger.warning(
            "Quiz session %s belongs to quiz %s, not %s", session_id, record.get("quiz_id"), quiz_id
        )
        return None
    return [int(qid) for qid in record["question_ids"]]
