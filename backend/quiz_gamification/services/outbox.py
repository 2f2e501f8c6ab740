"""Outbox of secondary writes that failed or were deferred.

Each entry names a ``kind`` and carries the keyword arguments of the
service function that performs it, so live runs and replays go through
the same code (:func:`apply`). ``replay_pending`` is driven by the
``replay_outbox`` Celery task.

Entry lifecycle: ``pending`` → ``done``, or ``failed`` once
``OUTBOX_MAX_ATTEMPTS`` replays have raised.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable

from quiz_gamification.config import settings
from quiz_gamification.core.errors import RecordStoreError
from quiz_gamification.services import achievements, leaderboard, locks, progression
from quiz_gamification.store.base import OUTBOX, QUESTION_RESPONSES, RecordStore

logger = logging.getLogger(__name__)

QUESTION_RESPONSE = "question_response"
USER_POINTS = "user_points"
ACHIEVEMENTS = "achievements"
LEADERBOARD = "leaderboard"
ANALYTICS = "analytics"

PENDING = "pending"
DONE = "done"
FAILED = "failed"


# ── Handlers ──────────────────────────────────────────────────────────────────


def _question_response(store: RecordStore, user_id: str, payload: dict[str, Any]) -> Any:
    return store.insert(QUESTION_RESPONSES, payload)


def _user_points(store: RecordStore, user_id: str, payload: dict[str, Any]) -> Any:
    now = payload.get("now")
    return progression.update_user_points(
        store,
        user_id,
        payload["points_earned"],
        payload.get("any_correct", False),
        now=datetime.fromisoformat(now) if now else None,
    )


def _achievements(store: RecordStore, user_id: str, payload: dict[str, Any]) -> Any:
    return achievements.award(store, user_id, **payload)


def _leaderboard(store: RecordStore, user_id: str, payload: dict[str, Any]) -> Any:
    return leaderboard.update_leaderboard(store, user_id, **payload)


def _analytics(store: RecordStore, user_id: str, payload: dict[str, Any]) -> Any:
    return leaderboard.update_analytics(store, user_id, **payload)


HANDLERS: dict[str, Callable[[RecordStore, str, dict[str, Any]], Any]] = {
    QUESTION_RESPONSE: _question_response,
    USER_POINTS: _user_points,
    ACHIEVEMENTS: _achievements,
    LEADERBOARD: _leaderboard,
    ANALYTICS: _analytics,
}


def apply(store: RecordStore, kind: str, user_id: str, payload: dict[str, Any]) -> Any:
    """Perform one secondary write and return the service function's result."""
    try:
        handler = HANDLERS[kind]
    except KeyError:
        raise ValueError(f"Unknown outbox kind '{kind}'")
    return handler(store, user_id, payload)


# ── Enqueue / replay ──────────────────────────────────────────────────────────


def _json_safe(payload: dict[str, Any]) -> dict[str, Any]:
    return json.loads(json.dumps(payload, default=lambda v: v.isoformat() if isinstance(v, datetime) else str(v)))


def enqueue(
    store: RecordStore,
    kind: str,
    user_id: str,
    payload: dict[str, Any],
    error: str | None = None,
) -> dict[str, Any] | None:
    """Record a pending entry. Returns None if the outbox itself is unwritable."""
    try:
        entry = store.insert(
            OUTBOX,
            {
                "kind": kind,
                "user_id": user_id,
                "payload": _json_safe(payload),
                "status": PENDING,
                "attempts": 0,
                "last_error": error,
            },
        )
    except RecordStoreError as e:
        logger.error(
            "Outbox write failed kind=%s user=%s payload=%s: %s",
            kind, user_id, _json_safe(payload), e,
        )
        return None
    logger.info("Outbox entry id=%s kind=%s user=%s queued", entry["id"], kind, user_id)
    return entry


def pending_entries(store: RecordStore, limit: int | None = None) -> list[dict[str, Any]]:
    return store.get(OUTBOX, {"status": PENDING}, order_by=[("id", False)], limit=limit)


def replay_pending(store: RecordStore, limit: int | None = None) -> dict[str, int]:
    """Replay up to *limit* pending entries, oldest first, under each user's lock.

    Entries whose user lock is busy are left pending for the next sweep.
    """
    counts = {"done": 0, "retry": 0, "failed": 0, "skipped": 0}
    max_attempts = settings.OUTBOX_MAX_ATTEMPTS

    for entry in pending_entries(store, limit or settings.OUTBOX_BATCH_SIZE):
        attempts = (entry.get("attempts") or 0) + 1
        with locks.user_lock(entry["user_id"]) as acquired:
            if not acquired:
                counts["skipped"] += 1
                continue
            try:
                apply(store, entry["kind"], entry["user_id"], dict(entry["payload"]))
            except Exception as e:
                status = FAILED if attempts >= max_attempts else PENDING
                counts["failed" if status == FAILED else "retry"] += 1
                logger.warning(
                    "Outbox replay failed id=%s kind=%s user=%s attempt=%d/%d: %s",
                    entry["id"], entry["kind"], entry["user_id"], attempts, max_attempts, e,
                )
                changes = {"status": status, "attempts": attempts, "last_error": str(e)}
            else:
                counts["done"] += 1
                changes = {"status": DONE, "attempts": attempts, "last_error": None}
            changes["updated_at"] = datetime.now(timezone.utc)
            store.patch(OUTBOX, entry["id"], changes)

    if any(counts.values()):
        logger.info("Outbox sweep: %s", counts)
    return counts
