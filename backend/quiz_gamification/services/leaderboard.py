"""Leaderboard entries (per user + category) and quiz analytics (per user + quiz).

Both are running aggregates updated with an incremental mean:

    new_avg = (old_avg * old_count + value) / (old_count + 1)

so after N updates the stored average equals the mean of the N values.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any

from quiz_gamification.store.base import LEADERBOARD, QUIZ_ANALYTICS, RecordStore

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "general"


def resolve_category(requested: str | None, quiz: dict[str, Any] | None) -> str:
    if requested:
        return requested
    if quiz and quiz.get("category"):
        return quiz["category"]
    return DEFAULT_CATEGORY


def incremental_mean(old_mean: float, old_count: int, value: float) -> float:
    return (old_mean * old_count + value) / (old_count + 1)


def improvement_rate(old_best: float, new_best: float) -> float:
    if new_best <= old_best:
        return 0.0
    if old_best <= 0:
        return 100.0
    return (new_best - old_best) / old_best * 100


# ── Leaderboard ───────────────────────────────────────────────────────────────


def update_leaderboard(
    store: RecordStore,
    user_id: str,
    *,
    category: str,
    score: int,
    percentage: float,
    time_taken: int,
    user_name: str | None = None,
) -> dict[str, Any]:
    """Fold one attempt into the user's entry for *category*; returns the new values."""
    rows = store.get(LEADERBOARD, {"user_id": user_id, "category": category}, limit=1)
    perfect = 1 if percentage == 100 else 0

    if rows:
        entry = rows[0]
        games = entry.get("games_played") or 0
        changes: dict[str, Any] = {
            "games_played": games + 1,
            "total_score": (entry.get("total_score") or 0) + score,
            "average_accuracy": incremental_mean(entry.get("average_accuracy") or 0.0, games, percentage),
            "total_time_spent": (entry.get("total_time_spent") or 0) + time_taken,
            "perfect_scores": (entry.get("perfect_scores") or 0) + perfect,
            "updated_at": datetime.now(timezone.utc),
        }
        if user_name:
            changes["user_name"] = user_name
        store.patch(LEADERBOARD, entry["id"], changes)
        result = {**entry, **changes}
    else:
        result = store.insert(
            LEADERBOARD,
            {
                "user_id": user_id,
                "user_name": user_name,
                "category": category,
                "total_score": score,
                "games_played": 1,
                "average_accuracy": percentage,
                "total_time_spent": time_taken,
                "perfect_scores": perfect,
            },
        )

    logger.debug(
        "Leaderboard user=%s category=%s games=%d total=%d",
        user_id, category, result["games_played"], result["total_score"],
    )
    return result


def ranked_leaderboard(store: RecordStore, category: str, limit: int = 10) -> list[dict[str, Any]]:
    """Entries for *category* ordered for display, each with a ``rank``.

    Order: total_score desc, average_accuracy desc, games_played asc.
    Entries tied on score and accuracy share a rank (1, 1, 3 …).
    """
    entries = store.get(LEADERBOARD, {"category": category})
    entries.sort(
        key=lambda e: (
            -(e.get("total_score") or 0),
            -(e.get("average_accuracy") or 0.0),
            e.get("games_played") or 0,
        )
    )

    ranked: list[dict[str, Any]] = []
    previous: tuple[int, float] | None = None
    rank = 0
    for position, entry in enumerate(entries[:limit], start=1):
        key = (entry.get("total_score") or 0, entry.get("average_accuracy") or 0.0)
        if key != previous:
            rank = position
            previous = key
        ranked.append({**entry, "rank": rank})
    return ranked


# ── Analytics ─────────────────────────────────────────────────────────────────


def update_analytics(
    store: RecordStore,
    user_id: str,
    *,
    quiz_id: int,
    category: str,
    score: int,
    percentage: float,
    time_taken: int,
    correct_answers: int,
    total_questions: int,
) -> dict[str, Any]:
    rows = store.get(QUIZ_ANALYTICS, {"user_id": user_id, "quiz_id": quiz_id}, limit=1)
    now = datetime.now(timezone.utc)

    if rows:
        current = rows[0]
        attempts = current.get("total_attempts") or 0
        old_best = current.get("best_score") or 0
        new_best = max(old_best, score)
        changes = {
            "total_attempts": attempts + 1,
            "best_score": new_best,
            "best_percentage": max(current.get("best_percentage") or 0.0, percentage),
            "average_score": incremental_mean(current.get("average_score") or 0.0, attempts, score),
            "average_time": math.floor(
                incremental_mean(current.get("average_time") or 0, attempts, time_taken)
            ),
            "total_correct": (current.get("total_correct") or 0) + correct_answers,
            "total_questions": (current.get("total_questions") or 0) + total_questions,
            "improvement_rate": improvement_rate(old_best, new_best),
            "last_attempt_date": now,
            "updated_at": now,
        }
        store.patch(QUIZ_ANALYTICS, current["id"], changes)
        return {**current, **changes}

    return store.insert(
        QUIZ_ANALYTICS,
        {
            "user_id": user_id,
            "quiz_id": quiz_id,
            "category": category,
            "total_attempts": 1,
            "best_score": score,
            "best_percentage": percentage,
            "average_score": score,
            "average_time": time_taken,
            "total_correct": correct_answers,
            "total_questions": total_questions,
            "improvement_rate": 0.0,
            "last_attempt_date": now,
        },
    )
