"""Achievement predicates and unlocks.

Predicates are evaluated independently, so one attempt can unlock up to
three badges. ``points`` is stored on the achievement row as metadata only;
it is never added to the user's ``total_points``.
"""

import logging
from dataclasses import dataclass
from typing import Any

from quiz_gamification.config import settings
from quiz_gamification.store.base import USER_ACHIEVEMENTS, RecordStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Achievement:
    type: str
    name: str
    description: str
    points: int
    icon: str


PERFECT_SCORE = Achievement(
    "perfect_score", "Perfect Score", "Answered all questions correctly", 50, "trophy"
)
SPEED_DEMON = Achievement(
    "speed_demon", "Speed Demon", "Completed quiz with exceptional speed", 30, "zap"
)
HIGH_ACHIEVER = Achievement(
    "high_achiever", "High Achiever", "Scored 90% or higher", 20, "star"
)

ACHIEVEMENTS = (PERFECT_SCORE, SPEED_DEMON, HIGH_ACHIEVER)


def average_seconds(time_taken: float, total_questions: int) -> float | None:
    if total_questions <= 0:
        return None
    return time_taken / total_questions


def evaluate(percentage: float, time_taken: float, total_questions: int) -> list[Achievement]:
    """Return every achievement whose predicate holds for this attempt."""
    earned: list[Achievement] = []
    if percentage == 100:
        earned.append(PERFECT_SCORE)
    avg = average_seconds(time_taken, total_questions)
    if avg is not None and avg < settings.SPEED_DEMON_SECONDS:
        earned.append(SPEED_DEMON)
    if percentage >= 90:
        earned.append(HIGH_ACHIEVER)
    return earned


def _achievement_data(
    achievement: Achievement, *, quiz_id: int, category: str, percentage: float, avg_time: float | None
) -> dict[str, Any]:
    if achievement is PERFECT_SCORE:
        return {"quiz_id": quiz_id, "category": category}
    if achievement is SPEED_DEMON:
        return {"avg_time": avg_time, "quiz_id": quiz_id}
    return {"percentage": percentage, "quiz_id": quiz_id}


def award(
    store: RecordStore,
    user_id: str,
    *,
    quiz_id: int,
    category: str,
    percentage: float,
    time_taken: float,
    total_questions: int,
) -> list[str]:
    """Insert a row per newly earned achievement; returns their types.

    With ``ACHIEVEMENTS_ONCE_PER_USER`` a type the user already holds is
    not inserted again.
    """
    earned = evaluate(percentage, time_taken, total_questions)
    if not earned:
        return []

    held: set[str] = set()
    if settings.ACHIEVEMENTS_ONCE_PER_USER:
        held = {
            row["achievement_type"]
            for row in store.get(USER_ACHIEVEMENTS, {"user_id": user_id})
        }

    avg_time = average_seconds(time_taken, total_questions)
    unlocked: list[str] = []
    for achievement in earned:
        if achievement.type in held:
            continue
        store.insert(
            USER_ACHIEVEMENTS,
            {
                "user_id": user_id,
                "achievement_type": achievement.type,
                "achievement_name": achievement.name,
                "achievement_description": achievement.description,
                "achievement_data": _achievement_data(
                    achievement,
                    quiz_id=quiz_id,
                    category=category,
                    percentage=percentage,
                    avg_time=avg_time,
                ),
                "points_awarded": achievement.points,
                "icon": achievement.icon,
            },
        )
        unlocked.append(achievement.type)

    if unlocked:
        logger.info("Unlocked achievements user=%s quiz=%s: %s", user_id, quiz_id, unlocked)
    return unlocked


def list_achievements(store: RecordStore, user_id: str) -> list[dict[str, Any]]:
    return store.get(USER_ACHIEVEMENTS, {"user_id": user_id}, order_by=[("unlocked_at", True)])
