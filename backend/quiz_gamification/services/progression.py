"""Per-user progression: cumulative points, daily streak and level.

Streaks count consecutive calendar days (in ``STREAK_TIMEZONE``) with at
least one completed attempt:

- no previous quiz date        → streak = 1
- previous quiz today          → streak unchanged
- previous quiz yesterday      → streak + 1
- anything older               → streak = 1

``longest_streak`` only ever grows and ``current_level`` is always
``total_points // POINTS_PER_LEVEL + 1``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any
from zoneinfo import ZoneInfo

from quiz_gamification.config import settings
from quiz_gamification.store.base import USER_POINTS, RecordStore

logger = logging.getLogger(__name__)


@dataclass
class ProgressionUpdate:
    user_id: str
    points_earned: int
    any_correct: bool
    total_points: int
    streak_count: int
    longest_streak: int
    current_level: int
    previous_level: int

    @property
    def level_up(self) -> bool:
        return self.current_level > self.previous_level


def level_for(total_points: int, points_per_level: int | None = None) -> int:
    per_level = points_per_level or settings.POINTS_PER_LEVEL
    return max(total_points, 0) // per_level + 1


def points_to_next_level(total_points: int) -> int:
    return level_for(total_points) * settings.POINTS_PER_LEVEL - max(total_points, 0)


def streak_zone() -> tzinfo:
    if settings.STREAK_TIMEZONE.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(settings.STREAK_TIMEZONE)


def calendar_date(value: Any, tz: tzinfo) -> date | None:
    """Calendar day of a stored ``last_quiz_date`` in *tz*.

    Accepts datetimes, dates and ISO-8601 strings; naive datetimes are UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, str):
        if len(value) == 10:
            return date.fromisoformat(value)
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(tz).date()
    if isinstance(value, date):
        return value
    raise TypeError(f"Unsupported last_quiz_date value: {value!r}")


def next_streak(last_day: date | None, today: date, current_streak: int) -> int:
    if last_day is None:
        return 1
    if last_day >= today:
        return current_streak
    if last_day == today - timedelta(days=1):
        return current_streak + 1
    return 1


def update_user_points(
    store: RecordStore,
    user_id: str,
    points_earned: int,
    any_correct: bool,
    *,
    now: datetime | None = None,
) -> ProgressionUpdate:
    """Read-modify-write the user's progression row.

    Callers serialize calls per user (see ``services.locks``). Points are
    added and the streak re-evaluated even for a zero-point attempt.
    """
    now = now or datetime.now(timezone.utc)
    tz = streak_zone()
    today = now.astimezone(tz).date()

    rows = store.get(USER_POINTS, {"user_id": user_id}, limit=1)
    existing = rows[0] if rows else None

    if existing is not None:
        previous_streak = existing.get("streak_count") or 0
        previous_total = existing.get("total_points") or 0
        previous_longest = existing.get("longest_streak") or 0
        last_day = calendar_date(existing.get("last_quiz_date"), tz)
    else:
        previous_streak = previous_total = previous_longest = 0
        last_day = None

    streak = next_streak(last_day, today, previous_streak)
    longest = max(previous_longest, streak)
    total = previous_total + points_earned
    level = level_for(total)

    changes = {
        "total_points": total,
        "streak_count": streak,
        "longest_streak": longest,
        "current_level": level,
        "last_quiz_date": now,
        "updated_at": now,
    }
    if last_day is not None and last_day > today:
        # replayed update that is older than the stored date
        del changes["last_quiz_date"]
    if existing is not None:
        store.patch(USER_POINTS, existing["id"], changes)
    else:
        store.insert(USER_POINTS, {"user_id": user_id, **changes})

    update = ProgressionUpdate(
        user_id=user_id,
        points_earned=points_earned,
        any_correct=any_correct,
        total_points=total,
        streak_count=streak,
        longest_streak=longest,
        current_level=level,
        previous_level=level_for(previous_total),
    )
    logger.info(
        "Progression user=%s +%d pts → total=%d streak=%d longest=%d level=%d%s",
        user_id, points_earned, total, streak, longest, level,
        " (level up)" if update.level_up else "",
    )
    return update


def get_user_points(store: RecordStore, user_id: str) -> dict[str, Any] | None:
    rows = store.get(USER_POINTS, {"user_id": user_id}, limit=1)
    return rows[0] if rows else None
