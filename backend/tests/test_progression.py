"""Unit tests for streaks, levels and the user-points read-modify-write."""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from quiz_gamification.services.progression import (
    calendar_date,
    get_user_points,
    level_for,
    next_streak,
    points_to_next_level,
    update_user_points,
)
from quiz_gamification.store.base import USER_POINTS

NOW = datetime(2026, 3, 10, 15, 30, tzinfo=timezone.utc)


def _seed_points(store, user_id="u1", **fields):
    row = {"user_id": user_id, "total_points": 0, "streak_count": 0, "longest_streak": 0, "current_level": 1}
    row.update(fields)
    return store.insert(USER_POINTS, row)


@pytest.mark.parametrize(
    "total, level",
    [(0, 1), (999, 1), (1000, 2), (1999, 2), (2500, 3)],
)
def test_level_is_pure_function_of_points(total, level):
    assert level_for(total) == level


def test_points_to_next_level():
    assert points_to_next_level(0) == 1000
    assert points_to_next_level(1250) == 750


def test_next_streak_rules():
    today = date(2026, 3, 10)
    assert next_streak(None, today, 0) == 1
    assert next_streak(today, today, 4) == 4
    assert next_streak(today - timedelta(days=1), today, 4) == 5
    assert next_streak(today - timedelta(days=2), today, 4) == 1


def test_calendar_date_accepts_strings_and_naive_datetimes():
    assert calendar_date("2026-03-09", timezone.utc) == date(2026, 3, 9)
    assert calendar_date("2026-03-09T23:00:00+00:00", timezone.utc) == date(2026, 3, 9)
    assert calendar_date(datetime(2026, 3, 9, 23, 0), timezone.utc) == date(2026, 3, 9)
    assert calendar_date(None, timezone.utc) is None


def test_calendar_date_in_another_zone():
    tz = timezone(timedelta(hours=3))
    # 23:00 UTC is already the next day at UTC+3
    assert calendar_date("2026-03-09T23:00:00Z", tz) == date(2026, 3, 10)


def test_first_attempt_creates_row_with_streak_one(store):
    update = update_user_points(store, "u1", 15, True, now=NOW)

    assert update.streak_count == 1
    assert update.longest_streak == 1
    assert update.total_points == 15
    assert update.current_level == 1
    row = get_user_points(store, "u1")
    assert row["streak_count"] == 1
    assert row["total_points"] == 15


def test_yesterday_extends_streak(store):
    _seed_points(store, streak_count=4, longest_streak=4, last_quiz_date=NOW - timedelta(days=1))

    update = update_user_points(store, "u1", 10, True, now=NOW)

    assert update.streak_count == 5
    assert update.longest_streak == 5


def test_same_day_keeps_streak(store):
    _seed_points(store, streak_count=3, longest_streak=7, last_quiz_date=NOW - timedelta(hours=2))

    update = update_user_points(store, "u1", 10, True, now=NOW)

    assert update.streak_count == 3
    assert update.longest_streak == 7


def test_gap_resets_streak_but_not_longest(store):
    _seed_points(store, streak_count=6, longest_streak=6, last_quiz_date=NOW - timedelta(days=3))

    update = update_user_points(store, "u1", 10, True, now=NOW)

    assert update.streak_count == 1
    assert update.longest_streak == 6


def test_zero_point_attempt_still_updates_date(store):
    _seed_points(store, total_points=500, last_quiz_date=NOW - timedelta(days=1), streak_count=1, longest_streak=1)

    update = update_user_points(store, "u1", 0, False, now=NOW)

    assert update.total_points == 500
    assert update.streak_count == 2
    row = get_user_points(store, "u1")
    assert calendar_date(row["last_quiz_date"], timezone.utc) == NOW.date()


def test_level_up_is_reported(store):
    _seed_points(store, total_points=990, last_quiz_date=NOW)

    update = update_user_points(store, "u1", 15, True, now=NOW)

    assert update.current_level == 2
    assert update.level_up


def test_older_replayed_update_does_not_reset_streak(store):
    _seed_points(store, streak_count=2, longest_streak=2, last_quiz_date=NOW)

    update = update_user_points(store, "u1", 10, True, now=NOW - timedelta(days=1))

    assert update.streak_count == 2
    row = get_user_points(store, "u1")
    assert calendar_date(row["last_quiz_date"], timezone.utc) == NOW.date()


def test_streak_day_follows_configured_zone(store):
    # 22:30 UTC on the 9th is the 10th in UTC+3, same day as NOW there
    _seed_points(store, streak_count=2, longest_streak=2, last_quiz_date=datetime(2026, 3, 9, 22, 30, tzinfo=timezone.utc))

    with patch(
        "quiz_gamification.services.progression.streak_zone",
        return_value=timezone(timedelta(hours=3)),
    ):
        update = update_user_points(store, "u1", 10, True, now=NOW)

    assert update.streak_count == 2
