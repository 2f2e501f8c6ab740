"""End-to-end scoring pipeline shared by both submission endpoints.

Stages, in order:

1. grade the answers and aggregate the attempt (pure)
2. persist the attempt row (fatal on failure) and its response rows
3. under the user's lock: points, achievements, leaderboard, analytics

Every stage after the attempt row is best-effort. A failure is logged,
written to the outbox and named in ``deferred_updates``; nothing already
written is rolled back. The per-request deadline is checked between
stages.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Sequence

from quiz_gamification.config import settings
from quiz_gamification.core.errors import DeadlineExceeded, RecordStoreError
from quiz_gamification.services import locks, outbox, progression
from quiz_gamification.services.grading import (
    GradingResult,
    ScoringPolicy,
    SubmittedAnswer,
    grade_answers,
    resolve_session,
)
from quiz_gamification.services.leaderboard import resolve_category
from quiz_gamification.services.progression import ProgressionUpdate
from quiz_gamification.services.scoring import (
    AttemptTotals,
    aggregate,
    response_rows,
    save_attempt,
    save_responses,
)
from quiz_gamification.store.base import RecordStore

logger = logging.getLogger(__name__)


class Deadline:
    def __init__(self, seconds: float) -> None:
        self.seconds = seconds
        self._start = time.monotonic()

    def remaining(self) -> float:
        return self.seconds - (time.monotonic() - self._start)

    def expired(self) -> bool:
        return self.remaining() <= 0


@dataclass
class PipelineResult:
    grading: GradingResult
    totals: AttemptTotals
    score_id: int
    time_taken: int
    category: str
    progression: ProgressionUpdate | None = None
    snapshot: dict[str, Any] | None = None
    achievements_unlocked: list[str] = field(default_factory=list)
    deferred_updates: list[str] = field(default_factory=list)

    @property
    def streak_count(self) -> int:
        if self.progression is not None:
            return self.progression.streak_count
        return (self.snapshot or {}).get("streak_count") or 0

    @property
    def total_points(self) -> int:
        if self.progression is not None:
            return self.progression.total_points
        return (self.snapshot or {}).get("total_points") or 0

    @property
    def current_level(self) -> int:
        if self.progression is not None:
            return self.progression.current_level
        return (self.snapshot or {}).get("current_level") or 1


def _side_effects(
    *,
    quiz_id: int,
    category: str,
    user_name: str | None,
    totals: AttemptTotals,
    time_taken: int,
    now: datetime,
) -> list[tuple[str, dict[str, Any]]]:
    return [
        (
            outbox.USER_POINTS,
            {
                "points_earned": totals.final_score,
                "any_correct": totals.correct_answers > 0,
                "now": now.isoformat(),
            },
        ),
        (
            outbox.ACHIEVEMENTS,
            {
                "quiz_id": quiz_id,
                "category": category,
                "percentage": totals.percentage,
                "time_taken": time_taken,
                "total_questions": totals.total_questions,
            },
        ),
        (
            outbox.LEADERBOARD,
            {
                "category": category,
                "user_name": user_name,
                "score": totals.final_score,
                "percentage": totals.percentage,
                "time_taken": time_taken,
            },
        ),
        (
            outbox.ANALYTICS,
            {
                "quiz_id": quiz_id,
                "category": category,
                "score": totals.final_score,
                "percentage": totals.percentage,
                "time_taken": time_taken,
                "correct_answers": totals.correct_answers,
                "total_questions": totals.total_questions,
            },
        ),
    ]


def run_pipeline(
    store: RecordStore,
    *,
    user_id: str,
    quiz: dict[str, Any],
    pool: Sequence[dict[str, Any]],
    answers: Sequence[SubmittedAnswer],
    time_taken: int,
    session_ids: Iterable[int] | None = None,
    hints_used_list: Iterable[int] = (),
    game_mode: str = "practice",
    category: str | None = None,
    user_name: str | None = None,
    policy: ScoringPolicy | None = None,
    now: datetime | None = None,
) -> PipelineResult:
    """Grade, persist and apply gamification for one completed attempt.

    Raises :class:`DeadlineExceeded` if the deadline expires before the
    attempt row is written, and :class:`RecordStoreError` if that write
    fails. Later failures never raise.
    """
    deadline = Deadline(settings.PIPELINE_DEADLINE_SECONDS)
    policy = policy or ScoringPolicy.from_settings()
    now = now or datetime.now(timezone.utc)
    quiz_id = quiz["id"]

    session = resolve_session(pool, session_ids)
    grading = grade_answers(answers, session, policy, hints_used_list)
    totals = aggregate(grading, policy)

    if deadline.expired():
        raise DeadlineExceeded(f"Deadline of {deadline.seconds}s exceeded before saving the attempt")

    attempt = save_attempt(
        store,
        user_id=user_id,
        quiz_id=quiz_id,
        totals=totals,
        time_taken=time_taken,
        game_mode=game_mode,
    )
    result = PipelineResult(
        grading=grading,
        totals=totals,
        score_id=attempt["id"],
        time_taken=time_taken,
        category=resolve_category(category, quiz),
    )

    if save_responses(store, response_rows(attempt["id"], user_id, quiz_id, grading)):
        result.deferred_updates.append(outbox.QUESTION_RESPONSE)

    stages = _side_effects(
        quiz_id=quiz_id,
        category=result.category,
        user_name=user_name,
        totals=totals,
        time_taken=time_taken,
        now=now,
    )
    with locks.user_lock(user_id) as acquired:
        for kind, payload in stages:
            if not acquired or deadline.expired():
                reason = "user lock busy" if not acquired else "deadline exceeded"
                logger.warning(
                    "Secondary write deferred stage=%s user=%s score_id=%s: %s",
                    kind, user_id, result.score_id, reason,
                )
                outbox.enqueue(store, kind, user_id, payload, error=reason)
                result.deferred_updates.append(kind)
                continue
            try:
                outcome = outbox.apply(store, kind, user_id, payload)
            except RecordStoreError as e:
                logger.warning(
                    "Secondary write failed stage=%s user=%s score_id=%s: %s",
                    kind, user_id, result.score_id, e,
                )
                outbox.enqueue(store, kind, user_id, payload, error=str(e))
                result.deferred_updates.append(kind)
                continue
            if kind == outbox.USER_POINTS:
                result.progression = outcome
            elif kind == outbox.ACHIEVEMENTS:
                result.achievements_unlocked = outcome

    if result.progression is None:
        try:
            result.snapshot = progression.get_user_points(store, user_id)
        except RecordStoreError as e:
            logger.warning("Progress snapshot unavailable user=%s: %s", user_id, e)

    logger.info(
        "Pipeline done user=%s quiz=%s score_id=%s final=%d (%.1f%%) deferred=%s",
        user_id, quiz_id, result.score_id, totals.final_score, totals.percentage,
        result.deferred_updates or "-",
    )
    return result
