"""Attempt-level aggregation and persistence of the attempt + its responses."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from quiz_gamification.core.errors import RecordStoreError
from quiz_gamification.services import outbox
from quiz_gamification.services.grading import GradingResult, ScoringPolicy
from quiz_gamification.store.base import QUESTION_RESPONSES, QUIZ_SCORES, RecordStore

logger = logging.getLogger(__name__)


@dataclass
class AttemptTotals:
    base_score: int
    time_bonus: int
    hint_penalty: int
    hints_used: int
    final_score: int
    max_possible_score: int
    percentage: float
    correct_answers: int
    total_questions: int


def aggregate(grading: GradingResult, policy: ScoringPolicy) -> AttemptTotals:
    """Combine per-question results into attempt totals.

    The final score never drops below zero and the percentage stays within
    [0, 100]; an empty session scores 0 %.
    """
    final_score = max(0, grading.base_score + grading.time_bonus - grading.hint_penalty)
    max_possible = sum(policy.max_points(q) for q in grading.session_questions)
    percentage = (final_score / max_possible) * 100 if max_possible > 0 else 0.0

    return AttemptTotals(
        base_score=grading.base_score,
        time_bonus=grading.time_bonus,
        hint_penalty=grading.hint_penalty,
        hints_used=grading.hints_used,
        final_score=final_score,
        max_possible_score=max_possible,
        percentage=min(100.0, max(0.0, percentage)),
        correct_answers=grading.correct_count,
        total_questions=grading.total_questions,
    )


def save_attempt(
    store: RecordStore,
    *,
    user_id: str,
    quiz_id: int,
    totals: AttemptTotals,
    time_taken: int,
    game_mode: str,
) -> dict[str, Any]:
    """Insert the attempt row. Failure here fails the whole submission."""
    record = store.insert(
        QUIZ_SCORES,
        {
            "user_id": user_id,
            "quiz_id": quiz_id,
            "score": totals.final_score,
            "max_score": totals.max_possible_score,
            "percentage": totals.percentage,
            "time_taken": time_taken,
            "correct_answers": totals.correct_answers,
            "total_questions": totals.total_questions,
            "hints_used": totals.hints_used,
            "hint_penalty": totals.hint_penalty,
            "time_bonus": totals.time_bonus,
            "game_mode": game_mode,
            "is_completed": True,
        },
    )
    logger.info(
        "Saved attempt id=%s user=%s quiz=%s score=%d/%d",
        record["id"], user_id, quiz_id, totals.final_score, totals.max_possible_score,
    )
    return record


def response_rows(
    score_id: int, user_id: str, quiz_id: int, grading: GradingResult
) -> list[dict[str, Any]]:
    return [
        {
            "result_id": score_id,
            "user_id": user_id,
            "quiz_id": quiz_id,
            "question_id": a.question_id,
            "selected_answer": a.user_answer,
            "correct_answer": a.correct_answer,
            "is_correct": a.is_correct,
            "time_taken": int(a.response_time),
            "points_earned": a.points_earned,
            "time_bonus": a.time_bonus,
            "difficulty": a.difficulty,
        }
        for a in grading.answers
    ]


def save_responses(store: RecordStore, rows: list[dict[str, Any]]) -> int:
    """Insert one response row per graded question; returns the failure count.

    A failed row is logged and handed to the outbox; the attempt stays saved.
    """
    failures = 0
    for row in rows:
        try:
            store.insert(QUESTION_RESPONSES, row)
        except RecordStoreError as e:
            failures += 1
            logger.warning(
                "Secondary write failed stage=question_response user=%s score_id=%s question=%s: %s",
                row["user_id"], row["result_id"], row["question_id"], e,
            )
            outbox.enqueue(store, outbox.QUESTION_RESPONSE, row["user_id"], row, error=str(e))
    return failures
