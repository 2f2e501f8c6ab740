"""Gamification-processor routes: process a finished quiz, progress and leaderboards."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from quiz_gamification.api.deps import AuthenticatedUser, get_current_user, get_store
from quiz_gamification.core.errors import QuizNotFound
from quiz_gamification.schemas.gamification import (
    LeaderboardRead,
    ProcessRequest,
    ProcessResponse,
    ProgressRead,
)
from quiz_gamification.services import achievements, progression, quiz_sessions
from quiz_gamification.services.catalog import load_quiz
from quiz_gamification.services.grading import SubmittedAnswer
from quiz_gamification.services.leaderboard import ranked_leaderboard
from quiz_gamification.services.pipeline import run_pipeline
from quiz_gamification.services.question_cache import get_question_pool
from quiz_gamification.services.rate_limiter import require_submit_rate_limit
from quiz_gamification.store.base import RecordStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=ProcessResponse)
def process_quiz_result(
    body: ProcessRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    _rl: None = Depends(require_submit_rate_limit),
    store: RecordStore = Depends(get_store),
):
    """Score a finished quiz and apply points, streak, achievements and leaderboard.

    Client-reported scores in ``quiz_result`` are ignored: the responses
    are re-graded against the stored questions with the same policy as
    ``POST /quiz-service/{quiz_id}/submit``.
    """
    try:
        quiz = load_quiz(store, body.quiz_id)
    except QuizNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quiz not found")

    session_ids = quiz_sessions.served_question_ids(body.session_id, body.quiz_id)
    if session_ids is None:
        session_ids = body.questions

    result = run_pipeline(
        store,
        user_id=current_user.id,
        quiz=quiz,
        pool=get_question_pool(store, body.quiz_id),
        answers=[
            SubmittedAnswer(r.question_id, r.user_answer, r.response_time)
            for r in body.quiz_result.responses
        ],
        time_taken=body.quiz_result.time_taken,
        session_ids=session_ids,
        hints_used_list=body.quiz_result.hints_used_list,
        game_mode=body.game_mode,
        category=body.category,
        user_name=body.user_name,
    )
    return ProcessResponse(
        score_id=result.score_id,
        new_streak=result.streak_count,
        total_points=result.total_points,
        current_level=result.current_level,
        achievements_unlocked=result.achievements_unlocked,
        deferred_updates=result.deferred_updates,
    )


@router.get("/progress", response_model=ProgressRead)
def get_progress(
    current_user: AuthenticatedUser = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
):
    """The caller's points, streak, level and unlocked achievements."""
    row = progression.get_user_points(store, current_user.id) or {}
    total = row.get("total_points") or 0
    return ProgressRead(
        user_id=current_user.id,
        total_points=total,
        streak_count=row.get("streak_count") or 0,
        longest_streak=row.get("longest_streak") or 0,
        current_level=progression.level_for(total),
        points_to_next_level=progression.points_to_next_level(total),
        last_quiz_date=row.get("last_quiz_date"),
        achievements=achievements.list_achievements(store, current_user.id),
    )


@router.get("/leaderboard/{category}", response_model=LeaderboardRead)
def get_leaderboard(
    category: str,
    limit: int = Query(10, ge=1, le=100),
    store: RecordStore = Depends(get_store),
):
    return LeaderboardRead(category=category, entries=ranked_leaderboard(store, category, limit))
