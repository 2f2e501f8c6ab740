"""Quiz-service routes: browse quizzes, fetch a session, hints and submission."""

import logging
import random
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from quiz_gamification.api.deps import AuthenticatedUser, get_current_user, get_store
from quiz_gamification.config import settings
from quiz_gamification.core.errors import QuestionNotFound, QuizNotFound
from quiz_gamification.schemas.quiz import (
    HintRead,
    QuestionDisplay,
    QuizDetail,
    QuizList,
    QuizSummary,
    ScoreRead,
)
from quiz_gamification.schemas.submission import (
    GamificationSummary,
    QuestionResult,
    SubmitRequest,
    SubmitResponse,
)
from quiz_gamification.services.catalog import load_question, load_quiz
from quiz_gamification.services.grading import SubmittedAnswer, question_options
from quiz_gamification.services.pipeline import PipelineResult, run_pipeline
from quiz_gamification.services import quiz_sessions
from quiz_gamification.services.question_cache import get_question_pool
from quiz_gamification.services.rate_limiter import require_submit_rate_limit
from quiz_gamification.store.base import QUIZ_SCORES, QUIZZES, RecordStore

logger = logging.getLogger(__name__)
router = APIRouter()

DIFFICULTY_LEVELS = ["easy", "medium", "hard"]


def _quiz_or_404(store: RecordStore, quiz_id: int) -> dict[str, Any]:
    try:
        return load_quiz(store, quiz_id)
    except QuizNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quiz not found")


def _question_or_404(store: RecordStore, question_id: int) -> dict[str, Any]:
    try:
        return load_question(store, question_id)
    except QuestionNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question not found")


def _display(question: dict[str, Any]) -> QuestionDisplay:
    points = question.get("points")
    time_limit = question.get("time_limit")
    return QuestionDisplay(
        id=question["id"],
        question_text=question["question_text"],
        question_type=question.get("question_type") or "multiple_choice",
        options=question_options(question),
        points=settings.DEFAULT_QUESTION_POINTS if points is None else points,
        time_limit=settings.DEFAULT_TIME_LIMIT_SECONDS if time_limit is None else time_limit,
        difficulty=question.get("difficulty") or "medium",
        has_hint=bool(question.get("hint")),
    )


def submit_response(result: PipelineResult) -> SubmitResponse:
    totals = result.totals
    return SubmitResponse(
        score_id=result.score_id,
        base_score=totals.base_score,
        time_bonus=totals.time_bonus,
        hint_penalty=totals.hint_penalty,
        final_score=totals.final_score,
        max_possible_score=totals.max_possible_score,
        percentage=round(totals.percentage, 2),
        correct_answers=totals.correct_answers,
        total_questions=totals.total_questions,
        time_taken=result.time_taken,
        hints_used=totals.hints_used,
        results=[
            QuestionResult(
                question_id=a.question_id,
                question_text=a.question_text,
                user_answer=a.user_answer,
                correct_answer=a.correct_answer,
                is_correct=a.is_correct,
                options=a.options,
                base_points=a.base_points,
                time_bonus=a.time_bonus,
                total_points=a.points_earned,
                hint_used=a.hint_used,
                hint=a.hint,
                explanation=a.explanation,
                response_time=a.response_time,
            )
            for a in result.grading.answers
        ],
        gamification=GamificationSummary(
            new_streak=result.streak_count,
            total_points=result.total_points,
            current_level=result.current_level,
            achievements_unlocked=result.achievements_unlocked,
            deferred_updates=result.deferred_updates,
        ),
    )


# ── Browse ────────────────────────────────────────────────────────────────────


@router.get("", response_model=QuizList)
def list_quizzes(
    category: str | None = None,
    difficulty: str | None = None,
    search: str | None = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    store: RecordStore = Depends(get_store),
):
    """Public, active quizzes, newest first."""
    filters: dict[str, Any] = {"is_public": True, "is_active": True}
    if category:
        filters["category"] = category
    if difficulty:
        filters["difficulty"] = difficulty

    quizzes = store.get(QUIZZES, filters, order_by=[("created_at", True), ("id", True)])
    if search:
        needle = search.lower()
        quizzes = [q for q in quizzes if needle in (q.get("title") or "").lower()]

    page = quizzes[skip : skip + limit]
    return QuizList(
        items=[
            QuizSummary(
                id=q["id"],
                title=q["title"],
                description=q.get("description"),
                category=q.get("category"),
                difficulty=q.get("difficulty"),
                question_count=len(get_question_pool(store, q["id"])),
                created_at=q.get("created_at"),
            )
            for q in page
        ],
        total=len(quizzes),
        skip=skip,
        limit=limit,
    )


@router.get("/categories", response_model=list[str])
def list_categories(store: RecordStore = Depends(get_store)):
    quizzes = store.get(QUIZZES, {"is_active": True})
    return sorted({q["category"] for q in quizzes if q.get("category")})


@router.get("/difficulty-levels", response_model=list[str])
def list_difficulty_levels():
    return DIFFICULTY_LEVELS


# ── Hints ─────────────────────────────────────────────────────────────────────


@router.get("/questions/{question_id}/hint", response_model=HintRead)
def get_hint(
    question_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
):
    question = _question_or_404(store, question_id)
    logger.info("Hint requested user=%s question=%s", current_user.id, question_id)
    return HintRead(question_id=question_id, hint=question.get("hint") or "No hint available")


# ── Quiz session ──────────────────────────────────────────────────────────────


@router.get("/{quiz_id}", response_model=QuizDetail)
def get_quiz(quiz_id: int, store: RecordStore = Depends(get_store)):
    """Quiz metadata with up to ``MAX_SESSION_QUESTIONS`` random questions."""
    quiz = _quiz_or_404(store, quiz_id)
    pool = get_question_pool(store, quiz_id)
    if not pool:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="No questions found for this quiz"
        )

    selected = random.sample(pool, min(len(pool), settings.MAX_SESSION_QUESTIONS))
    session_id = quiz_sessions.new_session_id(quiz_id)
    quiz_sessions.remember(session_id, quiz_id, [q["id"] for q in selected])
    return QuizDetail(
        session_id=session_id,
        id=quiz["id"],
        title=quiz["title"],
        description=quiz.get("description"),
        category=quiz.get("category"),
        difficulty=quiz.get("difficulty"),
        questions=[_display(q) for q in selected],
        question_count=len(selected),
        total_questions_in_pool=len(pool),
    )


@router.get("/{quiz_id}/scores", response_model=list[ScoreRead])
def get_quiz_scores(
    quiz_id: int,
    limit: int = Query(10, ge=1, le=100),
    store: RecordStore = Depends(get_store),
):
    """Top attempts for a quiz, highest score first."""
    _quiz_or_404(store, quiz_id)
    return store.get(
        QUIZ_SCORES,
        {"quiz_id": quiz_id},
        order_by=[("score", True), ("created_at", False)],
        limit=limit,
    )


@router.post("/{quiz_id}/submit", response_model=SubmitResponse)
def submit_quiz(
    quiz_id: int,
    body: SubmitRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    _rl: None = Depends(require_submit_rate_limit),
    store: RecordStore = Depends(get_store),
):
    """Grade a completed session and run the gamification pipeline.

    The session is the questions served under ``session_id``; without a
    known session it is ``question_ids``, then the whole question pool.
    """
    quiz = _quiz_or_404(store, quiz_id)
    pool = get_question_pool(store, quiz_id)
    session_ids = quiz_sessions.served_question_ids(body.session_id, quiz_id)
    if session_ids is None:
        session_ids = body.question_ids

    result = run_pipeline(
        store,
        user_id=current_user.id,
        quiz=quiz,
        pool=pool,
        answers=[
            SubmittedAnswer(a.question_id, a.user_answer, a.response_time) for a in body.answers
        ],
        time_taken=body.total_time,
        session_ids=session_ids,
        hints_used_list=body.hints_used_list,
        game_mode="practice",
    )
    return submit_response(result)
