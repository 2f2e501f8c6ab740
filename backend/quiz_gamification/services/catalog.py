"""Lookups of quizzes and single questions."""

from typing import Any

from quiz_gamification.core.errors import QuestionNotFound, QuizNotFound
from quiz_gamification.store.base import QUESTIONS, QUIZZES, RecordStore


def load_quiz(store: RecordStore, quiz_id: int) -> dict[str, Any]:
    """Return the active quiz with *quiz_id* or raise :class:`QuizNotFound`."""
    rows = store.get(QUIZZES, {"id": quiz_id}, limit=1)
    if not rows or not rows[0].get("is_active", True):
        raise QuizNotFound(f"Quiz {quiz_id} not found")
    return rows[0]


def load_question(store: RecordStore, question_id: int) -> dict[str, Any]:
    rows = store.get(QUESTIONS, {"id": question_id}, limit=1)
    if not rows:
        raise QuestionNotFound(f"Question {question_id} not found")
    return rows[0]
