"""Gamification-processor schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from quiz_gamification.schemas.submission import AnswerIn


class QuizResultIn(BaseModel):
    """Client-side attempt summary. Only the raw answers are trusted."""

    responses: list[AnswerIn]
    time_taken: int = Field(0, ge=0)  # seconds
    hints_used_list: list[int] = []


class ProcessRequest(BaseModel):
    """POST /quiz-gamification-processor."""

    quiz_id: int
    quiz_result: QuizResultIn
    questions: list[int] | None = None  # ids, or question objects reduced to their ids
    session_id: str | None = None
    category: str | None = None
    user_name: str | None = None
    game_mode: str = "challenge"

    @field_validator("questions", mode="before")
    @classmethod
    def _question_ids(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        return [q.get("id") if isinstance(q, dict) else q for q in value]


class ProcessResponse(BaseModel):
    success: bool = True
    score_id: int
    new_streak: int
    total_points: int
    current_level: int
    achievements_unlocked: list[str]
    deferred_updates: list[str] = []
    message: str = "Quiz results processed successfully"


class AchievementRead(BaseModel):
    achievement_type: str
    achievement_name: str
    achievement_description: str | None = None
    points_awarded: int
    icon: str | None = None
    unlocked_at: datetime | None = None


class ProgressRead(BaseModel):
    """GET /quiz-gamification-processor/progress."""

    user_id: str
    total_points: int = 0
    streak_count: int = 0
    longest_streak: int = 0
    current_level: int = 1
    points_to_next_level: int
    last_quiz_date: datetime | None = None
    achievements: list[AchievementRead] = []


class LeaderboardEntryRead(BaseModel):
    rank: int
    user_id: str
    user_name: str | None = None
    total_score: int
    games_played: int
    average_accuracy: float
    total_time_spent: int
    perfect_scores: int


class LeaderboardRead(BaseModel):
    category: str
    entries: list[LeaderboardEntryRead]
