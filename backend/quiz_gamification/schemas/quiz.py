"""Quiz-service read schemas."""

from datetime import datetime

from pydantic import BaseModel


class QuizSummary(BaseModel):
    """One row of GET /quiz-service."""

    id: int
    title: str
    description: str | None = None
    category: str | None = None
    difficulty: str | None = None
    question_count: int = 0
    created_at: datetime | None = None


class QuizList(BaseModel):
    items: list[QuizSummary]
    total: int
    skip: int
    limit: int


class QuestionDisplay(BaseModel):
    """A question as shown to the player: no answer, hint or explanation."""

    id: int
    question_text: str
    question_type: str
    options: list[str]
    points: int
    time_limit: int
    difficulty: str
    has_hint: bool = False


class QuizDetail(BaseModel):
    """GET /quiz-service/{quiz_id}: metadata plus a random sample of questions.

    Clients send ``session_id`` back on submit; the attempt is graded
    against the questions served here.
    """

    session_id: str
    id: int
    title: str
    description: str | None = None
    category: str | None = None
    difficulty: str | None = None
    questions: list[QuestionDisplay]
    question_count: int
    total_questions_in_pool: int


class HintRead(BaseModel):
    question_id: int
    hint: str


class ScoreRead(BaseModel):
    """A stored attempt as listed by GET /quiz-service/{quiz_id}/scores."""

    id: int
    user_id: str
    quiz_id: int
    score: int
    max_score: int
    percentage: float
    time_taken: int
    correct_answers: int
    total_questions: int
    hints_used: int
    game_mode: str
    created_at: datetime | None = None
