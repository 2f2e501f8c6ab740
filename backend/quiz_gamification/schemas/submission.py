"""Submission schemas shared by the submit and processor endpoints."""

from pydantic import AliasChoices, BaseModel, Field


class AnswerIn(BaseModel):
    question_id: int
    user_answer: str | None = None
    response_time: float = Field(0, ge=0)  # milliseconds


class SubmitRequest(BaseModel):
    """POST /quiz-service/{quiz_id}/submit."""

    answers: list[AnswerIn]
    total_time: int = Field(
        0, ge=0, validation_alias=AliasChoices("total_time", "time_taken")
    )  # seconds
    hints_used_list: list[int] = []
    session_id: str | None = None  # from GET /quiz-service/{quiz_id}
    question_ids: list[int] | None = None  # used when the session is unknown


class QuestionResult(BaseModel):
    question_id: int
    question_text: str
    user_answer: str | None = None
    correct_answer: str | None = None
    is_correct: bool
    options: list[str]
    base_points: int
    time_bonus: int
    total_points: int
    hint_used: bool
    hint: str | None = None
    explanation: str | None = None
    response_time: float


class GamificationSummary(BaseModel):
    new_streak: int
    total_points: int
    current_level: int
    achievements_unlocked: list[str] = []
    deferred_updates: list[str] = []


class SubmitResponse(BaseModel):
    score_id: int
    base_score: int
    time_bonus: int
    hint_penalty: int
    final_score: int
    max_possible_score: int
    percentage: float
    correct_answers: int
    total_questions: int
    time_taken: int
    hints_used: int
    results: list[QuestionResult]
    gamification: GamificationSummary
