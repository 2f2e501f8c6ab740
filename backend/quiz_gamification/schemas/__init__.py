"""Pydantic schemas — re‑exported for convenience."""

from quiz_gamification.schemas.common import ErrorResponse  # noqa: F401
from quiz_gamification.schemas.quiz import (  # noqa: F401
    QuizSummary,
    QuizList,
    QuestionDisplay,
    QuizDetail,
    HintRead,
    ScoreRead,
)
from quiz_gamification.schemas.submission import (  # noqa: F401
    AnswerIn,
    SubmitRequest,
    QuestionResult,
    GamificationSummary,
    SubmitResponse,
)
from quiz_gamification.schemas.gamification import (  # noqa: F401
    QuizResultIn,
    ProcessRequest,
    ProcessResponse,
    AchievementRead,
    ProgressRead,
    LeaderboardEntryRead,
    LeaderboardRead,
)
