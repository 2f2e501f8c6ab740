"""API route package — imports all routers for main.py."""

from quiz_gamification.api.health import router as health_router  # noqa: F401
from quiz_gamification.api.quiz_service import router as quiz_service_router  # noqa: F401
from quiz_gamification.api.gamification import router as gamification_router  # noqa: F401
