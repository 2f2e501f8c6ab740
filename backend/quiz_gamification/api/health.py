"""Health check endpoint."""

from fastapi import APIRouter

from quiz_gamification.config import settings

router = APIRouter()


@router.get("/health")
async def health():
    return {"status": "healthy", "service": "quiz-gamification", "store": settings.STORE_BACKEND}
