"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from quiz_gamification.config import settings
from quiz_gamification.api import (
    health_router,
    quiz_service_router,
    gamification_router,
)
from quiz_gamification.core.errors import DeadlineExceeded, RecordStoreError
from quiz_gamification.schemas.common import ErrorResponse

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s  %(name)-25s  %(levelname)-8s  %(message)s",
)
logger = logging.getLogger(__name__)

_ERROR_CODES = {
    status.HTTP_400_BAD_REQUEST: "validation_error",
    status.HTTP_401_UNAUTHORIZED: "unauthorized",
    status.HTTP_403_FORBIDDEN: "forbidden",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
    status.HTTP_429_TOO_MANY_REQUESTS: "rate_limited",
    status.HTTP_504_GATEWAY_TIMEOUT: "deadline_exceeded",
}


def _error(status_code: int, error_code: str, message: str, details=None, headers=None) -> JSONResponse:
    body = ErrorResponse(error_code=error_code, message=message, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Quiz gamification service starting (store=%s)…", settings.STORE_BACKEND)
    yield
    logger.info("✅ Quiz gamification service shut down")


app = FastAPI(
    title="Quiz Gamification API",
    description="Quiz scoring, progression, achievements and leaderboards",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Middleware ─────────────────────────────────────────────────────────────────

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)

# ── Error handlers ────────────────────────────────────────────────────────────


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    code = _ERROR_CODES.get(exc.status_code, "http_error")
    return _error(exc.status_code, code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return _error(
        status.HTTP_400_BAD_REQUEST,
        "validation_error",
        "Request validation failed",
        details={"errors": jsonable_errors(exc)},
    )


@app.exception_handler(DeadlineExceeded)
async def deadline_exception_handler(request: Request, exc: DeadlineExceeded):
    logger.warning("Deadline exceeded on %s %s: %s", request.method, request.url.path, exc)
    return _error(status.HTTP_504_GATEWAY_TIMEOUT, "deadline_exceeded", str(exc))


@app.exception_handler(RecordStoreError)
async def store_exception_handler(request: Request, exc: RecordStoreError):
    logger.error("Record store failure on %s %s: %s", request.method, request.url.path, exc)
    return _error(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "store_error",
        "Failed to save quiz data",
        details={"collection": exc.collection} if exc.collection else None,
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error", "Internal server error")


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


# ── Routers ───────────────────────────────────────────────────────────────────

app.include_router(health_router, tags=["Health"])
app.include_router(quiz_service_router, prefix="/quiz-service", tags=["Quiz service"])
app.include_router(
    gamification_router, prefix="/quiz-gamification-processor", tags=["Gamification"]
)


@app.get("/")
async def root():
    return {
        "name": "Quiz Gamification API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }
