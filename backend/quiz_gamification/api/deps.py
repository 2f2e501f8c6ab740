"""FastAPI dependencies shared across routes."""

import logging
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from quiz_gamification.config import settings
from quiz_gamification.core.security import TokenError, verify_access_token
from quiz_gamification.db.session import get_db
from quiz_gamification.store.base import RecordStore
from quiz_gamification.store.rest import get_rest_store
from quiz_gamification.store.sql import SqlRecordStore

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class AuthenticatedUser:
    id: str
    claims: dict


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> AuthenticatedUser:
    """Verify the bearer JWT and return its subject, or 401."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        payload = verify_access_token(credentials.credentials)
    except TokenError as e:
        logger.info("Rejected token: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user = AuthenticatedUser(id=str(payload["sub"]), claims=payload)
    request.state.user_id = user.id
    return user


def get_store(db: Session | None = Depends(get_db)) -> RecordStore:
    """Record store for this request, chosen by ``STORE_BACKEND``."""
    if settings.STORE_BACKEND == "postgrest":
        return get_rest_store()
    return SqlRecordStore(db)
