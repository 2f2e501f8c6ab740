"""Bearer token verification for Supabase-issued JWTs."""

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from quiz_gamification.config import settings


class TokenError(Exception):
    """Raised when a bearer token cannot be trusted."""


def create_access_token(
    data: dict,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed JWT carrying the configured audience.

    Used by service-to-service callers and the test-suite; end-user tokens
    are minted by the identity provider.
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.setdefault("aud", settings.JWT_AUDIENCE)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHMS[0])


def verify_access_token(token: str) -> dict[str, Any]:
    """Verify signature, expiry and audience; return the claims.

    Raises:
        TokenError: if the token is malformed, badly signed, expired, or is
            missing the ``sub`` / ``aud`` claims.
    """
    try:
        claims = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=settings.JWT_ALGORITHMS,
            audience=settings.JWT_AUDIENCE,
        )
    except JWTError as e:
        raise TokenError(str(e)) from e

    # python-jose skips the audience check when the claim is absent
    if not claims.get("sub") or not claims.get("aud"):
        raise TokenError("Token is missing required claims")
    return claims
