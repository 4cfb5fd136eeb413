"""Identity token utilities.

Tokens are issued by the identity provider and only verified here. The
``sub`` claim is the user id; an optional boolean ``admin`` claim grants the
admin capability. create_access_token exists for local tooling and tests.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from tourney.config import Settings, get_settings
from tourney.logging_config import get_logger

logger = get_logger(__name__)


class TokenError(Exception):
    """Token validation error with specific code."""

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


def create_access_token(
    user_id: str,
    *,
    admin: bool = False,
    additional_claims: dict[str, Any] | None = None,
    expires_delta: timedelta | None = None,
    settings: Settings | None = None,
) -> str:
    """Create a signed access token.

    Args:
        user_id: User ID to encode in token
        admin: Whether to include the admin claim
        additional_claims: Additional claims to include
        expires_delta: Custom expiration time
        settings: Settings to sign with (defaults to process settings)

    Returns:
        Encoded JWT token string
    """
    settings = settings or get_settings()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.jwt_access_token_expire_minutes)

    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": user_id,
        "type": "access",
        "iat": now,
        "exp": now + expires_delta,
    }
    if admin:
        payload["admin"] = True
    if additional_claims:
        payload.update(additional_claims)

    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_access_token(token: str, settings: Settings | None = None) -> dict[str, Any]:
    """Verify an access token and return its payload.

    Raises:
        TokenError: If the token is empty, expired, malformed or lacks a subject
    """
    if not token:
        raise TokenError("AUTH_INVALID_TOKEN", "Empty token")

    settings = settings or get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require_exp": True, "require_sub": True},
        )
    except jwt.ExpiredSignatureError:
        logger.debug("access_token_expired")
        raise TokenError("TOKEN_EXPIRED", "Token has expired")
    except jwt.JWTClaimsError as e:
        logger.debug("access_token_invalid_claims", error=str(e))
        raise TokenError("AUTH_INVALID_TOKEN", "Invalid token claims")
    except JWTError as e:
        logger.warning("access_token_invalid", error_type=type(e).__name__)
        raise TokenError("AUTH_INVALID_TOKEN", "Invalid or expired token")

    if payload.get("type", "access") != "access":
        raise TokenError("AUTH_INVALID_TOKEN", "Wrong token type")
    if not payload.get("sub"):
        raise TokenError("AUTH_INVALID_TOKEN", "Invalid token payload")

    return payload
