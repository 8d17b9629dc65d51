"""
JWT token handling.

Tokens are issued by the authentication service; this module decodes them at
the API boundary and can mint access tokens for internal tooling and tests.
The ``sub`` claim carries the user id.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from groceazy.core.config import get_settings
from groceazy.core.logging import get_logger

logger = get_logger(__name__)


class TokenError(Exception):
    """Raised when a token cannot be created or decoded."""

    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.code = code


def create_access_token(
    subject: str,
    role: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a JWT access token with expiration.

    Args:
        subject: User id placed in the ``sub`` claim
        role: Optional role claim
        expires_delta: Optional custom lifetime

    Returns:
        Encoded JWT token string

    Example:
        >>> token = create_access_token(str(user.id), role="customer")
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + (
        expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes)
    )

    claims: Dict[str, Any] = {"sub": subject, "exp": expire, "iat": now, "type": "access"}
    if role:
        claims["role"] = role

    return jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a JWT token.

    Args:
        token: JWT token string to decode

    Returns:
        Dictionary of decoded token claims

    Raises:
        TokenError: If token is empty, invalid, expired, or not an access token
    """
    if not token:
        raise TokenError("Token cannot be empty", code="EMPTY_TOKEN")

    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError as e:
        logger.warning("Token has expired")
        raise TokenError("Token has expired", code="TOKEN_EXPIRED") from e
    except JWTError as e:
        logger.warning("Invalid token", error=str(e))
        raise TokenError("Invalid token", code="INVALID_TOKEN") from e

    if payload.get("type", "access") != "access":
        raise TokenError("Invalid token type", code="INVALID_TOKEN_TYPE")

    return payload
