# File: serialtrack/core/security.py
"""
Password hashing and bearer tokens for SerialTrack.

Tokens are signed JWTs whose ``type`` claim separates short-lived access
tokens from refresh tokens; a token of one kind is never accepted where
the other is expected.
"""

from datetime import timedelta
from enum import Enum
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from serialtrack.core.config import settings
from serialtrack.core.utils import utc_now

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


def _lifetime(token_type: TokenType) -> timedelta:
    if token_type == TokenType.REFRESH:
        return timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    return timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)


def _issue(subject: Any, token_type: TokenType, expires_delta: Optional[timedelta]) -> str:
    issued_at = utc_now()
    claims = {
        "sub": str(subject),
        "type": token_type.value,
        "iat": issued_at,
        "exp": issued_at + (expires_delta or _lifetime(token_type)),
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_access_token(subject: Any, expires_delta: Optional[timedelta] = None) -> str:
    return _issue(subject, TokenType.ACCESS, expires_delta)


def create_refresh_token(subject: Any, expires_delta: Optional[timedelta] = None) -> str:
    return _issue(subject, TokenType.REFRESH, expires_delta)


def create_token_pair(user_id: int) -> Dict[str, Any]:
    """Access and refresh token for a signed-in user, shaped as the login response."""
    return {
        "access_token": create_access_token(user_id),
        "refresh_token": create_refresh_token(user_id),
        "token_type": "bearer",
        "expires_in": int(_lifetime(TokenType.ACCESS).total_seconds()),
    }


def decode_token(token: str, expected_type: Optional[TokenType] = None) -> Dict[str, Any]:
    """
    Verify a token's signature and expiry and return its claims.

    Args:
        token: Encoded JWT
        expected_type: Reject tokens whose ``type`` claim differs

    Raises:
        JWTError: Bad signature, expired, malformed or of the wrong type
    """
    claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    if expected_type is not None and claims.get("type") != expected_type.value:
        raise JWTError(f"Expected a {expected_type.value} token, got {claims.get('type')!r}")
    return claims


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """False for a wrong password and for a missing or unrecognised stored hash."""
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        return False


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)
