# serialtrack/api/deps.py
"""
FastAPI dependencies for SerialTrack.

Provides dependency functions for database sessions, user authentication/authorization,
and shared service collaborators for API routes.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from pydantic import ValidationError
from sqlalchemy.orm import Session

from serialtrack.core.config import settings
from serialtrack.core.security import TokenType, decode_token
from serialtrack.db.models.user import User
from serialtrack.db.session import get_db
from serialtrack.repositories.user_repository import UserRepository
from serialtrack.schemas.token import TokenPayload
from serialtrack.services.file_storage_service import FileStorageService

logger = logging.getLogger(__name__)

__all__ = [
    "get_db",
    "oauth2_scheme",
    "get_current_user",
    "get_current_active_user",
    "get_current_admin_user",
    "get_security_context",
    "get_file_storage",
    "SecurityContext",
]

# --- Authentication ---
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/token")


# --- User Authentication & Authorization Dependencies ---

def get_current_user(
        db: Session = Depends(get_db), token: str = Depends(oauth2_scheme)
) -> User:
    """Get current authenticated user from JWT token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_token(token, expected_type=TokenType.ACCESS)
        token_data = TokenPayload.model_validate(payload)
        if datetime.fromtimestamp(token_data.exp, tz=timezone.utc) < datetime.now(timezone.utc):
            logger.warning(f"Token expired for sub: {token_data.sub}")
            raise credentials_exception
    except (JWTError, ValidationError) as e:
        logger.error(f"Token validation failed: {e}", exc_info=False)
        raise credentials_exception from e

    try:
        user_id = int(token_data.sub)
    except ValueError:
        logger.error(f"Invalid user ID format in token 'sub': {token_data.sub}")
        raise credentials_exception

    user = UserRepository(session=db).get_by_id(user_id)
    if user is None:
        logger.warning(f"User with ID {user_id} from token not found in DB.")
        raise credentials_exception
    return user


def get_current_active_user(
        current_user: User = Depends(get_current_user),
) -> User:
    """Gets current user and verifies they are active."""
    if not current_user.is_active:
        logger.warning(
            f"Authentication attempt by inactive user: {current_user.email} (ID: {current_user.id})"
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user"
        )
    return current_user


def get_current_admin_user(
        current_user: User = Depends(get_current_active_user),
) -> User:
    """Gets current active user and verifies the admin role."""
    if not current_user.is_admin:
        logger.warning(
            f"Admin access denied for user: {current_user.email} (ID: {current_user.id})"
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="The user doesn't have sufficient privileges",
        )
    return current_user


# --- Security Context ---

class SecurityContext:
    """Carries the authenticated user into services for auditing."""

    def __init__(self, current_user: Optional[User] = None):
        self.current_user = current_user


def get_security_context(current_user: User = Depends(get_current_active_user)) -> SecurityContext:
    """
    Provides a security context for services that need user information.
    """
    logger.debug(f"Created security context with user ID: {getattr(current_user, 'id', None)}")
    return SecurityContext(current_user)


# --- Service Collaborators ---

def get_file_storage() -> FileStorageService:
    """Provides the local-disk store for order documents."""
    return FileStorageService(settings.FILE_STORAGE_DIR)
