# serialtrack/services/user_service.py
"""
User service for SerialTrack.

This module provides functionality for user management,
authentication, and token refresh.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from jose import JWTError
from sqlalchemy.orm import Session

from serialtrack import schemas
from serialtrack.core.config import settings
from serialtrack.core.exceptions import (
    AuthenticationException,
    BusinessRuleException,
    DuplicateEntityException,
)
from serialtrack.core.security import (
    TokenType,
    create_token_pair,
    decode_token,
    get_password_hash,
    verify_password,
)
from serialtrack.core.utils import utc_now
from serialtrack.db.models.enums import UserRole
from serialtrack.db.models.user import User
from serialtrack.repositories.user_repository import UserRepository
from serialtrack.services.base_service import BaseService

logger = logging.getLogger(__name__)

RECENT_USER_DAYS = 30
ACTIVE_USER_DAYS = 7


class UserService(BaseService[User]):
    """
    Service layer for managing Users.
    Handles account administration, login and token refresh.
    """

    repository: UserRepository

    def __init__(self, session: Session, security_context=None):
        super().__init__(session, repository_class=UserRepository, security_context=security_context)

    def _check_password(self, password: str) -> None:
        if len(password) < settings.MIN_PASSWORD_LENGTH:
            raise BusinessRuleException(
                f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters long",
                rule_name="PASSWORD_LENGTH",
            )

    def create_user(self, user_in: schemas.UserCreate) -> User:
        """
        Creates a new user, hashing the password.

        Args:
            user_in: User creation schema containing user details and plain password.

        Returns:
            The created User object.

        Raises:
            DuplicateEntityException: If the email or username is already taken.
            BusinessRuleException: If password requirements are not met.
        """
        logger.info(f"Attempting to create user with email: {user_in.email}")
        if self.get_by_email(user_in.email):
            logger.warning(f"Attempted to create duplicate user: {user_in.email}")
            raise DuplicateEntityException(
                "User with this email already exists", details={"email": user_in.email}
            )
        if self.repository.get_by_username(user_in.username):
            raise DuplicateEntityException(
                "User with this username already exists", details={"username": user_in.username}
            )
        self._check_password(user_in.password)

        user_data = user_in.model_dump(exclude={"password"})
        user_data["role"] = UserRole(user_data["role"]).value
        user_data["hashed_password"] = get_password_hash(user_in.password)
        if user_data.get("is_active") is None:
            user_data["is_active"] = True

        with self.transaction():
            user = self.repository.create(user_data)

        logger.info(f"Successfully created user {user.email} (ID: {user.id})")
        return user

    def update_user(self, user_id: int, user_in: schemas.UserUpdate) -> User:
        """
        Updates an existing user. Handles password update separately if included.

        Raises:
            EntityNotFoundException: If the user does not exist.
            DuplicateEntityException: If the new email is taken by another user.
            BusinessRuleException: If password requirements are not met.
        """
        logger.info(f"Attempting to update user ID: {user_id}")
        user = self.get_entity_or_404(user_id)
        update_data = user_in.model_dump(exclude_unset=True)

        new_password = update_data.pop("password", None)
        if new_password:
            self._check_password(new_password)
            update_data["hashed_password"] = get_password_hash(new_password)

        if update_data.get("email"):
            other = self.get_by_email(update_data["email"])
            if other and other.id != user.id:
                raise DuplicateEntityException(
                    "User with this email already exists", details={"email": update_data["email"]}
                )
        if update_data.get("role") is not None:
            update_data["role"] = UserRole(update_data["role"]).value

        with self.transaction():
            user = self.repository.update_entity(user, update_data)

        logger.info(f"Successfully updated user ID: {user_id}")
        return user

    def change_password(self, user_id: int, current_password: str, new_password: str) -> bool:
        user = self.get_entity_or_404(user_id)
        if not verify_password(current_password, user.hashed_password):
            raise AuthenticationException("Incorrect current password")
        if current_password == new_password:
            raise BusinessRuleException("New password cannot be the same as the old password.")
        self._check_password(new_password)
        with self.transaction():
            user.hashed_password = get_password_hash(new_password)
        return True

    def delete_user(self, user_id: int) -> None:
        """
        Delete a user account. Administrators cannot delete themselves.
        """
        user = self.get_entity_or_404(user_id)
        current = self.security_context.current_user if self.security_context else None
        if current is not None and getattr(current, "id", None) == user.id:
            raise BusinessRuleException("You cannot delete your own account.", rule_name="SELF_DELETE")

        with self.transaction():
            self.repository.delete(user_id)
        logger.info(f"Deleted user ID: {user_id}")

    def get_user(self, user_id: int) -> User:
        return self.get_entity_or_404(user_id)

    def get_all_users(self, skip: int = 0, limit: int = 100) -> List[User]:
        return self.repository.list_users(skip=skip, limit=limit)

    def get_by_email(self, email: str) -> Optional[User]:
        return self.repository.get_by_email(email)

    def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """
        Check credentials and record the login time.

        The login may use either the email address or the username.

        Returns:
            The user on success, None when the credentials do not match
        """
        user = self.get_by_email(email) or self.repository.get_by_username(email)
        if not user:
            logger.info(f"Login failed for unknown user {email}")
            return None
        if not verify_password(password, user.hashed_password):
            logger.info(f"Login failed for {email}: wrong password")
            return None

        with self.transaction():
            user.last_login = utc_now()
        return user

    def create_tokens(self, user: User) -> Dict[str, Any]:
        return create_token_pair(user.id)

    def refresh_token(self, refresh_token: str) -> Dict[str, Any]:
        """
        Exchange a refresh token for a new token pair.

        Raises:
            AuthenticationException: Token invalid, wrong type, or user inactive
        """
        try:
            payload = decode_token(refresh_token, expected_type=TokenType.REFRESH)
            user_id = int(payload["sub"])
        except (JWTError, KeyError, ValueError) as e:
            logger.warning(f"Refresh token rejected: {e}")
            raise AuthenticationException("Invalid refresh token")

        user = self.repository.get_by_id(user_id)
        if not user or not user.is_active:
            raise AuthenticationException("Invalid refresh token")
        return self.create_tokens(user)

    def get_user_statistics(self) -> Dict[str, int]:
        """
        Account counts for the user-management screen.

        ``recent_users`` were created in the last 30 days; ``active_users``
        logged in within the last 7 days.
        """
        users = self.repository.get_all()
        now = utc_now()
        recent_cutoff = now - timedelta(days=RECENT_USER_DAYS)
        active_cutoff = now - timedelta(days=ACTIVE_USER_DAYS)
        admins = sum(1 for u in users if u.role == UserRole.ADMIN.value)
        return {
            "total_users": len(users),
            "admin_users": admins,
            "regular_users": len(users) - admins,
            "recent_users": sum(1 for u in users if u.created_at and u.created_at > recent_cutoff),
            "active_users": sum(1 for u in users if u.last_login and u.last_login > active_cutoff),
        }

    def ensure_first_superuser(self) -> User:
        """Create the configured first administrator if it does not exist yet."""
        user = self.get_by_email(settings.FIRST_SUPERUSER)
        if user:
            return user
        return self.create_user(
            schemas.UserCreate(
                email=settings.FIRST_SUPERUSER,
                username=settings.FIRST_SUPERUSER_USERNAME,
                full_name=settings.FIRST_SUPERUSER_FULLNAME,
                password=settings.FIRST_SUPERUSER_PASSWORD,
                role=UserRole.ADMIN,
            )
        )
