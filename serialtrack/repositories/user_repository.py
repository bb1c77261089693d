# File: serialtrack/repositories/user_repository.py
"""
Repository implementation for users in SerialTrack.

This module provides data access for users via the repository pattern,
inheriting common CRUD operations from BaseRepository and adding
user-specific lookups.
"""

import logging
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from serialtrack.db.models.user import User
from serialtrack.repositories.base_repository import BaseRepository

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """Repository for user entities."""

    def __init__(self, session: Session):
        super().__init__(session=session, model=User)

    def get_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(func.lower(User.email) == email.lower())
        return self.session.execute(stmt).scalar_one_or_none()

    def get_by_username(self, username: str) -> Optional[User]:
        stmt = select(User).where(User.username == username)
        return self.session.execute(stmt).scalar_one_or_none()

    def list_users(self, skip: int = 0, limit: int = 100) -> List[User]:
        stmt = select(User).order_by(User.created_at.desc(), User.id.desc()).offset(skip).limit(limit)
        return list(self.session.execute(stmt).scalars().all())
