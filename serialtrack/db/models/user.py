# File: serialtrack/db/models/user.py

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from serialtrack.db.models.base import Base, TimestampMixin
from serialtrack.db.models.enums import UserRole


class User(Base, TimestampMixin):
    """
    User model for authentication and authorization.

    Stores account information, credentials and the role that gates
    administrative screens (user management, order cancellation).
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    username = Column(String(100), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    full_name = Column(String(255), index=True, nullable=True)
    role = Column(String(20), default=UserRole.USER.value, nullable=False)
    is_active = Column(Boolean, default=True)
    last_login = Column(DateTime, nullable=True)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    def __repr__(self):
        return f"User(id={self.id}, email={self.email}, username={self.username})"
