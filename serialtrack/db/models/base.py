# File: serialtrack/db/models/base.py
"""
Base models and mixins for SerialTrack.

This module provides the foundation for all database models:
- Base SQLAlchemy model class
- Common mixins for timestamps and record provenance
"""

import uuid
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import Column, DateTime, Integer, MetaData, String
from sqlalchemy.orm import declarative_base

from serialtrack.core.utils import utc_now

Base = declarative_base(metadata=MetaData())


class TimestampMixin:
    """
    Mixin providing automatic timestamp functionality.

    Adds created_at and updated_at timestamps that are automatically
    maintained when records are created or updated.
    """

    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)


class TrackingMixin:
    """
    Mixin recording who created or last changed a record and where it came from.
    """

    created_by = Column(String(100), nullable=True)
    updated_by = Column(String(100), nullable=True)
    source = Column(String(50), nullable=True)


class AbstractBase(Base):
    """
    Abstract base class for all model entities.

    Attributes:
        id: Primary key ID (auto-incremented)
        uuid: Unique identifier (UUID) for the record
    """

    __abstract__ = True

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), unique=True, default=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the model instance to a dictionary.

        Returns:
            Dictionary representation of the model instance
        """
        result = {}
        for column in self.__table__.columns:
            value = getattr(self, column.name)
            if isinstance(value, datetime):
                value = value.isoformat()
            result[column.name] = value
        return result
