# File: serialtrack/db/models/__init__.py
"""
Database models for SerialTrack.

Importing this package registers every table on ``Base.metadata``.
"""

from serialtrack.db.models.base import Base, AbstractBase, TimestampMixin, TrackingMixin
from serialtrack.db.models.demo import Demo
from serialtrack.db.models.inventory import InventoryItem
from serialtrack.db.models.order import Order
from serialtrack.db.models.order_file import OrderFile
from serialtrack.db.models.transaction import Transaction
from serialtrack.db.models.user import User

__all__ = [
    "Base",
    "AbstractBase",
    "TimestampMixin",
    "TrackingMixin",
    "Demo",
    "InventoryItem",
    "Order",
    "OrderFile",
    "Transaction",
    "User",
]
