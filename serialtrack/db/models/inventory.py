# File: serialtrack/db/models/inventory.py

from sqlalchemy import Column, DateTime, String, Text

from serialtrack.core.utils import utc_now
from serialtrack.db.models.base import AbstractBase, TimestampMixin, TrackingMixin
from serialtrack.db.models.enums import InventoryStatus


class InventoryItem(AbstractBase, TimestampMixin, TrackingMixin):
    """
    A single serialised unit held in stock.

    ``status`` mirrors the movement state written by order, demo and return
    workflows. Listing screens re-derive status from transactions because
    imported rows may never have had it set.
    """

    __tablename__ = "inventory"

    serial_number = Column(String(100), unique=True, index=True, nullable=False)
    equipment_category = Column(String(100), index=True)
    model = Column(String(100))
    size = Column(String(50), index=True)
    batch = Column(String(100))
    remark = Column(Text)
    date = Column(DateTime, default=utc_now, nullable=False, index=True)
    status = Column(String(30), default=InventoryStatus.ACTIVE.value)
    location = Column(String(100))

    def __repr__(self):
        return f"InventoryItem(id={self.id}, serial_number={self.serial_number}, status={self.status})"
