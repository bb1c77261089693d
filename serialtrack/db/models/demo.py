# File: serialtrack/db/models/demo.py

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text

from serialtrack.core.utils import utc_now
from serialtrack.db.models.base import AbstractBase, TimestampMixin
from serialtrack.db.models.enums import DemoStatus


class Demo(AbstractBase, TimestampMixin):
    """Temporary loan of one or more items to a customer."""

    __tablename__ = "demos"

    demo_number = Column(String(100), unique=True, index=True, nullable=False)
    demo_purpose = Column(String(255))
    status = Column(String(30), default=DemoStatus.ACTIVE.value, index=True)
    customer_dealer = Column(String(255))
    customer_client = Column(String(255))
    location = Column(String(100))
    transaction_ids = Column(JSON, default=list)
    total_items = Column(Integer, default=0)
    created_date = Column(DateTime, default=utc_now, index=True)
    created_by = Column(String(100))
    expected_return_date = Column(DateTime)
    actual_return_date = Column(DateTime)
    returned_by = Column(String(100))
    remarks = Column(Text)

    def __repr__(self):
        return f"Demo(demo_number={self.demo_number}, status={self.status})"
