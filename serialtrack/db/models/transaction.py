# File: serialtrack/db/models/transaction.py

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Text

from serialtrack.core.utils import utc_now
from serialtrack.db.models.base import AbstractBase


class Transaction(AbstractBase):
    """
    Movement record for one serial number.

    Transactions are append-only apart from the order workflow, which stamps
    invoice and delivery details onto existing Stock_Out rows. Orders and
    demos reference them by ``transaction_id``.
    """

    __tablename__ = "transactions"

    transaction_id = Column(Integer, unique=True, index=True, nullable=False)
    entry_no = Column(Integer, index=True)
    serial_number = Column(String(100), index=True, nullable=False)
    type = Column(String(30), index=True, nullable=False)
    status = Column(String(30), index=True)
    date = Column(DateTime, index=True)
    uploaded_at = Column(DateTime, default=utc_now, index=True)
    uploaded_by = Column(String(100))
    source = Column(String(50))

    location = Column(String(100))
    customer_dealer = Column(String(255))
    customer_client = Column(String(255))
    equipment_category = Column(String(100))
    model = Column(String(100))
    size = Column(String(50))
    quantity = Column(Integer, default=1)
    remarks = Column(Text)
    unit_price = Column(Float)

    # Sales
    warranty_type = Column(String(50))
    warranty_period = Column(Integer)
    invoice_number = Column(String(100))
    invoice_date = Column(DateTime)
    delivery_date = Column(DateTime)

    # Demo loans
    demo_purpose = Column(String(255))
    expected_return_date = Column(DateTime)
    returned_from_demo = Column(String(100))
    original_demo_transaction_id = Column(Integer)

    # Cancellation and returns
    original_transaction_id = Column(Integer)
    cancelled_from_order = Column(String(100))
    cancellation_reason = Column(Text)
    replaced_by = Column(String(100))
    is_replacement = Column(Boolean, default=False)

    def __repr__(self):
        return (
            f"Transaction(transaction_id={self.transaction_id}, "
            f"serial_number={self.serial_number}, type={self.type}, status={self.status})"
        )
