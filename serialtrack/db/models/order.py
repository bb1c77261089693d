# File: serialtrack/db/models/order.py

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text

from serialtrack.core.utils import utc_now
from serialtrack.db.models.base import AbstractBase, TimestampMixin
from serialtrack.db.models.enums import DeliveryStatus, InvoiceStatus


class Order(AbstractBase, TimestampMixin):
    """
    Stock-out order grouping one or more reserved items.

    Progress is tracked on two axes: ``invoice_status`` (Reserved, Invoiced)
    and ``delivery_status`` (Pending, Issued, Delivered). ``status`` is the
    single-axis field written by older records and is only read as a
    fallback. ``order_status`` is set to Cancelled when the order is voided.
    """

    __tablename__ = "orders"

    order_number = Column(String(100), unique=True, index=True, nullable=False)
    status = Column(String(30))
    invoice_status = Column(String(30), default=InvoiceStatus.RESERVED.value)
    delivery_status = Column(String(30), default=DeliveryStatus.PENDING.value)
    order_status = Column(String(30))

    created_date = Column(DateTime, default=utc_now, index=True)
    created_by = Column(String(100))
    customer_dealer = Column(String(255), index=True)
    customer_client = Column(String(255))
    location = Column(String(100))

    transaction_ids = Column(JSON, default=list)
    entry_no = Column(Integer)
    total_items = Column(Integer, default=0)
    total_quantity = Column(Integer, default=0)

    invoice_file_id = Column(String(36))
    delivery_file_id = Column(String(36))
    signed_delivery_file_id = Column(String(36))
    invoice_uploaded_at = Column(DateTime)
    delivery_uploaded_at = Column(DateTime)
    signed_delivery_uploaded_at = Column(DateTime)

    invoice_number = Column(String(100))
    invoice_date = Column(DateTime)
    invoice_remarks = Column(Text)
    delivery_date = Column(DateTime)

    cancellation_reason = Column(Text)
    cancelled_by = Column(String(100))
    cancelled_at = Column(DateTime)
    original_invoice_status = Column(String(30))
    original_delivery_status = Column(String(30))
    cancellation_transaction_ids = Column(JSON)

    @property
    def effective_invoice_status(self) -> str:
        return self.invoice_status or self.status or InvoiceStatus.RESERVED.value

    @property
    def effective_delivery_status(self) -> str:
        return self.delivery_status or DeliveryStatus.PENDING.value

    def __repr__(self):
        return (
            f"Order(order_number={self.order_number}, invoice_status={self.invoice_status}, "
            f"delivery_status={self.delivery_status})"
        )
