"""
Transaction schemas for the SerialTrack API.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class Transaction(BaseModel):
    """Movement record for one serial number."""

    id: int
    transaction_id: int
    entry_no: Optional[int] = None
    serial_number: str
    type: str
    status: Optional[str] = None
    date: Optional[datetime] = None
    uploaded_at: Optional[datetime] = None
    uploaded_by: Optional[str] = None
    source: Optional[str] = None
    location: Optional[str] = None
    customer_dealer: Optional[str] = None
    customer_client: Optional[str] = None
    equipment_category: Optional[str] = None
    model: Optional[str] = None
    size: Optional[str] = None
    quantity: Optional[int] = None
    remarks: Optional[str] = None
    warranty_type: Optional[str] = None
    warranty_period: Optional[int] = None
    invoice_number: Optional[str] = None
    delivery_date: Optional[datetime] = None
    demo_purpose: Optional[str] = None
    expected_return_date: Optional[datetime] = None
    returned_from_demo: Optional[str] = None
    original_transaction_id: Optional[int] = None
    cancelled_from_order: Optional[str] = None
    cancellation_reason: Optional[str] = None
    replaced_by: Optional[str] = None
    is_replacement: Optional[bool] = None

    class Config:
        from_attributes = True
