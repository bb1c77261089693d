"""
Order schemas for the SerialTrack API.

This module contains Pydantic models for creating stock-out orders,
driving the invoice and delivery workflow, and cancelling orders.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, validator

from serialtrack.db.models.enums import OrderFileType


class OrderItemRequest(BaseModel):
    """One unit to reserve under an order."""

    serial_number: str
    warranty_type: str = "No Warranty"
    warranty_period: int = Field(0, ge=0, description="Warranty period in months")


class OrderCreate(BaseModel):
    """Schema for creating a multi-item order."""

    order_number: str = Field(..., description="Unique order reference")
    customer_dealer: str
    customer_client: Optional[str] = None
    location: str
    items: List[OrderItemRequest]

    @validator("order_number")
    def order_number_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("Order number is required")
        return v.strip()


class OrderStatusUpdate(BaseModel):
    status: str
    invoice_number: Optional[str] = None
    delivery_date: Optional[datetime] = None


class InvoiceDetailsUpdate(BaseModel):
    """Invoice details recorded alongside a replacement invoice document."""

    file_id: str
    invoice_number: Optional[str] = None
    invoice_date: Optional[datetime] = None
    remarks: Optional[str] = None


class OrderNumberUpdate(BaseModel):
    new_order_number: str


class OrderCancelRequest(BaseModel):
    reason: str = Field(..., min_length=1, description="Why the order is cancelled")


class Order(BaseModel):
    """Order with its line items."""

    id: int
    order_number: str
    status: Optional[str] = None
    invoice_status: Optional[str] = None
    delivery_status: Optional[str] = None
    order_status: Optional[str] = None
    created_date: Optional[datetime] = None
    created_by: Optional[str] = None
    customer_dealer: Optional[str] = None
    customer_client: Optional[str] = None
    location: Optional[str] = None
    transaction_ids: List[int] = []
    entry_no: Optional[int] = None
    total_items: Optional[int] = None
    total_quantity: Optional[int] = None
    invoice_file_id: Optional[str] = None
    delivery_file_id: Optional[str] = None
    signed_delivery_file_id: Optional[str] = None
    invoice_number: Optional[str] = None
    invoice_date: Optional[datetime] = None
    delivery_date: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    items: List[Dict[str, Any]] = []

    class Config:
        from_attributes = True


class OrderFileStatus(BaseModel):
    order_number: str
    status: Optional[str] = None
    invoice_status: Optional[str] = None
    delivery_status: Optional[str] = None
    has_invoice: bool
    has_delivery_order: bool
    has_signed_delivery_order: bool
    invoice_file_id: Optional[str] = None
    delivery_file_id: Optional[str] = None
    signed_delivery_file_id: Optional[str] = None
    invoice_uploaded_at: Optional[datetime] = None
    delivery_uploaded_at: Optional[datetime] = None
    signed_delivery_uploaded_at: Optional[datetime] = None
    is_complete: bool


class OrderFile(BaseModel):
    """Metadata of a stored order document."""

    file_id: str
    order_number: str
    file_type: OrderFileType
    filename: str
    original_filename: str
    content_type: str
    size: int
    checksum: Optional[str] = None
    version: int = 1
    is_active: bool = True
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrderFileUploadResult(BaseModel):
    file: OrderFile
    new_invoice_status: Optional[str] = None
    new_delivery_status: Optional[str] = None


class OrderFileStatistics(BaseModel):
    total_files: int
    active_files: int
    invoice_files: int
    delivery_order_files: int
    signed_delivery_order_files: int


class OrderWithFiles(BaseModel):
    """Per-order summary of stored documents."""

    order_number: str
    total_files: int
    invoice_count: int
    delivery_count: int
    signed_delivery_count: int
    last_upload_date: Optional[datetime] = None
