"""
Inventory schemas for the SerialTrack API.

Request and response models for stock-in, the inventory list, item
maintenance and per-serial activity history.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, validator


class StockInRequest(BaseModel):
    """Schema for receiving a new unit into stock."""

    serial_number: str = Field(..., description="Unique serial number")
    equipment_category: str = Field(..., description="Equipment category")
    model: str = Field(..., description="Model name")
    size: Optional[str] = None
    batch: Optional[str] = None
    remark: Optional[str] = None

    @validator("serial_number")
    def serial_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("Serial number is required")
        return v.strip()


class InventoryItemUpdate(BaseModel):
    """Editable inventory fields. Only provided fields change."""

    serial_number: Optional[str] = None
    equipment_category: Optional[str] = None
    model: Optional[str] = None
    size: Optional[str] = None
    batch: Optional[str] = None
    remark: Optional[str] = None


class InventoryItem(BaseModel):
    """Stored inventory row."""

    id: int
    serial_number: str
    equipment_category: Optional[str] = None
    model: Optional[str] = None
    size: Optional[str] = None
    batch: Optional[str] = None
    remark: Optional[str] = None
    date: Optional[datetime] = None
    status: Optional[str] = None
    location: Optional[str] = None
    source: Optional[str] = None
    created_by: Optional[str] = None

    class Config:
        from_attributes = True


class InventoryListItem(BaseModel):
    """Inventory row with status and location derived from its transactions."""

    id: int
    serial_number: str
    equipment_category: str
    model: str
    size: str = ""
    batch: str = ""
    remark: str = ""
    date: Optional[datetime] = None
    current_status: str
    current_location: str
    last_activity: Optional[datetime] = None
    transaction_count: int = 0


class InventoryPage(BaseModel):
    items: List[InventoryListItem]
    has_more: bool
    last_document: Optional[int] = None
    total_filtered: int


class InventoryFilterOptions(BaseModel):
    categories: List[str]
    sizes: List[str]
    locations: List[str]
    statuses: List[str]


class InventorySummary(BaseModel):
    total_items: int
    active_items: int
    reserved_items: int
    delivered_items: int


class InventoryDeleteResult(BaseModel):
    serial_number: str
    deleted_transactions: int
    message: str


class ActivityEntry(BaseModel):
    """One event in an item's activity history."""

    type: str
    status: Optional[str] = None
    date: Optional[str] = None
    description: str
    customer_info: Optional[str] = None
    location: Optional[str] = None
    invoice_number: Optional[str] = None
    demo_number: Optional[str] = None
    order_number: Optional[str] = None
    remarks: Optional[str] = None
    transaction_id: Optional[int] = None


class ItemReturnRequest(BaseModel):
    """Swap a sold unit for a replacement."""

    returned_serial: str
    replacement_serial: str
    dealer_name: str
    remarks: Optional[str] = ""


class ItemReturnResult(BaseModel):
    message: str
    returned_transaction_id: int
    replacement_transaction_id: int
    entry_no: Optional[int] = None


class DiscrepancyResult(BaseModel):
    success: bool
    analysis: Optional[Dict] = None
    error: Optional[str] = None
