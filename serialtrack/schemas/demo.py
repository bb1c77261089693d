"""
Demo loan schemas for the SerialTrack API.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class DemoItemRequest(BaseModel):
    serial_number: str


class DemoCreate(BaseModel):
    """Schema for lending items under a demo number."""

    demo_number: str = Field(..., min_length=1)
    demo_purpose: str
    customer_dealer: str
    customer_client: Optional[str] = None
    location: str
    items: List[DemoItemRequest]
    expected_return_date: Optional[datetime] = None
    remarks: Optional[str] = None


class DemoReturnRequest(BaseModel):
    actual_return_date: Optional[datetime] = None


class Demo(BaseModel):
    id: int
    demo_number: str
    demo_purpose: Optional[str] = None
    status: str
    customer_dealer: Optional[str] = None
    customer_client: Optional[str] = None
    location: Optional[str] = None
    transaction_ids: List[int] = []
    total_items: int = 0
    created_date: Optional[datetime] = None
    created_by: Optional[str] = None
    expected_return_date: Optional[datetime] = None
    actual_return_date: Optional[datetime] = None
    returned_by: Optional[str] = None
    remarks: Optional[str] = None

    class Config:
        from_attributes = True


class DemoItem(BaseModel):
    transaction_id: int
    serial_number: Optional[str] = None
    category: Optional[str] = None
    model: Optional[str] = None
    size: Optional[str] = None
    status: Optional[str] = None
    created_date: Optional[str] = None


class DemoStatistics(BaseModel):
    total_demos: int
    active_demos: int
    returned_demos: int
    active_demo_items: int
