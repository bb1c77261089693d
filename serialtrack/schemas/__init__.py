# File: serialtrack/schemas/__init__.py
"""
Schemas package for the SerialTrack API.

Pydantic models used for request validation and response serialization.
"""

from .token import Token, TokenPayload, TokenRefresh
from .user import User, UserCreate, UserUpdate, UserPasswordChange, UserStatistics
from .inventory import (
    ActivityEntry,
    DiscrepancyResult,
    InventoryDeleteResult,
    InventoryFilterOptions,
    InventoryItem,
    InventoryItemUpdate,
    InventoryListItem,
    InventoryPage,
    InventorySummary,
    ItemReturnRequest,
    ItemReturnResult,
    StockInRequest,
)
from .transaction import Transaction
from .order import (
    InvoiceDetailsUpdate,
    Order,
    OrderCancelRequest,
    OrderCreate,
    OrderFile,
    OrderFileStatistics,
    OrderFileStatus,
    OrderFileUploadResult,
    OrderItemRequest,
    OrderNumberUpdate,
    OrderStatusUpdate,
    OrderWithFiles,
)
from .demo import Demo, DemoCreate, DemoItem, DemoItemRequest, DemoReturnRequest, DemoStatistics

__all__ = [
    # Authentication
    "Token", "TokenPayload", "TokenRefresh",
    "User", "UserCreate", "UserUpdate", "UserPasswordChange", "UserStatistics",

    # Inventory
    "StockInRequest", "InventoryItem", "InventoryItemUpdate", "InventoryListItem", "InventoryPage",
    "InventoryFilterOptions", "InventorySummary", "InventoryDeleteResult", "ActivityEntry",
    "ItemReturnRequest", "ItemReturnResult", "DiscrepancyResult", "Transaction",

    # Orders
    "Order", "OrderCreate", "OrderItemRequest", "OrderStatusUpdate", "InvoiceDetailsUpdate",
    "OrderNumberUpdate", "OrderCancelRequest", "OrderFile", "OrderFileStatus", "OrderFileUploadResult",
    "OrderFileStatistics", "OrderWithFiles",

    # Demos
    "Demo", "DemoCreate", "DemoItem", "DemoItemRequest", "DemoReturnRequest", "DemoStatistics",
]
