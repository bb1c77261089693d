# File: serialtrack/db/models/enums.py
"""
Enumerations shared by models, services and schemas.

Values are stored as plain strings so that rows imported from
spreadsheets keep whatever casing they arrived with.
"""

from enum import Enum


class TransactionType(str, Enum):
    STOCK_IN = "Stock_In"
    STOCK_OUT = "Stock_Out"
    DEMO = "Demo"
    RETURNED = "Returned"
    CANCELLATION = "Cancellation"


class TransactionStatus(str, Enum):
    ACTIVE = "Active"
    RESERVED = "Reserved"
    INVOICED = "Invoiced"
    ISSUED = "Issued"
    DELIVERED = "Delivered"
    DEMO = "Demo"
    RETURNED = "Returned"


class InventoryStatus(str, Enum):
    ACTIVE = "Active"
    RESERVED = "Reserved"
    DELIVERED = "Delivered"
    DEMO = "Demo"
    RETURNED = "Returned"


class InvoiceStatus(str, Enum):
    RESERVED = "Reserved"
    INVOICED = "Invoiced"


class DeliveryStatus(str, Enum):
    PENDING = "Pending"
    ISSUED = "Issued"
    DELIVERED = "Delivered"


class OrderStatus(str, Enum):
    """Lifecycle flag kept separately from invoice and delivery progress."""

    CANCELLED = "Cancelled"


class DemoStatus(str, Enum):
    ACTIVE = "Active"
    RETURNED = "Returned"


class OrderFileType(str, Enum):
    INVOICE = "invoice"
    DELIVERY_ORDER = "delivery_order"
    SIGNED_DELIVERY_ORDER = "signed_delivery_order"


class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"


class TransactionSource(str, Enum):
    STOCK_IN_MANUAL = "stock_in_manual"
    STOCK_OUT_MANUAL = "stock_out_manual"
    DEMO_MANUAL = "demo_manual"
    DEMO_RETURN = "demo_return"
    ITEM_RETURN = "item_return"
    ITEM_REPLACEMENT = "item_replacement"
    ORDER_CANCELLATION = "order_cancellation"
    SIGNED_DELIVERY_ORDER = "signed_delivery_order"
