# File: serialtrack/services/inventory_service.py
"""
Inventory management for SerialTrack.

Listing, filtering, editing and deleting stocked items, plus the per-serial
activity timeline. Every item's displayed status and location are derived
from its transaction log rather than trusted from the inventory row.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from serialtrack.core.config import settings
from serialtrack.core.exceptions import (
    DuplicateEntityException,
    EntityNotFoundException,
    ValidationException,
)
from serialtrack.core.utils import (
    customer_label,
    iso_or_none,
    normalize_serial,
    sort_desc_nulls_last,
    utc_now,
)
from serialtrack.db.models.demo import Demo
from serialtrack.db.models.enums import InventoryStatus, TransactionSource, TransactionStatus, TransactionType
from serialtrack.db.models.inventory import InventoryItem
from serialtrack.db.models.order import Order
from serialtrack.db.models.transaction import Transaction
from serialtrack.repositories.demo_repository import DemoRepository
from serialtrack.repositories.inventory_repository import InventoryRepository
from serialtrack.repositories.order_repository import OrderRepository
from serialtrack.repositories.transaction_repository import TransactionRepository
from serialtrack.services.base_service import BaseService
from serialtrack.services.item_status import group_by_serial, resolve_current_state

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("serial_number", "equipment_category", "model", "size", "batch", "remark")
LISTED_STATUSES = [
    InventoryStatus.ACTIVE.value,
    InventoryStatus.RESERVED.value,
    InventoryStatus.DELIVERED.value,
]


class InventoryManagementService(BaseService[InventoryItem]):
    """
    Service for browsing and maintaining inventory items.
    """

    def __init__(self, session: Session, security_context=None):
        super().__init__(session, repository_class=InventoryRepository, security_context=security_context)
        self.transaction_repository = TransactionRepository(session)
        self.order_repository = OrderRepository(session)
        self.demo_repository = DemoRepository(session)

    # --- Listing ---

    def get_inventory_items(
        self,
        limit: Optional[int] = None,
        cursor: Optional[int] = None,
        search: Optional[str] = None,
        category: Optional[str] = None,
        status: Optional[str] = None,
        location: Optional[str] = None,
        size: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Get one page of inventory items with derived status and location.

        Category and size are filtered in the query. Search, status and
        location depend on derived values, so they are applied after the
        page is loaded and the page is widened to make that useful.

        Args:
            limit: Page size (default from settings)
            cursor: ID of the last item of the previous page
            search: Free-text search across item fields and current location
            category: Exact equipment category
            status: Exact derived status (Active, Reserved, Delivered)
            location: Exact derived location
            size: Exact size

        Returns:
            Dict with ``items``, ``has_more``, ``last_document`` and ``total_filtered``

        Raises:
            EntityNotFoundException: ``cursor`` refers to an item that was deleted
        """
        limit = limit or settings.INVENTORY_PAGE_SIZE
        effective_limit = limit
        if search or status or location:
            effective_limit = settings.INVENTORY_FILTERED_PAGE_SIZE

        page = self.repository.list_page(
            limit=effective_limit, cursor_id=cursor, category=category, size=size
        )
        transactions = group_by_serial(
            self.transaction_repository.get_for_serials(item.serial_number for item in page)
        )

        query = search.lower() if search else None
        items = []
        for inventory_item in page:
            item = self._build_item(
                inventory_item, transactions.get(normalize_serial(inventory_item.serial_number), [])
            )
            if query and query not in self._searchable_text(item):
                continue
            if status and item["current_status"] != status:
                continue
            if location and item["current_location"] != location:
                continue
            items.append(item)

        logger.debug(
            f"Inventory page: fetched {len(page)} rows, {len(items)} after filters "
            f"(limit={effective_limit}, cursor={cursor})"
        )
        return {
            "items": items,
            "has_more": len(page) == effective_limit,
            "last_document": page[-1].id if page else None,
            "total_filtered": len(items),
        }

    @staticmethod
    def _build_item(inventory_item: InventoryItem, transactions: List[Transaction]) -> Dict[str, Any]:
        status, location, last_activity = resolve_current_state(transactions)
        return {
            "id": inventory_item.id,
            "serial_number": inventory_item.serial_number,
            "equipment_category": inventory_item.equipment_category or "Unknown",
            "model": inventory_item.model or "Unknown",
            "size": inventory_item.size or "",
            "batch": inventory_item.batch or "",
            "remark": inventory_item.remark or "",
            "date": inventory_item.date,
            "current_status": status,
            "current_location": location,
            "last_activity": last_activity,
            "transaction_count": len(transactions),
        }

    @staticmethod
    def _searchable_text(item: Dict[str, Any]) -> str:
        parts = [
            item["serial_number"],
            item["equipment_category"],
            item["model"],
            item["size"],
            item["batch"],
            item["remark"],
            item["current_location"],
        ]
        return " ".join(p for p in parts if p).lower()

    def _all_items_with_state(self) -> List[Dict[str, Any]]:
        transactions = group_by_serial(self.transaction_repository.get_all())
        return [
            self._build_item(item, transactions.get(normalize_serial(item.serial_number), []))
            for item in self.repository.get_all()
        ]

    def get_filter_options(self) -> Dict[str, List[str]]:
        """Distinct values for the inventory screen's filter dropdowns."""
        items = self._all_items_with_state()
        return {
            "categories": sorted({i["equipment_category"] for i in items if i["equipment_category"]}),
            "sizes": sorted({i["size"] for i in items if i["size"]}),
            "locations": sorted({i["current_location"] for i in items if i["current_location"]}),
            "statuses": list(LISTED_STATUSES),
        }

    def get_inventory_summary(self) -> Dict[str, int]:
        """Counts of items per derived status."""
        summary = {"total_items": 0, "active_items": 0, "reserved_items": 0, "delivered_items": 0}
        for item in self._all_items_with_state():
            summary["total_items"] += 1
            if item["current_status"] == InventoryStatus.ACTIVE.value:
                summary["active_items"] += 1
            elif item["current_status"] == InventoryStatus.RESERVED.value:
                summary["reserved_items"] += 1
            elif item["current_status"] == InventoryStatus.DELIVERED.value:
                summary["delivered_items"] += 1
        return summary

    # --- Single item maintenance ---

    def get_inventory_item_by_id(self, item_id: int) -> InventoryItem:
        item = self.repository.get_by_id(item_id)
        if not item:
            raise EntityNotFoundException("InventoryItem", item_id)
        return item

    def update_inventory_item(
        self, item_id: int, data: Dict[str, Any], updated_by: Optional[str] = None
    ) -> InventoryItem:
        """
        Update an inventory item and mirror the change onto its Stock_In record.

        Args:
            item_id: Inventory row ID
            data: New values for any of the editable fields
            updated_by: Email of the editing user

        Returns:
            The updated inventory item

        Raises:
            EntityNotFoundException: Item does not exist
            ValidationException: Serial number was blanked
            DuplicateEntityException: New serial belongs to another item
        """
        item = self.get_inventory_item_by_id(item_id)
        changes = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}

        if "serial_number" in changes:
            new_serial = (changes["serial_number"] or "").strip()
            if not new_serial:
                raise ValidationException(
                    "Serial number is required.", {"serial_number": ["Serial number is required."]}
                )
            changes["serial_number"] = new_serial
            other = self.repository.get_by_serial(new_serial)
            if other is not None and other.id != item.id:
                raise DuplicateEntityException(
                    f"Item with serial number {new_serial} already exists in inventory.",
                    details={"serial_number": new_serial},
                )

        with self.transaction():
            stock_in = self.transaction_repository.find_stock_in(item.serial_number)
            changes["updated_by"] = updated_by or self._current_username()
            changes["updated_at"] = utc_now()
            self.repository.update_entity(item, changes)

            if stock_in is not None:
                tx_changes = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS and k != "remark"}
                if "remark" in changes:
                    tx_changes["remarks"] = changes["remark"]
                self.transaction_repository.update_entity(stock_in, tx_changes)

        self._log_operation("update", "InventoryItem", item_id, {"fields": sorted(changes)})
        return item

    def delete_inventory_item(self, item_id: int) -> Dict[str, Any]:
        """
        Delete an inventory item together with every transaction for its serial.

        Returns:
            Dict with the serial and number of deleted transactions
        """
        item = self.get_inventory_item_by_id(item_id)
        serial = item.serial_number
        with self.transaction():
            deleted_transactions = self.transaction_repository.delete_for_serial(serial)
            self.repository.delete(item_id)

        self._log_operation("delete", "InventoryItem", item_id, {"serial_number": serial})
        return {
            "serial_number": serial,
            "deleted_transactions": deleted_transactions,
            "message": "Item and related transactions deleted successfully",
        }

    # --- Activity history ---

    def get_item_activity_history(self, serial_number: str) -> List[Dict[str, Any]]:
        """
        Build the movement timeline of one serial number, most recent first.

        Transactions are the backbone. Orders and demos are joined through
        their ``transaction_ids`` lists to recover order numbers, invoice
        numbers and demo numbers. Invoice and delivery-order uploads change
        the order but not its transactions, so they are added as
        synthetic Stock_Out activities dated at the upload time.

        Args:
            serial_number: Serial to trace (case-insensitive)

        Returns:
            List of activity dicts

        Raises:
            EntityNotFoundException: Serial is unknown to both inventory and transactions
        """
        transactions = self.transaction_repository.get_for_serial(serial_number)
        inventory_item = self.repository.get_by_serial(serial_number)
        if not transactions and inventory_item is None:
            raise EntityNotFoundException("InventoryItem", serial_number)

        orders_by_tx, demos_by_tx = self._link_documents(transactions)

        activities = [
            self._describe_transaction(tx, orders_by_tx.get(tx.transaction_id), demos_by_tx.get(tx.transaction_id))
            for tx in transactions
        ]

        seen_orders = set()
        for tx in transactions:
            order = orders_by_tx.get(tx.transaction_id)
            if order is None or order.id in seen_orders or tx.type != TransactionType.STOCK_OUT.value:
                continue
            seen_orders.add(order.id)
            activities.extend(self._order_milestones(order, tx))

        ordered = sort_desc_nulls_last(
            activities, key=lambda a: (a["date"], a["transaction_id"] or 0) if a["date"] else None
        )
        for activity in ordered:
            activity["date"] = iso_or_none(activity["date"])
        logger.debug(f"Activity history for {serial_number}: {len(ordered)} entries")
        return ordered

    def _link_documents(
        self, transactions: List[Transaction]
    ) -> Tuple[Dict[int, Order], Dict[int, Demo]]:
        wanted = {tx.transaction_id for tx in transactions}
        orders_by_tx: Dict[int, Order] = {}
        demos_by_tx: Dict[int, Demo] = {}
        if not wanted:
            return orders_by_tx, demos_by_tx

        for order in self.order_repository.get_all():
            linked = set(order.transaction_ids or []) | set(order.cancellation_transaction_ids or [])
            for tx_id in linked & wanted:
                orders_by_tx[tx_id] = order
        for demo in self.demo_repository.get_all():
            for tx_id in set(demo.transaction_ids or []) & wanted:
                demos_by_tx[tx_id] = demo
        return orders_by_tx, demos_by_tx

    def _describe_transaction(
        self, tx: Transaction, order: Optional[Order], demo: Optional[Demo]
    ) -> Dict[str, Any]:
        order_number = order.order_number if order else tx.cancelled_from_order
        demo_number = demo.demo_number if demo else tx.returned_from_demo
        invoice_number = tx.invoice_number or (order.invoice_number if order else None)

        description = self._description_for(tx, order_number, demo_number)
        customer_info = ""
        if tx.type != TransactionType.STOCK_IN.value:
            customer_info = customer_label(tx.customer_dealer, tx.customer_client)

        return {
            "type": tx.type,
            "status": tx.status,
            "date": tx.date or tx.uploaded_at,
            "description": description,
            "customer_info": customer_info,
            "location": tx.location or "",
            "invoice_number": invoice_number or "",
            "demo_number": demo_number or "",
            "order_number": order_number or "",
            "remarks": tx.remarks or "",
            "transaction_id": tx.transaction_id,
        }

    @staticmethod
    def _description_for(tx: Transaction, order_number: Optional[str], demo_number: Optional[str]) -> str:
        tx_type = tx.type
        status = tx.status or ""
        if tx_type == TransactionType.STOCK_IN.value:
            if tx.source == TransactionSource.DEMO_RETURN.value:
                return f"Returned from demo {demo_number}" if demo_number else "Returned from demo"
            return f"Stocked in at {tx.location}" if tx.location else "Stocked in"
        if tx_type == TransactionType.STOCK_OUT.value:
            if tx.source == TransactionSource.ITEM_REPLACEMENT.value:
                return f"Delivered as replacement ({tx.remarks})" if tx.remarks else "Delivered as replacement"
            if status == TransactionStatus.RESERVED.value:
                return f"Reserved for order {order_number}" if order_number else "Reserved for order"
            if status == TransactionStatus.DELIVERED.value:
                return f"Delivered to {tx.customer_dealer}" if tx.customer_dealer else "Delivered"
            return f"Stock out ({status})" if status else "Stock out"
        if tx_type == TransactionType.DEMO.value:
            purpose = f": {tx.demo_purpose}" if tx.demo_purpose else ""
            return f"Sent on demo {demo_number}{purpose}" if demo_number else f"Sent on demo{purpose}"
        if tx_type == TransactionType.RETURNED.value:
            return f"Returned by customer, replaced by {tx.replaced_by}" if tx.replaced_by else "Returned by customer"
        if tx_type == TransactionType.CANCELLATION.value:
            reason = f": {tx.cancellation_reason}" if tx.cancellation_reason else ""
            return f"Order {order_number} cancelled{reason}" if order_number else f"Order cancelled{reason}"
        return tx_type or "Unknown activity"

    @staticmethod
    def _order_milestones(order: Order, tx: Transaction) -> List[Dict[str, Any]]:
        base = {
            "type": TransactionType.STOCK_OUT.value,
            "customer_info": customer_label(order.customer_dealer, order.customer_client),
            "location": tx.location or order.location or "",
            "invoice_number": order.invoice_number or tx.invoice_number or "",
            "demo_number": "",
            "order_number": order.order_number,
            "remarks": "",
            "transaction_id": None,
        }
        milestones = []
        invoiced_at = order.invoice_uploaded_at or order.invoice_date
        if invoiced_at:
            invoice_ref = f" ({order.invoice_number})" if order.invoice_number else ""
            milestones.append({
                **base,
                "status": TransactionStatus.INVOICED.value,
                "date": invoiced_at,
                "description": f"Invoiced for order {order.order_number}{invoice_ref}",
                "remarks": order.invoice_remarks or "",
            })
        if order.delivery_uploaded_at:
            milestones.append({
                **base,
                "status": TransactionStatus.ISSUED.value,
                "date": order.delivery_uploaded_at,
                "description": f"Delivery order issued for order {order.order_number}",
            })
        return milestones
