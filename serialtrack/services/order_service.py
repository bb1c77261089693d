# File: serialtrack/services/order_service.py
"""
Stock-out orders and their document workflow.

An order reserves items by writing one Stock_Out/Reserved transaction per
unit, all sharing an ``entry_no``. Progress is then driven by uploaded
documents:

    invoice                 invoice_status   Reserved -> Invoiced
    delivery_order          delivery_status  Pending  -> Issued   (requires Invoiced)
    signed_delivery_order   delivery_status  Issued   -> Delivered

Reaching Delivered writes a Stock_Out/Delivered transaction for each unit
and marks the inventory rows Delivered.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from serialtrack.core.exceptions import (
    BusinessRuleException,
    DuplicateEntityException,
    EntityNotFoundException,
    InvalidStatusTransitionException,
    ItemNotAvailableException,
    ValidationException,
)
from serialtrack.core.utils import normalize_serial, to_naive_utc, utc_now
from serialtrack.db.models.enums import (
    DeliveryStatus,
    InventoryStatus,
    InvoiceStatus,
    OrderFileType,
    OrderStatus,
    TransactionSource,
    TransactionStatus,
    TransactionType,
)
from serialtrack.db.models.order import Order
from serialtrack.db.models.transaction import Transaction
from serialtrack.repositories.inventory_repository import InventoryRepository
from serialtrack.repositories.order_file_repository import OrderFileRepository
from serialtrack.repositories.order_repository import OrderRepository
from serialtrack.repositories.transaction_repository import TransactionRepository
from serialtrack.services.base_service import BaseService
from serialtrack.services.file_storage_service import FileStorageService

logger = logging.getLogger(__name__)

DEFAULT_WARRANTY_TYPE = "No Warranty"
DEFAULT_CLIENT = "N/A"

FILE_FIELDS = {
    OrderFileType.INVOICE.value: ("invoice_file_id", "invoice_uploaded_at"),
    OrderFileType.DELIVERY_ORDER.value: ("delivery_file_id", "delivery_uploaded_at"),
    OrderFileType.SIGNED_DELIVERY_ORDER.value: ("signed_delivery_file_id", "signed_delivery_uploaded_at"),
}

ORDER_STATUSES = (
    TransactionStatus.RESERVED.value,
    TransactionStatus.INVOICED.value,
    TransactionStatus.ISSUED.value,
    TransactionStatus.DELIVERED.value,
)


class OrderService(BaseService[Order]):
    """
    Service for creating stock-out orders and moving them through invoicing
    and delivery.
    """

    def __init__(
        self,
        session: Session,
        security_context=None,
        file_storage: Optional[FileStorageService] = None,
    ):
        super().__init__(session, repository_class=OrderRepository, security_context=security_context)
        self.transaction_repository = TransactionRepository(session)
        self.inventory_repository = InventoryRepository(session)
        self.file_repository = OrderFileRepository(session)
        self.file_storage = file_storage

    # --- Creation ---

    def create_multi_item_order(
        self,
        order_number: str,
        customer_dealer: str,
        location: str,
        items: List[Dict[str, Any]],
        customer_client: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> Order:
        """
        Reserve one or more items under a new order.

        Args:
            order_number: Unique order reference
            customer_dealer: Dealer the items are sold through
            location: Delivery location
            items: Dicts with ``serial_number`` and optional ``warranty_type``
                   / ``warranty_period``
            customer_client: End client, ``N/A`` when blank
            created_by: Email of the creating user

        Returns:
            The new order

        Raises:
            ValidationException: No items, or a serial listed twice
            DuplicateEntityException: Order number already used
            ItemNotAvailableException: An item is not in stock
        """
        if not items:
            raise ValidationException("No items selected for the order.")

        order_number = (order_number or "").strip()
        if not order_number:
            raise ValidationException("Order number is required.", {"order_number": ["Order number is required."]})
        if self.repository.order_number_exists(order_number):
            raise DuplicateEntityException(
                f"Order number {order_number} already exists.", details={"order_number": order_number}
            )

        seen = set()
        for item in items:
            serial = item["serial_number"]
            key = normalize_serial(serial)
            if key in seen:
                raise ValidationException(f"Item with serial number {serial} is listed more than once.")
            seen.add(key)
            if not self._is_available_for_order(serial):
                raise ItemNotAvailableException(
                    f"Item with serial number {serial} is not active or available.", serial
                )

        client = (customer_client or "").strip() or DEFAULT_CLIENT
        user = created_by or self._current_username()
        now = utc_now()

        with self.transaction():
            entry_no = self.transaction_repository.next_entry_no()
            next_id = self.transaction_repository.next_transaction_id()
            transaction_ids = []
            for offset, item in enumerate(items):
                serial = item["serial_number"]
                inventory_item = self.inventory_repository.get_by_serial(serial)
                transaction_id = next_id + offset
                self.transaction_repository.create({
                    "transaction_id": transaction_id,
                    "entry_no": entry_no,
                    "serial_number": serial,
                    "type": TransactionType.STOCK_OUT.value,
                    "status": TransactionStatus.RESERVED.value,
                    "location": location,
                    "customer_dealer": customer_dealer,
                    "customer_client": client,
                    "equipment_category": inventory_item.equipment_category if inventory_item else None,
                    "model": inventory_item.model if inventory_item else None,
                    "size": inventory_item.size if inventory_item else None,
                    "quantity": 1,
                    "date": now,
                    "uploaded_at": now,
                    "uploaded_by": user,
                    "source": TransactionSource.STOCK_OUT_MANUAL.value,
                    "warranty_type": item.get("warranty_type") or DEFAULT_WARRANTY_TYPE,
                    "warranty_period": item.get("warranty_period") or 0,
                })
                transaction_ids.append(transaction_id)

            self.inventory_repository.set_status(
                [item["serial_number"] for item in items], InventoryStatus.RESERVED.value, user
            )

            order = self.repository.create({
                "order_number": order_number,
                "invoice_status": InvoiceStatus.RESERVED.value,
                "delivery_status": DeliveryStatus.PENDING.value,
                "created_date": now,
                "created_by": user,
                "customer_dealer": customer_dealer,
                "customer_client": client,
                "location": location,
                "transaction_ids": transaction_ids,
                "entry_no": entry_no,
                "total_items": len(items),
                "total_quantity": len(items),
            })

        self._log_operation("create", "Order", order_number, {
            "entry_no": entry_no,
            "transaction_ids": transaction_ids,
        })
        return order

    def create_stock_out_order(
        self,
        order_number: str,
        serial_number: str,
        customer_dealer: str,
        location: str,
        customer_client: Optional[str] = None,
        warranty_type: str = DEFAULT_WARRANTY_TYPE,
        warranty_period: int = 0,
        created_by: Optional[str] = None,
    ) -> Order:
        """Single-item convenience wrapper around ``create_multi_item_order``."""
        return self.create_multi_item_order(
            order_number=order_number,
            customer_dealer=customer_dealer,
            customer_client=customer_client,
            location=location,
            items=[{
                "serial_number": serial_number,
                "warranty_type": warranty_type,
                "warranty_period": warranty_period,
            }],
            created_by=created_by,
        )

    def _is_available_for_order(self, serial_number: str) -> bool:
        """
        An item can be ordered when its inventory row is Active. Items
        known only from an imported transaction log need an Active Stock_In.
        """
        inventory_item = self.inventory_repository.get_by_serial(serial_number)
        if inventory_item is not None:
            return (inventory_item.status or InventoryStatus.ACTIVE.value) == InventoryStatus.ACTIVE.value
        return self.transaction_repository.has_active_stock_in(serial_number)

    # --- Lookup ---

    def get_order(self, order_number: str) -> Order:
        order = self.repository.get_by_order_number(order_number)
        if order is None:
            raise EntityNotFoundException("Order", order_number)
        return order

    def get_order_by_id(self, order_id: int) -> Order:
        order = self.repository.get_by_id(order_id)
        if order is None:
            raise EntityNotFoundException("Order", order_id)
        return order

    def order_number_exists(self, order_number: str) -> bool:
        return self.repository.order_number_exists(order_number)

    def get_order_with_items(self, order_number: str) -> Dict[str, Any]:
        return self.serialize_order(self.get_order(order_number))

    def serialize_order(self, order: Order) -> Dict[str, Any]:
        data = order.to_dict()
        data["transaction_ids"] = list(order.transaction_ids or [])
        data["items"] = self.get_items_from_transaction_ids(order.transaction_ids or [])
        return data

    def get_items_from_transaction_ids(self, transaction_ids: List[int]) -> List[Dict[str, Any]]:
        """
        Join an order's transactions with inventory to list its units.

        When a unit has several transactions in the list (reserved, then
        delivered) only the latest is reported.

        Returns:
            Item dicts sorted by serial number
        """
        latest: Dict[str, Transaction] = {}
        for tx in self.transaction_repository.get_by_transaction_ids(transaction_ids):
            key = normalize_serial(tx.serial_number)
            if key not in latest or tx.transaction_id > latest[key].transaction_id:
                latest[key] = tx

        inventory = {
            normalize_serial(i.serial_number): i
            for i in self.inventory_repository.get_by_serials(tx.serial_number for tx in latest.values())
        }

        items = []
        for key, tx in latest.items():
            inventory_item = inventory.get(key)
            item = inventory_item.to_dict() if inventory_item else {
                "serial_number": tx.serial_number,
                "equipment_category": tx.equipment_category,
                "model": tx.model,
                "size": tx.size,
            }
            item.update({
                "transaction_id": tx.transaction_id,
                "transaction_status": tx.status,
                "transaction_date": tx.date.isoformat() if tx.date else None,
                "warranty_type": tx.warranty_type or DEFAULT_WARRANTY_TYPE,
                "warranty_period": tx.warranty_period or 0,
            })
            items.append(item)
        return sorted(items, key=lambda i: i["serial_number"] or "")

    def get_all_orders(
        self,
        status: Optional[str] = None,
        invoice_status: Optional[str] = None,
        delivery_status: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        orders = self.repository.list_orders(
            status=status, invoice_status=invoice_status, delivery_status=delivery_status, limit=limit
        )
        return [self.serialize_order(order) for order in orders]

    def get_orders_for_invoicing(self) -> List[Dict[str, Any]]:
        """Orders that are not cancelled and still need or have an invoice."""
        result = []
        for order in self.repository.list_orders():
            if order.order_status == OrderStatus.CANCELLED.value:
                continue
            if order.invoice_status:
                eligible = order.invoice_status in (InvoiceStatus.RESERVED.value, InvoiceStatus.INVOICED.value)
            else:
                eligible = order.status in (
                    TransactionStatus.RESERVED.value,
                    TransactionStatus.INVOICED.value,
                    TransactionStatus.ISSUED.value,
                    TransactionStatus.DELIVERED.value,
                )
            if eligible:
                result.append(self.serialize_order(order))
        return result

    def get_orders_for_delivery(self) -> List[Dict[str, Any]]:
        """Orders that are invoiced and not cancelled."""
        result = []
        for order in self.repository.list_orders():
            if order.order_status == OrderStatus.CANCELLED.value:
                continue
            if order.invoice_status:
                eligible = order.invoice_status == InvoiceStatus.INVOICED.value
            else:
                eligible = order.status in (
                    TransactionStatus.INVOICED.value,
                    TransactionStatus.ISSUED.value,
                    TransactionStatus.DELIVERED.value,
                )
            if eligible:
                result.append(self.serialize_order(order))
        return result

    # --- Document workflow ---

    def ensure_accepts_documents(self, order_number: str, file_type: str) -> Order:
        """
        Load an order that may receive a document of ``file_type``.

        Raises:
            ValidationException: Unknown file type
            EntityNotFoundException: No such order
            BusinessRuleException: Order is cancelled
        """
        if file_type not in FILE_FIELDS:
            raise ValidationException(
                f"Unknown file type '{file_type}'.", {"file_type": [f"Must be one of {sorted(FILE_FIELDS)}"]}
            )
        order = self.get_order(order_number)
        if order.order_status == OrderStatus.CANCELLED.value:
            raise BusinessRuleException(
                f"Order {order_number} is cancelled and cannot receive documents.", rule_name="ORDER_CANCELLED"
            )
        return order

    def update_order_with_file(self, order_number: str, file_id: str, file_type: str) -> Dict[str, Any]:
        """
        Attach an uploaded document to an order and advance its status.

        Args:
            order_number: Order reference
            file_id: Stored file id
            file_type: invoice, delivery_order or signed_delivery_order

        Returns:
            Dict with ``new_invoice_status`` and ``new_delivery_status``

        Raises:
            ValidationException: Unknown file type
            BusinessRuleException: Order is cancelled
        """
        order = self.ensure_accepts_documents(order_number, file_type)
        with self.transaction():
            return self.apply_file(order, file_id, file_type)

    def apply_file(self, order: Order, file_id: str, file_type: str) -> Dict[str, Any]:
        """
        Point the order's document slot at ``file_id`` and advance statuses.

        Runs inside the caller's unit of work; nothing is committed here.
        A document that does not fit the current status is attached
        without advancing anything.
        """
        invoice_status = order.invoice_status or InvoiceStatus.RESERVED.value
        delivery_status = order.effective_delivery_status
        file_field, uploaded_field = FILE_FIELDS[file_type]
        now = utc_now()

        setattr(order, file_field, file_id)
        setattr(order, uploaded_field, now)

        if file_type == OrderFileType.INVOICE.value:
            if invoice_status == InvoiceStatus.RESERVED.value:
                invoice_status = InvoiceStatus.INVOICED.value
                order.invoice_status = invoice_status
        elif file_type == OrderFileType.DELIVERY_ORDER.value:
            if invoice_status == InvoiceStatus.INVOICED.value and delivery_status == DeliveryStatus.PENDING.value:
                delivery_status = DeliveryStatus.ISSUED.value
                order.delivery_status = delivery_status
        elif delivery_status == DeliveryStatus.ISSUED.value:
            delivery_status = DeliveryStatus.DELIVERED.value
            order.delivery_status = delivery_status
            if not order.delivery_date:
                order.delivery_date = now
            self._record_delivery(order, now)

        self.session.flush()

        self._log_operation("attach_file", "Order", order.order_number, {
            "file_type": file_type,
            "invoice_status": invoice_status,
            "delivery_status": delivery_status,
        })
        return {
            "order_number": order.order_number,
            "file_id": file_id,
            "file_type": file_type,
            "new_invoice_status": invoice_status,
            "new_delivery_status": delivery_status,
        }

    def _record_delivery(self, order: Order, delivered_at) -> List[int]:
        """Write a Stock_Out/Delivered transaction for each reserved unit."""
        reserved = [
            tx
            for tx in self.transaction_repository.get_by_transaction_ids(order.transaction_ids or [])
            if tx.type == TransactionType.STOCK_OUT.value and tx.status != TransactionStatus.DELIVERED.value
        ]
        next_id = self.transaction_repository.next_transaction_id()
        user = self._current_username()
        new_ids = []
        for offset, tx in enumerate(sorted(reserved, key=lambda t: t.transaction_id)):
            self.transaction_repository.clone(
                tx,
                transaction_id=next_id + offset,
                status=TransactionStatus.DELIVERED.value,
                date=delivered_at,
                uploaded_at=delivered_at,
                uploaded_by=user or tx.uploaded_by,
                delivery_date=order.delivery_date or delivered_at,
                invoice_number=tx.invoice_number or order.invoice_number,
                source=TransactionSource.SIGNED_DELIVERY_ORDER.value,
            )
            new_ids.append(next_id + offset)

        order.transaction_ids = list(order.transaction_ids or []) + new_ids
        self.inventory_repository.set_status(
            [tx.serial_number for tx in reserved], InventoryStatus.DELIVERED.value, user
        )
        logger.info(f"Recorded delivery of {len(new_ids)} items for order {order.order_number}")
        return new_ids

    def update_order_with_invoice_file(
        self,
        order_number: str,
        file_id: str,
        invoice_number: Optional[str] = None,
        invoice_date=None,
        remarks: Optional[str] = None,
    ) -> Order:
        """
        Replace an order's invoice document and record invoice details.

        The invoice number and date are also stamped on the order's
        transactions. Statuses are not changed.
        """
        order = self.get_order(order_number)
        invoice_date = to_naive_utc(invoice_date)
        with self.transaction():
            order.invoice_file_id = file_id
            order.invoice_uploaded_at = utc_now()
            if invoice_number:
                order.invoice_number = invoice_number
            if invoice_date is not None:
                order.invoice_date = invoice_date
            if remarks:
                order.invoice_remarks = remarks

            if invoice_number:
                for tx in self.transaction_repository.get_by_transaction_ids(order.transaction_ids or []):
                    tx.invoice_number = invoice_number
                    if invoice_date is not None:
                        tx.invoice_date = invoice_date
            self.session.flush()

        self._log_operation("invoice", "Order", order_number, {"invoice_number": invoice_number})
        return order

    def remove_file_from_order(self, order_number: str, file_type: str) -> Dict[str, Any]:
        """Clear a document reference from an order. Statuses are left unchanged."""
        if file_type not in FILE_FIELDS:
            raise ValidationException(f"Unknown file type '{file_type}'.")
        order = self.get_order(order_number)
        file_field, uploaded_field = FILE_FIELDS[file_type]
        with self.transaction():
            setattr(order, file_field, None)
            setattr(order, uploaded_field, None)

        return {
            "order_number": order_number,
            "message": f"File reference removed from order {order_number}.",
            "warning": "Order status remains unchanged. File deletion does not affect order status.",
        }

    def get_order_file_status(self, order_number: str) -> Dict[str, Any]:
        order = self.get_order(order_number)
        return {
            "order_number": order_number,
            "status": order.status,
            "invoice_status": order.invoice_status,
            "delivery_status": order.delivery_status,
            "has_invoice": order.invoice_file_id is not None,
            "has_delivery_order": order.delivery_file_id is not None,
            "has_signed_delivery_order": order.signed_delivery_file_id is not None,
            "invoice_file_id": order.invoice_file_id,
            "delivery_file_id": order.delivery_file_id,
            "signed_delivery_file_id": order.signed_delivery_file_id,
            "invoice_uploaded_at": order.invoice_uploaded_at,
            "delivery_uploaded_at": order.delivery_uploaded_at,
            "signed_delivery_uploaded_at": order.signed_delivery_uploaded_at,
            "is_complete": order.invoice_file_id is not None
            and (order.delivery_file_id is not None or order.signed_delivery_file_id is not None),
        }

    def update_order_status(
        self,
        order_number: str,
        new_status: str,
        invoice_number: Optional[str] = None,
        delivery_date=None,
    ) -> Order:
        """
        Set the single-axis ``status`` of an order.

        Moving to Delivered also marks the order's transactions and inventory
        rows Delivered.

        Raises:
            ValidationException: Unknown status
            InvalidStatusTransitionException: The order is cancelled, or is
                delivered and would move backwards
        """
        if new_status not in ORDER_STATUSES:
            raise ValidationException(
                f"Unknown order status '{new_status}'.", {"status": [f"Must be one of {list(ORDER_STATUSES)}"]}
            )
        order = self.get_order(order_number)
        if order.order_status == OrderStatus.CANCELLED.value:
            raise InvalidStatusTransitionException(
                f"Order {order_number} is cancelled and its status cannot change.", allowed_transitions=[]
            )
        delivered = DeliveryStatus.DELIVERED.value in (order.status, order.delivery_status)
        if delivered and new_status != TransactionStatus.DELIVERED.value:
            raise InvalidStatusTransitionException(
                f"Order {order_number} is delivered and cannot move back to {new_status}.",
                allowed_transitions=[TransactionStatus.DELIVERED.value],
            )
        delivery_date = to_naive_utc(delivery_date)
        user = self._current_username()
        with self.transaction():
            order.status = new_status
            if invoice_number is not None:
                order.invoice_number = invoice_number
            if delivery_date is not None:
                order.delivery_date = delivery_date

            if new_status == TransactionStatus.DELIVERED.value:
                transactions = self.transaction_repository.get_by_transaction_ids(order.transaction_ids or [])
                for tx in transactions:
                    tx.status = TransactionStatus.DELIVERED.value
                    if invoice_number is not None:
                        tx.invoice_number = invoice_number
                    if delivery_date is not None:
                        tx.delivery_date = delivery_date
                self.inventory_repository.set_status(
                    [tx.serial_number for tx in transactions], InventoryStatus.DELIVERED.value, user
                )
            self.session.flush()

        self._log_operation("status", "Order", order_number, {"status": new_status})
        return order

    # --- Removal and corrections ---

    def delete_order(self, order_id: int) -> Dict[str, Any]:
        """
        Delete an undelivered order, its transactions and its documents.

        Units return to Active unless the order was cancelled, which already
        released them, or a later order has reserved them since.

        Raises:
            BusinessRuleException: The order has been delivered
        """
        order = self.get_order_by_id(order_id)
        if DeliveryStatus.DELIVERED.value in (order.status, order.delivery_status):
            raise BusinessRuleException(
                "Cannot delete delivered orders. Only Reserved and Invoiced orders can be deleted.",
                rule_name="ORDER_DELIVERED",
            )

        order_number = order.order_number
        summary = {
            "order_deleted": False,
            "transactions_deleted": 0,
            "files_deleted": 0,
            "storage_files_deleted": 0,
        }
        storage_paths = []
        user = self._current_username()

        with self.transaction():
            transactions = self.transaction_repository.get_by_transaction_ids(order.transaction_ids or [])
            if order.order_status != OrderStatus.CANCELLED.value:
                self.inventory_repository.set_status(
                    self._serials_held_by(order, transactions), InventoryStatus.ACTIVE.value, user
                )
            summary["transactions_deleted"] = self.transaction_repository.delete_by_transaction_ids(
                order.transaction_ids or []
            )

            for order_file in self.file_repository.list_for_order(order_number):
                storage_paths.append(order_file.storage_path)
                self.session.delete(order_file)
                summary["files_deleted"] += 1

            self.session.delete(order)
            summary["order_deleted"] = True

        summary["storage_files_deleted"] = self._remove_stored_files(storage_paths)
        self._log_operation("delete", "Order", order_number, summary)
        return {
            "message": "Order deleted successfully.",
            "order_number": order_number,
            "deletion_summary": summary,
        }

    def _serials_held_by(self, order: Order, transactions: List[Transaction]) -> List[str]:
        """Serials whose most recent Stock_Out belongs to ``order``."""
        own_ids = set(order.transaction_ids or [])
        held = []
        for tx in transactions:
            latest = self.transaction_repository.latest_stock_out(tx.serial_number)
            if latest is None or latest.transaction_id in own_ids:
                held.append(tx.serial_number)
        return held

    def delete_delivery_data(self, order_id: int) -> Dict[str, Any]:
        """
        Undo the delivery stage of an order.

        Delivery documents are removed, delivery_status returns to Pending,
        Delivered transactions written for the order are deleted and its
        units go back to Reserved.
        """
        order = self.get_order_by_id(order_id)
        order_number = order.order_number
        storage_paths = []
        delivery_types = (OrderFileType.DELIVERY_ORDER.value, OrderFileType.SIGNED_DELIVERY_ORDER.value)
        user = self._current_username()

        with self.transaction():
            files_deleted = 0
            for order_file in self.file_repository.list_for_order(order_number):
                if order_file.file_type in delivery_types:
                    storage_paths.append(order_file.storage_path)
                    self.session.delete(order_file)
                    files_deleted += 1

            transactions = self.transaction_repository.get_by_transaction_ids(order.transaction_ids or [])
            delivered_ids = [
                tx.transaction_id
                for tx in transactions
                if tx.source == TransactionSource.SIGNED_DELIVERY_ORDER.value
            ]
            self.transaction_repository.delete_by_transaction_ids(delivered_ids)
            order.transaction_ids = [t for t in (order.transaction_ids or []) if t not in delivered_ids]
            self.inventory_repository.set_status(
                [tx.serial_number for tx in transactions], InventoryStatus.RESERVED.value, user
            )

            order.delivery_file_id = None
            order.delivery_uploaded_at = None
            order.signed_delivery_file_id = None
            order.signed_delivery_uploaded_at = None
            order.delivery_date = None
            if order.delivery_status is not None:
                order.delivery_status = DeliveryStatus.PENDING.value
            elif order.status is not None:
                order.status = InvoiceStatus.INVOICED.value

        storage_deleted = self._remove_stored_files(storage_paths)
        self._log_operation("delete_delivery", "Order", order_number, {"files": files_deleted})
        return {
            "order_number": order_number,
            "deletion_summary": {
                "files_deleted_from_storage": storage_deleted,
                "files_deleted_from_collection": files_deleted,
                "delivered_transactions_removed": len(delivered_ids),
                "status_reverted": True,
            },
        }

    def update_order_number(self, old_order_number: str, new_order_number: str) -> Order:
        """Rename an order and re-point its documents."""
        new_order_number = (new_order_number or "").strip()
        if not new_order_number:
            raise ValidationException("Order number is required.")
        if self.repository.order_number_exists(new_order_number):
            raise DuplicateEntityException(
                f"Order number {new_order_number} already exists.", details={"order_number": new_order_number}
            )
        order = self.get_order(old_order_number)
        with self.transaction():
            for order_file in self.file_repository.list_for_order(old_order_number):
                order_file.order_number = new_order_number
            order.order_number = new_order_number

        self._log_operation("rename", "Order", old_order_number, {"new_order_number": new_order_number})
        return order

    def _remove_stored_files(self, storage_paths: List[str]) -> int:
        if not self.file_storage:
            return 0
        return sum(1 for path in storage_paths if self.file_storage.delete_file(path))

    # --- Returns ---

    def process_item_return(
        self,
        returned_serial: str,
        replacement_serial: str,
        dealer_name: str,
        remarks: str = "",
        processed_by: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Swap a sold unit for a replacement.

        The returned unit gets a Returned transaction; the replacement is
        delivered under the original sale's entry number, customer, invoice
        and warranty terms.

        Returns:
            Dict with the two new transaction ids

        Raises:
            ValidationException: Serial missing or both serials equal
            ItemNotAvailableException: Replacement is not in stock
        """
        returned_serial = (returned_serial or "").strip()
        replacement_serial = (replacement_serial or "").strip()
        if not returned_serial or not replacement_serial:
            raise ValidationException("Both the returned and the replacement serial number are required.")
        if normalize_serial(returned_serial) == normalize_serial(replacement_serial):
            raise ValidationException("The replacement must be a different item.")
        if not self._is_available_for_order(replacement_serial):
            raise ItemNotAvailableException(
                f"Item with serial number {replacement_serial} is not active or available.", replacement_serial
            )

        original = self.transaction_repository.latest_stock_out(returned_serial)
        customer_dealer = (original.customer_dealer if original else None) or dealer_name
        customer_client = (original.customer_client if original else None) or DEFAULT_CLIENT
        user = processed_by or self._current_username()
        now = utc_now()

        with self.transaction():
            returned_id = self.transaction_repository.next_transaction_id()
            self.transaction_repository.create({
                "transaction_id": returned_id,
                "serial_number": returned_serial.upper(),
                "type": TransactionType.RETURNED.value,
                "status": TransactionStatus.RETURNED.value,
                "customer_dealer": customer_dealer,
                "customer_client": customer_client,
                "remarks": f"Replaced by {replacement_serial}. {remarks or ''}".strip(),
                "replaced_by": replacement_serial.upper(),
                "date": now,
                "uploaded_at": now,
                "uploaded_by": user,
                "source": TransactionSource.ITEM_RETURN.value,
            })

            replacement_id = returned_id + 1
            entry_no = original.entry_no if original and original.entry_no else self.transaction_repository.next_entry_no()
            self.transaction_repository.create({
                "transaction_id": replacement_id,
                "entry_no": entry_no,
                "serial_number": replacement_serial.upper(),
                "type": TransactionType.STOCK_OUT.value,
                "status": TransactionStatus.DELIVERED.value,
                "customer_dealer": customer_dealer,
                "customer_client": customer_client,
                "remarks": f"Replacement for {returned_serial}",
                "is_replacement": True,
                "date": now,
                "uploaded_at": now,
                "uploaded_by": user,
                "source": TransactionSource.ITEM_REPLACEMENT.value,
                "quantity": 1,
                "invoice_number": original.invoice_number if original else None,
                "equipment_category": original.equipment_category if original else None,
                "model": original.model if original else None,
                "location": original.location if original else None,
                "unit_price": original.unit_price if original else None,
                "warranty_type": original.warranty_type if original else None,
                "warranty_period": original.warranty_period if original else None,
                "delivery_date": original.delivery_date if original else None,
            })

            self.inventory_repository.set_status([returned_serial], InventoryStatus.RETURNED.value, user)
            self.inventory_repository.set_status([replacement_serial], InventoryStatus.RESERVED.value, user)

        self._log_operation("return", "InventoryItem", returned_serial, {
            "replacement_serial": replacement_serial,
            "returned_transaction_id": returned_id,
            "replacement_transaction_id": replacement_id,
        })
        return {
            "message": "Return processed successfully",
            "returned_transaction_id": returned_id,
            "replacement_transaction_id": replacement_id,
            "entry_no": entry_no,
        }
