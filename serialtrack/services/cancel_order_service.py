# File: serialtrack/services/cancel_order_service.py

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from serialtrack.core.exceptions import BusinessRuleException, EntityNotFoundException
from serialtrack.core.utils import utc_now
from serialtrack.db.models.enums import (
    DeliveryStatus,
    InventoryStatus,
    OrderStatus,
    TransactionSource,
    TransactionStatus,
    TransactionType,
)
from serialtrack.db.models.order import Order
from serialtrack.repositories.inventory_repository import InventoryRepository
from serialtrack.repositories.order_repository import OrderRepository
from serialtrack.repositories.transaction_repository import TransactionRepository
from serialtrack.services.base_service import BaseService

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"


class CancelOrderService(BaseService[Order]):
    """
    Cancels undelivered orders.

    Cancellation never deletes history: each unit gets a Cancellation
    transaction and the order keeps its statuses from before cancellation.
    Access is restricted to administrators at the API layer.
    """

    def __init__(self, session: Session, security_context=None):
        super().__init__(session, repository_class=OrderRepository, security_context=security_context)
        self.transaction_repository = TransactionRepository(session)
        self.inventory_repository = InventoryRepository(session)

    def get_cancellable_orders(self) -> List[Dict[str, Any]]:
        orders = []
        for order in self.repository.list_orders():
            if order.delivery_status == DeliveryStatus.DELIVERED.value:
                continue
            if order.order_status == OrderStatus.CANCELLED.value:
                continue
            orders.append({
                "id": order.id,
                "order_number": order.order_number,
                "customer_dealer": order.customer_dealer,
                "customer_client": order.customer_client,
                "invoice_status": order.invoice_status,
                "delivery_status": order.delivery_status,
                "total_items": order.total_items,
                "created_date": order.created_date.isoformat() if order.created_date else None,
                "transaction_ids": list(order.transaction_ids or []),
            })
        return orders

    def get_order_details(self, order_id: int) -> Dict[str, Any]:
        order = self.get_entity_or_404(order_id)
        items = [
            {
                "transaction_id": tx.transaction_id,
                "serial_number": tx.serial_number or NOT_AVAILABLE,
                "category": tx.equipment_category or NOT_AVAILABLE,
                "model": tx.model or NOT_AVAILABLE,
                "size": tx.size or NOT_AVAILABLE,
                "status": tx.status or NOT_AVAILABLE,
                "warranty_type": tx.warranty_type or NOT_AVAILABLE,
                "warranty_period": tx.warranty_period if tx.warranty_period is not None else NOT_AVAILABLE,
            }
            for tx in self.transaction_repository.get_by_transaction_ids(order.transaction_ids or [])
        ]
        items.sort(key=lambda item: item["serial_number"])
        return {"order": order.to_dict(), "items": items}

    def cancel_order(self, order_id: int, reason: str, cancelled_by: Optional[str] = None) -> Dict[str, Any]:
        """
        Cancel an order and release its units back to stock.

        Args:
            order_id: Order primary key
            reason: Free-text cancellation reason
            cancelled_by: Email of the cancelling administrator

        Returns:
            Dict with message, cancelled_items and cancellation_transaction_ids

        Raises:
            EntityNotFoundException: Unknown order
            BusinessRuleException: Already cancelled, delivered, or empty
        """
        order = self.repository.get_by_id(order_id)
        if order is None:
            raise EntityNotFoundException("Order", order_id)
        if order.order_status == OrderStatus.CANCELLED.value:
            raise BusinessRuleException("Order is already cancelled", rule_name="ORDER_ALREADY_CANCELLED")
        if order.delivery_status == DeliveryStatus.DELIVERED.value:
            raise BusinessRuleException("Cannot cancel delivered orders", rule_name="ORDER_DELIVERED")

        transaction_ids = list(order.transaction_ids or [])
        if not transaction_ids:
            raise BusinessRuleException("No transaction IDs found for this order", rule_name="ORDER_EMPTY")

        user = cancelled_by or self._current_username()
        now = utc_now()
        originals = {
            tx.transaction_id: tx
            for tx in self.transaction_repository.get_by_transaction_ids(transaction_ids)
        }

        with self.transaction():
            next_id = self.transaction_repository.next_transaction_id()
            cancellation_ids = []
            for original_id in transaction_ids:
                original = originals.get(original_id)
                if original is None:
                    logger.warning(f"Transaction {original_id} of order {order.order_number} no longer exists")
                    continue
                cancellation_id = next_id + len(cancellation_ids)
                self.transaction_repository.create({
                    "transaction_id": cancellation_id,
                    "serial_number": original.serial_number,
                    "type": TransactionType.CANCELLATION.value,
                    "status": TransactionStatus.ACTIVE.value,
                    "original_transaction_id": original_id,
                    "cancelled_from_order": order.order_number,
                    "cancellation_reason": reason,
                    "location": original.location,
                    "customer_dealer": original.customer_dealer,
                    "customer_client": original.customer_client,
                    "equipment_category": original.equipment_category,
                    "model": original.model,
                    "size": original.size,
                    "warranty_type": original.warranty_type,
                    "warranty_period": original.warranty_period,
                    "date": now,
                    "uploaded_at": now,
                    "uploaded_by": user,
                    "source": TransactionSource.ORDER_CANCELLATION.value,
                })
                cancellation_ids.append(cancellation_id)

            self.inventory_repository.set_status(
                [tx.serial_number for tx in originals.values()], InventoryStatus.ACTIVE.value, user
            )

            order.original_invoice_status = order.invoice_status
            order.original_delivery_status = order.delivery_status
            order.order_status = OrderStatus.CANCELLED.value
            order.cancellation_reason = reason
            order.cancelled_by = user
            order.cancelled_at = now
            order.cancellation_transaction_ids = cancellation_ids

        self._log_operation("cancel", "Order", order.order_number, {
            "reason": reason,
            "cancellation_transaction_ids": cancellation_ids,
        })
        return {
            "message": f"Order {order.order_number} cancelled successfully",
            "cancelled_items": len(transaction_ids),
            "cancellation_transaction_ids": cancellation_ids,
        }
