# tests/services/test_cancel_order_service.py
import pytest

from serialtrack.core.exceptions import BusinessRuleException, EntityNotFoundException
from serialtrack.db.models.enums import InventoryStatus, OrderStatus, TransactionType
from serialtrack.repositories.inventory_repository import InventoryRepository
from serialtrack.repositories.transaction_repository import TransactionRepository
from serialtrack.services.cancel_order_service import CancelOrderService
from serialtrack.services.inventory_service import InventoryManagementService
from serialtrack.services.order_service import OrderService


@pytest.fixture()
def order(db, stock_in):
    stock_in("SN-001", "SN-002")
    return OrderService(db).create_multi_item_order(
        order_number="ORD-1",
        customer_dealer="Acme Dealer",
        location="Site A",
        items=[{"serial_number": "SN-001"}, {"serial_number": "SN-002"}],
    )


def test_cancellable_orders_and_details(db, order):
    service = CancelOrderService(db)
    assert [o["order_number"] for o in service.get_cancellable_orders()] == ["ORD-1"]

    details = service.get_order_details(order.id)
    assert details["order"]["order_number"] == "ORD-1"
    assert [i["serial_number"] for i in details["items"]] == ["SN-001", "SN-002"]
    assert details["items"][0]["warranty_type"] == "No Warranty"


def test_cancel_order_releases_items(db, order):
    result = CancelOrderService(db).cancel_order(order.id, "Customer changed mind", cancelled_by="admin@serialtrack.io")

    assert result["message"] == "Order ORD-1 cancelled successfully"
    assert result["cancelled_items"] == 2
    assert len(result["cancellation_transaction_ids"]) == 2

    db.refresh(order)
    assert order.order_status == OrderStatus.CANCELLED.value
    assert order.original_invoice_status == "Reserved"
    assert order.cancellation_reason == "Customer changed mind"

    cancellations = TransactionRepository(db).get_by_transaction_ids(result["cancellation_transaction_ids"])
    assert {tx.type for tx in cancellations} == {TransactionType.CANCELLATION.value}
    assert {tx.cancelled_from_order for tx in cancellations} == {"ORD-1"}
    assert InventoryRepository(db).get_by_serial("SN-001").status == InventoryStatus.ACTIVE.value

    # Derived status follows the cancellation
    summary = InventoryManagementService(db).get_inventory_summary()
    assert summary["active_items"] == 2
    assert CancelOrderService(db).get_cancellable_orders() == []


def test_cancelled_items_can_be_ordered_again(db, order):
    CancelOrderService(db).cancel_order(order.id, "Wrong items")
    again = OrderService(db).create_multi_item_order(
        order_number="ORD-2", customer_dealer="Acme", location="Site B", items=[{"serial_number": "SN-001"}]
    )
    assert again.total_items == 1


def test_cancel_order_rules(db, order):
    service = CancelOrderService(db)
    with pytest.raises(EntityNotFoundException):
        service.cancel_order(999, "x")

    service.cancel_order(order.id, "First")
    with pytest.raises(BusinessRuleException) as exc_info:
        service.cancel_order(order.id, "Second")
    assert exc_info.value.message == "Order is already cancelled"


def test_delivered_order_cannot_be_cancelled(db, order):
    order_service = OrderService(db)
    for file_type in ("invoice", "delivery_order", "signed_delivery_order"):
        order_service.update_order_with_file("ORD-1", f"file-{file_type}", file_type)

    with pytest.raises(BusinessRuleException) as exc_info:
        CancelOrderService(db).cancel_order(order.id, "Too late")
    assert exc_info.value.message == "Cannot cancel delivered orders"


def test_cancelled_order_rejects_documents(db, order):
    CancelOrderService(db).cancel_order(order.id, "Void")
    with pytest.raises(BusinessRuleException):
        OrderService(db).update_order_with_file("ORD-1", "file-inv", "invoice")
