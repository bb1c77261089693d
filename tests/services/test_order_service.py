# tests/services/test_order_service.py
import pytest

from serialtrack.core.exceptions import (
    BusinessRuleException,
    DuplicateEntityException,
    EntityNotFoundException,
    InvalidStatusTransitionException,
    ItemNotAvailableException,
    ValidationException,
)
from serialtrack.db.models.enums import (
    DeliveryStatus,
    InventoryStatus,
    InvoiceStatus,
    TransactionSource,
    TransactionStatus,
    TransactionType,
)
from serialtrack.repositories.inventory_repository import InventoryRepository
from serialtrack.repositories.transaction_repository import TransactionRepository
from serialtrack.services.cancel_order_service import CancelOrderService
from serialtrack.services.order_service import OrderService


def _create_order(db, order_number="ORD-1", serials=("SN-001", "SN-002")):
    return OrderService(db).create_multi_item_order(
        order_number=order_number,
        customer_dealer="Acme Dealer",
        location="Site A",
        items=[{"serial_number": s, "warranty_type": "Standard", "warranty_period": 12} for s in serials],
        created_by="admin@serialtrack.io",
    )


def _inventory_status(db, serial):
    return InventoryRepository(db).get_by_serial(serial).status


def test_create_order_reserves_items(db, stock_in):
    stock_in("SN-001", "SN-002")
    order = _create_order(db)

    assert order.invoice_status == InvoiceStatus.RESERVED.value
    assert order.delivery_status == DeliveryStatus.PENDING.value
    assert order.customer_client == "N/A"
    assert order.total_items == 2
    assert len(order.transaction_ids) == 2

    transactions = TransactionRepository(db).get_by_transaction_ids(order.transaction_ids)
    assert {tx.entry_no for tx in transactions} == {order.entry_no}
    for tx in transactions:
        assert tx.type == TransactionType.STOCK_OUT.value
        assert tx.status == TransactionStatus.RESERVED.value
        assert tx.location == "Site A"
        assert tx.warranty_period == 12
    assert _inventory_status(db, "SN-001") == InventoryStatus.RESERVED.value


def test_create_order_validation(db, stock_in):
    stock_in("SN-001", "SN-002")
    service = OrderService(db)

    with pytest.raises(ValidationException) as exc_info:
        service.create_multi_item_order("ORD-1", "Acme", "Site A", items=[])
    assert exc_info.value.message == "No items selected for the order."

    with pytest.raises(ValidationException):
        service.create_multi_item_order(
            "ORD-1", "Acme", "Site A", items=[{"serial_number": "SN-001"}, {"serial_number": "sn-001"}]
        )

    with pytest.raises(ItemNotAvailableException) as exc_info:
        service.create_multi_item_order("ORD-1", "Acme", "Site A", items=[{"serial_number": "SN-404"}])
    assert "is not active or available" in exc_info.value.message


def test_create_order_rejects_duplicate_number_and_reserved_items(db, stock_in):
    stock_in("SN-001", "SN-002", "SN-003")
    _create_order(db, serials=("SN-001",))

    with pytest.raises(DuplicateEntityException) as exc_info:
        _create_order(db, serials=("SN-002",))
    assert exc_info.value.message == "Order number ORD-1 already exists."

    with pytest.raises(ItemNotAvailableException):
        _create_order(db, order_number="ORD-2", serials=("SN-001",))


def test_document_workflow_reaches_delivered(db, stock_in):
    stock_in("SN-001", "SN-002")
    order = _create_order(db)
    service = OrderService(db)

    # A delivery order before the invoice leaves the order pending
    result = service.update_order_with_file("ORD-1", "file-do-early", "delivery_order")
    assert result["new_delivery_status"] == DeliveryStatus.PENDING.value

    result = service.update_order_with_file("ORD-1", "file-inv", "invoice")
    assert result["new_invoice_status"] == InvoiceStatus.INVOICED.value

    result = service.update_order_with_file("ORD-1", "file-do", "delivery_order")
    assert result["new_delivery_status"] == DeliveryStatus.ISSUED.value

    result = service.update_order_with_file("ORD-1", "file-sdo", "signed_delivery_order")
    assert result["new_delivery_status"] == DeliveryStatus.DELIVERED.value

    db.refresh(order)
    assert order.signed_delivery_file_id == "file-sdo"
    assert order.delivery_date is not None
    assert len(order.transaction_ids) == 4

    delivered = [
        tx for tx in TransactionRepository(db).get_by_transaction_ids(order.transaction_ids)
        if tx.status == TransactionStatus.DELIVERED.value
    ]
    assert len(delivered) == 2
    assert all(tx.source == TransactionSource.SIGNED_DELIVERY_ORDER.value for tx in delivered)
    assert _inventory_status(db, "SN-002") == InventoryStatus.DELIVERED.value

    items = service.get_order_with_items("ORD-1")["items"]
    assert [i["transaction_status"] for i in items] == ["Delivered", "Delivered"]


def test_unknown_file_type_is_rejected(db, stock_in):
    stock_in("SN-001")
    _create_order(db, serials=("SN-001",))
    with pytest.raises(ValidationException):
        OrderService(db).update_order_with_file("ORD-1", "file-x", "receipt")


def test_invoicing_and_delivery_queues(db, stock_in):
    stock_in("SN-001", "SN-002")
    _create_order(db, order_number="ORD-1", serials=("SN-001",))
    _create_order(db, order_number="ORD-2", serials=("SN-002",))
    service = OrderService(db)
    service.update_order_with_file("ORD-2", "file-inv", "invoice")

    assert {o["order_number"] for o in service.get_orders_for_invoicing()} == {"ORD-1", "ORD-2"}
    assert [o["order_number"] for o in service.get_orders_for_delivery()] == ["ORD-2"]


def test_file_status(db, stock_in):
    stock_in("SN-001")
    _create_order(db, serials=("SN-001",))
    service = OrderService(db)
    service.update_order_with_file("ORD-1", "file-inv", "invoice")

    status = service.get_order_file_status("ORD-1")
    assert status["has_invoice"] is True
    assert status["has_delivery_order"] is False
    assert status["is_complete"] is False


def test_delete_order_releases_items(db, stock_in):
    stock_in("SN-001", "SN-002")
    order = _create_order(db)
    result = OrderService(db).delete_order(order.id)

    assert result["deletion_summary"]["order_deleted"] is True
    assert result["deletion_summary"]["transactions_deleted"] == 2
    assert _inventory_status(db, "SN-001") == InventoryStatus.ACTIVE.value
    with pytest.raises(EntityNotFoundException):
        OrderService(db).get_order("ORD-1")


def test_deleting_cancelled_order_keeps_later_reservation(db, stock_in):
    stock_in("SN-001")
    first = _create_order(db, order_number="ORD-A", serials=("SN-001",))
    CancelOrderService(db).cancel_order(first.id, "Customer withdrew")
    _create_order(db, order_number="ORD-B", serials=("SN-001",))

    OrderService(db).delete_order(first.id)

    assert _inventory_status(db, "SN-001") == InventoryStatus.RESERVED.value
    with pytest.raises(ItemNotAvailableException):
        _create_order(db, order_number="ORD-C", serials=("SN-001",))


def test_delivered_order_cannot_be_deleted(db, stock_in):
    stock_in("SN-001")
    order = _create_order(db, serials=("SN-001",))
    service = OrderService(db)
    for file_type in ("invoice", "delivery_order", "signed_delivery_order"):
        service.update_order_with_file("ORD-1", f"file-{file_type}", file_type)

    with pytest.raises(BusinessRuleException):
        service.delete_order(order.id)


def test_delete_delivery_data_reverts_delivery(db, stock_in):
    stock_in("SN-001")
    order = _create_order(db, serials=("SN-001",))
    service = OrderService(db)
    for file_type in ("invoice", "delivery_order", "signed_delivery_order"):
        service.update_order_with_file("ORD-1", f"file-{file_type}", file_type)

    result = service.delete_delivery_data(order.id)
    assert result["deletion_summary"]["delivered_transactions_removed"] == 1

    db.refresh(order)
    assert order.delivery_status == DeliveryStatus.PENDING.value
    assert order.signed_delivery_file_id is None
    assert len(order.transaction_ids) == 1
    assert _inventory_status(db, "SN-001") == InventoryStatus.RESERVED.value


def test_update_order_number(db, stock_in):
    stock_in("SN-001", "SN-002")
    _create_order(db, order_number="ORD-1", serials=("SN-001",))
    _create_order(db, order_number="ORD-2", serials=("SN-002",))
    service = OrderService(db)

    with pytest.raises(DuplicateEntityException):
        service.update_order_number("ORD-1", "ORD-2")

    renamed = service.update_order_number("ORD-1", "ORD-1A")
    assert renamed.order_number == "ORD-1A"
    assert not service.order_number_exists("ORD-1")


def test_process_item_return(db, stock_in):
    stock_in("SN-001", "sn-002")
    _create_order(db, serials=("SN-001",))
    service = OrderService(db)

    result = service.process_item_return("SN-001", "sn-002", dealer_name="Acme Dealer", remarks="Faulty")
    assert result["message"] == "Return processed successfully"

    repo = TransactionRepository(db)
    returned = repo.get_by_transaction_ids([result["returned_transaction_id"]])[0]
    replacement = repo.get_by_transaction_ids([result["replacement_transaction_id"]])[0]
    assert returned.type == TransactionType.RETURNED.value
    assert returned.replaced_by == "SN-002"
    assert replacement.serial_number == "SN-002"
    assert replacement.status == TransactionStatus.DELIVERED.value
    assert replacement.customer_dealer == "Acme Dealer"
    assert _inventory_status(db, "SN-001") == InventoryStatus.RETURNED.value
    assert _inventory_status(db, "sn-002") == InventoryStatus.RESERVED.value


def test_process_item_return_requires_available_replacement(db, stock_in):
    stock_in("SN-001", "SN-002")
    _create_order(db, serials=("SN-001", "SN-002"))
    service = OrderService(db)

    with pytest.raises(ItemNotAvailableException):
        service.process_item_return("SN-001", "SN-002", dealer_name="Acme")
    with pytest.raises(ValidationException):
        service.process_item_return("SN-001", "sn-001", dealer_name="Acme")


def test_update_order_status_rules(db, stock_in):
    stock_in("SN-001", "SN-002")
    service = OrderService(db)
    order = _create_order(db, serials=("SN-001",))

    with pytest.raises(ValidationException):
        service.update_order_status("ORD-1", "Shipped")

    service.update_order_status("ORD-1", "Delivered", invoice_number="INV-9")
    assert _inventory_status(db, "SN-001") == InventoryStatus.DELIVERED.value
    with pytest.raises(InvalidStatusTransitionException):
        service.update_order_status("ORD-1", "Reserved")

    other = _create_order(db, order_number="ORD-2", serials=("SN-002",))
    CancelOrderService(db).cancel_order(other.id, "Duplicate order")
    with pytest.raises(InvalidStatusTransitionException):
        service.update_order_status("ORD-2", "Invoiced")
    assert order.status == "Delivered"
