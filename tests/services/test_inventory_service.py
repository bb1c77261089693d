# tests/services/test_inventory_service.py
import pytest

from serialtrack.core.exceptions import DuplicateEntityException, EntityNotFoundException, ValidationException
from serialtrack.repositories.transaction_repository import TransactionRepository
from serialtrack.services.cancel_order_service import CancelOrderService
from serialtrack.services.demo_service import DemoService
from serialtrack.services.inventory_service import InventoryManagementService
from serialtrack.services.order_service import OrderService


@pytest.fixture()
def service(db):
    return InventoryManagementService(db)


def _order(db, order_number, *serials, location="Site A"):
    return OrderService(db).create_multi_item_order(
        order_number=order_number,
        customer_dealer="Acme Dealer",
        location=location,
        items=[{"serial_number": s} for s in serials],
    )


def test_list_derives_status_and_location(db, service, stock_in):
    stock_in("SN-001", "SN-002")
    _order(db, "ORD-1", "SN-002")

    page = service.get_inventory_items()
    items = {i["serial_number"]: i for i in page["items"]}
    assert items["SN-001"]["current_status"] == "Active"
    assert items["SN-001"]["current_location"] == "HQ"
    assert items["SN-002"]["current_status"] == "Reserved"
    assert items["SN-002"]["current_location"] == "Site A"
    assert items["SN-002"]["transaction_count"] == 2
    assert page["has_more"] is False


def test_list_filters(db, service, stock_in):
    stock_in("SN-001", size="S")
    stock_in("SN-002", size="L", category="Printer")
    _order(db, "ORD-1", "SN-001", location="Warehouse 9")

    assert [i["serial_number"] for i in service.get_inventory_items(status="Reserved")["items"]] == ["SN-001"]
    assert [i["serial_number"] for i in service.get_inventory_items(category="Printer")["items"]] == ["SN-002"]
    assert [i["serial_number"] for i in service.get_inventory_items(size="S")["items"]] == ["SN-001"]
    assert [i["serial_number"] for i in service.get_inventory_items(search="warehouse")["items"]] == ["SN-001"]
    assert [i["serial_number"] for i in service.get_inventory_items(location="HQ")["items"]] == ["SN-002"]


def test_list_pagination_with_cursor(service, stock_in):
    stock_in("SN-001", "SN-002", "SN-003")

    first = service.get_inventory_items(limit=2)
    assert len(first["items"]) == 2
    assert first["has_more"] is True

    second = service.get_inventory_items(limit=2, cursor=first["last_document"])
    seen = [i["serial_number"] for i in first["items"] + second["items"]]
    assert sorted(seen) == ["SN-001", "SN-002", "SN-003"]
    assert second["has_more"] is False


def test_summary_and_filter_options(db, service, stock_in):
    stock_in("SN-001", "SN-002", "SN-003")
    _order(db, "ORD-1", "SN-003")

    assert service.get_inventory_summary() == {
        "total_items": 3,
        "active_items": 2,
        "reserved_items": 1,
        "delivered_items": 0,
    }
    options = service.get_filter_options()
    assert options["categories"] == ["Scanner"]
    assert options["locations"] == ["HQ", "Site A"]
    assert options["statuses"] == ["Active", "Reserved", "Delivered"]


def test_update_item_mirrors_stock_in(db, service, stock_in):
    item = stock_in("SN-001")[0]
    updated = service.update_inventory_item(
        item.id, {"serial_number": "SN-001X", "remark": "Relabelled", "status": "Ignored"}
    )
    assert updated.serial_number == "SN-001X"
    assert updated.remark == "Relabelled"
    assert updated.status == "Active"

    stock_in_tx = TransactionRepository(db).find_stock_in("SN-001X")
    assert stock_in_tx is not None
    assert stock_in_tx.remarks == "Relabelled"


def test_update_item_validation(service, stock_in):
    first, second = stock_in("SN-001", "SN-002")
    with pytest.raises(DuplicateEntityException):
        service.update_inventory_item(first.id, {"serial_number": "sn-002"})
    with pytest.raises(ValidationException):
        service.update_inventory_item(first.id, {"serial_number": "  "})
    with pytest.raises(EntityNotFoundException):
        service.update_inventory_item(999, {"model": "X"})


def test_delete_item_removes_transactions(db, service, stock_in):
    item = stock_in("SN-001")[0]
    result = service.delete_inventory_item(item.id)
    assert result["deleted_transactions"] == 1
    assert TransactionRepository(db).get_for_serial("SN-001") == []
    with pytest.raises(EntityNotFoundException):
        service.get_inventory_item_by_id(item.id)


def test_activity_history(db, service, stock_in):
    stock_in("SN-001")
    _order(db, "ORD-1", "SN-001")
    OrderService(db).update_order_with_file("ORD-1", "file-inv", "invoice")

    history = service.get_item_activity_history("sn-001")
    descriptions = [a["description"] for a in history]
    assert descriptions[-1] == "Stocked in at HQ"
    assert "Reserved for order ORD-1" in descriptions
    assert "Invoiced for order ORD-1" in descriptions
    assert descriptions[0] == "Invoiced for order ORD-1"
    assert all(isinstance(a["date"], str) for a in history)
    assert history[0]["customer_info"] == "Acme Dealer"


def test_activity_history_unknown_serial(service):
    with pytest.raises(EntityNotFoundException):
        service.get_item_activity_history("SN-404")


def test_list_with_deleted_cursor_raises(service, stock_in):
    stock_in("SN-001", "SN-002", "SN-003")
    first = service.get_inventory_items(limit=2)
    service.delete_inventory_item(first["last_document"])

    with pytest.raises(EntityNotFoundException):
        service.get_inventory_items(limit=2, cursor=first["last_document"])


def test_search_matches_derived_location(db, service, stock_in):
    stock_in("SN-001", "SN-002")
    _order(db, "ORD-1", "SN-002", location="Penang Depot")

    items = service.get_inventory_items(search="penang")["items"]

    assert [i["serial_number"] for i in items] == ["SN-002"]
    assert items[0]["current_location"] == "Penang Depot"


def test_activity_history_includes_issued_milestone(db, service, stock_in):
    stock_in("SN-001")
    _order(db, "ORD-1", "SN-001")
    orders = OrderService(db)
    orders.update_order_with_file("ORD-1", "file-inv", "invoice")
    orders.update_order_with_file("ORD-1", "file-do", "delivery_order")

    history = service.get_item_activity_history("SN-001")
    issued = [a for a in history if a["status"] == "Issued"]

    assert len(issued) == 1
    assert issued[0]["description"] == "Delivery order issued for order ORD-1"
    assert issued[0]["order_number"] == "ORD-1"
    assert issued[0]["transaction_id"] is None


def test_activity_history_links_demo(db, service, stock_in):
    stock_in("SN-001")
    demos = DemoService(db)
    demo = demos.create_demo("DEMO-7", "Roadshow", "Acme Dealer", "Expo", items=[{"serial_number": "SN-001"}])
    demos.return_demo_items(demo.id)

    history = service.get_item_activity_history("SN-001")
    by_type = {}
    for activity in history:
        by_type.setdefault(activity["type"], []).append(activity)

    sent = by_type["Demo"][0]
    assert sent["demo_number"] == "DEMO-7"
    assert sent["description"] == "Sent on demo DEMO-7: Roadshow"
    descriptions = [a["description"] for a in by_type["Stock_In"]]
    assert "Returned from demo DEMO-7" in descriptions
    assert "Stocked in at HQ" in descriptions


def test_activity_history_includes_cancellation(db, service, stock_in):
    stock_in("SN-001")
    order = _order(db, "ORD-1", "SN-001")
    CancelOrderService(db).cancel_order(order.id, "Customer withdrew")

    history = service.get_item_activity_history("SN-001")
    cancellations = [a for a in history if a["type"] == "Cancellation"]

    assert len(cancellations) == 1
    assert cancellations[0]["order_number"] == "ORD-1"
    assert cancellations[0]["description"] == "Order ORD-1 cancelled: Customer withdrew"
