# tests/services/test_dashboard_service.py
from serialtrack.services.dashboard_service import DashboardService
from serialtrack.services.order_service import OrderService


def _deliver(service, order_number):
    for file_type in ("invoice", "delivery_order", "signed_delivery_order"):
        service.update_order_with_file(order_number, f"{order_number}-{file_type}", file_type)


def test_dashboard_analytics(db, stock_in):
    stock_in("SN-001", "SN-002", "SN-003")
    stock_in("PR-001", category="Printer")
    orders = OrderService(db)
    orders.create_multi_item_order("ORD-1", "Acme", "Site A", items=[{"serial_number": "SN-001"}])
    orders.create_multi_item_order("ORD-2", "Acme", "Site B", items=[{"serial_number": "SN-002"}])
    orders.update_order_with_file("ORD-2", "ORD-2-invoice", "invoice")
    orders.create_multi_item_order("ORD-3", "Acme", "Site C", items=[{"serial_number": "SN-003"}])
    _deliver(orders, "ORD-3")

    analytics = DashboardService(db).get_dashboard_analytics()

    assert analytics["totalInventoryItems"] == 4
    assert analytics["activeStock"] == 1
    assert analytics["reservedItems"] == 2
    assert analytics["deliveredItems"] == 1
    assert analytics["stockedOutItems"] == 1
    assert analytics["totalOrders"] == 3
    assert analytics["pendingOrders"] == 1
    assert analytics["invoicedOrders"] == 1
    assert analytics["issuedOrders"] == 1
    assert analytics["stockInTransactions"] == 4
    assert analytics["stockOutTransactions"] == 4
    assert analytics["topCategories"] == [{"category": "Printer", "active_count": 1}]
    assert analytics["monthlyStats"]["monthlyTotal"] == 8
    assert len(analytics["recentTransactions"]) == 8
    assert analytics["dataIntegrity"]["totalIssues"] == 0


def test_order_status_counts(db, stock_in):
    stock_in("SN-001", "SN-002")
    orders = OrderService(db)
    orders.create_multi_item_order("ORD-1", "Acme", "Site A", items=[{"serial_number": "SN-001"}])
    orders.create_multi_item_order("ORD-2", "Acme", "Site A", items=[{"serial_number": "SN-002"}])
    orders.update_order_with_file("ORD-2", "ORD-2-invoice", "invoice")
    orders.update_order_with_file("ORD-2", "ORD-2-do", "delivery_order")

    assert DashboardService(db).get_order_status_counts() == {
        "reserved": 1,
        "invoiced": 0,
        "issued": 1,
        "delivered": 0,
    }


def test_data_integrity_report(db, stock_in):
    from serialtrack.repositories.transaction_repository import TransactionRepository

    stock_in("SN-001")
    TransactionRepository(db).create({
        "transaction_id": 50,
        "serial_number": "GHOST-1",
        "type": "Stock_Out",
        "status": "Delivered",
    })
    db.commit()

    report = DashboardService(db).get_data_integrity_report()
    assert report["orphanedStockOuts"] == ["ghost-1"]
    assert report["stockOutWithoutStockIn"] == ["ghost-1"]
    assert report["missingStockIns"] == []
    assert report["deliveredAnalysis"]["orphanedDeliveredTransactions"] == ["ghost-1"]
    assert report["summary"]["deliveredDiscrepancy"] == 1
