# tests/api/endpoints/test_orders.py
import pytest

from serialtrack.core.config import settings

API = settings.API_V1_STR
PDF = b"%PDF-1.4 signed"


@pytest.fixture()
def order(client, stock_in):
    stock_in("SN-001", "SN-002")
    response = client.post(f"{API}/orders/", json={
        "order_number": "ORD-1",
        "customer_dealer": "Acme Dealer",
        "location": "Site A",
        "items": [
            {"serial_number": "SN-001", "warranty_type": "Standard", "warranty_period": 12},
            {"serial_number": "SN-002"},
        ],
    })
    assert response.status_code == 201
    return response.json()


def _upload(client, file_type, filename="doc.pdf", content=PDF, order_number="ORD-1"):
    return client.post(
        f"{API}/orders/{order_number}/files",
        data={"file_type": file_type},
        files={"file": (filename, content, "application/pdf")},
    )


def test_create_order(order):
    assert order["invoice_status"] == "Reserved"
    assert order["delivery_status"] == "Pending"
    assert order["customer_client"] == "N/A"
    assert [i["serial_number"] for i in order["items"]] == ["SN-001", "SN-002"]
    assert order["items"][0]["warranty_period"] == 12


def test_create_order_errors(client, order):
    payload = {
        "order_number": "ORD-1",
        "customer_dealer": "Acme",
        "location": "Site A",
        "items": [{"serial_number": "SN-001"}],
    }
    assert client.post(f"{API}/orders/", json=payload).status_code == 409

    payload["order_number"] = "ORD-2"
    response = client.post(f"{API}/orders/", json=payload)
    assert response.status_code == 400
    assert response.json()["detail"] == "Item with serial number SN-001 is not active or available."

    payload["items"] = []
    assert client.post(f"{API}/orders/", json=payload).status_code == 400


def test_order_lookup(client, order):
    assert client.get(f"{API}/orders/ORD-1").json()["order_number"] == "ORD-1"
    assert client.get(f"{API}/orders/ORD-404").status_code == 404
    assert [o["order_number"] for o in client.get(f"{API}/orders/").json()] == ["ORD-1"]
    assert [o["order_number"] for o in client.get(f"{API}/orders/invoicing").json()] == ["ORD-1"]
    assert client.get(f"{API}/orders/delivery").json() == []


def test_document_upload_workflow(client, order):
    response = _upload(client, "invoice", "invoice.pdf")
    assert response.status_code == 201
    body = response.json()
    assert body["new_invoice_status"] == "Invoiced"
    assert body["file"]["file_type"] == "invoice"
    assert body["file"]["original_filename"] == "invoice.pdf"

    assert _upload(client, "delivery_order").json()["new_delivery_status"] == "Issued"
    assert _upload(client, "signed_delivery_order").json()["new_delivery_status"] == "Delivered"

    status = client.get(f"{API}/orders/ORD-1/files/status").json()
    assert status["is_complete"] is True
    assert status["has_signed_delivery_order"] is True

    files = client.get(f"{API}/orders/ORD-1/files").json()
    assert {f["file_type"] for f in files} == {"invoice", "delivery_order", "signed_delivery_order"}

    assert client.delete(f"{API}/orders/by-id/{order['id']}").status_code == 400


def test_upload_rejections(client, order):
    assert _upload(client, "invoice", "invoice.exe").status_code == 400
    assert _upload(client, "invoice", content=b"").status_code == 400
    assert _upload(client, "invoice", order_number="ORD-404").status_code == 404
    assert _upload(client, "receipt").status_code == 422


def test_download_and_delete_file(client, order):
    file_id = _upload(client, "invoice", "invoice.pdf").json()["file"]["file_id"]

    response = client.get(f"{API}/orders/files/{file_id}/download")
    assert response.status_code == 200
    assert response.content == PDF
    assert "attachment; filename=invoice.pdf" in response.headers["content-disposition"]

    response = client.delete(f"{API}/orders/files/{file_id}")
    assert response.status_code == 200
    assert response.json()["message"] == "File deleted successfully."
    assert client.get(f"{API}/orders/files/{file_id}/download").status_code == 404
    assert client.get(f"{API}/orders/ORD-1").json()["invoice_status"] == "Invoiced"


def test_delete_order(client, order):
    response = client.delete(f"{API}/orders/by-id/{order['id']}")
    assert response.status_code == 200
    assert response.json()["deletion_summary"]["transactions_deleted"] == 2
    assert client.get(f"{API}/orders/ORD-1").status_code == 404
    assert client.delete(f"{API}/orders/by-id/{order['id']}").status_code == 404


def test_delete_delivery_data(client, order):
    for file_type in ("invoice", "delivery_order", "signed_delivery_order"):
        _upload(client, file_type)

    response = client.delete(f"{API}/orders/by-id/{order['id']}/delivery")
    assert response.status_code == 200
    summary = response.json()["deletion_summary"]
    assert summary["files_deleted_from_collection"] == 2
    assert summary["files_deleted_from_storage"] == 2
    assert client.get(f"{API}/orders/ORD-1").json()["delivery_status"] == "Pending"


def test_invoice_details_and_rename(client, order):
    response = client.put(f"{API}/orders/ORD-1/invoice", json={
        "file_id": "manual-invoice",
        "invoice_number": "INV-77",
        "invoice_date": "2024-05-01T00:00:00",
    })
    assert response.status_code == 200
    assert response.json()["invoice_number"] == "INV-77"

    response = client.put(f"{API}/orders/ORD-1/number", json={"new_order_number": "ORD-1A"})
    assert response.status_code == 200
    assert response.json()["order_number"] == "ORD-1A"
    assert client.get(f"{API}/orders/ORD-1").status_code == 404


def test_update_order_status_to_delivered(client, order):
    response = client.put(f"{API}/orders/ORD-1/status", json={"status": "Delivered", "invoice_number": "INV-1"})
    assert response.status_code == 200
    assert {i["transaction_status"] for i in response.json()["items"]} == {"Delivered"}


def test_item_return(client, order, stock_in):
    stock_in("SN-003")
    response = client.post(f"{API}/orders/returns", json={
        "returned_serial": "SN-001",
        "replacement_serial": "SN-003",
        "dealer_name": "Acme Dealer",
        "remarks": "Dead on arrival",
    })
    assert response.status_code == 200
    assert response.json()["message"] == "Return processed successfully"

    response = client.post(f"{API}/orders/returns", json={
        "returned_serial": "SN-002",
        "replacement_serial": "SN-003",
        "dealer_name": "Acme Dealer",
    })
    assert response.status_code == 400


def test_document_versions_endpoints(client, order):
    first = _upload(client, "invoice", "inv-v1.pdf").json()["file"]
    second = _upload(client, "invoice", "inv-v2.pdf").json()["file"]
    assert second["version"] == 2

    history = client.get(f"{API}/orders/ORD-1/files/history", params={"file_type": "invoice"}).json()
    assert [(f["version"], f["is_active"]) for f in history] == [(2, True), (1, False)]

    active = client.get(f"{API}/orders/ORD-1/files/active/invoice").json()
    assert active["file_id"] == second["file_id"]

    restored = client.post(f"{API}/orders/files/{first['file_id']}/restore")
    assert restored.status_code == 200
    assert restored.json()["is_active"] is True
    assert client.get(f"{API}/orders/ORD-1/files/active/invoice").json()["file_id"] == first["file_id"]

    assert client.get(f"{API}/orders/ORD-1/files/active/delivery_order").status_code == 404
    assert client.post(f"{API}/orders/files/missing/restore").status_code == 404


def test_document_statistics_and_order_summary(client, order):
    _upload(client, "invoice")
    _upload(client, "delivery_order")

    stats = client.get(f"{API}/orders/files/statistics").json()
    assert stats["total_files"] == 2
    assert stats["invoice_files"] == 1

    summaries = client.get(f"{API}/orders/files/orders", params={"search": "ord"}).json()
    assert [(s["order_number"], s["total_files"]) for s in summaries] == [("ORD-1", 2)]
    assert client.get(f"{API}/orders/files/orders", params={"search": "zzz"}).json() == []
