# tests/api/endpoints/test_inventory.py
from serialtrack.core.config import settings

API = settings.API_V1_STR


def _stock_in(client, serial, **extra):
    payload = {"serial_number": serial, "equipment_category": "Scanner", "model": "SX-100", "size": "M"}
    payload.update(extra)
    return client.post(f"{API}/stock/in", json=payload)


def test_stock_in_endpoint(user_client):
    response = _stock_in(user_client, "SN-001", batch="B7")
    assert response.status_code == 201
    data = response.json()
    assert data["serial_number"] == "SN-001"
    assert data["status"] == "Active"
    assert data["location"] == "HQ"
    assert data["created_by"] == "clerk@serialtrack.io"

    duplicate = _stock_in(user_client, "sn-001")
    assert duplicate.status_code == 409
    assert "already exists in inventory" in duplicate.json()["detail"]

    assert _stock_in(user_client, "   ").status_code == 422

    exists = user_client.get(f"{API}/stock/exists/SN-001").json()
    assert exists == {"serial_number": "SN-001", "exists": True}


def test_inventory_list_and_summary(client, stock_in):
    stock_in("SN-001", "SN-002")
    response = client.get(f"{API}/inventory/", params={"status": "Active"})
    assert response.status_code == 200
    page = response.json()
    assert page["total_filtered"] == 2
    assert {i["current_location"] for i in page["items"]} == {"HQ"}

    summary = client.get(f"{API}/inventory/summary").json()
    assert summary["total_items"] == 2
    assert summary["active_items"] == 2

    filters = client.get(f"{API}/inventory/filters").json()
    assert filters["categories"] == ["Scanner"]


def test_item_maintenance(client, stock_in):
    item = stock_in("SN-001")[0]

    response = client.get(f"{API}/inventory/{item.id}")
    assert response.status_code == 200

    response = client.put(f"{API}/inventory/{item.id}", json={"model": "SX-200"})
    assert response.status_code == 200
    assert response.json()["model"] == "SX-200"

    response = client.delete(f"{API}/inventory/{item.id}")
    assert response.status_code == 200
    assert response.json()["deleted_transactions"] == 1
    assert client.get(f"{API}/inventory/{item.id}").status_code == 404


def test_serial_lookups(client, stock_in):
    stock_in("SN-001")
    assert client.get(f"{API}/inventory/serial/sn-001").json()["serial_number"] == "SN-001"

    transactions = client.get(f"{API}/inventory/serial/SN-001/transactions").json()
    assert [t["type"] for t in transactions] == ["Stock_In"]

    activity = client.get(f"{API}/inventory/serial/SN-001/activity").json()
    assert activity[0]["description"] == "Stocked in at HQ"

    missing = client.get(f"{API}/inventory/serial/SN-404/activity")
    assert missing.status_code == 404
    assert missing.json()["detail"] == "No inventory item or transactions found for serial number SN-404"


def test_discrepancies(client, stock_in):
    stock_in("SN-001")
    response = client.get(f"{API}/inventory/discrepancies")
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert response.json()["analysis"]["discrepancy"] == 0
