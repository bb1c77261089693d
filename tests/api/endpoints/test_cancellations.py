# tests/api/endpoints/test_cancellations.py
import pytest

from serialtrack.core.config import settings
from serialtrack.services.order_service import OrderService

API = settings.API_V1_STR


@pytest.fixture()
def order(db, stock_in):
    stock_in("SN-001")
    return OrderService(db).create_multi_item_order(
        "ORD-1", "Acme Dealer", "Site A", items=[{"serial_number": "SN-001"}]
    )


def test_cancellation_requires_admin(user_client, order):
    assert user_client.get(f"{API}/cancellations/orders").status_code == 403
    response = user_client.post(f"{API}/cancellations/orders/{order.id}/cancel", json={"reason": "x"})
    assert response.status_code == 403


def test_cancel_order(client, order):
    orders = client.get(f"{API}/cancellations/orders").json()
    assert [o["order_number"] for o in orders] == ["ORD-1"]

    details = client.get(f"{API}/cancellations/orders/{order.id}").json()
    assert details["items"][0]["serial_number"] == "SN-001"

    response = client.post(f"{API}/cancellations/orders/{order.id}/cancel", json={"reason": "Duplicate order"})
    assert response.status_code == 200
    assert response.json()["message"] == "Order ORD-1 cancelled successfully"
    assert response.json()["cancelled_items"] == 1

    again = client.post(f"{API}/cancellations/orders/{order.id}/cancel", json={"reason": "Again"})
    assert again.status_code == 400
    assert client.get(f"{API}/cancellations/orders").json() == []


def test_cancel_requires_reason(client, order):
    response = client.post(f"{API}/cancellations/orders/{order.id}/cancel", json={"reason": ""})
    assert response.status_code == 422
    assert client.post(f"{API}/cancellations/orders/999/cancel", json={"reason": "x"}).status_code == 404
