# tests/services/test_item_status.py
from datetime import datetime, timedelta

from serialtrack.db.models.transaction import Transaction
from serialtrack.services.item_status import (
    count_based_status,
    group_by_serial,
    resolve_current_state,
    status_from_transaction,
)

T0 = datetime(2024, 1, 1, 9, 0, 0)


def _tx(transaction_id, tx_type, status, minutes=0, serial="SN-1", location="HQ"):
    return Transaction(
        transaction_id=transaction_id,
        serial_number=serial,
        type=tx_type,
        status=status,
        location=location,
        uploaded_at=T0 + timedelta(minutes=minutes),
        date=T0 + timedelta(minutes=minutes),
    )


def test_group_by_serial_is_case_insensitive():
    grouped = group_by_serial([
        _tx(1, "Stock_In", "Active", serial="ab-1"),
        _tx(2, "Stock_Out", "Reserved", serial="AB-1"),
        _tx(3, "Stock_In", "Active", serial=""),
    ])
    assert list(grouped) == ["ab-1"]
    assert len(grouped["ab-1"]) == 2


def test_status_from_latest_transaction():
    assert status_from_transaction(None) == "Active"
    assert status_from_transaction(_tx(1, "Stock_In", "Active")) == "Active"
    assert status_from_transaction(_tx(1, "Stock_Out", "Reserved")) == "Reserved"
    assert status_from_transaction(_tx(1, "Stock_Out", "delivered")) == "Delivered"
    assert status_from_transaction(_tx(1, "Demo", "Demo")) == "Active"


def test_resolve_current_state_uses_latest_upload():
    status, location, last_activity = resolve_current_state([
        _tx(1, "Stock_In", "Active", minutes=0, location="HQ"),
        _tx(2, "Stock_Out", "Reserved", minutes=5, location="Site A"),
    ])
    assert status == "Reserved"
    assert location == "Site A"
    assert last_activity == T0 + timedelta(minutes=5)


def test_resolve_current_state_breaks_ties_on_transaction_id():
    status, _, _ = resolve_current_state([
        _tx(3, "Stock_Out", "Delivered", minutes=5),
        _tx(2, "Stock_Out", "Reserved", minutes=5),
    ])
    assert status == "Delivered"


def test_resolve_current_state_without_transactions():
    assert resolve_current_state([]) == ("Active", "Unknown", None)


def test_count_based_status_rules():
    stock_in = _tx(1, "Stock_In", "Active")
    reserved = _tx(2, "Stock_Out", "Reserved")
    delivered = _tx(3, "Stock_Out", "Delivered")

    assert count_based_status([stock_in]) == "Active"
    assert count_based_status([stock_in, reserved]) == "Reserved"
    assert count_based_status([stock_in, reserved, delivered]) == "Delivered"
    assert count_based_status([reserved]) == "Reserved"
    assert count_based_status([stock_in, _tx(4, "Stock_In", "Active"), reserved]) == "Active"
    assert count_based_status([stock_in, _tx(4, "Stock_In", "Active"), reserved, delivered, reserved]) == "Reserved"
