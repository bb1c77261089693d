# tests/services/test_order_file_service.py
import pytest

from serialtrack.core.exceptions import (
    BusinessRuleException,
    EntityNotFoundException,
    FileStorageException,
    ValidationException,
)
from serialtrack.db.models.order_file import OrderFile
from serialtrack.services.cancel_order_service import CancelOrderService
from serialtrack.services.order_file_service import OrderFileService
from serialtrack.services.order_service import OrderService

PDF = b"%PDF-1.4 test document"


@pytest.fixture()
def service(db, stock_in, file_storage):
    stock_in("SN-001")
    OrderService(db).create_multi_item_order("ORD-1", "Acme", "Site A", items=[{"serial_number": "SN-001"}])
    return OrderFileService(db, file_storage)


def test_upload_invoice_advances_order(service, regular_user, file_storage):
    result = service.upload_order_file("ORD-1", "invoice", PDF, "inv-001.pdf", "application/pdf", regular_user.id)

    stored = result["file"]
    assert result["new_invoice_status"] == "Invoiced"
    assert result["new_delivery_status"] == "Pending"
    assert stored.order_number == "ORD-1"
    assert stored.original_filename == "inv-001.pdf"
    assert stored.size == len(PDF)
    assert file_storage.read_file(stored.storage_path) == PDF

    order = service.order_service.get_order("ORD-1")
    assert order.invoice_file_id == stored.file_id
    assert [f.file_id for f in service.list_order_files("ORD-1")] == [stored.file_id]


def test_upload_validation(service):
    with pytest.raises(ValidationException):
        service.upload_order_file("ORD-1", "receipt", PDF, "a.pdf")
    with pytest.raises(ValidationException):
        service.upload_order_file("ORD-1", "invoice", PDF, "a.exe")
    with pytest.raises(ValidationException):
        service.upload_order_file("ORD-1", "invoice", b"", "a.pdf")
    with pytest.raises(EntityNotFoundException):
        service.upload_order_file("ORD-404", "invoice", PDF, "a.pdf")


def test_download_file(service):
    uploaded = service.upload_order_file("ORD-1", "invoice", PDF, "inv.pdf")["file"]
    order_file, data = service.download_file(uploaded.file_id)
    assert order_file.file_id == uploaded.file_id
    assert data == PDF
    with pytest.raises(EntityNotFoundException):
        service.download_file("missing")


def test_delete_file_clears_reference_but_keeps_status(service, file_storage):
    uploaded = service.upload_order_file("ORD-1", "invoice", PDF, "inv.pdf")["file"]
    storage_path = uploaded.storage_path
    file_id = uploaded.file_id

    result = service.delete_file(file_id)
    assert result["removed_from_storage"] is True
    assert result["warning"] is not None

    order = service.order_service.get_order("ORD-1")
    assert order.invoice_file_id is None
    assert order.invoice_status == "Invoiced"
    with pytest.raises(FileStorageException):
        file_storage.read_file(storage_path)
    assert service.list_order_files("ORD-1") == []


def _stored_files(file_storage):
    return [p for p in file_storage.base_path.rglob("*") if p.is_file()]


def test_upload_to_cancelled_order_leaves_nothing_behind(service, db, file_storage):
    order = service.order_service.get_order("ORD-1")
    CancelOrderService(db).cancel_order(order.id, "Customer withdrew")

    with pytest.raises(BusinessRuleException):
        service.upload_order_file("ORD-1", "invoice", PDF, "inv.pdf")

    assert db.query(OrderFile).count() == 0
    assert _stored_files(file_storage) == []


def test_failed_status_update_rolls_back_upload(service, db, file_storage, monkeypatch):
    def fail(*args, **kwargs):
        raise RuntimeError("status update failed")

    monkeypatch.setattr(service.order_service, "apply_file", fail)
    with pytest.raises(RuntimeError):
        service.upload_order_file("ORD-1", "invoice", PDF, "inv.pdf")

    assert db.query(OrderFile).count() == 0
    assert _stored_files(file_storage) == []
    assert service.order_service.get_order("ORD-1").invoice_file_id is None


def test_reupload_creates_new_active_version(service):
    first = service.upload_order_file("ORD-1", "invoice", PDF, "inv-v1.pdf")["file"]
    second = service.upload_order_file("ORD-1", "invoice", PDF + b"2", "inv-v2.pdf")["file"]

    assert (first.version, second.version) == (1, 2)
    assert first.is_active is False
    assert second.is_active is True
    assert service.get_active_file("ORD-1", "invoice").file_id == second.file_id
    assert service.order_service.get_order("ORD-1").invoice_file_id == second.file_id

    history = service.get_file_history("ORD-1", "invoice")
    assert [f.version for f in history] == [2, 1]


def test_versions_are_counted_per_document_type(service):
    service.upload_order_file("ORD-1", "invoice", PDF, "inv.pdf")
    delivery = service.upload_order_file("ORD-1", "delivery_order", PDF, "do.pdf")["file"]

    assert delivery.version == 1
    assert service.get_active_file("ORD-1", "invoice").is_active is True
    with pytest.raises(EntityNotFoundException):
        service.get_active_file("ORD-1", "signed_delivery_order")


def test_restore_file_version(service):
    first = service.upload_order_file("ORD-1", "invoice", PDF, "inv-v1.pdf")["file"]
    second = service.upload_order_file("ORD-1", "invoice", PDF + b"2", "inv-v2.pdf")["file"]

    restored = service.restore_file_version(first.file_id)

    assert restored.is_active is True
    assert second.is_active is False
    order = service.order_service.get_order("ORD-1")
    assert order.invoice_file_id == first.file_id
    assert order.invoice_status == "Invoiced"
    with pytest.raises(EntityNotFoundException):
        service.restore_file_version("missing")


def test_file_statistics(service):
    service.upload_order_file("ORD-1", "invoice", PDF, "inv-v1.pdf")
    service.upload_order_file("ORD-1", "invoice", PDF, "inv-v2.pdf")
    service.upload_order_file("ORD-1", "delivery_order", PDF, "do.pdf")

    assert service.get_file_statistics() == {
        "total_files": 3,
        "active_files": 2,
        "invoice_files": 1,
        "delivery_order_files": 1,
        "signed_delivery_order_files": 0,
    }


def test_orders_with_files(service, stock_in):
    stock_in("SN-002")
    service.order_service.create_multi_item_order("WEST-9", "Acme", "Site B", items=[{"serial_number": "SN-002"}])
    service.upload_order_file("ORD-1", "invoice", PDF, "inv.pdf")
    service.upload_order_file("ORD-1", "delivery_order", PDF, "do.pdf")
    service.upload_order_file("WEST-9", "invoice", PDF, "inv.pdf")

    summaries = {s["order_number"]: s for s in service.get_orders_with_files()}
    assert set(summaries) == {"ORD-1", "WEST-9"}
    assert summaries["ORD-1"]["total_files"] == 2
    assert summaries["ORD-1"]["invoice_count"] == 1
    assert summaries["ORD-1"]["delivery_count"] == 1
    assert summaries["WEST-9"]["signed_delivery_count"] == 0

    assert [s["order_number"] for s in service.get_orders_with_files(search="west")] == ["WEST-9"]
