# tests/services/test_import_service.py
import io

import pandas as pd
import pytest

from serialtrack.core.exceptions import ValidationException
from serialtrack.db.models.inventory import InventoryItem
from serialtrack.db.models.transaction import Transaction
from serialtrack.services.import_service import ImportService, normalize_column, parse_date

INVENTORY_CSV = (
    "Serial Number,Equipment Category,Model,Size,Batch,Date,Remark\n"
    "IMP-001,Scanner,SX-100,M,B1,2024-03-05,first\n"
    ",Scanner,SX-100,M,B1,2024-03-05,no serial\n"
    "IMP-002,Scanner,SX-200,L,B1,05/03/2024,\n"
    "IMP-001,Scanner,SX-100,M,B1,2024-03-05,repeat\n"
)

TRANSACTION_CSV = (
    "transaction_id,date,type,equipment_category,model,serial_number,quantity,status,customer_dealer\n"
    "900,2024-01-10,Stock_In,Scanner,SX-100,SN-001,1,,\n"
    "901,2024-01-11,Stock_Out,Scanner,SX-100,SN-001,1,Delivered,Acme\n"
    "902,2024-01-12,Stock_Out,Scanner,SX-100,,1,,\n"
    "903,2024-01-12,Teleport,Scanner,SX-100,SN-009,1,,\n"
)


@pytest.fixture()
def service(db):
    return ImportService(db)


def test_import_inventory_from_csv(service, db, stock_in):
    stock_in("IMP-002")

    result = service.import_inventory(INVENTORY_CSV.encode(), "inventory.csv")

    assert result["success"] is True
    assert result["inventory_imported"] == 1
    assert result["total_rows"] == 4
    assert result["errors"] == [
        "Row 3: Missing serial number",
        "Row 4: Serial number IMP-002 already exists",
        "Row 5: Serial number IMP-001 already exists",
    ]
    item = db.query(InventoryItem).filter_by(serial_number="IMP-001").one()
    assert item.source == "inventory_upload"
    assert item.status == "Active"
    assert item.remark == "first"
    assert item.date.day == 5


def test_import_transaction_log_allocates_ids(service, db, stock_in):
    stock_in("SN-500")

    result = service.import_transaction_log(TRANSACTION_CSV.encode(), "log.csv")

    assert result["transactions_imported"] == 2
    assert result["errors"] == [
        "Row 4: Missing serial number",
        "Row 5: Unknown transaction type 'Teleport'",
    ]
    imported = db.query(Transaction).filter_by(source="bulk_upload").order_by(Transaction.transaction_id).all()
    assert [t.transaction_id for t in imported] == [2, 3]
    assert [t.status for t in imported] == ["Active", "Delivered"]
    assert imported[1].customer_dealer == "Acme"


def test_unsupported_format(service):
    with pytest.raises(ValidationException) as exc_info:
        service.import_inventory(b"data", "inventory.txt")
    assert exc_info.value.message == "Unsupported file format. Please use .xlsx, .xls, or .csv files."


def test_missing_columns(service):
    with pytest.raises(ValidationException) as exc_info:
        service.import_transaction_log(b"serial_number,date\nSN-1,2024-01-01\n", "log.csv")
    message = exc_info.value.message
    assert message.startswith("Column validation failed:\n")
    assert "Missing required column: transaction_id" in message
    assert "Missing required column: serial_number" not in message


def test_empty_file(service):
    with pytest.raises(ValidationException):
        service.import_inventory(b"serial_number,model\n", "inventory.csv")


def test_bad_date_is_reported_per_row(service, db):
    content = (
        "serial_number,equipment_category,model,size,batch,date,remark\n"
        "IMP-010,Scanner,SX-100,M,B1,someday,\n"
    )
    result = service.import_inventory(content.encode(), "inventory.csv")
    assert result["inventory_imported"] == 0
    assert result["errors"] == ["Row 2: Unrecognised date 'someday'"]
    assert db.query(InventoryItem).count() == 0


def test_import_inventory_from_excel(service, db):
    frame = pd.DataFrame([{
        "Serial Number": "XL-001",
        "Equipment Category": "Interactive Flat Panel",
        "Model": "65M6",
        "Size": "65",
        "Batch": "B7",
        "Date": "2024-02-01",
        "Remark": None,
    }])
    buffer = io.BytesIO()
    frame.to_excel(buffer, index=False)

    result = service.import_inventory(buffer.getvalue(), "inventory.xlsx")

    assert result["inventory_imported"] == 1
    item = db.query(InventoryItem).filter_by(serial_number="XL-001").one()
    assert item.size == "65"
    assert item.remark is None


def test_column_and_date_helpers():
    assert normalize_column(" Unit Price (RM) ") == "unit_price_rm"
    assert parse_date("2024-03-05 10:30:00").hour == 10
    assert parse_date("05/03/2024").month == 3
    assert parse_date(None) is None
