# File: serialtrack/services/import_service.py
"""
Bulk import of inventory and transaction logs from spreadsheets.

Files are accepted as CSV or Excel. Header names are matched loosely
("Serial Number", "serial_number" and "Serial (Number)" are the same
column). Rows that cannot be imported are reported individually and the
remaining rows are written in a single unit of work.
"""

import csv
import io
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from serialtrack.core.exceptions import ValidationException
from serialtrack.core.utils import normalize_serial, utc_now
from serialtrack.db.models.enums import InventoryStatus, TransactionStatus, TransactionType
from serialtrack.db.models.inventory import InventoryItem
from serialtrack.repositories.inventory_repository import InventoryRepository
from serialtrack.repositories.transaction_repository import TransactionRepository
from serialtrack.services.base_service import BaseService

logger = logging.getLogger(__name__)

CSV_EXTENSIONS = {".csv"}
EXCEL_EXTENSIONS = {".xlsx", ".xls"}
UNSUPPORTED_FORMAT = "Unsupported file format. Please use .xlsx, .xls, or .csv files."

INVENTORY_COLUMNS = ["serial_number", "equipment_category", "model", "size", "batch", "date", "remark"]
TRANSACTION_COLUMNS = ["transaction_id", "date", "type", "equipment_category", "model", "serial_number", "quantity"]

INVENTORY_UPLOAD_SOURCE = "inventory_upload"
TRANSACTION_UPLOAD_SOURCE = "bulk_upload"

DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y",
    "%d-%m-%Y",
)


def normalize_column(name: Any) -> str:
    return (
        str(name).strip().lower()
        .replace(" ", "_")
        .replace("(", "")
        .replace(")", "")
    )


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """Parse a spreadsheet date; ``None`` for blanks, ``ValueError`` if unreadable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    text = str(value).strip()
    try:
        return datetime.fromisoformat(text).replace(tzinfo=None)
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValueError(f"Unrecognised date '{text}'")


def _to_int(value: Optional[str], default: Optional[int] = None) -> Optional[int]:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _to_float(value: Optional[str]) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class ImportResult:
    """Counts and row errors of one import run."""

    def __init__(self, kind: str):
        self.kind = kind
        self.total_rows = 0
        self.imported_rows = 0
        self.errors: List[str] = []

    def fail(self, row_number: int, message: str) -> None:
        self.errors.append(f"Row {row_number}: {message}")

    def to_dict(self) -> Dict[str, Any]:
        noun = "transactions" if self.kind == "transactions" else "inventory items"
        return {
            "success": True,
            f"{self.kind}_imported": self.imported_rows,
            "total_rows": self.total_rows,
            "failed_rows": len(self.errors),
            "success_rate": (
                round(self.imported_rows / self.total_rows * 100, 1) if self.total_rows > 0 else 0
            ),
            "errors": self.errors,
            "message": f"Successfully imported {self.imported_rows} {noun}",
        }


class ImportService(BaseService[InventoryItem]):
    """
    Service for spreadsheet uploads.

    Inventory uploads create inventory rows only; transaction-log uploads
    create transactions only. Neither derives one from the other.
    """

    def __init__(self, session: Session, security_context=None):
        super().__init__(session, repository_class=InventoryRepository, security_context=security_context)
        self.transaction_repository = TransactionRepository(session)

    # --- Parsing ---

    def _read_rows(self, file_data: bytes, filename: str) -> List[Dict[str, Optional[str]]]:
        extension = Path(filename or "").suffix.lower()
        if extension in CSV_EXTENSIONS:
            rows = self._parse_csv(file_data)
        elif extension in EXCEL_EXTENSIONS:
            rows = self._parse_excel(file_data)
        else:
            raise ValidationException(UNSUPPORTED_FORMAT, {"file": [UNSUPPORTED_FORMAT]})

        if not rows:
            raise ValidationException(
                "File is empty or could not be parsed.", {"file": ["No data rows found"]}
            )
        return rows

    def _parse_csv(self, file_data: bytes) -> List[Dict[str, Optional[str]]]:
        try:
            file_content = file_data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ValidationException("CSV file must be UTF-8 encoded.", {"file": [str(e)]}) from e

        records = []
        for row in csv.DictReader(file_content.splitlines()):
            cleaned = {}
            for key, value in row.items():
                if key is None or key.strip() == "":
                    continue
                if isinstance(value, str):
                    value = value.strip() or None
                cleaned[normalize_column(key)] = value
            records.append(cleaned)
        return records

    def _parse_excel(self, file_data: bytes) -> List[Dict[str, Optional[str]]]:
        import pandas as pd

        try:
            df = pd.read_excel(io.BytesIO(file_data), sheet_name=0, dtype=str)
        except (ValueError, OSError) as e:
            raise ValidationException(f"Could not read Excel file: {e}", {"file": [str(e)]}) from e

        df.columns = [normalize_column(c) for c in df.columns]
        records = df.to_dict("records")
        for record in records:
            for key, value in list(record.items()):
                if pd.isna(value):
                    record[key] = None
                elif isinstance(value, str):
                    record[key] = value.strip() or None
        return records

    @staticmethod
    def _require_columns(rows: Sequence[Dict[str, Any]], required: List[str]) -> None:
        present = set(rows[0].keys())
        missing = [f"Missing required column: {column}" for column in required if column not in present]
        if missing:
            raise ValidationException(
                "Column validation failed:\n" + "\n".join(missing), {"columns": missing}
            )

    # --- Imports ---

    def import_inventory(self, file_data: bytes, filename: str) -> Dict[str, Any]:
        """
        Create inventory rows from an uploaded sheet.

        Required columns: serial_number, equipment_category, model, size,
        batch, date and remark. Rows without a serial number, with a serial
        already in stock or repeated earlier in the file, or with an
        unreadable date are skipped and reported.

        Returns:
            Dict with ``inventory_imported``, ``errors`` and ``message``

        Raises:
            ValidationException: Unsupported format, empty file or missing columns
        """
        rows = self._read_rows(file_data, filename)
        self._require_columns(rows, INVENTORY_COLUMNS)

        result = ImportResult("inventory")
        result.total_rows = len(rows)
        user = self._current_username()
        now = utc_now()
        seen = set()
        records = []

        for index, row in enumerate(rows):
            row_number = index + 2
            serial = (row.get("serial_number") or "").strip()
            if not serial:
                result.fail(row_number, "Missing serial number")
                continue
            key = normalize_serial(serial)
            if key in seen or self.repository.serial_exists(serial):
                result.fail(row_number, f"Serial number {serial} already exists")
                continue
            try:
                stocked_at = parse_date(row.get("date")) or now
            except ValueError as e:
                result.fail(row_number, str(e))
                continue

            seen.add(key)
            records.append({
                "serial_number": serial,
                "equipment_category": row.get("equipment_category"),
                "model": row.get("model"),
                "size": row.get("size"),
                "batch": row.get("batch"),
                "remark": row.get("remark"),
                "date": stocked_at,
                "status": InventoryStatus.ACTIVE.value,
                "location": row.get("location"),
                "source": INVENTORY_UPLOAD_SOURCE,
                "created_by": user,
            })

        with self.transaction():
            for record in records:
                self.repository.create(record)
        result.imported_rows = len(records)

        logger.info(
            f"Inventory import from {filename}: {result.imported_rows} of {result.total_rows} rows, "
            f"{len(result.errors)} errors"
        )
        self._log_operation("import", "InventoryItem", None, {"filename": filename, "rows": len(records)})
        return result.to_dict()

    def import_transaction_log(self, file_data: bytes, filename: str) -> Dict[str, Any]:
        """
        Append transactions from an uploaded transaction log.

        The sheet's own ``transaction_id`` column is required but new ids
        are allocated sequentially after the current maximum. Status
        defaults to Active.

        Returns:
            Dict with ``transactions_imported``, ``errors`` and ``message``

        Raises:
            ValidationException: Unsupported format, empty file or missing columns
        """
        rows = self._read_rows(file_data, filename)
        self._require_columns(rows, TRANSACTION_COLUMNS)

        result = ImportResult("transactions")
        result.total_rows = len(rows)
        known_types = {t.value for t in TransactionType}
        user = self._current_username()
        now = utc_now()
        records = []

        for index, row in enumerate(rows):
            row_number = index + 2
            serial = (row.get("serial_number") or "").strip()
            if not serial:
                result.fail(row_number, "Missing serial number")
                continue
            tx_type = row.get("type")
            if tx_type not in known_types:
                result.fail(row_number, f"Unknown transaction type '{tx_type}'")
                continue
            try:
                dates = {
                    "date": parse_date(row.get("date")),
                    "delivery_date": parse_date(row.get("delivery_date")),
                    "invoice_date": parse_date(row.get("invoice_date")),
                }
            except ValueError as e:
                result.fail(row_number, str(e))
                continue

            records.append({
                **dates,
                "serial_number": serial,
                "type": tx_type,
                "status": row.get("status") or TransactionStatus.ACTIVE.value,
                "entry_no": _to_int(row.get("entry_no")),
                "equipment_category": row.get("equipment_category"),
                "model": row.get("model"),
                "size": row.get("size"),
                "quantity": _to_int(row.get("quantity"), 1),
                "customer_dealer": row.get("customer_dealer"),
                "customer_client": row.get("customer_client"),
                "location": row.get("location"),
                "unit_price": _to_float(row.get("unit_price")),
                "warranty_type": row.get("warranty_type"),
                "warranty_period": _to_int(row.get("warranty_period")),
                "invoice_number": row.get("invoice_number"),
                "remarks": row.get("remarks"),
                "uploaded_at": now,
                "uploaded_by": user,
                "source": TRANSACTION_UPLOAD_SOURCE,
            })

        with self.transaction():
            next_id = self.transaction_repository.next_transaction_id()
            for offset, record in enumerate(records):
                self.transaction_repository.create({**record, "transaction_id": next_id + offset})
        result.imported_rows = len(records)

        logger.info(
            f"Transaction import from {filename}: {result.imported_rows} of {result.total_rows} rows, "
            f"{len(result.errors)} errors"
        )
        self._log_operation("import", "Transaction", None, {"filename": filename, "rows": len(records)})
        return result.to_dict()
