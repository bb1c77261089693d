# File: serialtrack/services/order_file_service.py

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from serialtrack.core.config import settings
from serialtrack.core.exceptions import EntityNotFoundException, ValidationException
from serialtrack.core.utils import utc_now
from serialtrack.db.models.enums import OrderFileType
from serialtrack.db.models.order_file import OrderFile
from serialtrack.repositories.order_file_repository import OrderFileRepository
from serialtrack.services.base_service import BaseService
from serialtrack.services.file_storage_service import FileStorageService
from serialtrack.services.order_service import FILE_FIELDS, OrderService

logger = logging.getLogger(__name__)


class OrderFileService(BaseService[OrderFile]):
    """
    Service for order documents.

    Handles the upload of invoices, delivery orders and signed delivery
    orders, keeping the file body on disk and the metadata in
    ``order_files``. Re-uploading a document type adds a new version and
    retires the previous one. Every accepted upload advances the order
    through ``OrderService.apply_file`` in the same unit of work.
    """

    repository: OrderFileRepository

    def __init__(self, session: Session, file_storage: FileStorageService, security_context=None):
        super().__init__(session, repository_class=OrderFileRepository, security_context=security_context)
        self.file_storage = file_storage
        self.order_service = OrderService(session, security_context=security_context, file_storage=file_storage)

    def _validate_upload(self, filename: str, file_data: bytes, file_type: str) -> None:
        if file_type not in FILE_FIELDS:
            raise ValidationException(
                f"Unknown file type '{file_type}'.", {"file_type": [f"Must be one of {sorted(FILE_FIELDS)}"]}
            )
        extension = Path(filename or "").suffix.lower()
        if extension not in settings.ALLOWED_UPLOAD_EXTENSIONS:
            raise ValidationException(
                f"File type {extension or '(none)'} is not allowed.",
                {"file": [f"Allowed extensions: {', '.join(settings.ALLOWED_UPLOAD_EXTENSIONS)}"]},
            )
        if not file_data:
            raise ValidationException("Uploaded file is empty.", {"file": ["File is empty"]})
        max_bytes = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
        if len(file_data) > max_bytes:
            raise ValidationException(
                f"File exceeds the maximum size of {settings.MAX_UPLOAD_SIZE_MB} MB.",
                {"file": [f"Maximum size is {settings.MAX_UPLOAD_SIZE_MB} MB"]},
            )

    def upload_order_file(
        self,
        order_number: str,
        file_type: str,
        file_data: bytes,
        filename: str,
        content_type: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Store a document for an order and advance the order's status.

        The new row becomes the active version of its document type and
        earlier versions are deactivated. The metadata row, the version
        switch and the status change are committed together; when any of
        them fails the stored file is removed again.

        Args:
            order_number: Order the document belongs to
            file_type: invoice, delivery_order or signed_delivery_order
            file_data: Raw file content
            filename: Name of the uploaded file
            content_type: MIME type sent by the client
            user_id: Uploading user

        Returns:
            Dict with the stored ``file`` row and the order's new statuses

        Raises:
            EntityNotFoundException: Unknown order
            ValidationException: Bad file type, extension or size
            BusinessRuleException: Order is cancelled
            FileStorageException: The file could not be written
        """
        self._validate_upload(filename, file_data, file_type)
        # Fails before anything touches the disk
        order = self.order_service.ensure_accepts_documents(order_number, file_type)

        stored = self.file_storage.store_file(file_data, filename, content_type)
        try:
            with self.transaction():
                order_file = self.repository.create({
                    **stored,
                    "order_number": order_number,
                    "file_type": file_type,
                    "user_id": user_id,
                    "version": self.repository.next_version(order_number, file_type),
                    "is_active": True,
                })
                self.repository.deactivate_versions(order_number, file_type, exclude_file_id=order_file.file_id)
                result = self.order_service.apply_file(order, order_file.file_id, file_type)
        except Exception:
            self.file_storage.delete_file(stored["storage_path"])
            raise

        logger.info(
            f"Uploaded {file_type} v{order_file.version} for order {order_number}: "
            f"invoice={result['new_invoice_status']} delivery={result['new_delivery_status']}"
        )
        return {
            "file": order_file,
            "new_invoice_status": result["new_invoice_status"],
            "new_delivery_status": result["new_delivery_status"],
        }

    def list_order_files(self, order_number: str) -> List[OrderFile]:
        self.order_service.get_order(order_number)
        return self.repository.list_for_order(order_number)

    def get_file_history(self, order_number: str, file_type: Optional[str] = None) -> List[OrderFile]:
        """Every stored version of an order's documents, newest version first."""
        if file_type is not None and file_type not in FILE_FIELDS:
            raise ValidationException(f"Unknown file type '{file_type}'.")
        self.order_service.get_order(order_number)
        return self.repository.list_history(order_number, file_type)

    def get_active_file(self, order_number: str, file_type: str) -> OrderFile:
        if file_type not in FILE_FIELDS:
            raise ValidationException(f"Unknown file type '{file_type}'.")
        order_file = self.repository.get_active(order_number, file_type)
        if order_file is None:
            raise EntityNotFoundException("OrderFile", f"{order_number}/{file_type}")
        return order_file

    def restore_file_version(self, file_id: str) -> OrderFile:
        """
        Make an earlier version the active document again.

        The order's document slot is pointed back at the restored file.
        Statuses are left unchanged.

        Raises:
            EntityNotFoundException: Unknown file
            BusinessRuleException: Order is cancelled
        """
        order_file = self.get_file(file_id)
        order = self.order_service.ensure_accepts_documents(order_file.order_number, order_file.file_type)
        file_field, uploaded_field = FILE_FIELDS[order_file.file_type]

        with self.transaction():
            self.repository.deactivate_versions(order_file.order_number, order_file.file_type)
            order_file.is_active = True
            setattr(order, file_field, order_file.file_id)
            setattr(order, uploaded_field, utc_now())
            self.session.flush()

        self._log_operation("restore", "OrderFile", file_id, {
            "order_number": order_file.order_number,
            "version": order_file.version,
        })
        return order_file

    def get_file_statistics(self) -> Dict[str, int]:
        """Totals over all stored documents; per-type counts cover active versions only."""
        all_counts = self.repository.count_by_type()
        active_counts = self.repository.count_by_type(active_only=True)
        return {
            "total_files": sum(all_counts.values()),
            "active_files": sum(active_counts.values()),
            "invoice_files": active_counts.get(OrderFileType.INVOICE.value, 0),
            "delivery_order_files": active_counts.get(OrderFileType.DELIVERY_ORDER.value, 0),
            "signed_delivery_order_files": active_counts.get(OrderFileType.SIGNED_DELIVERY_ORDER.value, 0),
        }

    def get_orders_with_files(self, search: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Summarise stored documents per order, most recent upload first.

        Args:
            search: Case-insensitive fragment of the order number
        """
        needle = search.strip().lower() if search else None
        grouped: Dict[str, Dict[str, Any]] = {}
        for order_file in self.repository.list_newest_first():
            if needle and needle not in order_file.order_number.lower():
                continue
            entry = grouped.get(order_file.order_number)
            if entry is None:
                entry = grouped[order_file.order_number] = {
                    "order_number": order_file.order_number,
                    "total_files": 0,
                    "invoice_count": 0,
                    "delivery_count": 0,
                    "signed_delivery_count": 0,
                    "last_upload_date": order_file.created_at,
                }
            entry["total_files"] += 1
            if order_file.file_type == OrderFileType.INVOICE.value:
                entry["invoice_count"] += 1
            elif order_file.file_type == OrderFileType.DELIVERY_ORDER.value:
                entry["delivery_count"] += 1
            else:
                entry["signed_delivery_count"] += 1
            if order_file.created_at and (
                entry["last_upload_date"] is None or order_file.created_at > entry["last_upload_date"]
            ):
                entry["last_upload_date"] = order_file.created_at

        return sorted(grouped.values(), key=lambda e: e["last_upload_date"] or datetime.min, reverse=True)

    def get_file(self, file_id: str) -> OrderFile:
        order_file = self.repository.get_by_file_id(file_id)
        if order_file is None:
            raise EntityNotFoundException("OrderFile", file_id)
        return order_file

    def download_file(self, file_id: str) -> Tuple[OrderFile, bytes]:
        """Return the metadata row and the file body."""
        order_file = self.get_file(file_id)
        data = self.file_storage.read_file(order_file.storage_path, order_file.checksum)
        return order_file, data

    def delete_file(self, file_id: str) -> Dict[str, Any]:
        """
        Delete a document from disk and from ``order_files``.

        The order's reference to the document is cleared; its statuses are
        left as they are.
        """
        order_file = self.get_file(file_id)
        order_number = order_file.order_number
        file_type = order_file.file_type
        storage_path = order_file.storage_path

        with self.transaction():
            self.session.delete(order_file)

        removed_from_storage = self.file_storage.delete_file(storage_path)

        order = self.order_service.repository.get_by_order_number(order_number)
        result = {
            "order_number": order_number,
            "file_id": file_id,
            "removed_from_storage": removed_from_storage,
            "message": "File deleted successfully.",
            "warning": None,
        }
        file_field, _ = FILE_FIELDS.get(file_type, (None, None))
        if order is not None and file_field and getattr(order, file_field) == file_id:
            cleared = self.order_service.remove_file_from_order(order_number, file_type)
            result["warning"] = cleared["warning"]

        self._log_operation("delete", "OrderFile", file_id, {"order_number": order_number})
        return result
