# File: serialtrack/services/stock_service.py

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from serialtrack.core.config import settings
from serialtrack.core.exceptions import DuplicateEntityException, EntityNotFoundException, ValidationException
from serialtrack.core.utils import utc_now
from serialtrack.db.models.enums import InventoryStatus, TransactionSource, TransactionStatus, TransactionType
from serialtrack.db.models.inventory import InventoryItem
from serialtrack.db.models.transaction import Transaction
from serialtrack.repositories.inventory_repository import InventoryRepository
from serialtrack.repositories.transaction_repository import TransactionRepository
from serialtrack.services.base_service import BaseService

logger = logging.getLogger(__name__)


class StockService(BaseService[InventoryItem]):
    """Receives new serialised items into stock."""

    def __init__(self, session: Session, security_context=None):
        super().__init__(session, repository_class=InventoryRepository, security_context=security_context)
        self.transaction_repository = TransactionRepository(session)

    def stock_in_item(
        self,
        serial_number: str,
        equipment_category: str,
        model: str,
        size: Optional[str] = None,
        batch: Optional[str] = None,
        remark: Optional[str] = None,
        stocked_in_by: Optional[str] = None,
    ) -> InventoryItem:
        """
        Create an inventory record and its Stock_In transaction in one unit of work.

        Args:
            serial_number: Unique serial of the unit
            equipment_category: Category name
            model: Model name
            size: Optional size label
            batch: Optional batch reference
            remark: Optional free-text remark
            stocked_in_by: Email of the receiving user

        Returns:
            The new inventory item

        Raises:
            ValidationException: Serial number missing
            DuplicateEntityException: Serial already in inventory
        """
        serial_number = (serial_number or "").strip()
        if not serial_number:
            raise ValidationException("Serial number is required.", {"serial_number": ["Serial number is required."]})

        if self.repository.serial_exists(serial_number):
            raise DuplicateEntityException(
                f"Item with serial number {serial_number} already exists in inventory.",
                details={"serial_number": serial_number},
            )

        user = stocked_in_by or self._current_username()
        now = utc_now()
        with self.transaction():
            item = self.repository.create({
                "serial_number": serial_number,
                "equipment_category": equipment_category,
                "model": model,
                "size": size,
                "batch": batch,
                "remark": remark,
                "date": now,
                "status": InventoryStatus.ACTIVE.value,
                "location": settings.DEFAULT_STOCK_IN_LOCATION,
                "source": TransactionSource.STOCK_IN_MANUAL.value,
                "created_by": user,
            })
            transaction_id = self.transaction_repository.next_transaction_id()
            self.transaction_repository.create({
                "transaction_id": transaction_id,
                "serial_number": serial_number,
                "type": TransactionType.STOCK_IN.value,
                "status": TransactionStatus.ACTIVE.value,
                "location": settings.DEFAULT_STOCK_IN_LOCATION,
                "equipment_category": equipment_category,
                "model": model,
                "size": size,
                "quantity": 1,
                "remarks": remark,
                "date": now,
                "uploaded_at": now,
                "uploaded_by": user,
                "source": TransactionSource.STOCK_IN_MANUAL.value,
            })

        self._log_operation("stock_in", "InventoryItem", item.id, {
            "serial_number": serial_number,
            "transaction_id": transaction_id,
        })
        return item

    def item_exists(self, serial_number: str) -> bool:
        return self.repository.serial_exists(serial_number)

    def get_inventory_item(self, serial_number: str) -> InventoryItem:
        item = self.repository.get_by_serial(serial_number)
        if item is None:
            raise EntityNotFoundException("InventoryItem", serial_number)
        return item

    def get_transaction_history(self, serial_number: str) -> List[Transaction]:
        """All transactions for a serial, newest transaction date first."""
        return self.transaction_repository.get_history(serial_number)
