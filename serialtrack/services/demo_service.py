# File: serialtrack/services/demo_service.py

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from serialtrack.core.exceptions import (
    BusinessRuleException,
    DuplicateEntityException,
    EntityNotFoundException,
    ItemNotAvailableException,
    ValidationException,
)
from serialtrack.core.utils import normalize_serial, to_naive_utc, utc_now
from serialtrack.db.models.demo import Demo
from serialtrack.db.models.enums import (
    DemoStatus,
    InventoryStatus,
    TransactionSource,
    TransactionStatus,
    TransactionType,
)
from serialtrack.db.models.transaction import Transaction
from serialtrack.repositories.demo_repository import DemoRepository
from serialtrack.repositories.inventory_repository import InventoryRepository
from serialtrack.repositories.transaction_repository import TransactionRepository
from serialtrack.services.base_service import BaseService

logger = logging.getLogger(__name__)

DEMO_RETURN_DEALER = "Demo Return"
DEFAULT_CLIENT = "N/A"


class DemoService(BaseService[Demo]):
    """
    Service for lending items to customers for demonstration.

    A demo writes one Demo transaction per unit. Returning the demo writes a
    Stock_In for each unit still out and puts the inventory back to Active.
    """

    def __init__(self, session: Session, security_context=None):
        super().__init__(session, repository_class=DemoRepository, security_context=security_context)
        self.transaction_repository = TransactionRepository(session)
        self.inventory_repository = InventoryRepository(session)

    def create_demo(
        self,
        demo_number: str,
        demo_purpose: str,
        customer_dealer: str,
        location: str,
        items: List[Dict[str, Any]],
        customer_client: Optional[str] = None,
        expected_return_date=None,
        remarks: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> Demo:
        """
        Lend items under a new demo number.

        Args:
            demo_number: Unique demo reference
            demo_purpose: Why the items are lent
            customer_dealer: Borrowing dealer
            location: Where the items go
            items: Dicts with a ``serial_number`` key
            customer_client: End client, ``N/A`` when blank
            expected_return_date: Optional due date
            remarks: Optional notes
            created_by: Email of the creating user

        Returns:
            The new demo

        Raises:
            ValidationException: No items, or a serial listed twice
            DuplicateEntityException: Demo number already used
            ItemNotAvailableException: An item is not in stock
        """
        if not items:
            raise ValidationException("No items selected for the demo.")

        demo_number = (demo_number or "").strip()
        if not demo_number:
            raise ValidationException("Demo number is required.", {"demo_number": ["Demo number is required."]})
        if self.repository.get_by_demo_number(demo_number) is not None:
            raise DuplicateEntityException(
                f"Demo number {demo_number} already exists.", details={"demo_number": demo_number}
            )

        seen = set()
        for item in items:
            serial = item["serial_number"]
            if normalize_serial(serial) in seen:
                raise ValidationException(f"Item with serial number {serial} is listed more than once.")
            seen.add(normalize_serial(serial))
            if not self._is_available_for_demo(serial):
                raise ItemNotAvailableException(
                    f"Item with serial number {serial} is not available or already in use.", serial
                )

        client = (customer_client or "").strip() or DEFAULT_CLIENT
        expected_return_date = to_naive_utc(expected_return_date)
        user = created_by or self._current_username()
        now = utc_now()

        with self.transaction():
            next_id = self.transaction_repository.next_transaction_id()
            transaction_ids = []
            for offset, item in enumerate(items):
                serial = item["serial_number"]
                inventory_item = self.inventory_repository.get_by_serial(serial)
                self.transaction_repository.create({
                    "transaction_id": next_id + offset,
                    "serial_number": serial,
                    "type": TransactionType.DEMO.value,
                    "status": TransactionStatus.DEMO.value,
                    "location": location,
                    "customer_dealer": customer_dealer,
                    "customer_client": client,
                    "equipment_category": inventory_item.equipment_category if inventory_item else None,
                    "model": inventory_item.model if inventory_item else None,
                    "size": inventory_item.size if inventory_item else None,
                    "quantity": 1,
                    "date": now,
                    "uploaded_at": now,
                    "uploaded_by": user,
                    "source": TransactionSource.DEMO_MANUAL.value,
                    "demo_purpose": demo_purpose,
                    "expected_return_date": expected_return_date,
                    "remarks": remarks or "",
                })
                transaction_ids.append(next_id + offset)

            self.inventory_repository.set_status(
                [item["serial_number"] for item in items], InventoryStatus.DEMO.value, user
            )

            demo = self.repository.create({
                "demo_number": demo_number,
                "demo_purpose": demo_purpose,
                "status": DemoStatus.ACTIVE.value,
                "customer_dealer": customer_dealer,
                "customer_client": client,
                "location": location,
                "transaction_ids": transaction_ids,
                "total_items": len(items),
                "created_date": now,
                "created_by": user,
                "expected_return_date": expected_return_date,
                "remarks": remarks or "",
            })

        self._log_operation("create", "Demo", demo_number, {"transaction_ids": transaction_ids})
        return demo

    def _is_available_for_demo(self, serial_number: str) -> bool:
        if not self.transaction_repository.has_active_stock_in(serial_number):
            return False
        inventory_item = self.inventory_repository.get_by_serial(serial_number)
        if inventory_item is None:
            return True
        return (inventory_item.status or InventoryStatus.ACTIVE.value) == InventoryStatus.ACTIVE.value

    def return_demo_items(
        self,
        demo_id: int,
        actual_return_date=None,
        returned_by: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Bring every unit of a demo back into stock.

        Raises:
            EntityNotFoundException: Unknown demo
            BusinessRuleException: Demo has no transactions or nothing is still out
        """
        demo = self.get_entity_or_404(demo_id)
        transaction_ids = list(demo.transaction_ids or [])
        if not transaction_ids:
            raise BusinessRuleException("No transaction IDs found for this demo.", rule_name="DEMO_EMPTY")

        outstanding = [
            tx
            for tx in self.transaction_repository.get_by_transaction_ids(transaction_ids)
            if tx.type == TransactionType.DEMO.value and tx.status == TransactionStatus.DEMO.value
        ]
        if not outstanding:
            raise BusinessRuleException("No active demo transactions found.", rule_name="DEMO_NOT_ACTIVE")

        returned_at = to_naive_utc(actual_return_date) or utc_now()
        user = returned_by or self._current_username()
        now = utc_now()

        with self.transaction():
            next_id = self.transaction_repository.next_transaction_id()
            for offset, tx in enumerate(sorted(outstanding, key=lambda t: t.transaction_id)):
                self.transaction_repository.create({
                    "transaction_id": next_id + offset,
                    "serial_number": tx.serial_number,
                    "type": TransactionType.STOCK_IN.value,
                    "status": TransactionStatus.ACTIVE.value,
                    "location": tx.location,
                    "customer_dealer": DEMO_RETURN_DEALER,
                    "customer_client": DEFAULT_CLIENT,
                    "equipment_category": tx.equipment_category,
                    "model": tx.model,
                    "size": tx.size,
                    "quantity": 1,
                    "date": returned_at,
                    "uploaded_at": now,
                    "uploaded_by": user,
                    "source": TransactionSource.DEMO_RETURN.value,
                    "returned_from_demo": demo.demo_number,
                    "original_demo_transaction_id": tx.transaction_id,
                })
                tx.status = TransactionStatus.RETURNED.value

            self.inventory_repository.set_status(
                [tx.serial_number for tx in outstanding], InventoryStatus.ACTIVE.value, user
            )

            demo.status = DemoStatus.RETURNED.value
            demo.actual_return_date = returned_at
            demo.returned_by = user

        self._log_operation("return", "Demo", demo.demo_number, {"returned_items": len(outstanding)})
        return {
            "message": "Demo items returned successfully.",
            "demo_number": demo.demo_number,
            "returned_items": len(outstanding),
        }

    def get_demo_history(self, limit: int = 50, status: Optional[str] = None) -> List[Demo]:
        return self.repository.list_demos(status=status, limit=limit)

    def get_demo(self, demo_id: int) -> Demo:
        return self.get_entity_or_404(demo_id)

    def get_demo_items(self, demo_id: int) -> List[Dict[str, Any]]:
        demo = self.get_entity_or_404(demo_id)
        items = [
            {
                "transaction_id": tx.transaction_id,
                "serial_number": tx.serial_number,
                "category": tx.equipment_category,
                "model": tx.model,
                "size": tx.size,
                "status": tx.status,
                "created_date": tx.date.isoformat() if tx.date else None,
            }
            for tx in self.transaction_repository.get_by_transaction_ids(demo.transaction_ids or [])
            if tx.type == TransactionType.DEMO.value
        ]
        items.sort(key=lambda item: item["serial_number"] or "")
        return items

    def get_active_demo_items_count(self) -> int:
        stmt = select(func.count(Transaction.id)).where(
            Transaction.type == TransactionType.DEMO.value,
            Transaction.status == TransactionStatus.DEMO.value,
        )
        return self.session.execute(stmt).scalar() or 0

    def get_demo_statistics(self) -> Dict[str, int]:
        demos = self.repository.get_all()
        return {
            "total_demos": len(demos),
            "active_demos": sum(1 for d in demos if d.status == DemoStatus.ACTIVE.value),
            "returned_demos": sum(1 for d in demos if d.status == DemoStatus.RETURNED.value),
            "active_demo_items": self.get_active_demo_items_count(),
        }

    def delete_demo(self, demo_id: int) -> Dict[str, Any]:
        """
        Permanently remove a demo and its Demo transactions.

        Units still out on the demo go back to Active inventory.
        """
        demo = self.get_entity_or_404(demo_id)
        demo_number = demo.demo_number
        user = self._current_username()

        with self.transaction():
            demo_transactions = [
                tx
                for tx in self.transaction_repository.get_by_transaction_ids(demo.transaction_ids or [])
                if tx.type == TransactionType.DEMO.value
            ]
            still_out = [tx.serial_number for tx in demo_transactions if tx.status == TransactionStatus.DEMO.value]
            on_demo = [
                item.serial_number
                for item in self.inventory_repository.get_by_serials(still_out)
                if item.status == InventoryStatus.DEMO.value
            ]
            self.inventory_repository.set_status(on_demo, InventoryStatus.ACTIVE.value, user)

            deleted_items = [tx.serial_number for tx in demo_transactions]
            self.transaction_repository.delete_by_transaction_ids(tx.transaction_id for tx in demo_transactions)
            self.session.delete(demo)

        self._log_operation("delete", "Demo", demo_number, {"deleted_items": deleted_items})
        return {
            "message": f'Demo "{demo_number}" deleted successfully. {len(deleted_items)} demo transactions removed.',
            "demo_number": demo_number,
            "deleted_items": deleted_items,
        }
