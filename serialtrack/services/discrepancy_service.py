# File: serialtrack/services/discrepancy_service.py
"""
Reconciliation of delivered transactions against inventory.

The number of ``Delivered`` transactions rarely equals the number of
inventory items currently in Delivered state: some deliveries reference
serials that were never stocked in (orphans), and the signed delivery
order workflow can write a second delivered record for an item that was
already delivered. This service measures that gap and lists the records
responsible for it.
"""

import logging
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from serialtrack.core.utils import normalize_serial, sort_desc_nulls_last
from serialtrack.db.models.enums import InventoryStatus, TransactionStatus
from serialtrack.db.models.transaction import Transaction
from serialtrack.repositories.inventory_repository import InventoryRepository
from serialtrack.repositories.transaction_repository import TransactionRepository
from serialtrack.services.base_service import BaseService
from serialtrack.services.item_status import group_by_serial, latest_movement, status_from_transaction

logger = logging.getLogger(__name__)


def _by_date(tx: Transaction):
    return tx.date


class TransactionDiscrepancyAnalyzer(BaseService[Transaction]):
    """Compares delivered transactions with the current state of inventory."""

    def __init__(self, session: Session, security_context=None):
        super().__init__(session, repository_class=TransactionRepository, security_context=security_context)
        self.inventory_repository = InventoryRepository(session)

    def analyze_discrepant_transactions(self) -> Dict[str, Any]:
        """
        Analyze delivered transactions for orphans and duplicate deliveries.

        Returns:
            ``{"success": True, "analysis": {...}}`` or, when the analysis
            fails for any reason, ``{"success": False, "error": "..."}``
        """
        try:
            analysis = self._analyze()
        except Exception as e:
            logger.error(f"Discrepancy analysis failed: {e}", exc_info=True)
            return {
                "success": False,
                "error": f"Failed to analyze discrepant transactions: {e}",
            }
        return {"success": True, "analysis": analysis}

    def _analyze(self) -> Dict[str, Any]:
        inventory_serials = {
            normalize_serial(item.serial_number)
            for item in self.inventory_repository.get_all()
            if normalize_serial(item.serial_number)
        }

        delivered = [
            tx
            for tx in self.repository.list_by_status(TransactionStatus.DELIVERED.value)
            if normalize_serial(tx.serial_number)
        ]
        by_serial = group_by_serial(delivered)

        currently_delivered_serials: List[str] = []
        for serial in sorted(inventory_serials):
            latest = latest_movement(by_serial.get(serial, []), key=_by_date)
            if status_from_transaction(latest) == InventoryStatus.DELIVERED.value:
                currently_delivered_serials.append(serial)

        orphaned = [
            self._describe(tx)
            for tx in delivered
            if normalize_serial(tx.serial_number) not in inventory_serials
        ]

        multiple_delivery: List[Dict[str, Any]] = []
        serials_with_multiple: Dict[str, List[Dict[str, Any]]] = {}
        for serial, transactions in by_serial.items():
            if len(transactions) < 2:
                continue
            serials_with_multiple[serial] = [self._describe(tx) for tx in transactions]
            # every delivery except the most recent one is an extra
            ordered = sort_desc_nulls_last(transactions, _by_date)
            multiple_delivery.extend(self._describe(tx) for tx in ordered[1:])

        logger.info(
            f"Discrepancy analysis: {len(delivered)} delivered transactions, "
            f"{len(currently_delivered_serials)} delivered items, {len(orphaned)} orphaned"
        )

        return {
            "total_delivered_transactions": len(delivered),
            "inventory_items_count": len(inventory_serials),
            "currently_delivered_items": len(currently_delivered_serials),
            "discrepancy": len(delivered) - len(currently_delivered_serials),
            "orphaned_transactions": orphaned,
            "multiple_delivery_transactions": multiple_delivery,
            "serials_with_multiple_deliveries": serials_with_multiple,
            "currently_delivered_serials": currently_delivered_serials,
        }

    @staticmethod
    def _describe(tx: Transaction) -> Dict[str, Any]:
        data = tx.to_dict()
        data["document_id"] = tx.id
        data["original_serial"] = tx.serial_number
        data["normalized_serial"] = normalize_serial(tx.serial_number)
        return data
