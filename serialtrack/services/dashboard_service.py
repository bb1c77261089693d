# File: serialtrack/services/dashboard_service.py

import logging
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from serialtrack.core.utils import normalize_serial, sort_desc_nulls_last, utc_now
from serialtrack.db.models.enums import DeliveryStatus, InventoryStatus, InvoiceStatus, TransactionType
from serialtrack.db.models.inventory import InventoryItem
from serialtrack.db.models.order import Order
from serialtrack.db.models.transaction import Transaction
from serialtrack.services.item_status import count_based_status, group_by_serial

logger = logging.getLogger(__name__)

RECENT_TRANSACTIONS = 10
TOP_CATEGORIES = 5


class DashboardService:
    """Read-only aggregates for the dashboard and key-metrics screens."""

    def __init__(self, session: Session):
        self.session = session

    def _inventory(self) -> List[InventoryItem]:
        return list(self.session.execute(select(InventoryItem)).scalars().all())

    def _transactions(self) -> List[Transaction]:
        return list(self.session.execute(select(Transaction)).scalars().all())

    def _orders(self) -> List[Order]:
        return list(self.session.execute(select(Order)).scalars().all())

    def get_dashboard_analytics(self) -> Dict[str, Any]:
        """
        Build every dashboard figure in one pass over the tables.

        Returns:
            Dict with inventory, transaction and order counters plus
            ``recentTransactions``, ``topCategories``, ``monthlyStats`` and
            ``dataIntegrity``
        """
        inventory = self._inventory()
        transactions = self._transactions()
        by_serial = group_by_serial(transactions)

        analytics: Dict[str, Any] = {}
        analytics.update(self._inventory_stats(inventory, by_serial))
        analytics.update(self._transaction_stats(transactions))
        analytics.update(self._order_stats(self._orders()))
        analytics["recentTransactions"] = self._recent_transactions(transactions)
        analytics["lowStockItems"] = []
        analytics["topCategories"] = self._top_categories(inventory, by_serial)
        analytics["monthlyStats"] = self._monthly_stats(transactions)
        analytics["dataIntegrity"] = self._integrity_report(inventory, transactions, by_serial)
        return analytics

    def _inventory_stats(self, inventory, by_serial) -> Dict[str, int]:
        counts = Counter(
            count_based_status(by_serial.get(normalize_serial(item.serial_number), []))
            for item in inventory
            if item.serial_number
        )
        delivered = counts[InventoryStatus.DELIVERED.value]
        return {
            "totalInventoryItems": len(inventory),
            "activeStock": counts[InventoryStatus.ACTIVE.value],
            # Same figure as deliveredItems; kept for the key-metrics screen
            "stockedOutItems": delivered,
            "reservedItems": counts[InventoryStatus.RESERVED.value],
            "deliveredItems": delivered,
        }

    @staticmethod
    def _transaction_stats(transactions) -> Dict[str, int]:
        types = Counter(tx.type for tx in transactions)
        return {
            "totalTransactions": len(transactions),
            "stockInTransactions": types[TransactionType.STOCK_IN.value],
            "stockOutTransactions": types[TransactionType.STOCK_OUT.value],
        }

    @staticmethod
    def _classify_order(order: Order) -> str:
        """Bucket an order as reserved, invoiced, issued or delivered; '' if none applies."""
        invoice_status = order.invoice_status or order.status
        delivery_status = order.delivery_status or DeliveryStatus.PENDING.value
        if invoice_status == InvoiceStatus.RESERVED.value:
            return "reserved"
        if invoice_status == InvoiceStatus.INVOICED.value and delivery_status == DeliveryStatus.PENDING.value:
            return "invoiced"
        if delivery_status == DeliveryStatus.ISSUED.value:
            return "issued"
        if delivery_status == DeliveryStatus.DELIVERED.value:
            return "delivered"
        return ""

    def _order_stats(self, orders) -> Dict[str, int]:
        buckets = Counter(self._classify_order(order) for order in orders)
        return {
            "totalOrders": len(orders),
            "invoicedOrders": buckets["invoiced"],
            "pendingOrders": buckets["reserved"],
            "issuedOrders": buckets["issued"] + buckets["delivered"],
        }

    def get_order_status_counts(self) -> Dict[str, int]:
        buckets = Counter(self._classify_order(order) for order in self._orders())
        return {key: buckets[key] for key in ("reserved", "invoiced", "issued", "delivered")}

    @staticmethod
    def _recent_transactions(transactions) -> List[Dict[str, Any]]:
        ordered = sorted(transactions, key=lambda tx: tx.transaction_id or 0, reverse=True)
        ordered = sort_desc_nulls_last(ordered, lambda tx: tx.uploaded_at)
        return [tx.to_dict() for tx in ordered[:RECENT_TRANSACTIONS]]

    @staticmethod
    def _top_categories(inventory, by_serial) -> List[Dict[str, Any]]:
        active = Counter()
        for item in inventory:
            if not item.equipment_category or not item.serial_number:
                continue
            status = count_based_status(by_serial.get(normalize_serial(item.serial_number), []))
            if status == InventoryStatus.ACTIVE.value:
                active[item.equipment_category] += 1
        return [
            {"category": category, "active_count": count}
            for category, count in active.most_common(TOP_CATEGORIES)
        ]

    @staticmethod
    def _monthly_stats(transactions) -> Dict[str, int]:
        now = utc_now()
        start = datetime(now.year, now.month, 1)
        end = datetime(now.year + 1, 1, 1) if now.month == 12 else datetime(now.year, now.month + 1, 1)

        stock_in = stock_out = 0
        for tx in transactions:
            if tx.uploaded_at is None or not (start <= tx.uploaded_at < end):
                continue
            if tx.type == TransactionType.STOCK_IN.value:
                stock_in += 1
            elif tx.type == TransactionType.STOCK_OUT.value:
                stock_out += 1
        return {
            "monthlyStockIn": stock_in,
            "monthlyStockOut": stock_out,
            "monthlyTotal": stock_in + stock_out,
        }

    def get_data_integrity_report(self) -> Dict[str, Any]:
        transactions = self._transactions()
        return self._integrity_report(self._inventory(), transactions, group_by_serial(transactions))

    @staticmethod
    def _integrity_report(inventory, transactions, by_serial) -> Dict[str, Any]:
        """
        Cross-check inventory against the transaction log.

        Serial comparison is case-insensitive. Delivered transactions are
        compared with the count-based status of inventory rows.
        """
        inventory_serials = {normalize_serial(i.serial_number) for i in inventory if i.serial_number}
        stock_in_serials = set()
        stock_out_serials = set()
        delivered = []
        for tx in transactions:
            serial = normalize_serial(tx.serial_number)
            if not serial:
                continue
            if tx.type == TransactionType.STOCK_IN.value:
                stock_in_serials.add(serial)
            elif tx.type == TransactionType.STOCK_OUT.value:
                stock_out_serials.add(serial)
            if (tx.status or "").lower() == "delivered":
                delivered.append(serial)

        orphaned_stock_outs = sorted(stock_out_serials - inventory_serials)
        missing_stock_ins = sorted(inventory_serials - stock_in_serials)
        unique_delivered = set(delivered)
        delivered_in_inventory = sum(
            1
            for serial in inventory_serials
            if count_based_status(by_serial.get(serial, [])) == InventoryStatus.DELIVERED.value
        )

        return {
            "totalIssues": len(orphaned_stock_outs) + len(missing_stock_ins),
            "lastChecked": utc_now().isoformat(),
            "orphanedStockOuts": orphaned_stock_outs,
            "missingStockIns": missing_stock_ins,
            "stockOutWithoutStockIn": sorted(stock_out_serials - stock_in_serials),
            "deliveredAnalysis": {
                "totalDeliveredTransactions": len(delivered),
                "uniqueDeliveredSerials": len(unique_delivered),
                "deliveredInInventory": delivered_in_inventory,
                "orphanedDeliveredTransactions": sorted(unique_delivered - inventory_serials),
                "multipleDeliveredCount": len(delivered) - len(unique_delivered),
            },
            "summary": {
                "totalInventoryItems": len(inventory_serials),
                "totalStockInTransactions": len(stock_in_serials),
                "totalStockOutTransactions": len(stock_out_serials),
                "orphanedStockOutsCount": len(orphaned_stock_outs),
                "missingStockInsCount": len(missing_stock_ins),
                "deliveredDiscrepancy": len(delivered) - delivered_in_inventory,
            },
        }
