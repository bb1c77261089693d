# File: serialtrack/services/monthly_inventory_service.py

import calendar
import logging
from collections import Counter
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from serialtrack.core.exceptions import ValidationException
from serialtrack.core.utils import normalize_serial, utc_now
from serialtrack.db.models.inventory import InventoryItem
from serialtrack.db.models.transaction import Transaction
from serialtrack.repositories.inventory_repository import InventoryRepository
from serialtrack.repositories.transaction_repository import TransactionRepository

logger = logging.getLogger(__name__)

OTHERS = "others"
OTHERS_LABEL = "Others"
UNKNOWN = "Unknown"


def _month_bounds(year: int, month: int):
    start = datetime(year, month, 1)
    end = datetime(year + 1, 1, 1) if month == 12 else datetime(year, month + 1, 1)
    return start, end


def _is_others(category: Optional[str]) -> bool:
    return (category or "").lower() == OTHERS


def _subtract(stock_in: Dict[str, int], stock_out: Dict[str, int]) -> Dict[str, int]:
    return {key: stock_in.get(key, 0) - stock_out.get(key, 0) for key in set(stock_in) | set(stock_out)}


class MonthlyInventoryService:
    """
    Monthly stock movement by size and category.

    Stock-in is counted from inventory rows by their stock-in date; stock-out
    from Stock_Out transactions that left Active status. Units in the
    ``others`` category have no meaningful size and are left out of the
    size breakdown, but are counted in the totals under ``Others``.
    """

    def __init__(self, session: Session):
        self.session = session
        self.inventory_repository = InventoryRepository(session)
        self.transaction_repository = TransactionRepository(session)

    def get_monthly_activity(self, year: int, month: int) -> Dict[str, Any]:
        if not 1 <= month <= 12:
            raise ValidationException("Month must be between 1 and 12.", {"month": ["Must be between 1 and 12"]})

        start, end = _month_bounds(year, month)
        stocked_in = self.inventory_repository.list_stocked_in_between(start, end)
        stocked_out = self.transaction_repository.list_stock_out_between(start, end)
        sizes = self._size_lookup(tx.serial_number for tx in stocked_out)

        stock_in_by_size = self._stock_in_by_size(stocked_in, include_others=False)
        stock_out_by_size = self._stock_out_by_size(stocked_out, sizes, include_others=False)
        all_stock_in = self._stock_in_by_size(stocked_in, include_others=True)
        all_stock_out = self._stock_out_by_size(stocked_out, sizes, include_others=True)

        remaining = self._cumulative_remaining(end)

        size_keys = sorted(set(stock_in_by_size) | set(stock_out_by_size) | set(remaining))
        size_breakdown = [
            {
                "size": size,
                "stockIn": stock_in_by_size.get(size, 0),
                "stockOut": stock_out_by_size.get(size, 0),
                "remaining": remaining.get(size, 0),
            }
            for size in size_keys
        ]

        logger.debug(f"Monthly activity {year}-{month:02d}: {len(stocked_in)} in, {len(stocked_out)} out")
        return {
            "year": year,
            "month": month,
            "monthName": calendar.month_name[month],
            "stockIn": stock_in_by_size,
            "stockOut": stock_out_by_size,
            "remaining": remaining,
            "sizeBreakdown": size_breakdown,
            "categoryBreakdown": self._category_breakdown(stocked_in, stocked_out, end),
            "summary": {
                "totalStockIn": sum(all_stock_in.values()),
                "totalStockOut": sum(all_stock_out.values()),
                "totalRemaining": sum(remaining.values()),
            },
        }

    def _size_lookup(self, serial_numbers: Iterable[str]) -> Dict[str, Optional[str]]:
        """
        Map serials to the size of their inventory row.

        ``others`` items map to None; serials without an inventory row are
        absent and count as ``Unknown``.
        """
        lookup = {}
        for item in self.inventory_repository.get_by_serials(serial_numbers):
            key = normalize_serial(item.serial_number)
            lookup[key] = None if _is_others(item.equipment_category) else (item.size or UNKNOWN)
        return lookup

    @staticmethod
    def _stock_in_by_size(items: List[InventoryItem], include_others: bool) -> Dict[str, int]:
        counts = Counter()
        for item in items:
            if _is_others(item.equipment_category):
                if include_others:
                    counts[OTHERS_LABEL] += 1
                continue
            counts[item.size or UNKNOWN] += 1
        return dict(counts)

    @staticmethod
    def _stock_out_by_size(
        transactions: List[Transaction],
        sizes: Dict[str, Optional[str]],
        include_others: bool,
    ) -> Dict[str, int]:
        counts = Counter()
        for tx in transactions:
            quantity = tx.quantity or 1
            if include_others and _is_others(tx.equipment_category):
                counts[OTHERS_LABEL] += quantity
                continue
            key = normalize_serial(tx.serial_number)
            if not key:
                continue
            size = sizes.get(key, UNKNOWN)
            if size is None:
                continue
            counts[size] += quantity
        return dict(counts)

    def _cumulative_remaining(self, end: datetime) -> Dict[str, int]:
        """Stock remaining by size from the first stock-in up to ``end``."""
        stocked_in = self.inventory_repository.list_stocked_in_before(end)
        stocked_out = self.transaction_repository.list_stock_out_before(end)
        sizes = self._size_lookup(tx.serial_number for tx in stocked_out)
        return _subtract(
            self._stock_in_by_size(stocked_in, include_others=False),
            self._stock_out_by_size(stocked_out, sizes, include_others=False),
        )

    def _category_breakdown(self, stocked_in, stocked_out, end: datetime) -> List[Dict[str, Any]]:
        stock_in = Counter(item.equipment_category or UNKNOWN for item in stocked_in)
        stock_out = Counter()
        for tx in stocked_out:
            stock_out[tx.equipment_category or UNKNOWN] += tx.quantity or 1

        cumulative_in = Counter(
            item.equipment_category or UNKNOWN for item in self.inventory_repository.list_stocked_in_before(end)
        )
        cumulative_out = Counter()
        for tx in self.transaction_repository.list_stock_out_before(end):
            cumulative_out[tx.equipment_category or UNKNOWN] += tx.quantity or 1
        remaining = _subtract(cumulative_in, cumulative_out)

        return [
            {
                "category": category,
                "stockIn": stock_in.get(category, 0),
                "stockOut": stock_out.get(category, 0),
                "remaining": remaining.get(category, 0),
            }
            for category in sorted(set(stock_in) | set(stock_out) | set(remaining))
        ]

    def get_available_months(self) -> List[Dict[str, Any]]:
        """Every month from the earliest stock-in to the current month, newest first."""
        now = utc_now()
        earliest = self.inventory_repository.get_earliest_date() or now
        year, month = earliest.year, earliest.month

        months = []
        while (year, month) <= (now.year, now.month):
            name = calendar.month_name[month]
            months.append({
                "year": year,
                "month": month,
                "monthName": name,
                "displayName": f"{name} {year}",
            })
            year, month = (year + 1, 1) if month == 12 else (year, month + 1)
        months.reverse()
        return months
