# File: serialtrack/services/category_service.py

import logging
import re
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from serialtrack.db.models.enums import InventoryStatus
from serialtrack.db.models.inventory import InventoryItem

logger = logging.getLogger(__name__)

FLAT_PANEL_CATEGORY = "Interactive Flat Panel"
FLAT_PANEL_SIZES = re.compile(r"(55|65|75|86)")
DIGITS = re.compile(r"(\d+)")
LEADING_DIGITS = re.compile(r"^(\d+)")
INCH_SIZE = re.compile(r'(\d+)\s*(?:inch|")')


def extract_size(item: InventoryItem) -> Optional[str]:
    """
    Best guess at a panel's screen size in inches.

    Tried in order: digits in ``size``, leading digits of ``model``, a
    standard panel size inside the serial number, then any ``N inch`` or
    ``N"`` in the model, batch or remark.
    """
    if item.size and item.size != "Unknown":
        match = DIGITS.search(item.size)
        if match:
            return match.group(1)

    if item.model:
        match = LEADING_DIGITS.match(item.model)
        if match:
            return match.group(1)

    if item.serial_number:
        match = FLAT_PANEL_SIZES.search(item.serial_number)
        if match:
            return match.group(1)

    for value in (item.model, item.batch, item.remark):
        if value and ("inch" in value or '"' in value):
            match = INCH_SIZE.search(value)
            if match:
                return match.group(1)
    return None


class _ModelCounter:
    """Counts models case-insensitively, reporting the last spelling seen."""

    def __init__(self):
        self.counts: Dict[str, int] = {}
        self.spelling: Dict[str, str] = {}

    def add(self, model: str) -> None:
        key = model.lower()
        self.counts[key] = self.counts.get(key, 0) + 1
        self.spelling[key] = model

    def total(self) -> int:
        return sum(self.counts.values())

    def ranked(self) -> List[Dict[str, Any]]:
        ordered = sorted(self.counts.items(), key=lambda kv: kv[1], reverse=True)
        return [{"model": self.spelling[key], "active_count": count} for key, count in ordered]


class CategoryService:
    """Per-category stock breakdown for the category details screen."""

    def __init__(self, session: Session):
        self.session = session

    def list_categories(self) -> List[str]:
        stmt = (
            select(InventoryItem.equipment_category)
            .where(InventoryItem.equipment_category.is_not(None))
            .distinct()
            .order_by(InventoryItem.equipment_category)
        )
        return list(self.session.execute(stmt).scalars().all())

    def get_category_details(self, category_name: str) -> Dict[str, Any]:
        """
        Status counts and active stock per model for one category.

        Counts use the status stored on each inventory row. Interactive
        flat panels are additionally broken down by screen size, smallest
        first.

        Args:
            category_name: Exact equipment category

        Returns:
            Dict with ``total_items``, ``active_items``, ``reserved_items``,
            ``delivered_items``, ``models`` and ``size_breakdown``
        """
        items = self.session.execute(
            select(InventoryItem).where(InventoryItem.equipment_category == category_name)
        ).scalars().all()

        status_counts = {
            InventoryStatus.ACTIVE.value: 0,
            InventoryStatus.RESERVED.value: 0,
            InventoryStatus.DELIVERED.value: 0,
        }
        models = _ModelCounter()
        by_size: Dict[str, _ModelCounter] = {}
        is_flat_panel = category_name == FLAT_PANEL_CATEGORY

        for item in items:
            item_status = item.status or InventoryStatus.ACTIVE.value
            if item_status in status_counts:
                status_counts[item_status] += 1
            if item_status != InventoryStatus.ACTIVE.value:
                continue

            model = item.model or "Unknown"
            models.add(model)
            if is_flat_panel:
                size = extract_size(item)
                if size is not None:
                    by_size.setdefault(size, _ModelCounter()).add(model)

        size_breakdown = [
            {"size": size, "total_active": counter.total(), "models": counter.ranked()}
            for size, counter in sorted(by_size.items(), key=lambda kv: int(kv[0]))
        ]
        logger.debug(f"Category {category_name}: {len(items)} items, {len(size_breakdown)} sizes")

        return {
            "success": True,
            "category_name": category_name,
            "total_items": len(items),
            "active_items": status_counts[InventoryStatus.ACTIVE.value],
            "reserved_items": status_counts[InventoryStatus.RESERVED.value],
            "delivered_items": status_counts[InventoryStatus.DELIVERED.value],
            "models": models.ranked(),
            "size_breakdown": size_breakdown,
        }
