# File: serialtrack/repositories/inventory_repository.py

from typing import Iterable, List, Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from serialtrack.core.exceptions import EntityNotFoundException
from serialtrack.core.utils import normalize_serial
from serialtrack.db.models.inventory import InventoryItem
from serialtrack.repositories.base_repository import BaseRepository


class InventoryRepository(BaseRepository[InventoryItem]):
    """
    Repository for inventory rows.

    Serial lookups are case-insensitive so that "sn-01" and "SN-01" refer to
    the same physical unit.
    """

    def __init__(self, session: Session):
        super().__init__(session, InventoryItem)

    def get_by_serial(self, serial_number: str) -> Optional[InventoryItem]:
        stmt = select(InventoryItem).where(
            func.lower(InventoryItem.serial_number) == normalize_serial(serial_number)
        )
        return self.session.execute(stmt).scalars().first()

    def get_by_serials(self, serial_numbers: Iterable[str]) -> List[InventoryItem]:
        normalized = sorted({normalize_serial(s) for s in serial_numbers if s})
        if not normalized:
            return []
        stmt = select(InventoryItem).where(
            func.lower(InventoryItem.serial_number).in_(normalized)
        )
        return list(self.session.execute(stmt).scalars().all())

    def serial_exists(self, serial_number: str) -> bool:
        return self.get_by_serial(serial_number) is not None

    def list_page(
        self,
        limit: int,
        cursor_id: Optional[int] = None,
        category: Optional[str] = None,
        size: Optional[str] = None,
    ) -> List[InventoryItem]:
        """
        Fetch one page of inventory ordered by stock-in date, newest first.

        Args:
            limit: Page size
            cursor_id: ID of the last item of the previous page
            category: Exact equipment category filter
            size: Exact size filter

        Returns:
            Up to ``limit`` inventory rows

        Raises:
            EntityNotFoundException: The cursor item no longer exists
        """
        stmt = select(InventoryItem)
        if category:
            stmt = stmt.where(InventoryItem.equipment_category == category)
        if size:
            stmt = stmt.where(InventoryItem.size == size)

        if cursor_id is not None:
            cursor = self.get_by_id(cursor_id)
            if cursor is None:
                raise EntityNotFoundException("InventoryItem", cursor_id)
            stmt = stmt.where(
                or_(
                    InventoryItem.date < cursor.date,
                    and_(InventoryItem.date == cursor.date, InventoryItem.id < cursor.id),
                )
            )

        stmt = stmt.order_by(InventoryItem.date.desc(), InventoryItem.id.desc()).limit(limit)
        return list(self.session.execute(stmt).scalars().all())

    def list_filtered(
        self,
        category: Optional[str] = None,
        location: Optional[str] = None,
    ) -> List[InventoryItem]:
        stmt = select(InventoryItem)
        if category:
            stmt = stmt.where(InventoryItem.equipment_category == category)
        if location:
            stmt = stmt.where(InventoryItem.location == location)
        return list(self.session.execute(stmt).scalars().all())

    def list_stocked_in_between(self, start, end) -> List[InventoryItem]:
        """Items whose stock-in date falls in [start, end)."""
        stmt = select(InventoryItem).where(
            InventoryItem.date >= start, InventoryItem.date < end
        )
        return list(self.session.execute(stmt).scalars().all())

    def list_stocked_in_before(self, end) -> List[InventoryItem]:
        stmt = select(InventoryItem).where(InventoryItem.date < end)
        return list(self.session.execute(stmt).scalars().all())

    def get_earliest_date(self):
        return self.session.execute(select(func.min(InventoryItem.date))).scalar_one_or_none()

    def distinct_values(self, column_name: str) -> List[str]:
        """Sorted distinct non-empty values of one column."""
        column = getattr(InventoryItem, column_name)
        stmt = select(column).where(column.is_not(None)).distinct()
        values = [v for v in self.session.execute(stmt).scalars().all() if v]
        return sorted(values)

    def set_status(self, serial_numbers: Iterable[str], status: str, updated_by: Optional[str] = None) -> int:
        """
        Set ``status`` on every inventory row matching the given serials.

        Returns:
            Number of rows updated
        """
        items = self.get_by_serials(serial_numbers)
        for item in items:
            item.status = status
            if updated_by:
                item.updated_by = updated_by
        self.session.flush()
        return len(items)
