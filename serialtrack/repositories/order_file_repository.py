# File: serialtrack/repositories/order_file_repository.py

from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from serialtrack.db.models.order_file import OrderFile
from serialtrack.repositories.base_repository import BaseRepository


class OrderFileRepository(BaseRepository[OrderFile]):
    """Repository for order document metadata and its version history."""

    def __init__(self, session: Session):
        super().__init__(session, OrderFile)

    def get_by_file_id(self, file_id: str) -> Optional[OrderFile]:
        stmt = select(OrderFile).where(OrderFile.file_id == file_id)
        return self.session.execute(stmt).scalar_one_or_none()

    def list_for_order(self, order_number: str) -> List[OrderFile]:
        stmt = (
            select(OrderFile)
            .where(OrderFile.order_number == order_number)
            .order_by(OrderFile.created_at.desc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def list_history(self, order_number: str, file_type: Optional[str] = None) -> List[OrderFile]:
        """All versions for an order, grouped by type, newest version first."""
        stmt = select(OrderFile).where(OrderFile.order_number == order_number)
        if file_type:
            stmt = stmt.where(OrderFile.file_type == file_type)
        stmt = stmt.order_by(OrderFile.file_type, OrderFile.version.desc())
        return list(self.session.execute(stmt).scalars().all())

    def list_newest_first(self) -> List[OrderFile]:
        stmt = select(OrderFile).order_by(OrderFile.created_at.desc(), OrderFile.id.desc())
        return list(self.session.execute(stmt).scalars().all())

    def get_active(self, order_number: str, file_type: str) -> Optional[OrderFile]:
        stmt = (
            select(OrderFile)
            .where(
                OrderFile.order_number == order_number,
                OrderFile.file_type == file_type,
                OrderFile.is_active.is_(True),
            )
            .order_by(OrderFile.version.desc())
        )
        return self.session.execute(stmt).scalars().first()

    def next_version(self, order_number: str, file_type: str) -> int:
        stmt = select(func.max(OrderFile.version)).where(
            OrderFile.order_number == order_number,
            OrderFile.file_type == file_type,
        )
        return (self.session.execute(stmt).scalar() or 0) + 1

    def deactivate_versions(self, order_number: str, file_type: str, exclude_file_id: Optional[str] = None) -> int:
        """
        Mark every active version of a document inactive.

        Args:
            order_number: Order the documents belong to
            file_type: Document type
            exclude_file_id: Version to leave untouched

        Returns:
            Number of rows deactivated
        """
        stmt = select(OrderFile).where(
            OrderFile.order_number == order_number,
            OrderFile.file_type == file_type,
            OrderFile.is_active.is_(True),
        )
        if exclude_file_id:
            stmt = stmt.where(OrderFile.file_id != exclude_file_id)
        previous = list(self.session.execute(stmt).scalars().all())
        for order_file in previous:
            order_file.is_active = False
        self.session.flush()
        return len(previous)

    def count_by_type(self, active_only: bool = False) -> dict:
        stmt = select(OrderFile.file_type, func.count(OrderFile.id)).group_by(OrderFile.file_type)
        if active_only:
            stmt = stmt.where(OrderFile.is_active.is_(True))
        return {file_type: count for file_type, count in self.session.execute(stmt).all()}
