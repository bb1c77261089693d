# File: serialtrack/repositories/order_repository.py

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from serialtrack.db.models.order import Order
from serialtrack.repositories.base_repository import BaseRepository


class OrderRepository(BaseRepository[Order]):
    """Repository for stock-out orders."""

    def __init__(self, session: Session):
        super().__init__(session, Order)

    def get_by_order_number(self, order_number: str) -> Optional[Order]:
        stmt = select(Order).where(Order.order_number == order_number)
        return self.session.execute(stmt).scalar_one_or_none()

    def order_number_exists(self, order_number: str) -> bool:
        return self.get_by_order_number(order_number) is not None

    def list_orders(
        self,
        status: Optional[str] = None,
        invoice_status: Optional[str] = None,
        delivery_status: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Order]:
        """
        List orders newest first with optional exact-match filters.

        Args:
            status: Legacy single-axis status
            invoice_status: Invoice axis filter
            delivery_status: Delivery axis filter
            limit: Maximum number of orders

        Returns:
            Matching orders ordered by ``created_date`` descending
        """
        stmt = select(Order)
        if status:
            stmt = stmt.where(Order.status == status)
        if invoice_status:
            stmt = stmt.where(Order.invoice_status == invoice_status)
        if delivery_status:
            stmt = stmt.where(Order.delivery_status == delivery_status)
        stmt = stmt.order_by(Order.created_date.desc(), Order.id.desc())
        if limit:
            stmt = stmt.limit(limit)
        return list(self.session.execute(stmt).scalars().all())

    def list_created_between(self, start, end, customer_dealer: Optional[str] = None) -> List[Order]:
        stmt = select(Order).where(Order.created_date >= start, Order.created_date <= end)
        if customer_dealer:
            stmt = stmt.where(Order.customer_dealer == customer_dealer)
        stmt = stmt.order_by(Order.created_date.desc())
        return list(self.session.execute(stmt).scalars().all())
