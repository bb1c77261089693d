# File: serialtrack/repositories/transaction_repository.py

import logging
from typing import Iterable, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from serialtrack.core.utils import normalize_serial
from serialtrack.db.models.enums import TransactionStatus, TransactionType
from serialtrack.db.models.transaction import Transaction
from serialtrack.repositories.base_repository import BaseRepository

logger = logging.getLogger(__name__)


class TransactionRepository(BaseRepository[Transaction]):
    """
    Repository for movement transactions.

    ``transaction_id`` is a business key distinct from the surrogate ``id``;
    new values are allocated as ``max + 1`` inside the caller's unit of work.
    """

    def __init__(self, session: Session):
        super().__init__(session, Transaction)

    def next_transaction_id(self) -> int:
        current = self.session.execute(select(func.max(Transaction.transaction_id))).scalar()
        return (current or 0) + 1

    def next_entry_no(self) -> int:
        """Next Stock_Out entry number, shared by all lines of one order."""
        stmt = select(func.max(Transaction.entry_no)).where(
            Transaction.type == TransactionType.STOCK_OUT.value
        )
        current = self.session.execute(stmt).scalar()
        return (current or 0) + 1

    def get_by_transaction_id(self, transaction_id: int) -> Optional[Transaction]:
        stmt = select(Transaction).where(Transaction.transaction_id == transaction_id)
        return self.session.execute(stmt).scalar_one_or_none()

    def get_by_transaction_ids(self, transaction_ids: Iterable[int]) -> List[Transaction]:
        ids = [int(t) for t in transaction_ids if t is not None]
        if not ids:
            return []
        stmt = select(Transaction).where(Transaction.transaction_id.in_(ids))
        return list(self.session.execute(stmt).scalars().all())

    def get_for_serial(self, serial_number: str) -> List[Transaction]:
        stmt = select(Transaction).where(
            func.lower(Transaction.serial_number) == normalize_serial(serial_number)
        )
        return list(self.session.execute(stmt).scalars().all())

    def get_for_serials(self, serial_numbers: Iterable[str]) -> List[Transaction]:
        normalized = sorted({normalize_serial(s) for s in serial_numbers if s})
        if not normalized:
            return []
        stmt = select(Transaction).where(
            func.lower(Transaction.serial_number).in_(normalized)
        )
        return list(self.session.execute(stmt).scalars().all())

    def get_history(self, serial_number: str) -> List[Transaction]:
        """Transactions for a serial ordered by transaction date, newest first."""
        stmt = (
            select(Transaction)
            .where(func.lower(Transaction.serial_number) == normalize_serial(serial_number))
            .order_by(Transaction.date.desc(), Transaction.transaction_id.desc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def list_by_status(self, status: str) -> List[Transaction]:
        stmt = select(Transaction).where(Transaction.status == status)
        return list(self.session.execute(stmt).scalars().all())

    def find_stock_in(self, serial_number: str, status: Optional[str] = None) -> Optional[Transaction]:
        """First Stock_In transaction for a serial, optionally restricted by status."""
        stmt = select(Transaction).where(
            func.lower(Transaction.serial_number) == normalize_serial(serial_number),
            Transaction.type == TransactionType.STOCK_IN.value,
        )
        if status:
            stmt = stmt.where(Transaction.status == status)
        stmt = stmt.order_by(Transaction.transaction_id.asc())
        return self.session.execute(stmt).scalars().first()

    def has_active_stock_in(self, serial_number: str) -> bool:
        return self.find_stock_in(serial_number, TransactionStatus.ACTIVE.value) is not None

    def latest_stock_out(self, serial_number: str) -> Optional[Transaction]:
        stmt = (
            select(Transaction)
            .where(
                func.lower(Transaction.serial_number) == normalize_serial(serial_number),
                Transaction.type == TransactionType.STOCK_OUT.value,
            )
            .order_by(Transaction.uploaded_at.desc(), Transaction.transaction_id.desc())
        )
        return self.session.execute(stmt).scalars().first()

    def list_stock_out_between(self, start, end) -> List[Transaction]:
        """Stock_Out transactions dated in [start, end) that left Active status."""
        stmt = select(Transaction).where(
            Transaction.type == TransactionType.STOCK_OUT.value,
            Transaction.status != TransactionStatus.ACTIVE.value,
            Transaction.date >= start,
            Transaction.date < end,
        )
        return list(self.session.execute(stmt).scalars().all())

    def list_stock_out_before(self, end) -> List[Transaction]:
        stmt = select(Transaction).where(
            Transaction.type == TransactionType.STOCK_OUT.value,
            Transaction.status != TransactionStatus.ACTIVE.value,
            Transaction.date < end,
        )
        return list(self.session.execute(stmt).scalars().all())

    def clone(self, source: Transaction, /, **overrides) -> Transaction:
        """
        Create a new transaction copying every business column of ``source``.

        ``transaction_id`` must be supplied in ``overrides``; surrogate keys
        are never copied.
        """
        data = {
            column.name: getattr(source, column.name)
            for column in Transaction.__table__.columns
            if column.name not in ("id", "uuid", "transaction_id")
        }
        data.update(overrides)
        return self.create(data)

    def delete_for_serial(self, serial_number: str) -> int:
        stmt = delete(Transaction).where(
            func.lower(Transaction.serial_number) == normalize_serial(serial_number)
        )
        result = self.session.execute(stmt)
        logger.debug(f"Deleted {result.rowcount} transactions for serial {serial_number}")
        return result.rowcount

    def delete_by_transaction_ids(self, transaction_ids: Iterable[int]) -> int:
        ids = [int(t) for t in transaction_ids if t is not None]
        if not ids:
            return 0
        result = self.session.execute(
            delete(Transaction).where(Transaction.transaction_id.in_(ids))
        )
        return result.rowcount
