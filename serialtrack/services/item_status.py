# File: serialtrack/services/item_status.py
"""
Rules for deriving an item's current state from its transactions.

Inventory rows carry a ``status`` column, but rows imported in bulk were
never kept in sync with later movements, so screens and reports re-derive
the state from the transaction log. Two rules exist:

* latest-movement: look only at the most recent transaction. Used by the
  inventory list and the discrepancy analyzer.
* count-based: compare how many Stock_In and Stock_Out records exist.
  Used by dashboard statistics and the integrity report.
"""

from collections import defaultdict
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from serialtrack.core.utils import normalize_serial, sort_desc_nulls_last
from serialtrack.db.models.enums import InventoryStatus, TransactionStatus, TransactionType
from serialtrack.db.models.transaction import Transaction

UNKNOWN_LOCATION = "Unknown"


def group_by_serial(transactions: Iterable[Transaction]) -> Dict[str, List[Transaction]]:
    """Group transactions by lowercased serial, skipping blank serials."""
    grouped: Dict[str, List[Transaction]] = defaultdict(list)
    for tx in transactions:
        key = normalize_serial(tx.serial_number)
        if key:
            grouped[key].append(tx)
    return dict(grouped)


def status_from_transaction(tx: Optional[Transaction]) -> str:
    """
    Map a single most-recent transaction to an inventory status.

    Only a Stock_Out moves an item out of Active: a reserved Stock_Out
    means Reserved, a delivered one means Delivered. Everything else,
    including a missing transaction, is Active.
    """
    if tx is None or tx.type != TransactionType.STOCK_OUT.value:
        return InventoryStatus.ACTIVE.value
    status = (tx.status or "").lower()
    if status == TransactionStatus.RESERVED.value.lower():
        return InventoryStatus.RESERVED.value
    if status == TransactionStatus.DELIVERED.value.lower():
        return InventoryStatus.DELIVERED.value
    return InventoryStatus.ACTIVE.value


def _uploaded(tx: Transaction):
    if tx.uploaded_at is None:
        return None
    return tx.uploaded_at, tx.transaction_id or 0


def latest_movement(
    transactions: Iterable[Transaction],
    key: Callable[[Transaction], Optional[Any]] = _uploaded,
) -> Optional[Transaction]:
    """
    Most recent transaction by ``key``; undated records sort last.

    The default key breaks timestamp ties on ``transaction_id``.
    """
    ordered = sort_desc_nulls_last(transactions, key)
    return ordered[0] if ordered else None


def resolve_current_state(
    transactions: Iterable[Transaction],
) -> Tuple[str, str, Optional[datetime]]:
    """
    Derive (status, location, last_activity) from all of an item's transactions.

    Transactions are ordered by ``uploaded_at`` descending.

    Returns:
        Tuple of status, location (``Unknown`` when missing) and the upload
        time of the latest transaction
    """
    latest = latest_movement(transactions)
    if latest is None:
        return InventoryStatus.ACTIVE.value, UNKNOWN_LOCATION, None
    return status_from_transaction(latest), latest.location or UNKNOWN_LOCATION, latest.uploaded_at


def count_based_status(transactions: Iterable[Transaction]) -> str:
    """
    Derive status by counting Stock_In and Stock_Out records.

    Rules, in order:
        - one Stock_In and at least one Stock_Out: Delivered if any
          Stock_Out is delivered, otherwise Reserved
        - Stock_Out without any Stock_In: Reserved
        - more Stock_Outs than Stock_Ins: Reserved
        - otherwise Active
    """
    stock_ins = 0
    stock_outs = []
    for tx in transactions:
        if tx.type == TransactionType.STOCK_IN.value:
            stock_ins += 1
        elif tx.type == TransactionType.STOCK_OUT.value:
            stock_outs.append(tx)

    if stock_ins == 1 and stock_outs:
        delivered = any(
            (tx.status or "").lower() == TransactionStatus.DELIVERED.value.lower()
            for tx in stock_outs
        )
        return InventoryStatus.DELIVERED.value if delivered else InventoryStatus.RESERVED.value
    if stock_outs and stock_ins == 0:
        return InventoryStatus.RESERVED.value
    if len(stock_outs) > stock_ins:
        return InventoryStatus.RESERVED.value
    return InventoryStatus.ACTIVE.value
