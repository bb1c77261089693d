from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional


def utc_now() -> datetime:
    """
    Current UTC time as a naive datetime.

    SQLite drops tzinfo on the way in and out, so every timestamp the
    application writes or compares is kept naive UTC.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC; naive values pass through."""
    if value is None:
        return None
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def normalize_serial(value: Any) -> str:
    """
    Normalize a serial number for case-insensitive matching.

    Args:
        value: Raw serial number (may be None)

    Returns:
        Lowercased, stripped serial or an empty string
    """
    if value is None:
        return ""
    return str(value).strip().lower()


def format_timestamp(value: Optional[datetime], fmt: str = "%Y-%m-%d %H:%M:%S") -> str:
    """Format a datetime for reports, returning an empty string for None."""
    if value is None:
        return ""
    return value.strftime(fmt)


def iso_or_none(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def sort_desc_nulls_last(items: Iterable[Any], key) -> List[Any]:
    """
    Sort items by ``key`` descending with ``None`` keys at the end.

    Args:
        items: Items to sort
        key: Callable returning a comparable value or None

    Returns:
        New sorted list
    """
    items = list(items)
    with_value = [i for i in items if key(i) is not None]
    without_value = [i for i in items if key(i) is None]
    with_value.sort(key=key, reverse=True)
    return with_value + without_value


def customer_label(dealer: Optional[str], client: Optional[str]) -> str:
    """Build the "dealer → client" label used across reports and history."""
    dealer = dealer or ""
    if client and client != "N/A":
        return f"{dealer} → {client}" if dealer else client
    return dealer
