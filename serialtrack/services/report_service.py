# File: serialtrack/services/report_service.py
"""
Report generation for SerialTrack.

Inventory, demo tracking and sales reports are built in memory from the
tables and returned as plain dictionaries; inventory and demo tracking
reports can also be rendered as CSV.
"""

import csv
import io
import logging
from collections import Counter, defaultdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from serialtrack.core.config import settings
from serialtrack.core.utils import (
    customer_label,
    format_timestamp,
    iso_or_none,
    normalize_serial,
    sort_desc_nulls_last,
    to_naive_utc,
    utc_now,
)
from serialtrack.db.models.demo import Demo
from serialtrack.db.models.enums import DemoStatus, InventoryStatus, InvoiceStatus, TransactionStatus, TransactionType
from serialtrack.db.models.order import Order
from serialtrack.db.models.transaction import Transaction
from serialtrack.repositories.inventory_repository import InventoryRepository
from serialtrack.repositories.order_repository import OrderRepository
from serialtrack.repositories.transaction_repository import TransactionRepository
from serialtrack.services.item_status import UNKNOWN_LOCATION, group_by_serial

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"
SALES_REPORT_START = datetime(2020, 1, 1)
TOP_N = 10
HISTORY_PREVIEW = 5

INVENTORY_CSV_HEADER = [
    "Serial Number",
    "Equipment Category",
    "Model",
    "Size",
    "Current Status",
    "Current Location",
    "Last Activity",
    "Transaction Count",
]

DEMO_CSV_HEADER = [
    "Serial Number",
    "Equipment Category",
    "Model",
    "Customer (Dealer)",
    "Customer (Client)",
    "Demo Number",
    "Date Sent Out",
    "Days Out",
    "Status",
    "Location",
]


def normalize_category(category: str) -> str:
    """Title-case a category, treating underscores and hyphens as spaces."""
    if category == UNKNOWN:
        return category
    words = category.lower().replace("_", " ").replace("-", " ").split()
    return " ".join(word[0].upper() + word[1:] for word in words)


def _percentage(part: int, total: int) -> str:
    return f"{part / total * 100:.1f}" if total else "0.0"


def _to_csv(header: List[str], rows: List[List[Any]]) -> bytes:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(header)
    writer.writerows(rows)
    return output.getvalue().encode("utf-8")


class ReportService:
    """
    Service for generating inventory, demo and sales reports.
    """

    def __init__(self, session: Session):
        self.session = session
        self.inventory_repository = InventoryRepository(session)
        self.transaction_repository = TransactionRepository(session)
        self.order_repository = OrderRepository(session)

    # --- Inventory report ---

    def get_inventory_report(
        self,
        category: Optional[str] = None,
        status: Optional[str] = None,
        location: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Inventory rows with their current status and location.

        The stored inventory status is reported as-is. A missing or Unknown
        location is filled from the item's most recent transaction.

        Args:
            category: Exact equipment category
            status: Exact current status
            location: Exact current location

        Returns:
            Dict with ``summary``, ``inventory_items`` and category, status
            and location breakdowns
        """
        inventory = self.inventory_repository.list_filtered(category=category)
        by_serial = group_by_serial(self.transaction_repository.get_all())

        items = []
        category_stats: Dict[str, Dict[str, int]] = defaultdict(lambda: {"total": 0, "active": 0, "stocked_out": 0})
        status_stats: Counter = Counter()
        location_stats: Counter = Counter()

        for item in inventory:
            if not item.serial_number:
                continue
            history = sort_desc_nulls_last(
                by_serial.get(normalize_serial(item.serial_number), []), lambda tx: tx.date
            )
            current_status = item.status or InventoryStatus.ACTIVE.value
            current_location = item.location
            last_activity = None
            if history:
                latest = history[0]
                if (not current_location or current_location == UNKNOWN_LOCATION) and latest.location \
                        and latest.location != UNKNOWN_LOCATION:
                    current_location = latest.location
                last_activity = latest.date

            if status and current_status != status:
                continue
            if location and current_location != location:
                continue

            current_location = current_location or UNKNOWN_LOCATION
            row = item.to_dict()
            row.update({
                "current_status": current_status,
                "current_location": current_location,
                "last_activity": iso_or_none(last_activity),
                "transaction_count": len(history),
                "transaction_history": [tx.to_dict() for tx in history[:HISTORY_PREVIEW]],
            })
            items.append(row)

            item_category = item.equipment_category or UNKNOWN
            if item_category == UNKNOWN and history and history[0].equipment_category:
                item_category = history[0].equipment_category
            stats = category_stats[item_category]
            stats["total"] += 1
            if current_status == InventoryStatus.ACTIVE.value:
                stats["active"] += 1
            else:
                stats["stocked_out"] += 1
            status_stats[current_status] += 1
            location_stats[current_location] += 1

        return {
            "summary": {
                "total_items": len(items),
                "active_items": status_stats[InventoryStatus.ACTIVE.value],
                "reserved_items": status_stats[InventoryStatus.RESERVED.value],
                "delivered_items": status_stats[InventoryStatus.DELIVERED.value],
                "demo_items": status_stats[InventoryStatus.DEMO.value],
                "returned_items": status_stats[InventoryStatus.RETURNED.value],
                "categories_count": len(category_stats),
                "locations_count": len(location_stats),
            },
            "inventory_items": items,
            "category_breakdown": [
                {
                    "category": name,
                    "total": stats["total"],
                    "active": stats["active"],
                    "stocked_out": stats["stocked_out"],
                    "active_percentage": _percentage(stats["active"], stats["total"]),
                }
                for name, stats in category_stats.items()
            ],
            "status_breakdown": [{"status": k, "count": v} for k, v in status_stats.items()],
            "location_breakdown": [{"location": k, "count": v} for k, v in location_stats.items()],
        }

    def export_inventory_csv(self, report: Dict[str, Any]) -> bytes:
        rows = []
        for item in report.get("inventory_items", []):
            last_activity = item.get("last_activity")
            rows.append([
                item.get("serial_number") or "",
                item.get("equipment_category") or "",
                item.get("model") or "",
                item.get("size") or "",
                item.get("current_status") or "",
                item.get("current_location") or "",
                format_timestamp(datetime.fromisoformat(last_activity)) if last_activity else "",
                item.get("transaction_count") or 0,
            ])
        return _to_csv(INVENTORY_CSV_HEADER, rows)

    # --- Demo tracking ---

    def get_demo_tracking_report(
        self,
        customer: Optional[str] = None,
        category: Optional[str] = None,
        overdue_only: bool = False,
        overdue_threshold_days: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Items currently out on active demos, grouped by customer.

        An item is overdue once it has been out longer than
        ``overdue_threshold_days``. Groups are ordered by their oldest item.
        """
        if overdue_threshold_days is None:
            overdue_threshold_days = settings.DEMO_OVERDUE_THRESHOLD_DAYS
        now = utc_now()

        demos = self.session.execute(
            select(Demo).where(Demo.status == DemoStatus.ACTIVE.value)
        ).scalars().all()

        groups: Dict[str, Dict[str, Any]] = {}
        category_stats: Dict[str, Dict[str, int]] = defaultdict(lambda: {"items": 0, "overdue": 0})
        total_items = overdue_count = total_days = 0

        for demo in demos:
            dealer = demo.customer_dealer or UNKNOWN
            client = demo.customer_client or ""
            if customer and dealer != customer:
                continue

            transactions = [
                tx for tx in self.transaction_repository.get_by_transaction_ids(demo.transaction_ids or [])
                if tx.status == TransactionStatus.DEMO.value
            ]
            inventory = {
                normalize_serial(i.serial_number): i
                for i in self.inventory_repository.get_by_serials(tx.serial_number for tx in transactions)
            }

            demo_items = []
            for tx in sorted(transactions, key=lambda t: t.transaction_id):
                inventory_item = inventory.get(normalize_serial(tx.serial_number))
                item_category = tx.equipment_category or (inventory_item.equipment_category if inventory_item else None) or UNKNOWN
                model = tx.model or (inventory_item.model if inventory_item else None) or UNKNOWN
                if category and item_category != category:
                    continue

                sent = tx.date or demo.created_date or now
                days_out = (now - sent).days
                is_overdue = days_out > overdue_threshold_days
                if overdue_only and not is_overdue:
                    continue

                total_items += 1
                total_days += days_out
                category_stats[item_category]["items"] += 1
                if is_overdue:
                    overdue_count += 1
                    category_stats[item_category]["overdue"] += 1

                demo_items.append({
                    "serial_number": tx.serial_number or UNKNOWN,
                    "equipment_category": item_category,
                    "model": model,
                    "demo_number": demo.demo_number,
                    "customer_dealer": dealer,
                    "customer_client": client,
                    "date_sent": sent.isoformat(),
                    "days_out": days_out,
                    "is_overdue": is_overdue,
                    "location": tx.location or "Demo",
                })

            if not demo_items:
                continue

            key = customer_label(dealer, client)
            group = groups.setdefault(key, {
                "group_key": key,
                "customer_dealer": dealer,
                "customer_client": client,
                "items": [],
                "total_items": 0,
                "overdue_items": 0,
                "oldest_days": 0,
                "demo_numbers": [],
            })
            group["items"].extend(demo_items)
            group["total_items"] += len(demo_items)
            group["overdue_items"] += sum(1 for i in demo_items if i["is_overdue"])
            group["oldest_days"] = max(group["oldest_days"], max(i["days_out"] for i in demo_items))
            if demo.demo_number not in group["demo_numbers"]:
                group["demo_numbers"].append(demo.demo_number)

        grouped = sorted(groups.values(), key=lambda g: g["oldest_days"], reverse=True)
        return {
            "summary": {
                "total_items_out": total_items,
                "total_customers": len(groups),
                "overdue_count": overdue_count,
                "average_days_out": round(total_days / total_items) if total_items else 0,
                "overdue_threshold": overdue_threshold_days,
            },
            "grouped_demos": grouped,
            "category_breakdown": sorted(
                ({"category": k, "items": v["items"], "overdue": v["overdue"]} for k, v in category_stats.items()),
                key=lambda c: c["items"],
                reverse=True,
            ),
        }

    def export_demo_tracking_csv(self, report: Dict[str, Any]) -> bytes:
        rows = []
        for group in report.get("grouped_demos", []):
            for item in group["items"]:
                rows.append([
                    item["serial_number"],
                    item["equipment_category"],
                    item["model"],
                    item["customer_dealer"],
                    item["customer_client"],
                    item["demo_number"],
                    item["date_sent"][:10],
                    item["days_out"],
                    "OVERDUE" if item["is_overdue"] else "Active",
                    item["location"],
                ])
        return _to_csv(DEMO_CSV_HEADER, rows)

    # --- Sales ---

    def get_sales_report(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        customer_dealer: Optional[str] = None,
        location: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Orders created in a date range with customer, location, category
        and daily breakdowns.

        Args:
            start_date: Range start, defaults to 2020-01-01
            end_date: Range end (inclusive), defaults to now
            customer_dealer: Exact dealer filter
            location: Keep only orders with at least one line at this location

        Returns:
            Report dict with ``summary``, ``orders``, ``top_customers``,
            ``top_locations``, ``top_categories``, ``daily_sales``,
            ``customer_items``, ``trends`` and ``product_performance``
        """
        start_date = to_naive_utc(start_date) or SALES_REPORT_START
        end_date = to_naive_utc(end_date) or utc_now()

        orders = self.order_repository.list_created_between(start_date, end_date, customer_dealer)
        all_ids = [tid for order in orders for tid in (order.transaction_ids or [])]
        transactions = {
            tx.transaction_id: tx
            for tx in self.transaction_repository.get_by_transaction_ids(all_ids)
            if tx.type == TransactionType.STOCK_OUT.value
        }
        inventory = {
            normalize_serial(i.serial_number): i
            for i in self.inventory_repository.get_by_serials(tx.serial_number for tx in transactions.values())
        }

        report_orders = []
        customer_stats: Dict[str, Dict[str, int]] = defaultdict(lambda: {"orders": 0, "items": 0})
        location_stats: Dict[str, Dict[str, int]] = defaultdict(lambda: {"transactions": 0, "items": 0})
        category_stats: Dict[str, Dict[str, int]] = defaultdict(lambda: {"transactions": 0, "items": 0})
        daily: Dict[str, Dict[str, Any]] = {}
        customer_order_counts: Counter = Counter()
        customer_items: Dict[str, Dict[tuple, Dict[str, Any]]] = defaultdict(dict)
        model_stats: Counter = Counter()
        invoiced = pending = 0

        for order in orders:
            lines = [transactions[t] for t in (order.transaction_ids or []) if t in transactions]
            if location and not any(tx.location == location for tx in lines):
                continue

            report_orders.append(order.to_dict())
            if (order.invoice_status or order.status) == InvoiceStatus.INVOICED.value:
                invoiced += 1
            else:
                pending += 1

            dealer = order.customer_dealer or UNKNOWN
            customer_stats[dealer]["orders"] += 1
            customer_order_counts[dealer] += 1
            if order.created_date:
                day_key = order.created_date.strftime("%Y-%m-%d")
                day = daily.setdefault(day_key, {"orders": 0, "items": 0, "customers": set()})
                day["orders"] += 1
                day["items"] += order.total_items or 0
                day["customers"].add(dealer)

            for tx in lines:
                inventory_item = inventory.get(normalize_serial(tx.serial_number))
                line_location = tx.location or ""
                if (not line_location or line_location == UNKNOWN) and inventory_item:
                    line_location = inventory_item.location or ""
                line_location = line_location or UNKNOWN
                if location and line_location != location:
                    continue
                location_stats[line_location]["transactions"] += 1
                location_stats[line_location]["items"] += 1

                line_category = tx.equipment_category or ""
                if (not line_category or line_category == UNKNOWN) and inventory_item:
                    line_category = inventory_item.equipment_category or ""
                line_category = normalize_category(line_category or UNKNOWN)
                category_stats[line_category]["transactions"] += 1
                category_stats[line_category]["items"] += 1

                model = tx.model or (inventory_item.model if inventory_item else None) or UNKNOWN
                if model != UNKNOWN:
                    model_stats[model] += 1

                # One entry per unit and order; a Delivered line supersedes the Reserved one
                detail = {
                    "serial_number": tx.serial_number or "N/A",
                    "category": line_category,
                    "model": model,
                    "date": iso_or_none(tx.uploaded_at),
                    "order_number": order.order_number,
                    "transaction_id": tx.transaction_id,
                    "delivery_status": order.delivery_status or "",
                    "status": tx.status,
                }
                key = (normalize_serial(tx.serial_number), order.order_number)
                existing = customer_items[dealer].get(key)
                if existing is None or (
                    tx.status == TransactionStatus.DELIVERED.value
                    and existing["status"] != TransactionStatus.DELIVERED.value
                ) or (tx.status == existing["status"] and (detail["date"] or "") > (existing["date"] or "")):
                    customer_items[dealer][key] = detail

        items_by_customer = {dealer: list(entries.values()) for dealer, entries in customer_items.items()}
        for dealer, entries in items_by_customer.items():
            customer_stats[dealer]["items"] = len(entries)

        total_orders = len(report_orders)
        daily_trends = {
            key: {"orders": v["orders"], "items": v["items"], "customers": len(v["customers"])}
            for key, v in sorted(daily.items())
        }
        peak_day = max(daily_trends, key=lambda k: daily_trends[k]["orders"]) if daily_trends else ""

        return {
            "period": {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            "summary": {
                "total_orders": total_orders,
                "invoiced_orders": invoiced,
                "pending_orders": pending,
                "total_items_sold": sum(len(v) for v in items_by_customer.values()),
                "conversion_rate": _percentage(invoiced, total_orders),
            },
            "orders": report_orders,
            "top_customers": [
                {"customer": k, "orders": v["orders"], "items": v["items"]}
                for k, v in sorted(customer_stats.items(), key=lambda e: e[1]["orders"], reverse=True)[:TOP_N]
            ],
            "top_locations": [
                {"location": k, "transactions": v["transactions"], "items": v["items"]}
                for k, v in sorted(location_stats.items(), key=lambda e: e[1]["transactions"], reverse=True)[:TOP_N]
            ],
            "top_categories": [
                {"category": k, "transactions": v["transactions"], "items": v["items"]}
                for k, v in sorted(category_stats.items(), key=lambda e: e[1]["transactions"], reverse=True)[:TOP_N]
            ],
            "daily_sales": {k: v["orders"] for k, v in daily_trends.items()},
            "customer_items": items_by_customer,
            "trends": {
                "daily_sales": daily_trends,
                "peak_day": peak_day,
                "avg_daily_orders": f"{sum(v['orders'] for v in daily_trends.values()) / len(daily_trends):.1f}"
                if daily_trends else "0.0",
            },
            "customer_intelligence": self._customer_intelligence(customer_order_counts, customer_stats),
            "product_performance": {
                "best_selling_models": [{"model": m, "count": c} for m, c in model_stats.most_common()],
                "category_breakdown": {k: dict(v) for k, v in category_stats.items()},
            },
        }

    @staticmethod
    def _customer_intelligence(order_counts: Counter, customer_stats) -> Dict[str, Any]:
        new_customers = []
        repeat_customers = []
        for customer, count in order_counts.items():
            items = customer_stats[customer]["items"]
            if count == 1:
                new_customers.append({"customer": customer, "items": items})
            else:
                repeat_customers.append({"customer": customer, "orders": count, "items": items})
        repeat_customers.sort(key=lambda c: c["orders"], reverse=True)
        total = len(new_customers) + len(repeat_customers)
        return {
            "new_customers": len(new_customers),
            "repeat_customers": len(repeat_customers),
            "loyalty_rate": _percentage(len(repeat_customers), total),
            "new_customers_list": new_customers,
            "repeat_customers_list": repeat_customers,
        }

    # --- Filter lists ---

    def get_customer_list(self) -> List[str]:
        values = self.session.execute(select(Order.customer_dealer).distinct()).scalars().all()
        return sorted(v for v in values if v)

    def get_location_list(self) -> List[str]:
        values = self.session.execute(select(Transaction.location).distinct()).scalars().all()
        return sorted(v for v in values if v)

    def get_category_list(self) -> List[str]:
        return self.inventory_repository.distinct_values("equipment_category")
