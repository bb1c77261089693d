# serialtrack/api/endpoints/reports.py
"""
Report endpoints for SerialTrack.

Each report is available as JSON; inventory and demo tracking can also be
downloaded as CSV.
"""

import logging
from datetime import datetime
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from serialtrack.api import deps
from serialtrack.core.utils import utc_now
from serialtrack.services.report_service import ReportService

logger = logging.getLogger(__name__)

router = APIRouter()

CSV_MEDIA_TYPE = "text/csv"


def _csv_response(file_data: bytes, prefix: str) -> StreamingResponse:
    filename = f"{prefix}_{utc_now().strftime('%Y%m%d_%H%M%S')}.csv"
    return StreamingResponse(
        iter([file_data]),
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/inventory")
def get_inventory_report(
    session: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
    category: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    location: Optional[str] = Query(None),
):
    """
    Inventory with current status and location, plus breakdowns.
    """
    service = ReportService(session=session)
    return service.get_inventory_report(category=category, status=status, location=location)


@router.get("/inventory/csv")
def download_inventory_report(
    session: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
    category: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    location: Optional[str] = Query(None),
):
    service = ReportService(session=session)
    report = service.get_inventory_report(category=category, status=status, location=location)
    return _csv_response(service.export_inventory_csv(report), "inventory_report")


@router.get("/demos")
def get_demo_tracking_report(
    session: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
    customer: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    overdue_only: bool = Query(False),
    overdue_threshold_days: Optional[int] = Query(None, ge=1),
):
    """
    Items out on active demos grouped by customer, with overdue flags.
    """
    service = ReportService(session=session)
    return service.get_demo_tracking_report(
        customer=customer,
        category=category,
        overdue_only=overdue_only,
        overdue_threshold_days=overdue_threshold_days,
    )


@router.get("/demos/csv")
def download_demo_tracking_report(
    session: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
    customer: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    overdue_only: bool = Query(False),
    overdue_threshold_days: Optional[int] = Query(None, ge=1),
):
    service = ReportService(session=session)
    report = service.get_demo_tracking_report(
        customer=customer,
        category=category,
        overdue_only=overdue_only,
        overdue_threshold_days=overdue_threshold_days,
    )
    return _csv_response(service.export_demo_tracking_csv(report), "demo_tracking_report")


@router.get("/sales")
def get_sales_report(
    session: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    customer_dealer: Optional[str] = Query(None),
    location: Optional[str] = Query(None),
):
    """
    Orders in a date range with customer, location, category and daily breakdowns.
    """
    service = ReportService(session=session)
    return service.get_sales_report(
        start_date=start_date, end_date=end_date, customer_dealer=customer_dealer, location=location
    )


@router.get("/customers", response_model=List[str])
def list_customers(
    session: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
):
    return ReportService(session=session).get_customer_list()


@router.get("/locations", response_model=List[str])
def list_locations(
    session: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
):
    return ReportService(session=session).get_location_list()


@router.get("/categories", response_model=List[str])
def list_categories(
    session: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
):
    return ReportService(session=session).get_category_list()
