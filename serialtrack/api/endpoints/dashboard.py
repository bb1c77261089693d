# serialtrack/api/endpoints/dashboard.py

from typing import Any, List

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from serialtrack.api import deps
from serialtrack.services.category_service import CategoryService
from serialtrack.services.dashboard_service import DashboardService

router = APIRouter()


@router.get("/")
def get_dashboard_analytics(
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
) -> Any:
    """
    Inventory, transaction and order figures for the dashboard.
    """
    return DashboardService(db).get_dashboard_analytics()


@router.get("/order-status")
def get_order_status_counts(
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
) -> Any:
    return DashboardService(db).get_order_status_counts()


@router.get("/data-integrity")
def get_data_integrity_report(
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
) -> Any:
    """
    Cross-check of inventory rows against Stock_In and Stock_Out records.
    """
    return DashboardService(db).get_data_integrity_report()


@router.get("/categories", response_model=List[str])
def list_categories(
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
) -> Any:
    return CategoryService(db).list_categories()


@router.get("/categories/{category_name}")
def get_category_details(
    *,
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
    category_name: str = Path(...),
) -> Any:
    """
    Status counts and active stock per model for one equipment category.
    """
    return CategoryService(db).get_category_details(category_name)
