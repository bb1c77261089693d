# serialtrack/api/endpoints/monthly.py

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.orm import Session

from serialtrack.api import deps
from serialtrack.core.exceptions import ValidationException
from serialtrack.services.monthly_inventory_service import MonthlyInventoryService

router = APIRouter()


@router.get("/months")
def get_available_months(
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
) -> Any:
    """Months with possible activity, newest first."""
    return MonthlyInventoryService(db).get_available_months()


@router.get("/{year}/{month}")
def get_monthly_activity(
    *,
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
    year: int = Path(..., ge=2000, le=2100),
    month: int = Path(...),
) -> Any:
    """
    Stock in, stock out and remaining stock by size and category for one month.
    """
    try:
        return MonthlyInventoryService(db).get_monthly_activity(year, month)
    except ValidationException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
