# serialtrack/api/endpoints/stock.py
"""
Stock-in API endpoint for SerialTrack.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.orm import Session

from serialtrack import schemas
from serialtrack.api import deps
from serialtrack.core.exceptions import DuplicateEntityException, ValidationException
from serialtrack.services.stock_service import StockService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/in", response_model=schemas.InventoryItem, status_code=status.HTTP_201_CREATED)
def stock_in_item(
    *,
    db: Session = Depends(deps.get_db),
    security_context: deps.SecurityContext = Depends(deps.get_security_context),
    item_in: schemas.StockInRequest,
) -> Any:
    """
    Receive a new unit into stock.

    Creates the inventory row and its Stock_In transaction together.
    """
    service = StockService(db, security_context=security_context)
    try:
        return service.stock_in_item(
            serial_number=item_in.serial_number,
            equipment_category=item_in.equipment_category,
            model=item_in.model,
            size=item_in.size,
            batch=item_in.batch,
            remark=item_in.remark,
            stocked_in_by=security_context.current_user.email,
        )
    except DuplicateEntityException as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValidationException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/exists/{serial_number}")
def item_exists(
    *,
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
    serial_number: str = Path(...),
) -> Any:
    return {"serial_number": serial_number, "exists": StockService(db).item_exists(serial_number)}
