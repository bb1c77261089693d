# serialtrack/api/endpoints/cancellations.py
"""
Order cancellation endpoints for SerialTrack. Admin only.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.orm import Session

from serialtrack import schemas
from serialtrack.api import deps
from serialtrack.core.exceptions import BusinessRuleException, EntityNotFoundException
from serialtrack.services.cancel_order_service import CancelOrderService

router = APIRouter()


@router.get("/orders", response_model=List[Dict[str, Any]])
def list_cancellable_orders(
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_admin_user),
) -> Any:
    """Orders that are neither delivered nor already cancelled."""
    return CancelOrderService(db).get_cancellable_orders()


@router.get("/orders/{order_id}")
def get_order_details(
    *,
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_admin_user),
    order_id: int = Path(..., ge=1),
) -> Any:
    try:
        return CancelOrderService(db).get_order_details(order_id)
    except EntityNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/orders/{order_id}/cancel")
def cancel_order(
    *,
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_admin_user),
    order_id: int = Path(..., ge=1),
    cancel_in: schemas.OrderCancelRequest,
) -> Any:
    """
    Cancel an undelivered order and return its items to stock.
    """
    service = CancelOrderService(db, security_context=deps.SecurityContext(current_user))
    try:
        return service.cancel_order(order_id, cancel_in.reason, cancelled_by=current_user.email)
    except EntityNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except BusinessRuleException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
