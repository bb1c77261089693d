# serialtrack/api/endpoints/demos.py
"""
Demo loan API endpoints for SerialTrack.
"""

import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, status
from sqlalchemy.orm import Session

from serialtrack import schemas
from serialtrack.api import deps
from serialtrack.core.exceptions import (
    BusinessRuleException,
    DuplicateEntityException,
    EntityNotFoundException,
    ItemNotAvailableException,
    ValidationException,
)
from serialtrack.services.demo_service import DemoService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/", response_model=schemas.Demo, status_code=status.HTTP_201_CREATED)
def create_demo(
    *,
    db: Session = Depends(deps.get_db),
    security_context: deps.SecurityContext = Depends(deps.get_security_context),
    demo_in: schemas.DemoCreate,
) -> Any:
    """
    Lend items to a customer under a new demo number.
    """
    service = DemoService(db, security_context=security_context)
    try:
        return service.create_demo(
            demo_number=demo_in.demo_number,
            demo_purpose=demo_in.demo_purpose,
            customer_dealer=demo_in.customer_dealer,
            customer_client=demo_in.customer_client,
            location=demo_in.location,
            items=[item.model_dump() for item in demo_in.items],
            expected_return_date=demo_in.expected_return_date,
            remarks=demo_in.remarks,
            created_by=security_context.current_user.email,
        )
    except DuplicateEntityException as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except (ValidationException, ItemNotAvailableException) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/", response_model=List[schemas.Demo])
def get_demo_history(
    *,
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
    limit: int = Query(50, ge=1, le=1000),
    status_filter: Optional[str] = Query(None, alias="status"),
) -> Any:
    return DemoService(db).get_demo_history(limit=limit, status=status_filter)


@router.get("/statistics", response_model=schemas.DemoStatistics)
def get_demo_statistics(
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
) -> Any:
    return DemoService(db).get_demo_statistics()


@router.get("/{demo_id}", response_model=schemas.Demo)
def get_demo(
    *,
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
    demo_id: int = Path(..., ge=1),
) -> Any:
    try:
        return DemoService(db).get_demo(demo_id)
    except EntityNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/{demo_id}/items", response_model=List[schemas.DemoItem])
def get_demo_items(
    *,
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
    demo_id: int = Path(..., ge=1),
) -> Any:
    try:
        return DemoService(db).get_demo_items(demo_id)
    except EntityNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/{demo_id}/return")
def return_demo_items(
    *,
    db: Session = Depends(deps.get_db),
    security_context: deps.SecurityContext = Depends(deps.get_security_context),
    demo_id: int = Path(..., ge=1),
    return_in: Optional[schemas.DemoReturnRequest] = Body(None),
) -> Any:
    """
    Bring every unit of a demo back into stock.
    """
    service = DemoService(db, security_context=security_context)
    try:
        return service.return_demo_items(
            demo_id,
            actual_return_date=return_in.actual_return_date if return_in else None,
            returned_by=security_context.current_user.email,
        )
    except EntityNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except BusinessRuleException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{demo_id}")
def delete_demo(
    *,
    db: Session = Depends(deps.get_db),
    security_context: deps.SecurityContext = Depends(deps.get_security_context),
    demo_id: int = Path(..., ge=1),
) -> Any:
    try:
        return DemoService(db, security_context=security_context).delete_demo(demo_id)
    except EntityNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
