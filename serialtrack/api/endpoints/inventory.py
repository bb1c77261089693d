# serialtrack/api/endpoints/inventory.py
"""
Inventory API endpoints for SerialTrack.

Listing with derived status and location, item maintenance, per-serial
activity history and the delivered-transaction discrepancy check.
"""

import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.orm import Session

from serialtrack import schemas
from serialtrack.api import deps
from serialtrack.core.exceptions import (
    DuplicateEntityException,
    EntityNotFoundException,
    ValidationException,
)
from serialtrack.services.discrepancy_service import TransactionDiscrepancyAnalyzer
from serialtrack.services.inventory_service import InventoryManagementService
from serialtrack.services.stock_service import StockService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=schemas.InventoryPage)
def list_inventory(
    *,
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
    limit: Optional[int] = Query(None, ge=1, le=500, description="Page size"),
    cursor: Optional[int] = Query(None, description="ID of the last item of the previous page"),
    search: Optional[str] = Query(None, description="Free-text search"),
    category: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    location: Optional[str] = Query(None),
    size: Optional[str] = Query(None),
) -> Any:
    """
    Retrieve one page of inventory items with their current status and location.
    """
    service = InventoryManagementService(db)
    try:
        return service.get_inventory_items(
            limit=limit,
            cursor=cursor,
            search=search,
            category=category,
            status=status_filter,
            location=location,
            size=size,
        )
    except EntityNotFoundException:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cursor {cursor} no longer exists. Restart pagination from the first page.",
        )


@router.get("/filters", response_model=schemas.InventoryFilterOptions)
def get_filter_options(
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
) -> Any:
    return InventoryManagementService(db).get_filter_options()


@router.get("/summary", response_model=schemas.InventorySummary)
def get_inventory_summary(
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
) -> Any:
    return InventoryManagementService(db).get_inventory_summary()


@router.get("/discrepancies", response_model=schemas.DiscrepancyResult)
def analyze_discrepancies(
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
) -> Any:
    """
    Compare delivered transactions with the inventory table.

    Reports orphaned delivered transactions and serials delivered more than once.
    """
    return TransactionDiscrepancyAnalyzer(db).analyze_discrepant_transactions()


@router.get("/serial/{serial_number}", response_model=schemas.InventoryItem)
def get_item_by_serial(
    *,
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
    serial_number: str = Path(..., description="Serial number (case-insensitive)"),
) -> Any:
    try:
        return StockService(db).get_inventory_item(serial_number)
    except EntityNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/serial/{serial_number}/transactions", response_model=List[schemas.Transaction])
def get_transaction_history(
    *,
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
    serial_number: str = Path(...),
) -> Any:
    return StockService(db).get_transaction_history(serial_number)


@router.get("/serial/{serial_number}/activity", response_model=List[schemas.ActivityEntry])
def get_activity_history(
    *,
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
    serial_number: str = Path(...),
) -> Any:
    """
    Timeline of every movement of a serial number, most recent first.
    """
    service = InventoryManagementService(db)
    try:
        return service.get_item_activity_history(serial_number)
    except EntityNotFoundException:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No inventory item or transactions found for serial number {serial_number}",
        )


@router.get("/{item_id}", response_model=schemas.InventoryItem)
def get_inventory_item(
    *,
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
    item_id: int = Path(..., ge=1),
) -> Any:
    try:
        return InventoryManagementService(db).get_inventory_item_by_id(item_id)
    except EntityNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.put("/{item_id}", response_model=schemas.InventoryItem)
def update_inventory_item(
    *,
    db: Session = Depends(deps.get_db),
    security_context: deps.SecurityContext = Depends(deps.get_security_context),
    item_id: int = Path(..., ge=1),
    item_in: schemas.InventoryItemUpdate,
) -> Any:
    """
    Edit an inventory item. The matching Stock_In transaction is kept in sync.
    """
    service = InventoryManagementService(db, security_context=security_context)
    try:
        return service.update_inventory_item(item_id, item_in.model_dump(exclude_unset=True))
    except EntityNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValidationException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except DuplicateEntityException as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.delete("/{item_id}", response_model=schemas.InventoryDeleteResult)
def delete_inventory_item(
    *,
    db: Session = Depends(deps.get_db),
    security_context: deps.SecurityContext = Depends(deps.get_security_context),
    item_id: int = Path(..., ge=1),
) -> Any:
    """
    Delete an inventory item and every transaction recorded for its serial.
    """
    service = InventoryManagementService(db, security_context=security_context)
    try:
        return service.delete_inventory_item(item_id)
    except EntityNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
