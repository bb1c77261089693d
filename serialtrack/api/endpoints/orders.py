# serialtrack/api/endpoints/orders.py
"""
Order API endpoints for SerialTrack.

Creating stock-out orders, the invoice / delivery document workflow,
corrections to existing orders and item returns.
"""

import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Path, Query, UploadFile, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from serialtrack import schemas
from serialtrack.api import deps
from serialtrack.core.config import settings
from serialtrack.core.exceptions import (
    BusinessRuleException,
    DuplicateEntityException,
    EntityNotFoundException,
    FileStorageException,
    ItemNotAvailableException,
    ValidationException,
)
from serialtrack.db.models.enums import OrderFileType
from serialtrack.services.file_storage_service import FileStorageService
from serialtrack.services.order_file_service import OrderFileService
from serialtrack.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/", response_model=schemas.Order, status_code=status.HTTP_201_CREATED)
def create_order(
    *,
    db: Session = Depends(deps.get_db),
    security_context: deps.SecurityContext = Depends(deps.get_security_context),
    order_in: schemas.OrderCreate,
) -> Any:
    """
    Reserve one or more items under a new order number.
    """
    service = OrderService(db, security_context=security_context)
    try:
        order = service.create_multi_item_order(
            order_number=order_in.order_number,
            customer_dealer=order_in.customer_dealer,
            customer_client=order_in.customer_client,
            location=order_in.location,
            items=[item.model_dump() for item in order_in.items],
            created_by=security_context.current_user.email,
        )
    except DuplicateEntityException as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except (ValidationException, ItemNotAvailableException) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return service.serialize_order(order)


@router.get("/", response_model=List[schemas.Order])
def list_orders(
    *,
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
    status_filter: Optional[str] = Query(None, alias="status"),
    invoice_status: Optional[str] = Query(None),
    delivery_status: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=1000),
) -> Any:
    return OrderService(db).get_all_orders(
        status=status_filter, invoice_status=invoice_status, delivery_status=delivery_status, limit=limit
    )


@router.get("/invoicing", response_model=List[schemas.Order])
def list_orders_for_invoicing(
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
) -> Any:
    """Orders shown on the invoicing screen."""
    return OrderService(db).get_orders_for_invoicing()


@router.get("/delivery", response_model=List[schemas.Order])
def list_orders_for_delivery(
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
) -> Any:
    """Invoiced orders shown on the delivery screen."""
    return OrderService(db).get_orders_for_delivery()


@router.post("/returns", response_model=schemas.ItemReturnResult)
def process_item_return(
    *,
    db: Session = Depends(deps.get_db),
    security_context: deps.SecurityContext = Depends(deps.get_security_context),
    return_in: schemas.ItemReturnRequest,
) -> Any:
    """
    Swap a sold unit for a replacement from stock.
    """
    service = OrderService(db, security_context=security_context)
    try:
        return service.process_item_return(
            returned_serial=return_in.returned_serial,
            replacement_serial=return_in.replacement_serial,
            dealer_name=return_in.dealer_name,
            remarks=return_in.remarks or "",
            processed_by=security_context.current_user.email,
        )
    except (ValidationException, ItemNotAvailableException) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/files/statistics", response_model=schemas.OrderFileStatistics)
def get_order_file_statistics(
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
    file_storage: FileStorageService = Depends(deps.get_file_storage),
) -> Any:
    return OrderFileService(db, file_storage).get_file_statistics()


@router.get("/files/orders", response_model=List[schemas.OrderWithFiles])
def list_orders_with_files(
    *,
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
    file_storage: FileStorageService = Depends(deps.get_file_storage),
    search: Optional[str] = Query(None, description="Part of the order number"),
) -> Any:
    """Orders that have stored documents, most recent upload first."""
    return OrderFileService(db, file_storage).get_orders_with_files(search=search)


@router.post("/files/{file_id}/restore", response_model=schemas.OrderFile)
def restore_order_file_version(
    *,
    db: Session = Depends(deps.get_db),
    security_context: deps.SecurityContext = Depends(deps.get_security_context),
    file_storage: FileStorageService = Depends(deps.get_file_storage),
    file_id: str = Path(...),
) -> Any:
    """
    Make an earlier document version the active one again.
    """
    service = OrderFileService(db, file_storage, security_context=security_context)
    try:
        return service.restore_file_version(file_id)
    except EntityNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except (ValidationException, BusinessRuleException) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/files/{file_id}/download")
def download_order_file(
    *,
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
    file_storage: FileStorageService = Depends(deps.get_file_storage),
    file_id: str = Path(...),
):
    """
    Download a stored order document.
    """
    service = OrderFileService(db, file_storage)
    try:
        order_file, file_data = service.download_file(file_id)
    except (EntityNotFoundException, FileStorageException) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return StreamingResponse(
        iter([file_data]),
        media_type=order_file.content_type,
        headers={"Content-Disposition": f"attachment; filename={order_file.original_filename}"},
    )


@router.delete("/files/{file_id}")
def delete_order_file(
    *,
    db: Session = Depends(deps.get_db),
    security_context: deps.SecurityContext = Depends(deps.get_security_context),
    file_storage: FileStorageService = Depends(deps.get_file_storage),
    file_id: str = Path(...),
) -> Any:
    """
    Delete a document. The order keeps its current statuses.
    """
    service = OrderFileService(db, file_storage, security_context=security_context)
    try:
        return service.delete_file(file_id)
    except EntityNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except FileStorageException as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@router.delete("/by-id/{order_id}")
def delete_order(
    *,
    db: Session = Depends(deps.get_db),
    security_context: deps.SecurityContext = Depends(deps.get_security_context),
    file_storage: FileStorageService = Depends(deps.get_file_storage),
    order_id: int = Path(..., ge=1),
) -> Any:
    """
    Delete a Reserved or Invoiced order with its transactions and documents.
    """
    service = OrderService(db, security_context=security_context, file_storage=file_storage)
    try:
        return service.delete_order(order_id)
    except EntityNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except BusinessRuleException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/by-id/{order_id}/delivery")
def delete_delivery_data(
    *,
    db: Session = Depends(deps.get_db),
    security_context: deps.SecurityContext = Depends(deps.get_security_context),
    file_storage: FileStorageService = Depends(deps.get_file_storage),
    order_id: int = Path(..., ge=1),
) -> Any:
    """
    Remove an order's delivery documents and delivered records.
    """
    service = OrderService(db, security_context=security_context, file_storage=file_storage)
    try:
        return service.delete_delivery_data(order_id)
    except EntityNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/{order_number}", response_model=schemas.Order)
def get_order(
    *,
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
    order_number: str = Path(...),
) -> Any:
    try:
        return OrderService(db).get_order_with_items(order_number)
    except EntityNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/{order_number}/files/status", response_model=schemas.OrderFileStatus)
def get_order_file_status(
    *,
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
    order_number: str = Path(...),
) -> Any:
    try:
        return OrderService(db).get_order_file_status(order_number)
    except EntityNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/{order_number}/files", response_model=List[schemas.OrderFile])
def list_order_files(
    *,
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
    file_storage: FileStorageService = Depends(deps.get_file_storage),
    order_number: str = Path(...),
) -> Any:
    try:
        return OrderFileService(db, file_storage).list_order_files(order_number)
    except EntityNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/{order_number}/files/history", response_model=List[schemas.OrderFile])
def get_order_file_history(
    *,
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
    file_storage: FileStorageService = Depends(deps.get_file_storage),
    order_number: str = Path(...),
    file_type: Optional[OrderFileType] = Query(None),
) -> Any:
    """Every version of the order's documents, newest version first."""
    try:
        return OrderFileService(db, file_storage).get_file_history(
            order_number, file_type.value if file_type else None
        )
    except EntityNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/{order_number}/files/active/{file_type}", response_model=schemas.OrderFile)
def get_active_order_file(
    *,
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_active_user),
    file_storage: FileStorageService = Depends(deps.get_file_storage),
    order_number: str = Path(...),
    file_type: OrderFileType = Path(...),
) -> Any:
    try:
        return OrderFileService(db, file_storage).get_active_file(order_number, file_type.value)
    except EntityNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post(
    "/{order_number}/files",
    response_model=schemas.OrderFileUploadResult,
    status_code=status.HTTP_201_CREATED,
)
async def upload_order_file(
    *,
    db: Session = Depends(deps.get_db),
    security_context: deps.SecurityContext = Depends(deps.get_security_context),
    file_storage: FileStorageService = Depends(deps.get_file_storage),
    order_number: str = Path(...),
    file_type: OrderFileType = Form(...),
    file: UploadFile = File(...),
) -> Any:
    """
    Upload an invoice, delivery order or signed delivery order.

    The order's invoice or delivery status advances according to the
    document type.
    """
    max_bytes = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
    file_content = await file.read(max_bytes + 1)

    service = OrderFileService(db, file_storage, security_context=security_context)
    try:
        result = service.upload_order_file(
            order_number=order_number,
            file_type=file_type.value,
            file_data=file_content,
            filename=file.filename,
            content_type=file.content_type,
            user_id=security_context.current_user.id,
        )
    except EntityNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except (ValidationException, BusinessRuleException) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except FileStorageException as e:
        logger.error(f"Storing {file_type.value} for order {order_number} failed: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    return {
        "file": schemas.OrderFile.model_validate(result["file"]),
        "new_invoice_status": result["new_invoice_status"],
        "new_delivery_status": result["new_delivery_status"],
    }


@router.put("/{order_number}/status", response_model=schemas.Order)
def update_order_status(
    *,
    db: Session = Depends(deps.get_db),
    security_context: deps.SecurityContext = Depends(deps.get_security_context),
    order_number: str = Path(...),
    status_in: schemas.OrderStatusUpdate,
) -> Any:
    service = OrderService(db, security_context=security_context)
    try:
        order = service.update_order_status(
            order_number, status_in.status, status_in.invoice_number, status_in.delivery_date
        )
    except EntityNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except (ValidationException, BusinessRuleException) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return service.serialize_order(order)


@router.put("/{order_number}/invoice", response_model=schemas.Order)
def update_invoice_details(
    *,
    db: Session = Depends(deps.get_db),
    security_context: deps.SecurityContext = Depends(deps.get_security_context),
    order_number: str = Path(...),
    invoice_in: schemas.InvoiceDetailsUpdate,
) -> Any:
    """
    Replace the invoice document reference and record invoice number and date.
    """
    service = OrderService(db, security_context=security_context)
    try:
        order = service.update_order_with_invoice_file(
            order_number,
            invoice_in.file_id,
            invoice_number=invoice_in.invoice_number,
            invoice_date=invoice_in.invoice_date,
            remarks=invoice_in.remarks,
        )
    except EntityNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return service.serialize_order(order)


@router.put("/{order_number}/number", response_model=schemas.Order)
def update_order_number(
    *,
    db: Session = Depends(deps.get_db),
    security_context: deps.SecurityContext = Depends(deps.get_security_context),
    order_number: str = Path(...),
    number_in: schemas.OrderNumberUpdate,
) -> Any:
    service = OrderService(db, security_context=security_context)
    try:
        order = service.update_order_number(order_number, number_in.new_order_number)
    except EntityNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValidationException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except DuplicateEntityException as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return service.serialize_order(order)
