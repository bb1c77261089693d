# serialtrack/api/endpoints/imports.py
"""
Spreadsheet import endpoints for SerialTrack.

Administrators can load inventory lists and historical transaction logs
from CSV or Excel files.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from serialtrack.api import deps
from serialtrack.core.config import settings
from serialtrack.core.exceptions import ValidationException
from serialtrack.services.import_service import ImportService

logger = logging.getLogger(__name__)

router = APIRouter()


async def _read_upload(file: UploadFile) -> bytes:
    max_bytes = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
    content = await file.read(max_bytes + 1)
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds the maximum size of {settings.MAX_UPLOAD_SIZE_MB} MB.",
        )
    return content


@router.post("/inventory")
async def import_inventory(
    *,
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_admin_user),
    file: UploadFile = File(...),
) -> Any:
    """
    Create inventory items from a CSV or Excel sheet.
    """
    content = await _read_upload(file)
    service = ImportService(db, security_context=deps.SecurityContext(current_user))
    try:
        return service.import_inventory(content, file.filename)
    except ValidationException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/transactions")
async def import_transaction_log(
    *,
    db: Session = Depends(deps.get_db),
    current_user: Any = Depends(deps.get_current_admin_user),
    file: UploadFile = File(...),
) -> Any:
    """
    Append transactions from a CSV or Excel transaction log.
    """
    content = await _read_upload(file)
    service = ImportService(db, security_context=deps.SecurityContext(current_user))
    try:
        return service.import_transaction_log(content, file.filename)
    except ValidationException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
