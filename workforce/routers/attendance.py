from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from sqlalchemy.orm import Session

from workforce.core.clock import Clock
from workforce.core.config import settings
from workforce.core.exceptions import ValidationError
from workforce.core.limiter import limiter
from workforce.database import get_db
from workforce.dependencies import get_clock
from workforce.schemas.attendance import AttendanceResponse, AttendanceUploadResponse
from workforce.services.attendance_import import AttendanceImportService
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/attendance", tags=["attendance"])


def get_import_service(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> AttendanceImportService:
    return AttendanceImportService(db, clock)


@router.post("/uploads", response_model=AttendanceUploadResponse, status_code=201)
@limiter.limit("10/minute")
async def upload_biometric_export(
    request: Request,
    file: UploadFile = File(...),
    date_from: Optional[date] = Form(default=None),
    date_to: Optional[date] = Form(default=None),
    site_id: Optional[int] = Form(default=None),
    service: AttendanceImportService = Depends(get_import_service),
):
    """
    Import a biometric device export.

    The upload row is always returned; a file that cannot be read comes back
    with status ``failed`` and an ``error_message``.
    """
    if date_from and date_to and date_to < date_from:
        raise ValidationError("date_to cannot be before date_from")

    content = await file.read()
    if len(content) > settings.attendance.max_upload_bytes:
        raise HTTPException(status_code=413, detail="Upload exceeds the maximum allowed size")

    logger.info(f"Biometric upload received: {file.filename} ({len(content)} bytes)")
    return service.import_file(
        content,
        date_from=date_from,
        date_to=date_to,
        site_id=site_id,
        filename=file.filename,
    )


@router.get("/uploads/{upload_id}", response_model=AttendanceUploadResponse)
def get_upload(upload_id: int, service: AttendanceImportService = Depends(get_import_service)):
    return service.get_upload(upload_id)


@router.get("", response_model=List[AttendanceResponse])
def list_attendance(
    employee_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    service: AttendanceImportService = Depends(get_import_service),
):
    return service.list_attendance(employee_id=employee_id, date_from=date_from, date_to=date_to)
