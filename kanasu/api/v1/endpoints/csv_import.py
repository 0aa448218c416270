import math
from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import Any, Dict, Optional
from uuid import UUID

from kanasu.api.dependencies import require_roles
from kanasu.core.database import get_db
from kanasu.core.logging_config import get_logger
from kanasu.core.response import success_response
from kanasu.models.csv_import import CsvImport
from kanasu.models.user import UserRole
from kanasu.schemas.csv_import import CsvImportRead, CsvImportPage, Pagination
from kanasu.services import csv_import as csv_import_service
from kanasu.services.media_storage import save_upload_to_temp

logger = get_logger(__name__)

router = APIRouter()

require_admin = require_roles(UserRole.ADMIN.value)


@router.post("/students", status_code=status.HTTP_202_ACCEPTED)
async def import_students(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    anganwadi_id: Optional[UUID] = Form(None),
    db: Session = Depends(get_db),
    payload: Dict[str, Any] = Depends(require_admin)
):
    """Queue a student CSV import; progress is read back through GET /csv-import/{id}."""
    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="Please upload a CSV file")

    record = csv_import_service.start_import(
        db, file.filename, imported_by=str(payload["id"]), anganwadi_id=anganwadi_id
    )
    file_path = save_upload_to_temp(file)

    background_tasks.add_task(
        csv_import_service.process_student_csv,
        file_path,
        record.id,
        anganwadi_id,
    )

    logger.info(
        f"CSV import queued: {record.id}",
        extra={"extra_data": {"import_id": str(record.id), "file_name": file.filename}}
    )
    return success_response(
        {"import_id": record.id, "status": record.status},
        message="CSV import started"
    )


@router.get("/{import_id}")
async def get_import_status(
    import_id: UUID,
    db: Session = Depends(get_db),
    _: Dict[str, Any] = Depends(require_admin)
):
    record = db.query(CsvImport).filter(CsvImport.id == import_id).first()
    if not record:
        raise HTTPException(status_code=404, detail="Import not found")
    return success_response(CsvImportRead.model_validate(record))


@router.get("/")
async def list_imports(
    page: int = 1,
    limit: int = 10,
    db: Session = Depends(get_db),
    _: Dict[str, Any] = Depends(require_admin)
):
    page = max(page, 1)
    limit = min(max(limit, 1), 100)

    total = db.query(func.count(CsvImport.id)).scalar() or 0
    records = (
        db.query(CsvImport)
        .order_by(CsvImport.imported_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    result = CsvImportPage(
        data=[CsvImportRead.model_validate(r) for r in records],
        pagination=Pagination(
            page=page,
            limit=limit,
            total_count=total,
            total_pages=math.ceil(total / limit) if total else 0,
        ),
    )
    return success_response(result.data, pagination=result.pagination)
