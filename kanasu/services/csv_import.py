"""
Bulk student import from CSV.

Expected header: name,gender,status,anganwadiName,location,district,state
Only name and gender are required. Each row is committed on its own so one
bad row never undoes the others.
"""
import csv
import os
from typing import Callable, Dict, Iterable, Optional, Tuple
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kanasu.core.database import SessionLocal
from kanasu.core.exceptions import NotFoundError, ValidationError
from kanasu.core.logging_config import get_logger
from kanasu.models.anganwadi import Anganwadi
from kanasu.models.csv_import import CsvImport, ImportStatus
from kanasu.models.student import Gender, Student, StudentStatus

logger = get_logger(__name__)


def start_import(
    db: Session, filename: str, imported_by: str, anganwadi_id: Optional[UUID] = None
) -> CsvImport:
    if anganwadi_id:
        exists = db.query(Anganwadi.id).filter(Anganwadi.id == anganwadi_id).first()
        if not exists:
            raise NotFoundError("Anganwadi not found")

    record = CsvImport(
        filename=filename,
        imported_by=imported_by,
        anganwadi_id=anganwadi_id,
        status=ImportStatus.PENDING,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def normalize_gender(value: str) -> Gender:
    try:
        return Gender(value.strip().upper())
    except ValueError:
        raise ValidationError(f"Invalid gender '{value}'")


def normalize_status(value: Optional[str]) -> StudentStatus:
    if not value or not value.strip():
        return StudentStatus.ACTIVE
    try:
        return StudentStatus(value.strip().upper())
    except ValueError:
        raise ValidationError(f"Invalid status '{value}'")


def _clean(row: Dict[str, Optional[str]], key: str) -> Optional[str]:
    value = row.get(key)
    if value is None:
        return None
    value = value.strip()
    return value or None


def resolve_anganwadi(db: Session, row: Dict[str, Optional[str]]) -> Optional[UUID]:
    """Find an anganwadi by name ignoring case, creating it when missing."""
    name = _clean(row, "anganwadiName")
    if not name:
        return None

    anganwadi = (
        db.query(Anganwadi)
        .filter(func.lower(Anganwadi.name) == name.lower())
        .order_by(Anganwadi.created_at)
        .first()
    )
    if anganwadi:
        return anganwadi.id

    anganwadi = Anganwadi(
        name=name,
        location=_clean(row, "location"),
        district=_clean(row, "district"),
        state=_clean(row, "state"),
    )
    db.add(anganwadi)
    db.flush()
    logger.info(f"Created anganwadi '{name}' during CSV import")
    return anganwadi.id


def import_student_rows(
    db: Session,
    rows: Iterable[Dict[str, Optional[str]]],
    fallback_anganwadi_id: Optional[UUID] = None,
) -> Tuple[int, int, int, str]:
    """
    Create one student per row.

    Returns (total, succeeded, failed, error_log) where error_log holds one
    ``Row N: reason`` line per failed row.
    """
    total = succeeded = failed = 0
    errors = []

    for row in rows:
        total += 1
        name = _clean(row, "name")
        gender = _clean(row, "gender")
        if not name or not gender:
            failed += 1
            errors.append(f"Row {total}: Missing required fields (name or gender)")
            continue

        try:
            student = Student(
                name=name,
                gender=normalize_gender(gender),
                status=normalize_status(row.get("status")),
                anganwadi_id=resolve_anganwadi(db, row) or fallback_anganwadi_id,
            )
            db.add(student)
            db.commit()
            succeeded += 1
        except (ValidationError, SQLAlchemyError) as exc:
            db.rollback()
            failed += 1
            reason = exc.message if isinstance(exc, ValidationError) else str(exc.__cause__ or exc)
            errors.append(f"Row {total}: {reason}")

    return total, succeeded, failed, "\n".join(errors)


def process_student_csv(
    file_path: str,
    import_id: UUID,
    anganwadi_id: Optional[UUID] = None,
    session_factory: Callable[[], Session] = SessionLocal,
) -> None:
    """Run an import job; the uploaded file is always deleted afterwards."""
    db = session_factory()
    try:
        record = db.query(CsvImport).filter(CsvImport.id == import_id).first()
        if not record:
            raise NotFoundError("Import not found")

        record.status = ImportStatus.PROCESSING
        db.commit()

        try:
            with open(file_path, newline="", encoding="utf-8-sig") as handle:
                reader = csv.DictReader(handle)
                rows = (r for r in reader if any((v or "").strip() for v in r.values()))
                total, succeeded, failed, error_log = import_student_rows(db, rows, anganwadi_id)
        except (OSError, UnicodeDecodeError, csv.Error) as exc:
            db.rollback()
            record.status = ImportStatus.FAILED
            record.error_log = f"Processing error: {exc}"
            db.commit()
            logger.error(f"CSV import {import_id} failed: {exc}")
            raise

        record.status = ImportStatus.COMPLETED
        record.total_rows = total
        record.success_rows = succeeded
        record.failed_rows = failed
        record.error_log = error_log or None
        db.commit()

        logger.info(
            f"CSV import {import_id} completed: {succeeded}/{total} rows imported, {failed} failed",
            extra={"extra_data": {"import_id": str(import_id), "failed": failed}},
        )
    finally:
        db.close()
        if os.path.exists(file_path):
            os.remove(file_path)
