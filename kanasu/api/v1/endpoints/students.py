"""
Students API endpoints.
Students belong to at most one anganwadi; only ACTIVE students count toward assessments.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from kanasu.core.database import get_db, delete_instance
from kanasu.core.logging_config import get_logger
from kanasu.core.response import success_response
from kanasu.models.anganwadi import Anganwadi
from kanasu.models.student import Student, StudentStatus
from kanasu.schemas.student import StudentCreate, StudentAnganwadiAssign, StudentRead

# Initialize logger
logger = get_logger(__name__)

router = APIRouter()


def _ensure_anganwadi(db: Session, anganwadi_id: UUID) -> Anganwadi:
    anganwadi = db.query(Anganwadi).filter(Anganwadi.id == anganwadi_id).first()
    if not anganwadi:
        logger.warning(f"Anganwadi not found: {anganwadi_id}")
        raise HTTPException(status_code=404, detail="Anganwadi not found")
    return anganwadi


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_student(student_data: StudentCreate, db: Session = Depends(get_db)):
    logger.info(
        f"Creating student: {student_data.name}",
        extra={"extra_data": {"anganwadi_id": str(student_data.anganwadi_id) if student_data.anganwadi_id else None}}
    )

    if student_data.anganwadi_id:
        _ensure_anganwadi(db, student_data.anganwadi_id)

    student = Student(**student_data.model_dump())
    db.add(student)
    db.commit()
    db.refresh(student)

    logger.info(
        f"Student created successfully: {student.name}",
        extra={"extra_data": {"student_id": str(student.id)}}
    )
    return success_response(StudentRead.model_validate(student), message="Student created successfully")


@router.get("/")
async def list_students(
    skip: int = 0,
    limit: int = 300,
    status_filter: Optional[StudentStatus] = None,
    db: Session = Depends(get_db)
):
    query = db.query(Student)
    if status_filter:
        query = query.filter(Student.status == status_filter)

    students = query.order_by(Student.created_at).offset(skip).limit(limit).all()
    logger.debug(f"Found {len(students)} students")
    return success_response([StudentRead.model_validate(s) for s in students])


@router.get("/anganwadi/{anganwadi_id}")
async def list_students_by_anganwadi(anganwadi_id: UUID, db: Session = Depends(get_db)):
    _ensure_anganwadi(db, anganwadi_id)
    students = (
        db.query(Student)
        .filter(Student.anganwadi_id == anganwadi_id)
        .order_by(Student.name)
        .all()
    )
    return success_response([StudentRead.model_validate(s) for s in students])


@router.patch("/assign-anganwadi")
async def assign_student_to_anganwadi(assign_data: StudentAnganwadiAssign, db: Session = Depends(get_db)):
    student = db.query(Student).filter(Student.id == assign_data.student_id).first()
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")
    _ensure_anganwadi(db, assign_data.anganwadi_id)

    student.anganwadi_id = assign_data.anganwadi_id
    db.commit()
    db.refresh(student)

    logger.info(f"Student {student.id} assigned to anganwadi {assign_data.anganwadi_id}")
    return success_response(StudentRead.model_validate(student), message="Student assigned to anganwadi successfully")


@router.delete("/{student_id}")
async def delete_student(student_id: UUID, db: Session = Depends(get_db)):
    student = db.query(Student).filter(Student.id == student_id).first()
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")

    delete_instance(db, student, "student")
    logger.info(f"Student deleted: {student_id}")
    return success_response(message="Student deleted successfully")
