from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from kanasu.core.database import get_db, delete_instance
from kanasu.core.logging_config import get_logger
from kanasu.core.response import success_response
from kanasu.models.anganwadi import Anganwadi
from kanasu.models.cohort import Cohort
from kanasu.models.teacher import Teacher
from kanasu.schemas.teacher import (
    TeacherCreate,
    TeacherCohortAssign,
    TeacherAnganwadiAssign,
    TeacherRead,
)

logger = get_logger(__name__)

router = APIRouter()


def _get_teacher(db: Session, teacher_id: UUID) -> Teacher:
    teacher = db.query(Teacher).filter(Teacher.id == teacher_id).first()
    if not teacher:
        raise HTTPException(status_code=404, detail="Teacher not found")
    return teacher


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_teacher(teacher_data: TeacherCreate, db: Session = Depends(get_db)):
    logger.info(f"Creating teacher: {teacher_data.name}")

    if db.query(Teacher).filter(Teacher.phone == teacher_data.phone).first():
        logger.warning(f"Teacher creation failed - phone already registered: {teacher_data.phone}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A teacher with this phone number already exists"
        )

    if teacher_data.cohort_id and not db.query(Cohort).filter(Cohort.id == teacher_data.cohort_id).first():
        raise HTTPException(status_code=404, detail="Cohort not found")
    if teacher_data.anganwadi_id and not db.query(Anganwadi).filter(Anganwadi.id == teacher_data.anganwadi_id).first():
        raise HTTPException(status_code=404, detail="Anganwadi not found")

    teacher = Teacher(**teacher_data.model_dump())
    db.add(teacher)
    db.commit()
    db.refresh(teacher)

    logger.info(
        f"Teacher created successfully: {teacher.name}",
        extra={"extra_data": {"teacher_id": str(teacher.id)}}
    )
    return success_response(TeacherRead.model_validate(teacher), message="Teacher created successfully")


@router.get("/")
async def list_teachers(db: Session = Depends(get_db)):
    teachers = db.query(Teacher).order_by(Teacher.created_at).all()
    return success_response([TeacherRead.model_validate(t) for t in teachers])


@router.get("/by-anganwadi")
async def get_teachers_by_anganwadi(
    id: Optional[UUID] = None,
    name: Optional[str] = None,
    db: Session = Depends(get_db)
):
    if not id and not name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Anganwadi ID or Name is required"
        )

    query = db.query(Anganwadi)
    if id:
        anganwadi = query.filter(Anganwadi.id == id).first()
    else:
        anganwadi = query.filter(func.lower(Anganwadi.name) == name.strip().lower()).first()

    if not anganwadi:
        raise HTTPException(status_code=404, detail="Anganwadi not found")

    return success_response({
        "anganwadi_id": anganwadi.id,
        "anganwadi_name": anganwadi.name,
        "teachers": [TeacherRead.model_validate(t) for t in anganwadi.teachers],
    })


@router.patch("/assign")
async def assign_teacher_to_cohort(assign_data: TeacherCohortAssign, db: Session = Depends(get_db)):
    cohort = db.query(Cohort).filter(Cohort.id == assign_data.cohort_id).first()
    if not cohort:
        raise HTTPException(status_code=404, detail="Cohort not found")
    teacher = _get_teacher(db, assign_data.teacher_id)

    teacher.cohort_id = cohort.id
    db.commit()
    db.refresh(teacher)

    logger.info(f"Teacher {teacher.id} assigned to cohort {cohort.id}")
    return success_response(TeacherRead.model_validate(teacher), message="Teacher added to cohort successfully")


@router.post("/assign-anganwadi")
async def assign_teacher_to_anganwadi(assign_data: TeacherAnganwadiAssign, db: Session = Depends(get_db)):
    anganwadi = db.query(Anganwadi).filter(Anganwadi.id == assign_data.anganwadi_id).first()
    if not anganwadi:
        raise HTTPException(status_code=404, detail="Anganwadi not found")
    teacher = _get_teacher(db, assign_data.teacher_id)

    teacher.anganwadi_id = anganwadi.id
    db.commit()
    db.refresh(teacher)

    logger.info(f"Teacher {teacher.id} assigned to anganwadi {anganwadi.id}")
    return success_response(TeacherRead.model_validate(teacher), message="Teacher assigned to anganwadi successfully")


@router.delete("/{teacher_id}")
async def delete_teacher(teacher_id: UUID, db: Session = Depends(get_db)):
    teacher = _get_teacher(db, teacher_id)
    delete_instance(db, teacher, "teacher")

    logger.info(f"Teacher deleted: {teacher_id}")
    return success_response(message="Teacher deleted successfully")
