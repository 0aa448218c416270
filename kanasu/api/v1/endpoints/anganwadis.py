from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session, selectinload
from typing import List, Type
from uuid import UUID

from kanasu.core.database import get_db, delete_instance
from kanasu.core.logging_config import get_logger
from kanasu.core.response import success_response
from kanasu.models.anganwadi import Anganwadi
from kanasu.models.student import Student
from kanasu.models.teacher import Teacher
from kanasu.schemas.anganwadi import AnganwadiCreate, AnganwadiUpdate, AnganwadiDetail

logger = get_logger(__name__)

router = APIRouter()


def _load_members(db: Session, model: Type, ids: List[UUID], label: str) -> list:
    if not ids:
        return []
    rows = db.query(model).filter(model.id.in_(ids)).all()
    found = {r.id for r in rows}
    invalid = [str(i) for i in ids if i not in found]
    if invalid:
        logger.warning(f"Unknown {label} ids: {invalid}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Some {label} do not exist: {', '.join(invalid)}"
        )
    return rows


def _get_anganwadi(db: Session, anganwadi_id: UUID) -> Anganwadi:
    anganwadi = (
        db.query(Anganwadi)
        .options(selectinload(Anganwadi.teachers), selectinload(Anganwadi.students))
        .filter(Anganwadi.id == anganwadi_id)
        .first()
    )
    if not anganwadi:
        raise HTTPException(status_code=404, detail="Anganwadi not found")
    return anganwadi


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_anganwadi(anganwadi_data: AnganwadiCreate, db: Session = Depends(get_db)):
    teachers = _load_members(db, Teacher, anganwadi_data.teacher_ids, "teachers")
    students = _load_members(db, Student, anganwadi_data.student_ids, "students")

    anganwadi = Anganwadi(
        name=anganwadi_data.name,
        location=anganwadi_data.location,
        district=anganwadi_data.district,
        state=anganwadi_data.state,
    )
    anganwadi.teachers = teachers
    anganwadi.students = students
    db.add(anganwadi)
    db.commit()
    db.refresh(anganwadi)

    logger.info(
        f"Anganwadi created: {anganwadi.name}",
        extra={"extra_data": {"anganwadi_id": str(anganwadi.id), "teachers": len(teachers), "students": len(students)}}
    )
    return success_response(AnganwadiDetail.model_validate(anganwadi), message="Anganwadi created successfully")


@router.get("/")
async def list_anganwadis(db: Session = Depends(get_db)):
    anganwadis = (
        db.query(Anganwadi)
        .options(selectinload(Anganwadi.teachers), selectinload(Anganwadi.students))
        .order_by(Anganwadi.name)
        .all()
    )
    return success_response([AnganwadiDetail.model_validate(a) for a in anganwadis])


@router.get("/{anganwadi_id}")
async def get_anganwadi(anganwadi_id: UUID, db: Session = Depends(get_db)):
    return success_response(AnganwadiDetail.model_validate(_get_anganwadi(db, anganwadi_id)))


@router.patch("/{anganwadi_id}")
async def update_anganwadi(anganwadi_id: UUID, update_data: AnganwadiUpdate, db: Session = Depends(get_db)):
    anganwadi = _get_anganwadi(db, anganwadi_id)
    changes = update_data.model_dump(exclude_unset=True)

    teacher_ids = changes.pop("teacher_ids", None)
    student_ids = changes.pop("student_ids", None)
    if teacher_ids is not None:
        anganwadi.teachers = _load_members(db, Teacher, teacher_ids, "teachers")
    if student_ids is not None:
        anganwadi.students = _load_members(db, Student, student_ids, "students")

    for field, value in changes.items():
        if field == "name" and not value:
            raise HTTPException(status_code=400, detail="Name cannot be empty")
        setattr(anganwadi, field, value)

    db.commit()
    db.refresh(anganwadi)

    logger.info(f"Anganwadi updated: {anganwadi_id}")
    return success_response(AnganwadiDetail.model_validate(anganwadi), message="Anganwadi updated successfully")


@router.delete("/{anganwadi_id}")
async def delete_anganwadi(anganwadi_id: UUID, db: Session = Depends(get_db)):
    anganwadi = _get_anganwadi(db, anganwadi_id)
    delete_instance(db, anganwadi, "anganwadi")

    logger.info(f"Anganwadi deleted: {anganwadi_id}")
    return success_response(message="Anganwadi deleted successfully")
