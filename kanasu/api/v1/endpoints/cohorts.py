from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, selectinload
from uuid import UUID

from kanasu.core.database import get_db, delete_instance
from kanasu.core.logging_config import get_logger
from kanasu.core.response import success_response
from kanasu.models.cohort import Cohort
from kanasu.models.teacher import Teacher
from kanasu.schemas.assessment import AssessmentSessionRead
from kanasu.schemas.cohort import CohortCreate, CohortRead
from kanasu.services import ranking

logger = get_logger(__name__)

router = APIRouter()


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_cohort(cohort_data: CohortCreate, db: Session = Depends(get_db)):
    teachers = []
    if cohort_data.teacher_ids:
        teachers = db.query(Teacher).filter(Teacher.id.in_(cohort_data.teacher_ids)).all()
        found = {t.id for t in teachers}
        invalid = [str(t) for t in cohort_data.teacher_ids if t not in found]
        if invalid:
            logger.warning(f"Cohort creation failed - unknown teachers: {invalid}")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Some teachers do not exist: {', '.join(invalid)}"
            )

    cohort = Cohort(name=cohort_data.name, region=cohort_data.region)
    cohort.teachers = teachers
    db.add(cohort)
    db.commit()
    db.refresh(cohort)

    logger.info(
        f"Cohort created: {cohort.name}",
        extra={"extra_data": {"cohort_id": str(cohort.id), "teachers": len(teachers)}}
    )
    return success_response(CohortRead.model_validate(cohort), message="Cohort created successfully")


@router.get("/")
async def list_cohorts(db: Session = Depends(get_db)):
    cohorts = db.query(Cohort).options(selectinload(Cohort.teachers)).order_by(Cohort.created_at).all()
    return success_response([CohortRead.model_validate(c) for c in cohorts])


@router.delete("/{cohort_id}")
async def delete_cohort(cohort_id: UUID, db: Session = Depends(get_db)):
    cohort = ranking.get_cohort(db, cohort_id)

    # teachers stay, they only lose their cohort
    for teacher in cohort.teachers:
        teacher.cohort_id = None
    delete_instance(db, cohort, "cohort")

    logger.info(f"Cohort deleted: {cohort_id}")
    return success_response(message="Cohort deleted successfully")


@router.post("/{cohort_id}/rankings")
async def update_rankings(cohort_id: UUID, db: Session = Depends(get_db)):
    rankings = ranking.update_teacher_rankings(db, cohort_id)
    return success_response(rankings, message="Teacher rankings updated successfully")


@router.get("/{cohort_id}/rankings")
async def get_rankings(cohort_id: UUID, db: Session = Depends(get_db)):
    return success_response(ranking.get_teacher_rankings(db, cohort_id))


@router.get("/{cohort_id}/teacher-rankings")
async def get_cohort_teacher_rankings(
    cohort_id: UUID,
    assessment_id: UUID = Query(...),
    db: Session = Depends(get_db)
):
    rankings = ranking.cohort_teacher_rankings(db, cohort_id, assessment_id)
    return success_response(rankings, cohort_id=cohort_id, assessment_id=assessment_id)


@router.get("/{cohort_id}/assessments")
async def get_cohort_assessments(cohort_id: UUID, db: Session = Depends(get_db)):
    sessions = ranking.cohort_assessments(db, cohort_id)
    return success_response([AssessmentSessionRead.model_validate(s) for s in sessions])
