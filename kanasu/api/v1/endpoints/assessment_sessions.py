"""
Assessment sessions API.
Sessions are created in DRAFT, published, then completed; students submit once per session.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from uuid import UUID

from kanasu.core.database import get_db
from kanasu.core.logging_config import get_logger
from kanasu.core.response import success_response
from kanasu.models.assessment import AnganwadiAssessment, AssessmentSession
from kanasu.models.student import Student, StudentStatus
from kanasu.schemas.assessment import (
    AssessmentSessionCreate,
    AssessmentSessionUpdate,
    AssessmentSessionRead,
    AssessmentSessionDetail,
    AnganwadiAssessmentRead,
    AssessmentStats,
    StudentSubmissionCreate,
    StudentSubmissionRead,
)
from kanasu.schemas.student import StudentRead
from kanasu.schemas.topic import TopicDetail
from kanasu.services import assessment_lifecycle as lifecycle

logger = get_logger(__name__)

router = APIRouter()


def _detail(assessment: AssessmentSession) -> AssessmentSessionDetail:
    detail = AssessmentSessionDetail.model_validate(assessment)
    detail.stats = AssessmentStats(**lifecycle.compute_stats(assessment.anganwadi_assessments))
    return detail


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_assessment_session(session_data: AssessmentSessionCreate, db: Session = Depends(get_db)):
    logger.info(
        f"Creating assessment session: {session_data.name}",
        extra={"extra_data": {
            "anganwadi_ids": [str(a) for a in session_data.anganwadi_ids],
            "cohort_ids": [str(c) for c in session_data.cohort_ids],
        }}
    )

    assessment, _ = lifecycle.create_assessment_session(db, session_data)
    db.refresh(assessment)
    return success_response(_detail(assessment), message="Assessment session created successfully")


@router.get("/")
async def list_assessment_sessions(db: Session = Depends(get_db)):
    sessions = lifecycle.list_assessment_sessions(db)
    return success_response([_detail(s) for s in sessions])


@router.get("/active")
async def list_active_sessions(db: Session = Depends(get_db)):
    sessions = lifecycle.list_active_sessions(db)
    return success_response([AssessmentSessionRead.model_validate(s) for s in sessions])


@router.get("/active-for-anganwadi")
async def list_active_sessions_for_anganwadi(anganwadi_id: UUID = Query(...), db: Session = Depends(get_db)):
    sessions = lifecycle.list_active_sessions_for_anganwadi(db, anganwadi_id)
    return success_response([AssessmentSessionRead.model_validate(s) for s in sessions])


@router.get("/{assessment_id}")
async def get_assessment_session(assessment_id: UUID, db: Session = Depends(get_db)):
    assessment = lifecycle.get_assessment_session(db, assessment_id)
    topics = lifecycle.session_topics(db, assessment)
    return success_response(
        _detail(assessment),
        topics=[TopicDetail.model_validate(t) for t in topics]
    )


@router.put("/{assessment_id}")
async def update_assessment_session(
    assessment_id: UUID,
    update_data: AssessmentSessionUpdate,
    db: Session = Depends(get_db)
):
    assessment = lifecycle.update_assessment_session(db, assessment_id, update_data)
    return success_response(_detail(assessment), message="Assessment session updated successfully")


@router.delete("/{assessment_id}")
async def delete_assessment_session(assessment_id: UUID, db: Session = Depends(get_db)):
    lifecycle.delete_assessment_session(db, assessment_id)
    return success_response(message="Assessment session deleted successfully")


@router.patch("/{assessment_id}/publish")
async def publish_assessment_session(assessment_id: UUID, db: Session = Depends(get_db)):
    assessment = lifecycle.publish_assessment_session(db, assessment_id)
    return success_response(_detail(assessment), message="Assessment published successfully")


@router.patch("/{assessment_id}/complete")
async def complete_assessment_session(assessment_id: UUID, db: Session = Depends(get_db)):
    assessment = lifecycle.complete_assessment_session(db, assessment_id)
    return success_response(_detail(assessment), message="Assessment completed successfully")


@router.get("/{assessment_id}/anganwadi/{anganwadi_id}")
async def get_anganwadi_progress(assessment_id: UUID, anganwadi_id: UUID, db: Session = Depends(get_db)):
    """Progress of one anganwadi: its counters, recorded submissions and students still pending."""
    submissions = lifecycle.list_anganwadi_submissions(db, assessment_id, anganwadi_id)

    tracker = (
        db.query(AnganwadiAssessment)
        .filter(
            AnganwadiAssessment.assessment_session_id == assessment_id,
            AnganwadiAssessment.anganwadi_id == anganwadi_id,
        )
        .first()
    )
    if not tracker:
        raise HTTPException(status_code=404, detail="This anganwadi is not part of this assessment")

    submitted_ids = {s.student_id for s in submissions}
    pending = (
        db.query(Student)
        .filter(
            Student.anganwadi_id == anganwadi_id,
            Student.status == StudentStatus.ACTIVE,
        )
        .order_by(Student.name)
        .all()
    )

    return success_response({
        "anganwadi_assessment": AnganwadiAssessmentRead.model_validate(tracker),
        "submissions": [StudentSubmissionRead.model_validate(s) for s in submissions],
        "pending_students": [StudentRead.model_validate(s) for s in pending if s.id not in submitted_ids],
    })


@router.post("/{assessment_id}/student/{student_id}", status_code=status.HTTP_201_CREATED)
async def submit_student_assessment(
    assessment_id: UUID,
    student_id: UUID,
    submission_data: StudentSubmissionCreate,
    db: Session = Depends(get_db)
):
    submission = lifecycle.record_student_submission(db, assessment_id, student_id, submission_data)
    return success_response(
        StudentSubmissionRead.model_validate(submission),
        message="Student assessment submitted successfully"
    )
