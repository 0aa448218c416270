"""
Evaluations: a teacher's recorded audio assessment of one student on one topic.
"""
import json
from datetime import datetime
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session, selectinload
from typing import List, Optional
from uuid import UUID

from kanasu.core.database import get_db
from kanasu.core.logging_config import get_logger
from kanasu.core.response import success_response
from kanasu.models.assessment import AssessmentSession
from kanasu.models.evaluation import Evaluation, EvaluationStatus
from kanasu.models.student import Student
from kanasu.models.teacher import Teacher
from kanasu.models.topic import Question, Topic
from kanasu.schemas.evaluation import EvaluationRead
from kanasu.schemas.student_response import ScoreCreate, ScoreRead
from kanasu.services import media_storage
from kanasu.services.scoring import score_response

logger = get_logger(__name__)

router = APIRouter()


def _parse_question_ids(raw: Optional[str]) -> List[UUID]:
    """Accept a JSON array or a comma separated list of question ids."""
    if not raw:
        return []
    raw = raw.strip()
    try:
        values = json.loads(raw) if raw.startswith("[") else [v for v in raw.split(",") if v.strip()]
        return [UUID(str(v).strip()) for v in values]
    except (ValueError, TypeError):
        raise HTTPException(status_code=400, detail="questions must be a list of question ids")


def _get_evaluation(db: Session, evaluation_id: UUID) -> Evaluation:
    evaluation = (
        db.query(Evaluation)
        .options(selectinload(Evaluation.questions))
        .filter(Evaluation.id == evaluation_id)
        .first()
    )
    if not evaluation:
        raise HTTPException(status_code=404, detail="Evaluation not found")
    return evaluation


def _read_all(evaluations: List[Evaluation]) -> list:
    return [EvaluationRead.model_validate(e) for e in evaluations]


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_evaluation(
    teacher_id: UUID = Form(...),
    student_id: UUID = Form(...),
    topic_id: UUID = Form(...),
    week_number: int = Form(1),
    questions: Optional[str] = Form(None),
    assessment_session_id: Optional[UUID] = Form(None),
    audio: Optional[UploadFile] = File(None),
    metadata: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db)
):
    if not audio or not audio.filename or not metadata or not metadata.filename:
        raise HTTPException(status_code=400, detail="Audio or metadata file missing.")

    if not db.query(Teacher).filter(Teacher.id == teacher_id).first():
        raise HTTPException(status_code=404, detail="Teacher not found")
    if not db.query(Student).filter(Student.id == student_id).first():
        raise HTTPException(status_code=404, detail="Student not found")
    if not db.query(Topic).filter(Topic.id == topic_id).first():
        raise HTTPException(status_code=404, detail="Topic not found")
    if assessment_session_id and not db.query(AssessmentSession).filter(AssessmentSession.id == assessment_session_id).first():
        raise HTTPException(status_code=404, detail="Assessment session not found")

    question_ids = _parse_question_ids(questions)
    linked_questions = []
    if question_ids:
        linked_questions = db.query(Question).filter(Question.id.in_(question_ids)).all()
        if len(linked_questions) != len(set(question_ids)):
            raise HTTPException(status_code=404, detail="One or more questions not found")

    urls = media_storage.store_uploads({"audio": audio, "metadata": metadata})
    audio_url = urls["audio"]
    metadata_url = urls["metadata"]

    evaluation = Evaluation(
        teacher_id=teacher_id,
        student_id=student_id,
        topic_id=topic_id,
        assessment_session_id=assessment_session_id,
        week_number=week_number,
        audio_url=audio_url,
        metadata_url=metadata_url,
        status=EvaluationStatus.DRAFT,
    )
    evaluation.questions = linked_questions
    db.add(evaluation)
    db.commit()
    db.refresh(evaluation)

    logger.info(
        f"Evaluation created: {evaluation.id}",
        extra={"extra_data": {"teacher_id": str(teacher_id), "student_id": str(student_id)}}
    )
    return success_response(EvaluationRead.model_validate(evaluation), message="Evaluation created successfully")


@router.get("/")
async def list_evaluations(db: Session = Depends(get_db)):
    evaluations = (
        db.query(Evaluation)
        .options(selectinload(Evaluation.questions))
        .order_by(Evaluation.created_at.desc())
        .all()
    )
    return success_response(_read_all(evaluations))


@router.get("/status/{evaluation_status}")
async def list_evaluations_by_status(evaluation_status: EvaluationStatus, db: Session = Depends(get_db)):
    evaluations = (
        db.query(Evaluation)
        .options(selectinload(Evaluation.questions))
        .filter(Evaluation.status == evaluation_status)
        .order_by(Evaluation.created_at.desc())
        .all()
    )
    return success_response(_read_all(evaluations))


@router.get("/anganwadi/{anganwadi_id}")
async def list_evaluations_by_anganwadi(anganwadi_id: UUID, db: Session = Depends(get_db)):
    evaluations = (
        db.query(Evaluation)
        .options(selectinload(Evaluation.questions))
        .join(Student, Evaluation.student_id == Student.id)
        .filter(Student.anganwadi_id == anganwadi_id)
        .order_by(Evaluation.created_at.desc())
        .all()
    )
    return success_response(_read_all(evaluations))


@router.get("/session/{session_id}")
async def list_evaluations_by_session(session_id: UUID, db: Session = Depends(get_db)):
    evaluations = (
        db.query(Evaluation)
        .options(selectinload(Evaluation.questions))
        .filter(Evaluation.assessment_session_id == session_id)
        .order_by(Evaluation.created_at.desc())
        .all()
    )
    return success_response(_read_all(evaluations))


@router.get("/{evaluation_id}")
async def get_evaluation(evaluation_id: UUID, db: Session = Depends(get_db)):
    return success_response(EvaluationRead.model_validate(_get_evaluation(db, evaluation_id)))


@router.put("/{evaluation_id}/submit")
async def submit_evaluation(evaluation_id: UUID, db: Session = Depends(get_db)):
    evaluation = _get_evaluation(db, evaluation_id)
    if evaluation.status != EvaluationStatus.DRAFT:
        raise HTTPException(status_code=400, detail="Only draft evaluations can be submitted")

    evaluation.status = EvaluationStatus.SUBMITTED
    evaluation.submitted_at = datetime.utcnow()
    db.commit()
    db.refresh(evaluation)

    logger.info(f"Evaluation submitted: {evaluation_id}")
    return success_response(EvaluationRead.model_validate(evaluation), message="Evaluation submitted successfully")


@router.put("/{evaluation_id}/complete-grading")
async def complete_grading(evaluation_id: UUID, db: Session = Depends(get_db)):
    evaluation = _get_evaluation(db, evaluation_id)
    if evaluation.status != EvaluationStatus.SUBMITTED:
        raise HTTPException(status_code=400, detail="Only submitted evaluations can be graded")

    ungraded = [r.id for r in evaluation.responses if not r.scores]
    if ungraded:
        raise HTTPException(
            status_code=400,
            detail=f"{len(ungraded)} responses have not been graded yet"
        )

    evaluation.status = EvaluationStatus.GRADED
    evaluation.grading_complete = True
    db.commit()
    db.refresh(evaluation)

    logger.info(f"Evaluation grading completed: {evaluation_id}")
    return success_response(EvaluationRead.model_validate(evaluation), message="Evaluation grading completed")


@router.post("/response/{response_id}/grade", status_code=status.HTTP_201_CREATED)
async def grade_response(response_id: UUID, score_data: ScoreCreate, db: Session = Depends(get_db)):
    record = score_response(db, response_id, score_data)
    return success_response(ScoreRead.model_validate(record), message="Response graded successfully")
