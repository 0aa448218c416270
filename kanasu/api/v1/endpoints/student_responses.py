"""
Student responses: recorded answers, their scores and CSV export.
Scores are append-only; the newest score of a response is the one shown.
"""
import csv
import io
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload
from typing import Iterable, List, Optional
from uuid import UUID

from kanasu.core.database import get_db, transaction
from kanasu.core.logging_config import get_logger
from kanasu.core.response import success_response
from kanasu.models.evaluation import Evaluation, EvaluationStatus
from kanasu.models.assessment import AssessmentSession, StudentSubmission
from kanasu.models.student import Student
from kanasu.models.student_response import StudentResponse
from kanasu.models.teacher import Teacher
from kanasu.models.topic import Question, Topic
from kanasu.schemas.student_response import (
    StudentResponseCreate,
    StudentResponseBatchCreate,
    TeacherExamSubmission,
    ScoreCreate,
    BatchScoreCreate,
    AutoScoreRequest,
    ScoreRead,
    StudentResponseRead,
    StudentResponseDetail,
    AutoScoreResult,
)
from kanasu.services import scoring

logger = get_logger(__name__)

router = APIRouter()

EXPORT_COLUMNS = ["ID", "Student Name", "Question", "Topic", "Audio URL", "Score", "Start Time", "End Time"]


def _check_references(db: Session, items: Iterable[StudentResponseCreate]) -> None:
    """404 when any referenced question, student or evaluation is missing."""
    items = list(items)
    checks = [
        (Question, {i.question_id for i in items}, "Question"),
        (Student, {i.student_id for i in items}, "Student"),
        (Evaluation, {i.evaluation_id for i in items if i.evaluation_id}, "Evaluation"),
    ]
    for model, ids, label in checks:
        if not ids:
            continue
        found = {row.id for row in db.query(model.id).filter(model.id.in_(ids)).all()}
        missing = [str(i) for i in ids if i not in found]
        if missing:
            raise HTTPException(status_code=404, detail=f"{label} not found: {', '.join(missing)}")


def _detail_query(db: Session):
    return db.query(StudentResponse).options(selectinload(StudentResponse.scores))


def _details(responses: List[StudentResponse]) -> list:
    return [StudentResponseDetail.model_validate(r) for r in responses]


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_response(response_data: StudentResponseCreate, db: Session = Depends(get_db)):
    _check_references(db, [response_data])

    response = StudentResponse(**response_data.model_dump())
    db.add(response)
    db.commit()
    db.refresh(response)

    logger.info(f"Student response created: {response.id}")
    return success_response(StudentResponseRead.model_validate(response), message="Response recorded successfully")


@router.post("/batch", status_code=status.HTTP_201_CREATED)
async def batch_create_responses(batch: StudentResponseBatchCreate, db: Session = Depends(get_db)):
    _check_references(db, batch.responses)

    responses = [StudentResponse(**item.model_dump()) for item in batch.responses]
    with transaction(db):
        db.add_all(responses)

    logger.info(f"Batch created {len(responses)} student responses")
    return success_response(
        [StudentResponseRead.model_validate(r) for r in responses],
        message=f"{len(responses)} responses recorded successfully"
    )


@router.post("/submit-exam", status_code=status.HTTP_201_CREATED)
async def submit_exam(exam: TeacherExamSubmission, db: Session = Depends(get_db)):
    """Create a submitted evaluation and all of its responses in one transaction."""
    if not db.query(Teacher).filter(Teacher.id == exam.teacher_id).first():
        raise HTTPException(status_code=404, detail="Teacher not found")
    if not db.query(Student).filter(Student.id == exam.student_id).first():
        raise HTTPException(status_code=404, detail="Student not found")
    if not db.query(Topic).filter(Topic.id == exam.topic_id).first():
        raise HTTPException(status_code=404, detail="Topic not found")
    if exam.assessment_session_id and not db.query(AssessmentSession).filter(
        AssessmentSession.id == exam.assessment_session_id
    ).first():
        raise HTTPException(status_code=404, detail="Assessment session not found")

    question_ids = {r.question_id for r in exam.responses}
    questions = db.query(Question).filter(Question.id.in_(question_ids)).all()
    if len(questions) != len(question_ids):
        raise HTTPException(status_code=404, detail="One or more questions not found")

    metadata = exam.evaluation_data
    now = datetime.utcnow()

    with transaction(db):
        evaluation = Evaluation(
            teacher_id=exam.teacher_id,
            student_id=exam.student_id,
            topic_id=exam.topic_id,
            assessment_session_id=exam.assessment_session_id,
            week_number=metadata.week_number if metadata else 1,
            metadata_url=metadata.metadata_url if metadata else "",
            audio_url=metadata.audio_url if metadata else "",
            status=EvaluationStatus.SUBMITTED,
            submitted_at=now,
        )
        evaluation.questions = questions
        db.add(evaluation)
        db.flush()

        for item in exam.responses:
            db.add(StudentResponse(
                evaluation_id=evaluation.id,
                question_id=item.question_id,
                student_id=exam.student_id,
                start_time=item.start_time or now,
                end_time=item.end_time or now,
                audio_url=item.audio_url,
            ))

    logger.info(
        f"Exam submitted: evaluation {evaluation.id} with {len(exam.responses)} responses",
        extra={"extra_data": {"teacher_id": str(exam.teacher_id), "student_id": str(exam.student_id)}}
    )
    return success_response(
        {"evaluation_id": evaluation.id, "response_count": len(exam.responses)},
        message="Exam submitted successfully"
    )


@router.get("/student/{student_id}")
async def list_responses_by_student(student_id: UUID, db: Session = Depends(get_db)):
    responses = (
        _detail_query(db)
        .filter(StudentResponse.student_id == student_id)
        .order_by(StudentResponse.created_at.desc())
        .all()
    )
    return success_response(_details(responses))


@router.get("/evaluation/{evaluation_id}")
async def list_responses_by_evaluation(evaluation_id: UUID, db: Session = Depends(get_db)):
    responses = (
        _detail_query(db)
        .filter(StudentResponse.evaluation_id == evaluation_id)
        .order_by(StudentResponse.start_time)
        .all()
    )
    return success_response(_details(responses))


@router.get("/scored")
async def list_scored_responses(evaluation_id: Optional[UUID] = None, db: Session = Depends(get_db)):
    query = _detail_query(db).filter(StudentResponse.scores.any())
    if evaluation_id:
        query = query.filter(StudentResponse.evaluation_id == evaluation_id)
    responses = query.order_by(StudentResponse.created_at.desc()).all()
    return success_response(_details(responses))


@router.get("/export")
async def export_responses(
    student_id: Optional[UUID] = None,
    evaluation_id: Optional[UUID] = None,
    teacher_id: Optional[UUID] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session = Depends(get_db)
):
    query = db.query(StudentResponse).options(
        selectinload(StudentResponse.student),
        selectinload(StudentResponse.question).selectinload(Question.topic),
    )
    if student_id:
        query = query.filter(StudentResponse.student_id == student_id)
    if evaluation_id:
        query = query.filter(StudentResponse.evaluation_id == evaluation_id)
    if teacher_id:
        evaluation_ids = select(Evaluation.id).where(Evaluation.teacher_id == teacher_id)
        submission_ids = select(StudentSubmission.id).where(StudentSubmission.teacher_id == teacher_id)
        query = query.filter(
            StudentResponse.evaluation_id.in_(evaluation_ids) | StudentResponse.submission_id.in_(submission_ids)
        )
    if start_date:
        query = query.filter(StudentResponse.created_at >= start_date)
    if end_date:
        query = query.filter(StudentResponse.created_at <= end_date)

    responses = query.order_by(StudentResponse.created_at.desc()).all()
    scores = scoring.latest_scores(db, [r.id for r in responses])

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_COLUMNS)
    for response in responses:
        latest = scores.get(response.id)
        writer.writerow([
            response.id,
            response.student.name if response.student else "Unknown Student",
            response.question.text if response.question else "Unknown Question",
            response.question.topic.name if response.question and response.question.topic else "Unknown Topic",
            response.audio_url or "",
            latest.score if latest else "Not scored",
            response.start_time.isoformat() if response.start_time else "",
            response.end_time.isoformat() if response.end_time else "",
        ])

    logger.info(f"Exported {len(responses)} student responses")
    filename = f"student-responses-{datetime.utcnow().date().isoformat()}.csv"
    return StreamingResponse(
        iter([buffer.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


@router.post("/batch-score", status_code=status.HTTP_201_CREATED)
async def batch_score(batch: BatchScoreCreate, db: Session = Depends(get_db)):
    records = scoring.batch_score_responses(db, batch.scores)
    return success_response(
        [ScoreRead.model_validate(r) for r in records],
        message=f"{len(records)} responses scored successfully"
    )


@router.get("/{response_id}")
async def get_response(response_id: UUID, db: Session = Depends(get_db)):
    response = _detail_query(db).filter(StudentResponse.id == response_id).first()
    if not response:
        raise HTTPException(status_code=404, detail="Student response not found")
    return success_response(StudentResponseDetail.model_validate(response))


@router.post("/{response_id}/score", status_code=status.HTTP_201_CREATED)
async def score(response_id: UUID, score_data: ScoreCreate, db: Session = Depends(get_db)):
    record = scoring.score_response(db, response_id, score_data)
    return success_response(ScoreRead.model_validate(record), message="Response scored successfully")


@router.post("/{response_id}/auto-score", status_code=status.HTTP_201_CREATED)
async def auto_score(response_id: UUID, request: AutoScoreRequest, db: Session = Depends(get_db)):
    result = scoring.auto_score_response(db, response_id, request.transcription)
    result["score_record"] = ScoreRead.model_validate(result["score_record"])
    return success_response(AutoScoreResult.model_validate(result), message="Response auto-scored")
