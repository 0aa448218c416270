import json
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from kanasu.core.database import get_db, transaction
from kanasu.core.logging_config import get_logger
from kanasu.core.response import success_response
from kanasu.models.student_response import StudentResponse
from kanasu.models.topic import Question, Topic
from kanasu.schemas.topic import QuestionBatchCreate, QuestionCreate, QuestionRead
from kanasu.services import media_storage
from kanasu.services.assessment_lifecycle import get_assessment_session, session_topics
from kanasu.services.scoring import latest_scores

logger = get_logger(__name__)

router = APIRouter()


def _parse_json_list(raw: Optional[str], field: str) -> list:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail=f"{field} must be a JSON array")
    if not isinstance(value, list):
        raise HTTPException(status_code=400, detail=f"{field} must be a JSON array")
    return value


def _check_correct_answers(question: QuestionCreate) -> None:
    bad = [i for i in question.correct_answers if i < 0 or i >= len(question.answer_options)]
    if bad:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"correct_answers reference missing options: {bad}"
        )


def _get_question(db: Session, question_id: UUID) -> Question:
    question = db.query(Question).filter(Question.id == question_id).first()
    if not question:
        raise HTTPException(status_code=404, detail="Question not found")
    return question


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_question(
    topic_id: UUID = Form(...),
    text: str = Form(...),
    answer_options: Optional[str] = Form(None),
    correct_answers: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    audio: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db)
):
    """Create a question from multipart form data; image and audio are uploaded to storage."""
    if not image or not image.filename or not audio or not audio.filename:
        raise HTTPException(status_code=400, detail="Image and audio files are required.")

    try:
        question_data = QuestionCreate(
            topic_id=topic_id,
            text=text,
            answer_options=_parse_json_list(answer_options, "answer_options"),
            correct_answers=_parse_json_list(correct_answers, "correct_answers"),
        )
    except SchemaValidationError as e:
        raise HTTPException(status_code=400, detail=e.errors(include_url=False)[0]["msg"])
    _check_correct_answers(question_data)

    if not db.query(Topic).filter(Topic.id == topic_id).first():
        raise HTTPException(status_code=404, detail="Topic not found")

    urls = media_storage.store_uploads({"image": image, "audio": audio})
    image_url = urls["image"]
    audio_url = urls["audio"]

    question = Question(**question_data.model_dump(), image_url=image_url, audio_url=audio_url)
    db.add(question)
    db.commit()
    db.refresh(question)

    logger.info(f"Question created: {question.id}", extra={"extra_data": {"topic_id": str(topic_id)}})
    return success_response(QuestionRead.model_validate(question), message="Question created successfully")


@router.post("/batch", status_code=status.HTTP_201_CREATED)
async def batch_create_questions(batch: QuestionBatchCreate, db: Session = Depends(get_db)):
    for item in batch.questions:
        _check_correct_answers(item)

    topic_ids = {q.topic_id for q in batch.questions}
    found = {row.id for row in db.query(Topic.id).filter(Topic.id.in_(topic_ids)).all()}
    missing = [str(t) for t in topic_ids if t not in found]
    if missing:
        raise HTTPException(status_code=404, detail=f"Topics not found: {', '.join(missing)}")

    questions = [Question(**q.model_dump()) for q in batch.questions]
    with transaction(db):
        db.add_all(questions)

    logger.info(f"Batch created {len(questions)} questions")
    return success_response(
        [QuestionRead.model_validate(q) for q in questions],
        message=f"{len(questions)} questions created successfully"
    )


@router.get("/")
async def list_questions(db: Session = Depends(get_db)):
    questions = db.query(Question).order_by(Question.created_at).all()
    return success_response([QuestionRead.model_validate(q) for q in questions])


@router.get("/topic/{topic_id}")
async def list_questions_by_topic(topic_id: UUID, db: Session = Depends(get_db)):
    questions = (
        db.query(Question)
        .filter(Question.topic_id == topic_id)
        .order_by(Question.created_at)
        .all()
    )
    return success_response([QuestionRead.model_validate(q) for q in questions])


@router.get("/session/{session_id}")
async def list_questions_by_session(session_id: UUID, db: Session = Depends(get_db)):
    """Questions of every topic in an assessment session, grouped by topic."""
    assessment = get_assessment_session(db, session_id)
    topics = session_topics(db, assessment)

    grouped: List[dict] = [
        {
            "topic_id": topic.id,
            "topic_name": topic.name,
            "questions": [QuestionRead.model_validate(q) for q in topic.questions],
        }
        for topic in topics
    ]
    return success_response(grouped, total_questions=sum(len(g["questions"]) for g in grouped))


@router.get("/{question_id}")
async def get_question(question_id: UUID, db: Session = Depends(get_db)):
    return success_response(QuestionRead.model_validate(_get_question(db, question_id)))


@router.get("/{question_id}/stats")
async def get_question_stats(question_id: UUID, db: Session = Depends(get_db)):
    question = _get_question(db, question_id)

    response_ids = [
        row.id for row in db.query(StudentResponse.id).filter(StudentResponse.question_id == question_id).all()
    ]
    scores = latest_scores(db, response_ids)
    values = [s.score for s in scores.values()]

    return success_response({
        "question": QuestionRead.model_validate(question),
        "total_responses": len(response_ids),
        "scored_responses": len(values),
        "auto_scored_responses": sum(1 for s in scores.values() if s.is_auto_scored),
        "average_score": round(sum(values) / len(values), 2) if values else 0,
    })
