"""
Response scoring.

Scores are append-only StudentResponseScore rows; the newest one by
``graded_at`` is the score of a response.
"""
import re
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from kanasu.core.database import transaction
from kanasu.core.exceptions import NotFoundError, ValidationError
from kanasu.core.logging_config import get_logger
from kanasu.models.student_response import StudentResponse, StudentResponseScore
from kanasu.schemas.student_response import BatchScoreItem, ScoreCreate

logger = get_logger(__name__)

MIN_SCORE = 0
MAX_SCORE = 10
AUTO_SCORE_CORRECT = 5
MATCH_THRESHOLD = 0.5

_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def validate_score(score) -> int:
    if isinstance(score, bool) or not isinstance(score, int) or not MIN_SCORE <= score <= MAX_SCORE:
        raise ValidationError(f"Score must be between {MIN_SCORE} and {MAX_SCORE}")
    return score


def _get_response(db: Session, response_id: UUID) -> StudentResponse:
    response = db.query(StudentResponse).filter(StudentResponse.id == response_id).first()
    if not response:
        raise NotFoundError("Student response not found")
    return response


def score_response(db: Session, response_id: UUID, data: ScoreCreate) -> StudentResponseScore:
    validate_score(data.score)
    _get_response(db, response_id)

    record = StudentResponseScore(
        response_id=response_id,
        score=data.score,
        feedback=data.feedback,
        graded_by=data.graded_by,
        is_auto_scored=False,
    )
    db.add(record)
    db.commit()
    db.refresh(record)

    logger.info(f"Response {response_id} scored {data.score}")
    return record


def batch_score_responses(db: Session, items: List[BatchScoreItem]) -> List[StudentResponseScore]:
    """Validate every item first, then write all scores in one commit."""
    if not items:
        raise ValidationError("Scores array is required")

    for item in items:
        validate_score(item.score)

    response_ids = {item.response_id for item in items}
    found = {
        row.id for row in db.query(StudentResponse.id).filter(StudentResponse.id.in_(response_ids)).all()
    }
    missing = [str(r) for r in response_ids if r not in found]
    if missing:
        raise NotFoundError(f"Student responses not found: {', '.join(sorted(missing))}")

    records = []
    with transaction(db):
        for item in items:
            record = StudentResponseScore(
                response_id=item.response_id,
                score=item.score,
                feedback=item.feedback,
                graded_by=item.graded_by,
                is_auto_scored=False,
            )
            db.add(record)
            records.append(record)

    logger.info(f"Batch scored {len(records)} responses")
    return records


def normalize_text(text: Optional[str]) -> str:
    """Lowercase, drop punctuation and collapse whitespace."""
    if not text:
        return ""
    text = _PUNCTUATION.sub(" ", text.lower())
    return _WHITESPACE.sub(" ", text).strip()


def text_similarity(a: str, b: str) -> float:
    a = normalize_text(a)
    b = normalize_text(b)
    if not a or not b:
        return 0.0
    if a in b or b in a:
        return 1.0

    words_a = set(a.split())
    words_b = set(b.split())
    shared = words_a & words_b
    return len(shared) / max(len(words_a), len(words_b))


def match_answer_option(transcription: str, options: Iterable[str]) -> Tuple[Optional[int], float]:
    """Index of the option most similar to the transcription, if any beats the threshold."""
    best_index = None
    best_similarity = 0.0
    for index, option in enumerate(options):
        similarity = text_similarity(transcription, option)
        if similarity > best_similarity:
            best_index, best_similarity = index, similarity

    if best_similarity > MATCH_THRESHOLD:
        return best_index, best_similarity
    return None, best_similarity


def auto_score_response(db: Session, response_id: UUID, transcription: str) -> dict:
    response = _get_response(db, response_id)
    question = response.question
    options = list(question.answer_options or []) if question else []
    if not options:
        raise ValidationError("Question has no answer options to match against")

    correct = set(question.correct_answers or [])
    index, similarity = match_answer_option(transcription, options)
    is_correct = index is not None and index in correct
    score = AUTO_SCORE_CORRECT if is_correct else 0

    record = StudentResponseScore(
        response_id=response_id,
        score=score,
        is_auto_scored=True,
        transcription=transcription,
        graded_by="auto",
    )
    db.add(record)
    db.commit()
    db.refresh(record)

    logger.info(f"Response {response_id} auto-scored {score} (similarity {similarity:.2f})")
    return {
        "matched_option_index": index,
        "matched_option": options[index] if index is not None else None,
        "similarity": similarity,
        "is_correct": is_correct,
        "score": score,
        "score_record": record,
    }


def latest_scores(db: Session, response_ids: Iterable[UUID]) -> Dict[UUID, StudentResponseScore]:
    """Newest score per response; responses without scores are absent."""
    response_ids = list(response_ids)
    if not response_ids:
        return {}

    latest: Dict[UUID, StudentResponseScore] = {}
    rows = (
        db.query(StudentResponseScore)
        .filter(StudentResponseScore.response_id.in_(response_ids))
        .all()
    )
    for row in rows:
        current = latest.get(row.response_id)
        if current is None or row.graded_at > current.graded_at:
            latest[row.response_id] = row
    return latest
