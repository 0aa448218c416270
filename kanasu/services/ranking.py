"""
Teacher rankings within a cohort.

Two rankings exist: a weighted per-assessment ranking computed on request,
and a simple activity ranking that is persisted on ``Teacher.rank``.
"""
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from kanasu.core.database import transaction
from kanasu.core.exceptions import NotFoundError
from kanasu.core.logging_config import get_logger
from kanasu.models.assessment import AnganwadiAssessment, AssessmentSession, StudentSubmission
from kanasu.models.cohort import Cohort
from kanasu.models.evaluation import Evaluation
from kanasu.models.student import Student
from kanasu.models.student_response import StudentResponse, StudentResponseScore
from kanasu.models.teacher import Teacher
from kanasu.services.assessment_lifecycle import get_assessment_session
from kanasu.services.scoring import latest_scores

logger = get_logger(__name__)

RESPONSE_RATE_WEIGHT = 0.35
ANGANWADI_RESPONSES_WEIGHT = 0.35
DIRECT_RESPONSES_WEIGHT = 0.20
AVERAGE_SCORE_WEIGHT = 0.10


def get_cohort(db: Session, cohort_id: UUID) -> Cohort:
    cohort = db.query(Cohort).filter(Cohort.id == cohort_id).first()
    if not cohort:
        raise NotFoundError("Cohort not found")
    return cohort


def _cohort_teachers(db: Session, cohort_id: UUID) -> List[Teacher]:
    return (
        db.query(Teacher)
        .filter(Teacher.cohort_id == cohort_id)
        .order_by(Teacher.created_at, Teacher.id)
        .all()
    )


def weighted_score(
    assessment_response_rate: float,
    anganwadi_responses: int,
    direct_response_count: int,
    average_score: float,
) -> float:
    # Components are on different scales (percent, raw counts, 0..10); kept as is.
    return (
        RESPONSE_RATE_WEIGHT * assessment_response_rate
        + ANGANWADI_RESPONSES_WEIGHT * anganwadi_responses
        + DIRECT_RESPONSES_WEIGHT * direct_response_count
        + AVERAGE_SCORE_WEIGHT * average_score
    )


def _teacher_assessment_metrics(db: Session, teacher: Teacher, assessment_id: UUID) -> Dict:
    direct_response_ids = [
        row.id
        for row in db.query(StudentResponse.id)
        .join(StudentSubmission, StudentResponse.submission_id == StudentSubmission.id)
        .filter(
            StudentSubmission.teacher_id == teacher.id,
            StudentSubmission.assessment_session_id == assessment_id,
        )
        .all()
    ]

    scores = latest_scores(db, direct_response_ids)
    average_score = (
        sum(s.score for s in scores.values()) / len(scores) if scores else 0.0
    )

    anganwadi_responses = 0
    response_rate = 0.0
    if teacher.anganwadi_id:
        anganwadi_responses = (
            db.query(func.count(StudentResponse.id))
            .join(StudentSubmission, StudentResponse.submission_id == StudentSubmission.id)
            .join(Student, StudentResponse.student_id == Student.id)
            .filter(
                Student.anganwadi_id == teacher.anganwadi_id,
                StudentSubmission.assessment_session_id == assessment_id,
            )
            .scalar()
            or 0
        )

        total_students = (
            db.query(func.count(Student.id))
            .filter(Student.anganwadi_id == teacher.anganwadi_id)
            .scalar()
            or 0
        )
        if total_students:
            submissions = (
                db.query(func.count(StudentSubmission.id))
                .filter(
                    StudentSubmission.anganwadi_id == teacher.anganwadi_id,
                    StudentSubmission.assessment_session_id == assessment_id,
                )
                .scalar()
                or 0
            )
            response_rate = submissions / total_students * 100

    return {
        "direct_response_count": len(direct_response_ids),
        "average_score": average_score,
        "anganwadi_responses": anganwadi_responses,
        "assessment_response_rate": response_rate,
    }


def cohort_teacher_rankings(db: Session, cohort_id: UUID, assessment_id: UUID) -> List[Dict]:
    """Weighted ranking of a cohort's teachers for one assessment, best first."""
    cohort = get_cohort(db, cohort_id)
    assessment = get_assessment_session(db, assessment_id)

    rankings = []
    for teacher in _cohort_teachers(db, cohort.id):
        metrics = _teacher_assessment_metrics(db, teacher, assessment.id)
        rankings.append(
            {
                "teacher_id": teacher.id,
                "teacher_name": teacher.name,
                "anganwadi_id": teacher.anganwadi_id,
                "anganwadi_name": teacher.anganwadi.name if teacher.anganwadi else None,
                **metrics,
                "weighted_score": weighted_score(
                    metrics["assessment_response_rate"],
                    metrics["anganwadi_responses"],
                    metrics["direct_response_count"],
                    metrics["average_score"],
                ),
            }
        )

    # sorted() is stable, equal scores keep fetch order
    rankings = sorted(rankings, key=lambda r: r["weighted_score"], reverse=True)
    for position, entry in enumerate(rankings, start=1):
        entry["rank"] = position
    return rankings


def _teacher_response_counts(db: Session, teacher_id: UUID) -> Dict[str, int]:
    """Responses recorded by a teacher through evaluations or submissions."""
    responses = (
        db.query(StudentResponse.id)
        .outerjoin(Evaluation, StudentResponse.evaluation_id == Evaluation.id)
        .outerjoin(StudentSubmission, StudentResponse.submission_id == StudentSubmission.id)
        .filter(or_(Evaluation.teacher_id == teacher_id, StudentSubmission.teacher_id == teacher_id))
    )
    response_ids = {row.id for row in responses.all()}
    if not response_ids:
        return {"total_responses": 0, "graded_responses": 0}

    graded = (
        db.query(func.count(func.distinct(StudentResponseScore.response_id)))
        .filter(StudentResponseScore.response_id.in_(response_ids))
        .scalar()
        or 0
    )
    return {"total_responses": len(response_ids), "graded_responses": graded}


def update_teacher_rankings(db: Session, cohort_id: UUID) -> List[Dict]:
    """Recompute and persist the simple activity rank of every teacher in a cohort."""
    cohort = get_cohort(db, cohort_id)
    teachers = _cohort_teachers(db, cohort.id)

    entries = []
    for teacher in teachers:
        counts = _teacher_response_counts(db, teacher.id)
        entries.append({"teacher": teacher, **counts})

    active = [e for e in entries if e["total_responses"] > 0]
    idle = [e for e in entries if e["total_responses"] == 0]
    active.sort(key=lambda e: (e["graded_responses"], e["total_responses"]), reverse=True)

    with transaction(db):
        for position, entry in enumerate(active, start=1):
            entry["teacher"].rank = position
        for entry in idle:
            entry["teacher"].rank = 0

    logger.info(f"Rankings updated for cohort {cohort_id}: {len(active)} ranked, {len(idle)} unranked")
    return [_ranking_row(e) for e in active + idle]


def _ranking_row(entry: Dict) -> Dict:
    teacher = entry["teacher"]
    return {
        "teacher_id": teacher.id,
        "teacher_name": teacher.name,
        "rank": teacher.rank,
        "graded_responses": entry["graded_responses"],
        "total_responses": entry["total_responses"],
    }


def get_teacher_rankings(db: Session, cohort_id: UUID) -> List[Dict]:
    """Persisted ranks, ranked teachers first and rank 0 last."""
    cohort = get_cohort(db, cohort_id)
    teachers = _cohort_teachers(db, cohort.id)
    rows = [
        {"teacher": t, **_teacher_response_counts(db, t.id)}
        for t in teachers
    ]
    rows.sort(key=lambda e: (e["teacher"].rank == 0, e["teacher"].rank))
    return [_ranking_row(e) for e in rows]


def cohort_assessments(db: Session, cohort_id: UUID) -> List[AssessmentSession]:
    """Assessment sessions covering at least one anganwadi of the cohort's teachers."""
    cohort = get_cohort(db, cohort_id)
    anganwadi_ids = {
        t.anganwadi_id for t in _cohort_teachers(db, cohort.id) if t.anganwadi_id
    }
    if not anganwadi_ids:
        return []
    return (
        db.query(AssessmentSession)
        .join(AnganwadiAssessment, AnganwadiAssessment.assessment_session_id == AssessmentSession.id)
        .filter(AnganwadiAssessment.anganwadi_id.in_(anganwadi_ids))
        .distinct()
        .order_by(AssessmentSession.start_date.desc())
        .all()
    )


def teacher_rank_summary(db: Session, teacher_id: UUID) -> Optional[Dict]:
    teacher = db.query(Teacher).filter(Teacher.id == teacher_id).first()
    if not teacher:
        return None
    return _ranking_row({"teacher": teacher, **_teacher_response_counts(db, teacher.id)})
