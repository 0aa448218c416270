"""
Assessment session lifecycle.

Sessions are created in DRAFT together with one AnganwadiAssessment per
participating anganwadi, move forward to PUBLISHED and then COMPLETED, and
collect at most one StudentSubmission per student while they are active.
Every multi-row change here commits once or not at all.
"""
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from kanasu.core.database import transaction
from kanasu.core.exceptions import (
    DependencyError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from kanasu.core.logging_config import get_logger
from kanasu.models.anganwadi import Anganwadi
from kanasu.models.assessment import (
    AnganwadiAssessment,
    AssessmentSession,
    AssessmentStatus,
    StudentSubmission,
    SubmissionStatus,
)
from kanasu.models.cohort import Cohort
from kanasu.models.student import Student, StudentStatus
from kanasu.models.student_response import StudentResponse
from kanasu.models.teacher import Teacher
from kanasu.models.topic import Question, Topic
from kanasu.schemas.assessment import (
    AssessmentSessionCreate,
    AssessmentSessionUpdate,
    StudentSubmissionCreate,
)

logger = get_logger(__name__)

ALREADY_SUBMITTED = "Student has already submitted this assessment"
SUBMISSION_UNIQUE_CONSTRAINT = "uq_student_submission_session_student"


def get_assessment_session(db: Session, assessment_id: UUID) -> AssessmentSession:
    assessment = db.query(AssessmentSession).filter(AssessmentSession.id == assessment_id).first()
    if not assessment:
        raise NotFoundError("Assessment not found")
    return assessment


def _dedupe(ids: Iterable[UUID]) -> List[UUID]:
    seen = set()
    ordered = []
    for value in ids:
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


def resolve_anganwadi_ids(
    db: Session,
    anganwadi_ids: Iterable[UUID] = (),
    cohort_ids: Iterable[UUID] = (),
) -> List[UUID]:
    """
    Explicit anganwadi ids plus the anganwadis of every teacher in the given cohorts.

    Raises NotFoundError for unknown ids and ValidationError when nothing resolves.
    """
    explicit = _dedupe(anganwadi_ids)
    if explicit:
        found = {
            row.id for row in db.query(Anganwadi.id).filter(Anganwadi.id.in_(explicit)).all()
        }
        missing = [str(a) for a in explicit if a not in found]
        if missing:
            raise NotFoundError(f"Anganwadis not found: {', '.join(missing)}")

    from_cohorts: List[UUID] = []
    cohort_ids = _dedupe(cohort_ids)
    if cohort_ids:
        found_cohorts = {row.id for row in db.query(Cohort.id).filter(Cohort.id.in_(cohort_ids)).all()}
        missing = [str(c) for c in cohort_ids if c not in found_cohorts]
        if missing:
            raise NotFoundError(f"Cohorts not found: {', '.join(missing)}")

        rows = (
            db.query(Teacher.anganwadi_id)
            .filter(Teacher.cohort_id.in_(cohort_ids), Teacher.anganwadi_id.isnot(None))
            .order_by(Teacher.created_at, Teacher.id)
            .all()
        )
        from_cohorts = [row.anganwadi_id for row in rows]

    resolved = _dedupe(explicit + from_cohorts)
    if not resolved:
        raise ValidationError("No anganwadis found for this assessment")
    return resolved


def _count_active_students(db: Session, anganwadi_id: UUID) -> int:
    return (
        db.query(func.count(Student.id))
        .filter(Student.anganwadi_id == anganwadi_id, Student.status == StudentStatus.ACTIVE)
        .scalar()
        or 0
    )


def create_assessment_session(
    db: Session, data: AssessmentSessionCreate
) -> Tuple[AssessmentSession, List[AnganwadiAssessment]]:
    """Create a DRAFT session and snapshot each anganwadi's active student count."""
    if not data.name.strip():
        raise ValidationError("Name is required")
    if not data.topic_ids:
        raise ValidationError("At least one topic is required")
    if data.end_date < data.start_date:
        raise ValidationError("End date must not be before start date")

    topic_ids = _dedupe(data.topic_ids)
    known_topics = {row.id for row in db.query(Topic.id).filter(Topic.id.in_(topic_ids)).all()}
    missing_topics = [str(t) for t in topic_ids if t not in known_topics]
    if missing_topics:
        raise NotFoundError(f"Topics not found: {', '.join(missing_topics)}")

    anganwadi_ids = resolve_anganwadi_ids(db, data.anganwadi_ids, data.cohort_ids)

    with transaction(db):
        assessment = AssessmentSession(
            name=data.name,
            description=data.description,
            start_date=data.start_date,
            end_date=data.end_date,
            is_active=data.is_active,
            status=AssessmentStatus.DRAFT,
            topic_ids=[str(t) for t in topic_ids],
        )
        db.add(assessment)
        db.flush()

        trackers = []
        for anganwadi_id in anganwadi_ids:
            count = _count_active_students(db, anganwadi_id)
            tracker = AnganwadiAssessment(
                assessment_session=assessment,
                anganwadi_id=anganwadi_id,
                total_student_count=count,
                completed_student_count=0,
                is_complete=count == 0,
            )
            db.add(tracker)
            trackers.append(tracker)

    logger.info(
        f"Assessment session created: {assessment.id} with {len(trackers)} anganwadis",
        extra={"extra_data": {"assessment_id": str(assessment.id), "anganwadis": len(trackers)}},
    )
    return assessment, trackers


def update_assessment_session(
    db: Session, assessment_id: UUID, data: AssessmentSessionUpdate
) -> AssessmentSession:
    assessment = get_assessment_session(db, assessment_id)
    update_data = data.model_dump(exclude_unset=True)

    if "topic_ids" in update_data:
        if not update_data["topic_ids"]:
            raise ValidationError("At least one topic is required")
        update_data["topic_ids"] = [str(t) for t in _dedupe(update_data["topic_ids"])]
    if "name" in update_data and not (update_data["name"] or "").strip():
        raise ValidationError("Name is required")

    start = update_data.get("start_date", assessment.start_date)
    end = update_data.get("end_date", assessment.end_date)
    if start and end and end < start:
        raise ValidationError("End date must not be before start date")

    for field, value in update_data.items():
        setattr(assessment, field, value)
    db.commit()
    db.refresh(assessment)
    return assessment


def delete_assessment_session(db: Session, assessment_id: UUID) -> None:
    assessment = get_assessment_session(db, assessment_id)

    if assessment.evaluations or assessment.submissions:
        raise DependencyError(
            "Cannot delete session with linked evaluations or submissions. Please remove them first."
        )

    db.delete(assessment)
    db.commit()
    logger.info(f"Assessment session deleted: {assessment_id}")


def publish_assessment_session(db: Session, assessment_id: UUID) -> AssessmentSession:
    assessment = get_assessment_session(db, assessment_id)
    if assessment.status != AssessmentStatus.DRAFT:
        raise StateConflictError("Only draft assessments can be published")

    assessment.status = AssessmentStatus.PUBLISHED
    db.commit()
    db.refresh(assessment)
    logger.info(f"Assessment published: {assessment_id}")
    return assessment


def complete_assessment_session(db: Session, assessment_id: UUID) -> AssessmentSession:
    """Close a published session, marking every anganwadi complete regardless of submissions."""
    assessment = get_assessment_session(db, assessment_id)
    if assessment.status != AssessmentStatus.PUBLISHED:
        raise StateConflictError("Only published assessments can be completed")

    with transaction(db):
        for tracker in assessment.anganwadi_assessments:
            tracker.completed_student_count = tracker.total_student_count
            tracker.is_complete = True
        assessment.status = AssessmentStatus.COMPLETED
        assessment.is_active = False

    db.refresh(assessment)
    logger.info(f"Assessment completed: {assessment_id}")
    return assessment


def _is_duplicate_submission(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return (
        SUBMISSION_UNIQUE_CONSTRAINT in message
        or "student_submissions.assessment_session_id" in message
    )


def record_student_submission(
    db: Session, assessment_id: UUID, student_id: UUID, data: StudentSubmissionCreate
) -> StudentSubmission:
    """
    Record one student's completed responses for an active assessment.

    All preconditions are checked before anything is written. The submission,
    its responses and the recomputed anganwadi counter are committed together.
    """
    assessment = get_assessment_session(db, assessment_id)
    if not assessment.is_active:
        raise StateConflictError("Assessment is not active")

    tracker = (
        db.query(AnganwadiAssessment)
        .filter(
            AnganwadiAssessment.assessment_session_id == assessment_id,
            AnganwadiAssessment.anganwadi_id == data.anganwadi_id,
        )
        .first()
    )
    if not tracker:
        raise NotFoundError("This anganwadi is not part of this assessment")

    student = db.query(Student).filter(Student.id == student_id).first()
    if not student:
        raise NotFoundError("Student not found")
    if student.status != StudentStatus.ACTIVE:
        raise StateConflictError("Student is not active")
    if student.anganwadi_id != data.anganwadi_id:
        raise ValidationError("Student does not belong to this anganwadi")

    teacher = db.query(Teacher).filter(Teacher.id == data.teacher_id).first()
    if not teacher:
        raise NotFoundError("Teacher not found")

    existing = (
        db.query(StudentSubmission.id)
        .filter(
            StudentSubmission.assessment_session_id == assessment_id,
            StudentSubmission.student_id == student_id,
        )
        .first()
    )
    if existing:
        raise StateConflictError(ALREADY_SUBMITTED)

    question_ids = {item.question_id for item in data.responses}
    known_questions = set()
    if question_ids:
        known_questions = {
            row.id for row in db.query(Question.id).filter(Question.id.in_(question_ids)).all()
        }

    try:
        with transaction(db):
            submission = StudentSubmission(
                assessment_session_id=assessment_id,
                student_id=student_id,
                anganwadi_id=data.anganwadi_id,
                teacher_id=data.teacher_id,
                submission_status=SubmissionStatus.COMPLETED,
                submitted_at=datetime.utcnow(),
            )
            db.add(submission)
            db.flush()

            for item in data.responses:
                if item.question_id not in known_questions:
                    raise NotFoundError(f"Question not found: {item.question_id}")
                db.add(
                    StudentResponse(
                        submission_id=submission.id,
                        question_id=item.question_id,
                        student_id=student_id,
                        start_time=item.start_time,
                        end_time=item.end_time,
                        audio_url=item.audio_url,
                        metadata_url=item.metadata_url,
                        evaluation_id=item.evaluation_id,
                    )
                )
            db.flush()

            completed = (
                db.query(func.count(StudentSubmission.id))
                .filter(
                    StudentSubmission.assessment_session_id == assessment_id,
                    StudentSubmission.anganwadi_id == data.anganwadi_id,
                    StudentSubmission.submission_status == SubmissionStatus.COMPLETED,
                )
                .scalar()
                or 0
            )
            tracker.completed_student_count = completed
            tracker.is_complete = completed >= tracker.total_student_count
    except IntegrityError as exc:
        if _is_duplicate_submission(exc):
            logger.warning(f"Concurrent duplicate submission rejected for student {student_id}")
            raise StateConflictError(ALREADY_SUBMITTED, original_exception=exc) from exc
        raise ValidationError("Submission references records that do not exist", original_exception=exc) from exc

    db.refresh(submission)
    logger.info(
        f"Submission recorded for student {student_id} in assessment {assessment_id} "
        f"({tracker.completed_student_count}/{tracker.total_student_count})"
    )
    return submission


def compute_stats(trackers: List[AnganwadiAssessment]) -> Dict[str, int]:
    total_anganwadis = len(trackers)
    completed_anganwadis = sum(1 for t in trackers if t.is_complete)
    total_students = sum(t.total_student_count for t in trackers)
    completed_students = sum(t.completed_student_count for t in trackers)

    return {
        "total_anganwadis": total_anganwadis,
        "completed_anganwadis": completed_anganwadis,
        "anganwadi_completion_percentage": round(completed_anganwadis / total_anganwadis * 100)
        if total_anganwadis else 0,
        "total_students": total_students,
        "completed_students": completed_students,
        "student_completion_percentage": round(completed_students / total_students * 100)
        if total_students else 0,
    }


def list_assessment_sessions(db: Session) -> List[AssessmentSession]:
    return (
        db.query(AssessmentSession)
        .options(selectinload(AssessmentSession.anganwadi_assessments))
        .order_by(AssessmentSession.start_date.desc())
        .all()
    )


def list_active_sessions(db: Session, now: Optional[datetime] = None) -> List[AssessmentSession]:
    now = now or datetime.utcnow()
    return (
        db.query(AssessmentSession)
        .filter(
            AssessmentSession.is_active.is_(True),
            AssessmentSession.start_date <= now,
            AssessmentSession.end_date >= now,
        )
        .order_by(AssessmentSession.start_date.desc())
        .all()
    )


def list_active_sessions_for_anganwadi(
    db: Session, anganwadi_id: UUID, now: Optional[datetime] = None
) -> List[AssessmentSession]:
    """Published, running sessions that include this anganwadi."""
    now = now or datetime.utcnow()
    return (
        db.query(AssessmentSession)
        .join(AnganwadiAssessment, AnganwadiAssessment.assessment_session_id == AssessmentSession.id)
        .filter(
            AnganwadiAssessment.anganwadi_id == anganwadi_id,
            AssessmentSession.is_active.is_(True),
            AssessmentSession.status == AssessmentStatus.PUBLISHED,
            AssessmentSession.start_date <= now,
            AssessmentSession.end_date >= now,
        )
        .order_by(AssessmentSession.start_date.desc())
        .all()
    )


def session_topics(db: Session, assessment: AssessmentSession) -> List[Topic]:
    topic_ids = [UUID(str(t)) for t in assessment.topic_ids or []]
    if not topic_ids:
        return []
    return (
        db.query(Topic)
        .options(selectinload(Topic.questions))
        .filter(Topic.id.in_(topic_ids))
        .all()
    )


def list_anganwadi_submissions(
    db: Session, assessment_id: UUID, anganwadi_id: UUID
) -> List[StudentSubmission]:
    get_assessment_session(db, assessment_id)
    return (
        db.query(StudentSubmission)
        .options(selectinload(StudentSubmission.responses).selectinload(StudentResponse.scores))
        .filter(
            StudentSubmission.assessment_session_id == assessment_id,
            StudentSubmission.anganwadi_id == anganwadi_id,
        )
        .order_by(StudentSubmission.submitted_at)
        .all()
    )
