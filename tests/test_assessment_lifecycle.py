from contextlib import contextmanager
from datetime import datetime
from uuid import uuid4

import pytest
from sqlalchemy import func

from kanasu.core.exceptions import NotFoundError, StateConflictError, ValidationError
from kanasu.models import (
    AnganwadiAssessment,
    AssessmentStatus,
    StudentResponse,
    StudentStatus,
    StudentSubmission,
)
from kanasu.schemas.assessment import (
    AssessmentSessionCreate,
    AssessmentSessionUpdate,
    StudentSubmissionCreate,
)
from kanasu.services import assessment_lifecycle as lifecycle


def _create(db, topic, window, anganwadis=(), cohorts=()):
    start, end = window
    data = AssessmentSessionCreate(
        name="Week 1",
        start_date=start,
        end_date=end,
        topic_ids=[topic.id],
        anganwadi_ids=[a.id for a in anganwadis],
        cohort_ids=[c.id for c in cohorts],
    )
    return lifecycle.create_assessment_session(db, data)


def _submission(teacher, anganwadi, question_ids):
    now = datetime.utcnow()
    return StudentSubmissionCreate(
        teacher_id=teacher.id,
        anganwadi_id=anganwadi.id,
        responses=[
            {"question_id": q, "start_time": now, "end_time": now, "audio_url": "https://cdn/a.mp3"}
            for q in question_ids
        ],
    )


def _response_count(db):
    return db.query(func.count(StudentResponse.id)).scalar()


def test_create_makes_one_tracker_per_anganwadi(db, make_anganwadi, make_student, make_topic, running_window):
    first = make_anganwadi("Hosahalli")
    second = make_anganwadi("Kalligere")
    make_student(first, "Asha")
    make_student(first, "Ravi")
    topic = make_topic()

    assessment, trackers = _create(db, topic, running_window, anganwadis=[first, second, first])

    assert assessment.status == AssessmentStatus.DRAFT
    assert len(trackers) == 2
    counts = {t.anganwadi_id: t.total_student_count for t in trackers}
    assert counts == {first.id: 2, second.id: 0}
    assert all(t.completed_student_count == 0 for t in trackers)


def test_anganwadi_without_students_starts_complete(db, make_anganwadi, make_topic, running_window):
    empty = make_anganwadi("Empty")
    _, trackers = _create(db, make_topic(), running_window, anganwadis=[empty])

    assert trackers[0].total_student_count == 0
    assert trackers[0].is_complete is True


def test_cohorts_resolve_to_their_teachers_anganwadis(
    db, make_anganwadi, make_teacher, make_cohort, make_topic, running_window
):
    cohort = make_cohort()
    first = make_anganwadi("Hosahalli")
    second = make_anganwadi("Kalligere")
    make_teacher(first, cohort)
    make_teacher(second, cohort)
    make_teacher(first, cohort)
    make_teacher(None, cohort)

    _, trackers = _create(db, make_topic(), running_window, anganwadis=[first], cohorts=[cohort])

    assert {t.anganwadi_id for t in trackers} == {first.id, second.id}


def test_create_rejects_empty_participant_set(db, make_cohort, make_topic, running_window):
    cohort = make_cohort()
    with pytest.raises(ValidationError, match="No anganwadis found"):
        _create(db, make_topic(), running_window, cohorts=[cohort])


def test_create_rejects_unknown_topic(db, make_anganwadi, running_window):
    anganwadi = make_anganwadi()
    start, end = running_window
    data = AssessmentSessionCreate(
        name="Week 1", start_date=start, end_date=end, topic_ids=[uuid4()], anganwadi_ids=[anganwadi.id]
    )
    with pytest.raises(NotFoundError):
        lifecycle.create_assessment_session(db, data)


def test_create_rejects_end_before_start(db, make_anganwadi, make_topic, running_window):
    start, end = running_window
    with pytest.raises(ValidationError):
        _create(db, make_topic(), (end, start), anganwadis=[make_anganwadi()])


def test_inactive_students_are_not_counted_and_two_submissions_complete(
    db, make_anganwadi, make_student, make_teacher, make_topic, running_window
):
    anganwadi = make_anganwadi()
    asha = make_student(anganwadi, "Asha")
    ravi = make_student(anganwadi, "Ravi")
    make_student(anganwadi, "Gone", status=StudentStatus.INACTIVE)
    teacher = make_teacher(anganwadi)
    topic = make_topic()
    question_ids = [q.id for q in topic.questions]

    assessment, trackers = _create(db, topic, running_window, anganwadis=[anganwadi])
    tracker = trackers[0]
    assert tracker.total_student_count == 2

    lifecycle.record_student_submission(db, assessment.id, asha.id, _submission(teacher, anganwadi, question_ids))
    db.refresh(tracker)
    assert tracker.completed_student_count == 1
    assert tracker.is_complete is False

    lifecycle.record_student_submission(db, assessment.id, ravi.id, _submission(teacher, anganwadi, question_ids))
    db.refresh(tracker)
    assert tracker.completed_student_count == 2
    assert tracker.is_complete is True

    stats = lifecycle.compute_stats(assessment.anganwadi_assessments)
    assert stats["completed_students"] == 2
    assert stats["student_completion_percentage"] == 100


def test_duplicate_submission_is_rejected_without_new_responses(
    db, make_anganwadi, make_student, make_teacher, make_topic, running_window
):
    anganwadi = make_anganwadi()
    student = make_student(anganwadi)
    make_student(anganwadi, "Ravi")
    teacher = make_teacher(anganwadi)
    topic = make_topic()
    question_ids = [q.id for q in topic.questions]
    assessment, _ = _create(db, topic, running_window, anganwadis=[anganwadi])

    lifecycle.record_student_submission(db, assessment.id, student.id, _submission(teacher, anganwadi, question_ids))
    before = _response_count(db)

    with pytest.raises(StateConflictError, match="already submitted"):
        lifecycle.record_student_submission(
            db, assessment.id, student.id, _submission(teacher, anganwadi, question_ids)
        )

    assert _response_count(db) == before
    tracker = db.query(AnganwadiAssessment).filter_by(assessment_session_id=assessment.id).one()
    assert tracker.completed_student_count == 1


def test_concurrent_duplicate_submission_becomes_state_conflict(
    db, monkeypatch, make_anganwadi, make_student, make_teacher, make_topic, running_window
):
    anganwadi = make_anganwadi()
    student = make_student(anganwadi)
    teacher = make_teacher(anganwadi)
    topic = make_topic()
    assessment, _ = _create(db, topic, running_window, anganwadis=[anganwadi])
    real_transaction = lifecycle.transaction

    @contextmanager
    def other_request_commits_first(session):
        # A second writer lands its row after the existence check has passed
        with real_transaction(session):
            session.add(StudentSubmission(
                assessment_session_id=assessment.id,
                student_id=student.id,
                anganwadi_id=anganwadi.id,
                teacher_id=teacher.id,
            ))
            session.flush()
            yield session

    monkeypatch.setattr(lifecycle, "transaction", other_request_commits_first)

    payload = _submission(teacher, anganwadi, [q.id for q in topic.questions])
    with pytest.raises(StateConflictError, match="already submitted"):
        lifecycle.record_student_submission(db, assessment.id, student.id, payload)

    assert db.query(func.count(StudentSubmission.id)).scalar() == 0
    assert _response_count(db) == 0


def test_unknown_question_rolls_back_the_whole_submission(
    db, make_anganwadi, make_student, make_teacher, make_topic, running_window
):
    anganwadi = make_anganwadi()
    student = make_student(anganwadi)
    teacher = make_teacher(anganwadi)
    topic = make_topic()
    assessment, _ = _create(db, topic, running_window, anganwadis=[anganwadi])

    payload = _submission(teacher, anganwadi, [topic.questions[0].id, uuid4()])
    with pytest.raises(NotFoundError, match="Question not found"):
        lifecycle.record_student_submission(db, assessment.id, student.id, payload)

    assert db.query(func.count(StudentSubmission.id)).scalar() == 0
    assert _response_count(db) == 0
    tracker = db.query(AnganwadiAssessment).filter_by(assessment_session_id=assessment.id).one()
    assert tracker.completed_student_count == 0


def test_submission_preconditions(
    db, make_anganwadi, make_student, make_teacher, make_topic, running_window
):
    anganwadi = make_anganwadi("Hosahalli")
    other = make_anganwadi("Outside")
    teacher = make_teacher(anganwadi)
    inactive = make_student(anganwadi, "Gone", status=StudentStatus.INACTIVE)
    stranger = make_student(other, "Stranger")
    topic = make_topic()
    question_ids = [q.id for q in topic.questions]
    assessment, _ = _create(db, topic, running_window, anganwadis=[anganwadi])

    with pytest.raises(StateConflictError, match="not active"):
        lifecycle.record_student_submission(
            db, assessment.id, inactive.id, _submission(teacher, anganwadi, question_ids)
        )
    with pytest.raises(ValidationError, match="does not belong"):
        lifecycle.record_student_submission(
            db, assessment.id, stranger.id, _submission(teacher, anganwadi, question_ids)
        )
    with pytest.raises(NotFoundError, match="not part of this assessment"):
        lifecycle.record_student_submission(
            db, assessment.id, stranger.id, _submission(teacher, other, question_ids)
        )


def test_publish_then_complete(db, make_anganwadi, make_student, make_topic, running_window):
    anganwadi = make_anganwadi()
    make_student(anganwadi)
    assessment, _ = _create(db, make_topic(), running_window, anganwadis=[anganwadi])

    with pytest.raises(StateConflictError):
        lifecycle.complete_assessment_session(db, assessment.id)

    lifecycle.publish_assessment_session(db, assessment.id)
    assert assessment.status == AssessmentStatus.PUBLISHED
    with pytest.raises(StateConflictError):
        lifecycle.publish_assessment_session(db, assessment.id)

    completed = lifecycle.complete_assessment_session(db, assessment.id)
    assert completed.status == AssessmentStatus.COMPLETED
    assert completed.is_active is False
    tracker = completed.anganwadi_assessments[0]
    assert tracker.is_complete is True
    assert tracker.completed_student_count == tracker.total_student_count

    with pytest.raises(StateConflictError):
        lifecycle.complete_assessment_session(db, assessment.id)


def test_completed_session_refuses_submissions(
    db, make_anganwadi, make_student, make_teacher, make_topic, running_window
):
    anganwadi = make_anganwadi()
    student = make_student(anganwadi)
    teacher = make_teacher(anganwadi)
    topic = make_topic()
    assessment, _ = _create(db, topic, running_window, anganwadis=[anganwadi])
    lifecycle.publish_assessment_session(db, assessment.id)
    lifecycle.complete_assessment_session(db, assessment.id)

    with pytest.raises(StateConflictError, match="Assessment is not active"):
        lifecycle.record_student_submission(
            db, assessment.id, student.id, _submission(teacher, anganwadi, [topic.questions[0].id])
        )


def test_update_validates_dates(db, make_anganwadi, make_topic, running_window):
    assessment, _ = _create(db, make_topic(), running_window, anganwadis=[make_anganwadi()])
    start, _ = running_window

    with pytest.raises(ValidationError):
        lifecycle.update_assessment_session(
            db, assessment.id, AssessmentSessionUpdate(end_date=start.replace(year=start.year - 1))
        )

    updated = lifecycle.update_assessment_session(db, assessment.id, AssessmentSessionUpdate(name="Week 2"))
    assert updated.name == "Week 2"


def test_active_for_anganwadi_lists_only_published_sessions(
    db, make_anganwadi, make_topic, running_window
):
    anganwadi = make_anganwadi()
    topic = make_topic()
    draft, _ = _create(db, topic, running_window, anganwadis=[anganwadi])
    published, _ = _create(db, topic, running_window, anganwadis=[anganwadi])
    lifecycle.publish_assessment_session(db, published.id)

    sessions = lifecycle.list_active_sessions_for_anganwadi(db, anganwadi.id)

    assert [s.id for s in sessions] == [published.id]


def test_compute_stats_of_empty_session_is_zero():
    assert lifecycle.compute_stats([]) == {
        "total_anganwadis": 0,
        "completed_anganwadis": 0,
        "anganwadi_completion_percentage": 0,
        "total_students": 0,
        "completed_students": 0,
        "student_completion_percentage": 0,
    }
