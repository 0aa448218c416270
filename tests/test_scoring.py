from datetime import datetime, timedelta
from uuid import uuid4

import pytest

from kanasu.core.exceptions import NotFoundError, ValidationError
from kanasu.models import StudentResponse, StudentResponseScore
from kanasu.schemas.student_response import BatchScoreItem, ScoreCreate
from kanasu.services import scoring


@pytest.fixture
def response(db, make_anganwadi, make_student, make_topic):
    student = make_student(make_anganwadi())
    topic = make_topic(questions=[("What is this?", ["the red apple", "a blue car"], [0])])
    now = datetime.utcnow()
    record = StudentResponse(
        question_id=topic.questions[0].id,
        student_id=student.id,
        start_time=now,
        end_time=now,
        audio_url="https://cdn/a.mp3",
    )
    db.add(record)
    db.commit()
    return record


@pytest.mark.parametrize("value", [-1, 11])
def test_out_of_range_scores_are_rejected(db, response, value):
    with pytest.raises(ValidationError, match="between 0 and 10"):
        scoring.score_response(db, response.id, ScoreCreate(score=value))
    assert db.query(StudentResponseScore).count() == 0


@pytest.mark.parametrize("value", [0, 10])
def test_boundary_scores_are_accepted(db, response, value):
    record = scoring.score_response(db, response.id, ScoreCreate(score=value, graded_by="coordinator"))
    assert record.score == value
    assert record.is_auto_scored is False


def test_scoring_unknown_response(db):
    with pytest.raises(NotFoundError):
        scoring.score_response(db, uuid4(), ScoreCreate(score=5))


def test_latest_score_wins(db, response):
    base = datetime.utcnow()
    db.add_all([
        StudentResponseScore(response_id=response.id, score=4, graded_at=base - timedelta(hours=1)),
        StudentResponseScore(response_id=response.id, score=9, graded_at=base),
        StudentResponseScore(response_id=response.id, score=2, graded_at=base - timedelta(hours=2)),
    ])
    db.commit()

    latest = scoring.latest_scores(db, [response.id])
    assert latest[response.id].score == 9

    db.refresh(response)
    assert response.latest_score.score == 9
    assert len(response.scores) == 3


def test_batch_score_is_all_or_nothing(db, response):
    items = [
        BatchScoreItem(response_id=response.id, score=7),
        BatchScoreItem(response_id=response.id, score=12),
    ]
    with pytest.raises(ValidationError):
        scoring.batch_score_responses(db, items)
    assert db.query(StudentResponseScore).count() == 0

    with pytest.raises(NotFoundError):
        scoring.batch_score_responses(db, [BatchScoreItem(response_id=uuid4(), score=3)])

    records = scoring.batch_score_responses(db, [BatchScoreItem(response_id=response.id, score=7)])
    assert [r.score for r in records] == [7]


def test_auto_score_correct_option(db, response):
    result = scoring.auto_score_response(db, response.id, "The red apple!")

    assert result["matched_option_index"] == 0
    assert result["is_correct"] is True
    assert result["score"] == scoring.AUTO_SCORE_CORRECT
    assert result["score_record"].is_auto_scored is True
    assert result["score_record"].transcription == "The red apple!"


def test_auto_score_wrong_option_scores_zero(db, response):
    result = scoring.auto_score_response(db, response.id, "a blue car")

    assert result["matched_option_index"] == 1
    assert result["is_correct"] is False
    assert result["score"] == 0


def test_auto_score_without_match(db, response):
    result = scoring.auto_score_response(db, response.id, "banana")

    assert result["matched_option_index"] is None
    assert result["score"] == 0


def test_text_similarity():
    assert scoring.text_similarity("Red  Apple.", "red apple") == 1.0
    assert scoring.text_similarity("", "red apple") == 0.0
    assert scoring.text_similarity("big red ball", "big blue box") == pytest.approx(1 / 3)
