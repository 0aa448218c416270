"""
Shared fixtures: an in-memory SQLite database rebuilt for every test, a
TestClient bound to the app, and small factories for the core records.
"""
import os
import tempfile

# Settings are read at import time, so the environment is fixed first.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ENVIRONMENT"] = "test"
os.environ["EXPOSE_OTP_IN_RESPONSE"] = "true"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="kanasu-uploads-")
os.environ.pop("MSG91_AUTH_KEY", None)
os.environ.pop("AWS_S3_BUCKET", None)

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from kanasu.core.database import SessionLocal, create_tables, drop_tables
from kanasu.core.security import create_access_token, create_teacher_token, get_password_hash
from kanasu.main import app
from kanasu.models import (
    Anganwadi,
    Cohort,
    Gender,
    Question,
    Student,
    StudentStatus,
    Teacher,
    Topic,
    User,
    UserRole,
)
from kanasu.services.otp import get_otp_store


@pytest.fixture(autouse=True)
def database():
    create_tables()
    yield
    drop_tables()
    get_otp_store().clear()


@pytest.fixture
def db(database):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(database):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_anganwadi(db):
    def _make(name="Hosahalli", **kwargs):
        anganwadi = Anganwadi(
            name=name,
            location=kwargs.pop("location", "Main road"),
            district=kwargs.pop("district", "Mysuru"),
            **kwargs,
        )
        db.add(anganwadi)
        db.commit()
        return anganwadi
    return _make


@pytest.fixture
def make_student(db):
    def _make(anganwadi=None, name="Asha", status=StudentStatus.ACTIVE, gender=Gender.FEMALE):
        student = Student(
            name=name,
            gender=gender,
            status=status,
            anganwadi_id=anganwadi.id if anganwadi else None,
        )
        db.add(student)
        db.commit()
        return student
    return _make


@pytest.fixture
def make_teacher(db):
    counter = {"n": 0}

    def _make(anganwadi=None, cohort=None, name="Lakshmi", phone=None):
        counter["n"] += 1
        teacher = Teacher(
            name=name,
            phone=phone or f"98450{counter['n']:05d}",
            anganwadi_id=anganwadi.id if anganwadi else None,
            cohort_id=cohort.id if cohort else None,
        )
        db.add(teacher)
        db.commit()
        return teacher
    return _make


@pytest.fixture
def make_cohort(db):
    def _make(name="Mysuru batch", region="Mysuru"):
        cohort = Cohort(name=name, region=region)
        db.add(cohort)
        db.commit()
        return cohort
    return _make


@pytest.fixture
def make_topic(db):
    """Topic with one question per (text, options, correct) tuple."""
    def _make(name="Fruits", questions=None):
        topic = Topic(name=name, version=1)
        db.add(topic)
        db.flush()
        for text, options, correct in questions or [("What is this?", ["a red apple", "a blue car"], [0])]:
            db.add(Question(topic_id=topic.id, text=text, answer_options=options, correct_answers=correct))
        db.commit()
        db.refresh(topic)
        return topic
    return _make


@pytest.fixture
def admin_user(db):
    user = User(
        email="admin@kanasu.org",
        name="Admin",
        password_hash=get_password_hash("secret123"),
        role=UserRole.ADMIN,
    )
    db.add(user)
    db.commit()
    return user


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_user):
    token = create_access_token({
        "sub": admin_user.email,
        "id": str(admin_user.id),
        "name": admin_user.name,
        "role": UserRole.ADMIN.value,
    })
    return bearer(token)


@pytest.fixture
def teacher_headers():
    def _headers(teacher):
        anganwadi_id = str(teacher.anganwadi_id) if teacher.anganwadi_id else None
        return bearer(create_teacher_token(str(teacher.id), anganwadi_id))
    return _headers


@pytest.fixture
def running_window():
    now = datetime.utcnow()
    return now - timedelta(days=1), now + timedelta(days=6)
