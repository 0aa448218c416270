from sqlalchemy import (
    Column, JSON, ForeignKey, DateTime, String, Text, Integer, Boolean,
    Enum as SQLEnum, UniqueConstraint, UUID,
)
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum
from kanasu.models.base import Base


class AssessmentStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    COMPLETED = "COMPLETED"


class SubmissionStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


class AssessmentSession(Base):
    """A time-boxed assessment campaign over a set of topics."""
    __tablename__ = "assessment_sessions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    status = Column(SQLEnum(AssessmentStatus), nullable=False, default=AssessmentStatus.DRAFT)
    topic_ids = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    anganwadi_assessments = relationship(
        "AnganwadiAssessment", back_populates="assessment_session", cascade="all, delete-orphan"
    )
    submissions = relationship("StudentSubmission", back_populates="assessment_session")
    evaluations = relationship("Evaluation", back_populates="assessment_session")


class AnganwadiAssessment(Base):
    """Per-anganwadi progress for one assessment session."""
    __tablename__ = "anganwadi_assessments"
    __table_args__ = (
        UniqueConstraint("assessment_session_id", "anganwadi_id", name="uq_anganwadi_assessment_session_anganwadi"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    assessment_session_id = Column(UUID(as_uuid=True), ForeignKey("assessment_sessions.id"), nullable=False)
    anganwadi_id = Column(UUID(as_uuid=True), ForeignKey("anganwadis.id"), nullable=False)
    total_student_count = Column(Integer, nullable=False, default=0)  # ACTIVE students when the session was created
    completed_student_count = Column(Integer, nullable=False, default=0)
    is_complete = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    assessment_session = relationship("AssessmentSession", back_populates="anganwadi_assessments")
    anganwadi = relationship("Anganwadi", back_populates="anganwadi_assessments")


class StudentSubmission(Base):
    __tablename__ = "student_submissions"
    __table_args__ = (
        UniqueConstraint("assessment_session_id", "student_id", name="uq_student_submission_session_student"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    assessment_session_id = Column(UUID(as_uuid=True), ForeignKey("assessment_sessions.id"), nullable=False)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id"), nullable=False)
    anganwadi_id = Column(UUID(as_uuid=True), ForeignKey("anganwadis.id"), nullable=False, index=True)
    teacher_id = Column(UUID(as_uuid=True), ForeignKey("teachers.id"), nullable=False, index=True)
    submission_status = Column(SQLEnum(SubmissionStatus), nullable=False, default=SubmissionStatus.COMPLETED)
    submitted_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    assessment_session = relationship("AssessmentSession", back_populates="submissions")
    student = relationship("Student", back_populates="submissions")
    teacher = relationship("Teacher", back_populates="submissions")
    anganwadi = relationship("Anganwadi")
    responses = relationship("StudentResponse", back_populates="submission", cascade="all, delete-orphan")
