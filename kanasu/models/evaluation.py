from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Table, Enum as SQLEnum, UUID
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum
from kanasu.models.base import Base


class EvaluationStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    GRADED = "GRADED"


evaluation_questions = Table(
    "evaluation_questions",
    Base.metadata,
    Column("evaluation_id", UUID(as_uuid=True), ForeignKey("evaluations.id"), primary_key=True),
    Column("question_id", UUID(as_uuid=True), ForeignKey("questions.id"), primary_key=True),
)


class Evaluation(Base):
    """Teacher-administered audio assessment of one student on one topic."""
    __tablename__ = "evaluations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    teacher_id = Column(UUID(as_uuid=True), ForeignKey("teachers.id"), nullable=False, index=True)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id"), nullable=False, index=True)
    topic_id = Column(UUID(as_uuid=True), ForeignKey("topics.id"), nullable=False)
    assessment_session_id = Column(UUID(as_uuid=True), ForeignKey("assessment_sessions.id"), nullable=True)
    week_number = Column(Integer, nullable=False, default=1)
    audio_url = Column(String, nullable=False, default="")
    metadata_url = Column(String, nullable=False, default="")
    status = Column(SQLEnum(EvaluationStatus), nullable=False, default=EvaluationStatus.DRAFT)
    grading_complete = Column(Boolean, nullable=False, default=False)
    submitted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    teacher = relationship("Teacher", back_populates="evaluations")
    student = relationship("Student", back_populates="evaluations")
    topic = relationship("Topic", back_populates="evaluations")
    assessment_session = relationship("AssessmentSession", back_populates="evaluations")
    questions = relationship("Question", secondary=evaluation_questions)
    responses = relationship("StudentResponse", back_populates="evaluation")

    @property
    def question_ids(self):
        return [q.id for q in self.questions]
