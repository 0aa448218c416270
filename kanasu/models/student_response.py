from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime, ForeignKey, UUID
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
from kanasu.models.base import Base


class StudentResponse(Base):
    """One recorded answer (audio + timing) to one question."""
    __tablename__ = "student_responses"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    question_id = Column(UUID(as_uuid=True), ForeignKey("questions.id"), nullable=False, index=True)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id"), nullable=False, index=True)
    evaluation_id = Column(UUID(as_uuid=True), ForeignKey("evaluations.id"), nullable=True, index=True)
    submission_id = Column(UUID(as_uuid=True), ForeignKey("student_submissions.id"), nullable=True, index=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    audio_url = Column(String, nullable=False, default="")
    metadata_url = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    question = relationship("Question", back_populates="responses")
    student = relationship("Student", back_populates="responses")
    evaluation = relationship("Evaluation", back_populates="responses")
    submission = relationship("StudentSubmission", back_populates="responses")
    scores = relationship(
        "StudentResponseScore",
        back_populates="response",
        order_by="StudentResponseScore.graded_at.desc()",
        cascade="all, delete-orphan",
    )

    @property
    def latest_score(self):
        """The authoritative score: most recent by graded_at."""
        if not self.scores:
            return None
        return max(self.scores, key=lambda s: s.graded_at)


class StudentResponseScore(Base):
    """Append-only grade for a response."""
    __tablename__ = "student_response_scores"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    response_id = Column(UUID(as_uuid=True), ForeignKey("student_responses.id"), nullable=False, index=True)
    score = Column(Integer, nullable=False)  # 0..10
    feedback = Column(Text, nullable=True)
    graded_by = Column(String, nullable=True)
    is_auto_scored = Column(Boolean, nullable=False, default=False)
    transcription = Column(Text, nullable=True)
    graded_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    response = relationship("StudentResponse", back_populates="scores")
