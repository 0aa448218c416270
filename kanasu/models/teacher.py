from sqlalchemy import Column, String, Boolean, Integer, DateTime, ForeignKey, UUID
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
from kanasu.models.base import Base


class Teacher(Base):
    __tablename__ = "teachers"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=False, unique=True, index=True)
    cohort_id = Column(UUID(as_uuid=True), ForeignKey("cohorts.id"), nullable=True)
    anganwadi_id = Column(UUID(as_uuid=True), ForeignKey("anganwadis.id"), nullable=True)
    is_verified = Column(Boolean, default=False, nullable=False)
    rank = Column(Integer, default=0, nullable=False)  # 0 = unranked (no responses)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    cohort = relationship("Cohort", back_populates="teachers")
    anganwadi = relationship("Anganwadi", back_populates="teachers")
    evaluations = relationship("Evaluation", back_populates="teacher")
    submissions = relationship("StudentSubmission", back_populates="teacher")

    def __repr__(self):
        return f"<Teacher(id={self.id}, name={self.name}, phone={self.phone})>"
