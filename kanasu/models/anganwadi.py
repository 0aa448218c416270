from sqlalchemy import Column, String, DateTime, UUID
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
from kanasu.models.base import Base


class Anganwadi(Base):
    __tablename__ = "anganwadis"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False, index=True)
    location = Column(String, nullable=True)
    district = Column(String, nullable=True)
    state = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    teachers = relationship("Teacher", back_populates="anganwadi")
    students = relationship("Student", back_populates="anganwadi")
    anganwadi_assessments = relationship("AnganwadiAssessment", back_populates="anganwadi")
