from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Enum as SQLEnum, UUID
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum
from kanasu.models.base import Base


class Gender(str, enum.Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"


class StudentStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class Student(Base):
    __tablename__ = "students"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    gender = Column(SQLEnum(Gender), nullable=False)
    status = Column(SQLEnum(StudentStatus), nullable=False, default=StudentStatus.ACTIVE)
    age = Column(Integer, nullable=True)
    anganwadi_id = Column(UUID(as_uuid=True), ForeignKey("anganwadis.id"), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    anganwadi = relationship("Anganwadi", back_populates="students")
    evaluations = relationship("Evaluation", back_populates="student")
    responses = relationship("StudentResponse", back_populates="student")
    submissions = relationship("StudentSubmission", back_populates="student")
