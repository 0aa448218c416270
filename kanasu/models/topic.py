from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, JSON, UUID
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
from kanasu.models.base import Base


class Topic(Base):
    __tablename__ = "topics"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=datetime.utcnow)

    questions = relationship("Question", back_populates="topic")
    evaluations = relationship("Evaluation", back_populates="topic")


class Question(Base):
    __tablename__ = "questions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    topic_id = Column(UUID(as_uuid=True), ForeignKey("topics.id"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    image_url = Column(String, nullable=True)
    audio_url = Column(String, nullable=True)
    answer_options = Column(JSON, nullable=True, default=list)  # ["a red apple", "a blue car"]
    correct_answers = Column(JSON, nullable=True, default=list)  # indices into answer_options
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    topic = relationship("Topic", back_populates="questions")
    responses = relationship("StudentResponse", back_populates="question")
