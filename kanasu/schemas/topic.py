from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID
from datetime import datetime
from kanasu.schemas.common import ORMModel


class TopicCreate(BaseModel):
    name: str = Field(min_length=1)
    version: int = Field(default=1, ge=1)


class TopicUpdate(BaseModel):
    name: Optional[str] = None
    version: Optional[int] = Field(default=None, ge=1)


class QuestionCreate(BaseModel):
    topic_id: UUID
    text: str = Field(min_length=1)
    image_url: Optional[str] = None
    audio_url: Optional[str] = None
    answer_options: List[str] = []
    correct_answers: List[int] = []


class QuestionBatchCreate(BaseModel):
    questions: List[QuestionCreate] = Field(min_length=1)


class QuestionRead(ORMModel):
    id: UUID
    topic_id: UUID
    text: str
    image_url: Optional[str] = None
    audio_url: Optional[str] = None
    answer_options: Optional[List[str]] = None
    correct_answers: Optional[List[int]] = None
    created_at: Optional[datetime] = None


class TopicRead(ORMModel):
    id: UUID
    name: str
    version: int
    created_at: Optional[datetime] = None


class TopicDetail(TopicRead):
    questions: List[QuestionRead] = []
