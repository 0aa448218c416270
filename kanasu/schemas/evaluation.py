from pydantic import BaseModel
from typing import List, Optional
from uuid import UUID
from datetime import datetime
from kanasu.models.evaluation import EvaluationStatus
from kanasu.schemas.common import ORMModel


class EvaluationRead(ORMModel):
    id: UUID
    teacher_id: UUID
    student_id: UUID
    topic_id: UUID
    assessment_session_id: Optional[UUID] = None
    week_number: int
    audio_url: str
    metadata_url: str
    status: EvaluationStatus
    grading_complete: bool
    submitted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    question_ids: List[UUID] = []


class EvaluationQuestionIds(BaseModel):
    question_ids: List[UUID]
