from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID
from datetime import datetime
from kanasu.schemas.common import ORMModel


class StudentResponseCreate(BaseModel):
    question_id: UUID
    student_id: UUID
    evaluation_id: Optional[UUID] = None
    start_time: datetime
    end_time: datetime
    audio_url: str = ""
    metadata_url: Optional[str] = None


class StudentResponseBatchCreate(BaseModel):
    responses: List[StudentResponseCreate] = Field(min_length=1)


class ExamResponseItem(BaseModel):
    question_id: UUID
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    audio_url: str = ""


class ExamEvaluationData(BaseModel):
    week_number: int = 1
    metadata_url: str = ""
    audio_url: str = ""


class TeacherExamSubmission(BaseModel):
    """Whole exam sent by the teacher app: evaluation metadata plus its responses."""
    teacher_id: UUID
    student_id: UUID
    topic_id: UUID
    assessment_session_id: Optional[UUID] = None
    evaluation_data: Optional[ExamEvaluationData] = None
    responses: List[ExamResponseItem] = Field(min_length=1)


class ScoreCreate(BaseModel):
    # Range is checked by the scoring service so the error message is uniform
    score: int
    feedback: Optional[str] = None
    graded_by: Optional[str] = None


class BatchScoreItem(ScoreCreate):
    response_id: UUID


class BatchScoreCreate(BaseModel):
    scores: List[BatchScoreItem] = Field(min_length=1)


class AutoScoreRequest(BaseModel):
    transcription: str


class ScoreRead(ORMModel):
    id: UUID
    response_id: UUID
    score: int
    feedback: Optional[str] = None
    graded_by: Optional[str] = None
    is_auto_scored: bool = False
    transcription: Optional[str] = None
    graded_at: datetime


class StudentResponseRead(ORMModel):
    id: UUID
    question_id: UUID
    student_id: UUID
    evaluation_id: Optional[UUID] = None
    submission_id: Optional[UUID] = None
    start_time: datetime
    end_time: datetime
    audio_url: str
    metadata_url: Optional[str] = None
    created_at: Optional[datetime] = None
    latest_score: Optional[ScoreRead] = None


class StudentResponseDetail(StudentResponseRead):
    scores: List[ScoreRead] = []


class AutoScoreResult(BaseModel):
    matched_option_index: Optional[int] = None
    matched_option: Optional[str] = None
    similarity: float
    is_correct: bool
    score: int
    score_record: ScoreRead
