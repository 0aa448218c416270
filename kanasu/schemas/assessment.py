from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID
from datetime import datetime
from kanasu.models.assessment import AssessmentStatus, SubmissionStatus
from kanasu.schemas.common import ORMModel
from kanasu.schemas.student_response import StudentResponseRead


class AssessmentSessionCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    is_active: bool = True
    topic_ids: List[UUID] = Field(min_length=1)
    anganwadi_ids: List[UUID] = []
    cohort_ids: List[UUID] = []


class AssessmentSessionUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: Optional[bool] = None
    topic_ids: Optional[List[UUID]] = None


class AnganwadiAssessmentRead(ORMModel):
    id: UUID
    assessment_session_id: UUID
    anganwadi_id: UUID
    total_student_count: int
    completed_student_count: int
    is_complete: bool


class AssessmentSessionRead(ORMModel):
    id: UUID
    name: str
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    is_active: bool
    status: AssessmentStatus
    topic_ids: List[UUID] = []
    created_at: Optional[datetime] = None


class AssessmentStats(BaseModel):
    total_anganwadis: int
    completed_anganwadis: int
    anganwadi_completion_percentage: int
    total_students: int
    completed_students: int
    student_completion_percentage: int


class AssessmentSessionDetail(AssessmentSessionRead):
    anganwadi_assessments: List[AnganwadiAssessmentRead] = []
    stats: Optional[AssessmentStats] = None


class SubmittedResponse(BaseModel):
    question_id: UUID
    start_time: datetime
    end_time: datetime
    audio_url: str = ""
    metadata_url: Optional[str] = None
    evaluation_id: Optional[UUID] = None


class StudentSubmissionCreate(BaseModel):
    teacher_id: UUID
    anganwadi_id: UUID
    responses: List[SubmittedResponse]


class StudentSubmissionRead(ORMModel):
    id: UUID
    assessment_session_id: UUID
    student_id: UUID
    anganwadi_id: UUID
    teacher_id: UUID
    submission_status: SubmissionStatus
    submitted_at: Optional[datetime] = None
    responses: List[StudentResponseRead] = []
