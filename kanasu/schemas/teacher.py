from pydantic import BaseModel, Field
from typing import Optional
from uuid import UUID
from datetime import datetime
from kanasu.schemas.common import ORMModel


class TeacherCreate(BaseModel):
    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    cohort_id: Optional[UUID] = None
    anganwadi_id: Optional[UUID] = None


class TeacherCohortAssign(BaseModel):
    teacher_id: UUID
    cohort_id: UUID


class TeacherAnganwadiAssign(BaseModel):
    teacher_id: UUID
    anganwadi_id: UUID


class TeacherRead(ORMModel):
    id: UUID
    name: str
    phone: str
    cohort_id: Optional[UUID] = None
    anganwadi_id: Optional[UUID] = None
    is_verified: bool = False
    rank: int = 0
    created_at: Optional[datetime] = None
