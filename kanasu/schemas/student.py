from pydantic import BaseModel, Field
from typing import Optional
from uuid import UUID
from datetime import datetime
from kanasu.models.student import Gender, StudentStatus
from kanasu.schemas.common import ORMModel


class StudentCreate(BaseModel):
    name: str = Field(min_length=1)
    gender: Gender
    status: StudentStatus = StudentStatus.ACTIVE
    age: Optional[int] = Field(default=None, ge=0)
    anganwadi_id: Optional[UUID] = None


class StudentAnganwadiAssign(BaseModel):
    student_id: UUID
    anganwadi_id: UUID


class StudentRead(ORMModel):
    id: UUID
    name: str
    gender: Gender
    status: StudentStatus
    age: Optional[int] = None
    anganwadi_id: Optional[UUID] = None
    created_at: Optional[datetime] = None
