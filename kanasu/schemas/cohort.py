from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID
from datetime import datetime
from kanasu.schemas.common import ORMModel
from kanasu.schemas.teacher import TeacherRead


class CohortCreate(BaseModel):
    name: str = Field(min_length=1)
    region: str = Field(min_length=1)
    teacher_ids: List[UUID] = []


class CohortRead(ORMModel):
    id: UUID
    name: str
    region: str
    created_at: Optional[datetime] = None
    teachers: List[TeacherRead] = []
