from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID
from datetime import datetime
from kanasu.schemas.common import ORMModel


class AnganwadiCreate(BaseModel):
    name: str = Field(min_length=1)
    location: str = Field(min_length=1)
    district: str = Field(min_length=1)
    state: Optional[str] = None
    teacher_ids: List[UUID] = []
    student_ids: List[UUID] = []


class AnganwadiUpdate(BaseModel):
    name: Optional[str] = None
    location: Optional[str] = None
    district: Optional[str] = None
    state: Optional[str] = None
    teacher_ids: Optional[List[UUID]] = None
    student_ids: Optional[List[UUID]] = None


class AnganwadiRead(ORMModel):
    id: UUID
    name: str
    location: Optional[str] = None
    district: Optional[str] = None
    state: Optional[str] = None
    created_at: Optional[datetime] = None


class AnganwadiMember(ORMModel):
    id: UUID
    name: str


class AnganwadiDetail(AnganwadiRead):
    teachers: List[AnganwadiMember] = []
    students: List[AnganwadiMember] = []
