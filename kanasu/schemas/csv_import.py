from typing import List, Optional
from uuid import UUID
from datetime import datetime
from pydantic import BaseModel
from kanasu.models.csv_import import ImportStatus
from kanasu.schemas.common import ORMModel


class CsvImportRead(ORMModel):
    id: UUID
    filename: str
    imported_by: str
    anganwadi_id: Optional[UUID] = None
    status: ImportStatus
    total_rows: int
    success_rows: int
    failed_rows: int
    error_log: Optional[str] = None
    imported_at: Optional[datetime] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total_count: int
    total_pages: int


class CsvImportPage(BaseModel):
    data: List[CsvImportRead]
    pagination: Pagination
