from sqlalchemy import Column, String, Integer, Text, DateTime, Enum as SQLEnum, UUID
from datetime import datetime
import uuid
import enum
from kanasu.models.base import Base


class ImportStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class CsvImport(Base):
    __tablename__ = "csv_imports"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    filename = Column(String, nullable=False)
    imported_by = Column(String, nullable=False)
    anganwadi_id = Column(UUID(as_uuid=True), nullable=True)  # fallback for rows without anganwadiName
    status = Column(SQLEnum(ImportStatus), nullable=False, default=ImportStatus.PENDING)
    total_rows = Column(Integer, nullable=False, default=0)
    success_rows = Column(Integer, nullable=False, default=0)
    failed_rows = Column(Integer, nullable=False, default=0)
    error_log = Column(Text, nullable=True)
    imported_at = Column(DateTime, default=datetime.utcnow)
