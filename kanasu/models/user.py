from sqlalchemy import Column, String, DateTime, Enum as SQLEnum, UUID
from datetime import datetime
import uuid
import enum
from kanasu.models.base import Base


class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    REGIONAL_COORDINATOR = "REGIONAL_COORDINATOR"


class User(Base):
    """Dashboard user (administrators and regional coordinators)."""
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(SQLEnum(UserRole), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
