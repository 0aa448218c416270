from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from typing import Any, Dict, Optional
from uuid import UUID
from kanasu.core.database import get_db
from kanasu.core.security import decode_access_token
from kanasu.models.teacher import Teacher
from kanasu.models.user import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)

TEACHER_ROLE = "TEACHER"


def _credentials_exception(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"}
    )


async def get_token_payload(token: Optional[str] = Depends(oauth2_scheme)) -> Dict[str, Any]:
    """Decoded JWT claims; 401 when the token is missing, invalid or expired."""
    if not token:
        raise _credentials_exception("Not authenticated")

    payload = decode_access_token(token)
    if not payload or not payload.get("id"):
        raise _credentials_exception()
    return payload


def require_roles(*roles: str):
    """Dependency factory: allow only tokens whose role is one of ``roles`` (403 otherwise)."""
    async def checker(payload: Dict[str, Any] = Depends(get_token_payload)) -> Dict[str, Any]:
        if payload.get("role") not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient role"
            )
        return payload
    return checker


def _parse_id(value: Any) -> UUID:
    try:
        return UUID(str(value))
    except (ValueError, TypeError):
        raise _credentials_exception()


async def get_current_user(
    payload: Dict[str, Any] = Depends(get_token_payload),
    db: Session = Depends(get_db)
) -> User:
    """Admin or regional coordinator behind the token."""
    if payload.get("role") == TEACHER_ROLE:
        raise _credentials_exception()

    user = db.query(User).filter(User.id == _parse_id(payload["id"])).first()
    if not user:
        raise _credentials_exception()
    return user


async def get_current_teacher(
    payload: Dict[str, Any] = Depends(require_roles(TEACHER_ROLE)),
    db: Session = Depends(get_db)
) -> Teacher:
    """Teacher logged in through OTP."""
    teacher = db.query(Teacher).filter(Teacher.id == _parse_id(payload["id"])).first()
    if not teacher:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Teacher not found"
        )
    return teacher
