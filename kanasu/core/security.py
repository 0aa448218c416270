from datetime import datetime, timedelta
from typing import Optional, Dict, Any
from jose import JWTError, jwt, ExpiredSignatureError
from passlib.context import CryptContext
from kanasu.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, password_hash: str) -> bool:
    return pwd_context.verify(plain_password, password_hash)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create JWT access token.

    Args:
        data: Dictionary containing the token claims (id, role, ...)
        expires_delta: Token lifetime (defaults to ACCESS_TOKEN_EXPIRE_MINUTES from settings)

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({
        "exp": expire,
        "iat": datetime.utcnow(),
        "type": "access"
    })

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_teacher_token(teacher_id: str, anganwadi_id: Optional[str]) -> str:
    """Token issued after OTP login; carries the teacher's anganwadi."""
    return create_access_token(
        {
            "sub": teacher_id,
            "id": teacher_id,
            "role": "TEACHER",
            "anganwadi_id": anganwadi_id,
        },
        expires_delta=timedelta(days=settings.TEACHER_TOKEN_EXPIRE_DAYS),
    )


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and validate JWT access token.

    Returns:
        Decoded token payload or None if invalid/expired
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])

        if payload.get("type") != "access":
            return None

        return payload
    except ExpiredSignatureError:
        return None
    except JWTError:
        return None
