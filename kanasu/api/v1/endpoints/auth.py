from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import Any, Dict

from kanasu.api.dependencies import require_roles
from kanasu.core.database import get_db
from kanasu.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
)
from kanasu.core.config import settings
from kanasu.core.logging_config import get_logger
from kanasu.core.response import success_response
from kanasu.models.user import User, UserRole
from kanasu.schemas.auth import RegisterRequest, LoginRequest, LoginResponse

# Initialize logger for this module
logger = get_logger(__name__)

router = APIRouter()


def _user_claims(user: User) -> Dict[str, Any]:
    return {
        "sub": user.email,
        "id": str(user.id),
        "name": user.name,
        "role": user.role.value,
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(register_data: RegisterRequest, db: Session = Depends(get_db)):
    """Create an admin or regional coordinator account."""
    logger.info(f"Registration attempt for email: {register_data.email}")

    existing = db.query(User).filter(User.email == register_data.email).first()
    if existing:
        logger.warning(f"Registration failed - email already registered: {register_data.email}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    user = User(
        email=register_data.email,
        name=register_data.name,
        password_hash=get_password_hash(register_data.password),
        role=register_data.role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info(
        f"User registered: {user.email}",
        extra={"extra_data": {"user_id": str(user.id), "role": user.role.value}}
    )

    return success_response(
        {"id": user.id, "email": user.email, "name": user.name, "role": user.role},
        message="User registered successfully"
    )


@router.post("/login", response_model=LoginResponse)
async def login(login_data: LoginRequest, db: Session = Depends(get_db)):
    """
    Login endpoint - returns JWT token
    """
    logger.info(f"Login attempt for email: {login_data.email}")

    user = db.query(User).filter(User.email == login_data.email).first()
    if not user or not verify_password(login_data.password, user.password_hash):
        logger.warning(f"Login failed - invalid credentials for: {login_data.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = create_access_token(data=_user_claims(user))

    logger.info(
        f"Login successful for user: {login_data.email}",
        extra={"extra_data": {"user_id": str(user.id), "role": user.role.value}}
    )

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "role": user.role,
        "user_id": str(user.id),
    }


@router.get("/dashboard")
async def dashboard(
    payload: Dict[str, Any] = Depends(
        require_roles(UserRole.ADMIN.value, UserRole.REGIONAL_COORDINATOR.value)
    )
):
    return {
        "message": "Welcome to the Dashboard",
        "user": {
            "id": payload.get("id"),
            "name": payload.get("name", ""),
            "role": payload.get("role"),
        },
        "token_lifetime_minutes": settings.ACCESS_TOKEN_EXPIRE_MINUTES,
    }
