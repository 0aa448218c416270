from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from kanasu.models.user import UserRole


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    name: str = Field(min_length=1)
    role: UserRole


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: UserRole
    user_id: str


class OtpRequest(BaseModel):
    phone: str = Field(min_length=1)


class OtpVerifyRequest(BaseModel):
    phone: str = Field(min_length=1)
    otp: Optional[str] = None
