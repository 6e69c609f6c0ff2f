from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional
from datetime import datetime

from app.models.user import UserRole
from app.schemas.common import normalize_wing


class UserRegister(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    wing: str
    flat_no: str
    phone_no: str = Field(..., min_length=7, max_length=20)
    password: str = Field(..., min_length=6)
    confirm_password: str

    @field_validator('email')
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()

    @field_validator('full_name', 'flat_no', 'phone_no')
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    @field_validator('wing')
    @classmethod
    def uppercase_wing(cls, v: str) -> str:
        return normalize_wing(v)


class VerifyOTPRequest(BaseModel):
    user_id: str
    otp: str = Field(..., min_length=1, max_length=10)


class ResendOTPRequest(BaseModel):
    email: EmailStr


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class UserSummary(BaseModel):
    """User block returned with tokens"""
    id: str
    full_name: str
    email: str
    role: UserRole
    wing: Optional[str] = None
    flat_no: Optional[str] = None

    class Config:
        from_attributes = True


class UserResponse(UserSummary):
    phone_no: Optional[str] = None
    is_verified: bool
    is_active: bool
    created_at: datetime
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class LoginResponse(TokenPair):
    success: bool = True
    message: str = "Login successful"
    user: UserSummary


class RegisterResponse(BaseModel):
    success: bool = True
    message: str = "OTP sent to email. Please verify your account."
    user_id: str


class AdminCreate(BaseModel):
    """Bootstrap admin account (not exposed over HTTP)"""
    full_name: str
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone_no: Optional[str] = None

    @model_validator(mode='after')
    def normalize(self):
        self.email = self.email.lower()
        return self
