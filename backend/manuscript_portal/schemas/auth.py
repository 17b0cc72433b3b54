from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime
import re

PHONE_PATTERN = re.compile(r'^\+?[0-9][0-9\s\-]{5,18}[0-9]$')


def _clean_name(value: str) -> str:
    value = " ".join(value.split())
    if len(value) < 2 or len(value) > 100:
        raise ValueError("Name must be between 2 and 100 characters")
    return value


class SignupRequest(BaseModel):
    name: str
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=100)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _clean_name(v)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class ResearcherDetails(BaseModel):
    """Fields every researcher application carries"""
    phone_number: str
    research_description: str

    @field_validator('phone_number')
    @classmethod
    def validate_phone(cls, v: str) -> str:
        v = v.strip()
        # Stored in a VARCHAR(20) column
        if not 7 <= len(v) <= 20 or not PHONE_PATTERN.match(v):
            raise ValueError("Please provide a valid phone number")
        return v

    @field_validator('research_description')
    @classmethod
    def validate_description(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 20 or len(v) > 2000:
            raise ValueError("Research description must be between 20 and 2000 characters")
        return v


class ResearcherSignupRequest(SignupRequest, ResearcherDetails):
    pass


class UserLogin(BaseModel):
    email: EmailStr
    password: str

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    role: str
    is_approved: bool
    is_active: bool
    phone_number: Optional[str] = None
    research_description: Optional[str] = None
    id_proof_url: Optional[str] = None
    created_at: datetime
    last_login: Optional[datetime] = None

    @field_validator('role', mode='before')
    @classmethod
    def role_to_str(cls, v):
        return getattr(v, "value", v)

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    """Returned by signup and login"""
    user: UserResponse
    token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    message: str


class MessageResponse(BaseModel):
    message: str
