from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from schoolfees.core.enums import UserRole


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    name: str = Field(..., min_length=2)
    school_name: str = Field(..., min_length=2)
    role: UserRole = UserRole.ADMIN
    # Shared secret that gates account creation
    system_key: str


class UserInfo(BaseModel):
    id: UUID
    email: EmailStr
    name: str
    school_name: str
    role: str

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    success: bool = True
    user: Optional[UserInfo] = None
    token: Optional[str] = None


class Principal(BaseModel):
    """The authenticated account for one request. Passed explicitly into every service call."""

    id: UUID
    email: str
    name: str
    school_name: str
    role: str
