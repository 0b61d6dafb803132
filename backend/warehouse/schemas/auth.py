# backend/warehouse/schemas/auth.py
from datetime import datetime
from typing import Annotated
from pydantic import AfterValidator, EmailStr, Field
from warehouse.models.user import UserRole
from warehouse.schemas.common import CamelModel, Pagination


def _check_role(v: str | None) -> str | None:
    if v is not None and v not in UserRole.all():
        raise ValueError(f"Role must be one of: {', '.join(UserRole.all())}")
    return v


Role = Annotated[str, AfterValidator(_check_role)]


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Role = UserRole.STAFF
    whatsapp_phone: str | None = None


class UserUpdate(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    role: Role | None = None
    whatsapp_phone: str | None = None
    is_active: bool | None = None
    password: str | None = Field(None, min_length=6)


class UserResponse(CamelModel):
    id: int
    name: str
    email: str
    role: str
    whatsapp_phone: str | None = None
    is_active: bool
    created_at: datetime


class UserListResponse(CamelModel):
    users: list[UserResponse]
    pagination: Pagination


class LoginResponse(CamelModel):
    success: bool = True
    message: str = "Login successful"
    user: UserResponse
    token: str
