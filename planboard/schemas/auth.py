from __future__ import annotations

from pydantic import BaseModel, EmailStr

from planboard.schemas.permissions import CustomRoleSummary


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    id: str
    email: str
    display_name: str
    role: str
    role_label: str | None = None
    organization_id: str
    is_active: bool
    custom_role: CustomRoleSummary | None = None
