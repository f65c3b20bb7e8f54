from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    ACCOUNTANT = "accountant"
    VIEWER = "viewer"


ALL_ROLES = [role.value for role in Role]
WRITE_ROLES = [Role.OWNER.value, Role.ADMIN.value, Role.ACCOUNTANT.value]


class UserCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=150)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        if not any(c.isdigit() for c in v) or not any(c.isalpha() for c in v):
            raise ValueError('La contraseña debe contener letras y números')
        return v


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserOut(BaseModel):
    id: UUID
    name: str
    email: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class UserOrganizationOut(BaseModel):
    id: UUID
    org_id: UUID
    role: str
    is_active: bool
    joined_at: datetime
    org_name: Optional[str] = None

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserOut
    organizations: List[UserOrganizationOut]


class AuthContext(BaseModel):
    """Contexto de autenticación resuelto para un request con organización"""
    user_id: UUID
    org_id: Optional[UUID] = None
    user_role: Optional[str] = None
