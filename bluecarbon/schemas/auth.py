"""
Authentication schemas.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from bluecarbon.kernel.models.principal import Role


def _check_secret(v: str) -> str:
    if not any(c.isalpha() for c in v):
        raise ValueError("Password must contain at least one letter")
    if not any(c.isdigit() for c in v):
        raise ValueError("Password must contain at least one digit")
    return v


class PrincipalCreate(BaseModel):
    """Principal registration request."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    display_name: str = Field(..., min_length=1, max_length=255)
    role: Role = Role.SUBMITTER
    organization: Optional[str] = Field(None, max_length=255)
    country: Optional[str] = Field(None, max_length=100)
    contact: Optional[str] = Field(None, max_length=100)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_secret(v)


class PrincipalLogin(BaseModel):
    """Login request."""

    email: EmailStr
    password: str


class PrincipalResponse(BaseModel):
    """Principal profile response. Never carries the secret hash."""

    id: uuid.UUID
    email: str = Field(validation_alias="identity")
    display_name: str
    role: Role
    organization: Optional[str] = None
    country: Optional[str] = None
    contact: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
        populate_by_name = True


class ProfileUpdate(BaseModel):
    """Profile update request. Identity and role are immutable."""

    display_name: Optional[str] = Field(None, min_length=1, max_length=255)
    organization: Optional[str] = Field(None, max_length=255)
    country: Optional[str] = Field(None, max_length=100)
    contact: Optional[str] = Field(None, max_length=100)


class CredentialResponse(BaseModel):
    """Bearer credential response."""

    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    expires_in: int
    principal: PrincipalResponse
