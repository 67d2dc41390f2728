from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from shared.constants import Role
from shared.models import CamelModel, CamelRequest, CamelResponse


class ForgotPasswordRequest(CamelRequest):
    email: EmailStr


class ResetPasswordRequest(CamelRequest):
    token: str = Field(min_length=1, max_length=256)
    password: str = Field(min_length=8, max_length=128)


class MessageResponse(CamelModel):
    message: str


class UpdateProfileRequest(CamelRequest):
    """PUT /auth/profile: only the fields present in the body are written."""

    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    bio: str | None = Field(None, max_length=500)

    @field_validator("first_name", "last_name")
    @classmethod
    def _names_not_null(cls, v: str | None) -> str:
        # Names can be changed but never cleared
        if v is None:
            raise ValueError("must not be null")
        return v


class ProfileResponse(CamelResponse):
    user_id: UUID
    email: str
    first_name: str
    last_name: str
    role: Role
    avatar_url: str | None = None
    bio: str | None = None
    created_at: datetime
