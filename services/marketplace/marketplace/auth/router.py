"""
Marketplace service: account router.

Routes:
  POST   /api/v1/auth/forgot-password   Request a reset link
  POST   /api/v1/auth/reset-password    Redeem a reset token
  GET    /api/v1/auth/me                Own profile (Bearer)
  PUT    /api/v1/auth/profile           Update own profile (Bearer)

Login and registration live in the identity provider; this service only
handles recovery and profile data for accounts it stores.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.user import CurrentUser

from marketplace.auth import controller
from marketplace.auth.schemas import (
    ForgotPasswordRequest,
    MessageResponse,
    ProfileResponse,
    ResetPasswordRequest,
    UpdateProfileRequest,
)
from marketplace.auth.token_store import ResetTokenStore
from marketplace.config import Settings, get_settings
from marketplace.database import get_db
from marketplace.dependencies import get_current_user, get_reset_token_store

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    status_code=status.HTTP_200_OK,
    summary="Request a password reset link",
    description=(
        "Always returns the same message whether or not the email is registered "
        "(prevents enumeration). The link expires after PASSWORD_RESET_TTL_SECS."
    ),
)
async def forgot_password(
    body: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db),
    store: ResetTokenStore = Depends(get_reset_token_store),
    settings: Settings = Depends(get_settings),
) -> MessageResponse:
    return await controller.forgot_password(db, store, body, settings.frontend_url)


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    status_code=status.HTTP_200_OK,
    summary="Set a new password with a reset token",
    description="Tokens are single-use. Unknown or expired tokens return 400.",
)
async def reset_password(
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
    store: ResetTokenStore = Depends(get_reset_token_store),
) -> MessageResponse:
    return await controller.reset_password(db, store, body)


@router.get("/me", response_model=ProfileResponse, summary="Get own profile")
async def get_me(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ProfileResponse:
    return await controller.get_me(db, current_user.id)


@router.put(
    "/profile",
    response_model=ProfileResponse,
    summary="Update own profile",
    description="Only the fields present in the body are written. Names cannot be cleared.",
)
async def update_profile(
    body: UpdateProfileRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ProfileResponse:
    return await controller.update_profile(db, current_user.id, body)
