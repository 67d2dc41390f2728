"""Account controller: maps service results to HTTP responses."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.auth import service
from marketplace.auth.schemas import (
    ForgotPasswordRequest,
    MessageResponse,
    ProfileResponse,
    ResetPasswordRequest,
    UpdateProfileRequest,
)
from marketplace.auth.token_store import ResetTokenStore
from marketplace.exceptions import InvalidResetTokenError, UserNotFoundError

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = "If an account exists for this email, a password reset link has been sent."
RESET_PASSWORD_MESSAGE = "Password has been reset successfully."


def _handle_domain_error(exc: Exception) -> HTTPException:
    if isinstance(exc, InvalidResetTokenError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired reset token.")
    if isinstance(exc, UserNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
    logger.exception("Unhandled error in auth controller")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal error.")


async def forgot_password(
    db: AsyncSession,
    store: ResetTokenStore,
    body: ForgotPasswordRequest,
    frontend_url: str,
) -> MessageResponse:
    try:
        await service.request_password_reset(
            db, store, email=body.email, frontend_url=frontend_url,
        )
    except Exception as exc:
        raise _handle_domain_error(exc) from exc
    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


async def reset_password(
    db: AsyncSession,
    store: ResetTokenStore,
    body: ResetPasswordRequest,
) -> MessageResponse:
    try:
        await service.reset_password(
            db, store, token=body.token, new_password=body.password,
        )
    except Exception as exc:
        raise _handle_domain_error(exc) from exc
    return MessageResponse(message=RESET_PASSWORD_MESSAGE)


async def get_me(db: AsyncSession, user_id: UUID) -> ProfileResponse:
    try:
        user = await service.get_profile(db, user_id)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc
    return ProfileResponse.model_validate(user)


async def update_profile(
    db: AsyncSession, user_id: UUID, body: UpdateProfileRequest,
) -> ProfileResponse:
    try:
        user = await service.update_profile(db, user_id, body.model_dump(exclude_unset=True))
    except Exception as exc:
        raise _handle_domain_error(exc) from exc
    return ProfileResponse.model_validate(user)
