"""Account service: password recovery and the caller's own profile. Pure business logic, no FastAPI imports."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.auth.token_store import ResetTokenStore
from marketplace.auth.passwords import hash_password
from marketplace.exceptions import InvalidResetTokenError, UserNotFoundError
from marketplace.models.user import User

logger = logging.getLogger(__name__)


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    # Case-insensitive so mixed-case registrations still match
    result = await db.execute(
        select(User).where(func.lower(User.email) == email.lower())
    )
    return result.scalar_one_or_none()


def build_reset_link(frontend_url: str, token: str) -> str:
    return f"{frontend_url.rstrip('/')}/reset-password?token={token}"


async def request_password_reset(
    db: AsyncSession,
    store: ResetTokenStore,
    *,
    email: str,
    frontend_url: str,
) -> str | None:
    """Issue a reset token when the account exists.

    Returns the token, or None for unknown emails. Callers must not reveal
    which case happened.
    """
    user = await get_user_by_email(db, email)
    if user is None:
        logger.info("Password reset requested for unknown email")
        return None

    token = await store.issue(user.user_id)
    # No mail transport; the link goes to the log for delivery out-of-band
    logger.info(
        "Password reset link for user %s: %s",
        user.user_id, build_reset_link(frontend_url, token),
    )
    return token


async def reset_password(
    db: AsyncSession,
    store: ResetTokenStore,
    *,
    token: str,
    new_password: str,
) -> User:
    """Replace the password hash and burn the token (single use).

    Raises InvalidResetTokenError for unknown, expired or used tokens.
    """
    user_id = await store.resolve(token)
    if user_id is None:
        raise InvalidResetTokenError()

    user = await db.get(User, user_id)
    if user is None:
        await store.invalidate(token)
        raise InvalidResetTokenError()

    user.password_hash = hash_password(new_password)
    await db.flush()
    await store.invalidate(token)
    logger.info("Password reset for user %s", user.user_id)
    return user


async def get_profile(db: AsyncSession, user_id: UUID) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise UserNotFoundError(str(user_id))
    return user


async def update_profile(db: AsyncSession, user_id: UUID, fields: dict) -> User:
    """Write the provided fields onto the user row; get_db commits."""
    user = await get_profile(db, user_id)
    for key, value in fields.items():
        setattr(user, key, value)
    await db.flush()
    logger.info("Profile updated for user %s (%s)", user_id, ", ".join(sorted(fields)) or "no fields")
    return user
