"""Payments service. Pure business logic, no FastAPI imports.

Covers checkout-session initiation, webhook reconciliation into enrollments,
and the read-only enrollment queries.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shared.database.upsert import dialect_insert

from marketplace.exceptions import (
    AlreadyEnrolledError,
    CourseNotFoundError,
    CourseNotPublishedError,
    UserNotFoundError,
)
from marketplace.models.course import Course
from marketplace.models.enrollment import Enrollment
from marketplace.models.enums import CourseStatus
from marketplace.models.user import User
from marketplace.payments.gateway import CheckoutSession, LineItem, StripeGateway

logger = logging.getLogger(__name__)

_CENT = Decimal("1")
_MINOR_UNITS = Decimal("100")


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def get_course(db: AsyncSession, course_id: UUID) -> Course:
    course = await db.get(Course, course_id)
    if course is None:
        raise CourseNotFoundError(str(course_id))
    return course


async def get_user(db: AsyncSession, user_id: UUID) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise UserNotFoundError(str(user_id))
    return user


async def get_enrollment(
    db: AsyncSession, user_id: UUID, course_id: UUID,
) -> Enrollment | None:
    result = await db.execute(
        select(Enrollment).where(
            Enrollment.user_id == user_id,
            Enrollment.course_id == course_id,
        )
    )
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------


def effective_unit_amount(course: Course) -> int:
    """Charge in minor currency units: discount price wins over base price."""
    price = course.discount_price if course.discount_price is not None else course.price
    return int((Decimal(price) * _MINOR_UNITS).quantize(_CENT, rounding=ROUND_HALF_UP))


async def ensure_customer(
    db: AsyncSession, gateway: StripeGateway, user: User,
) -> str:
    """Return the user's Stripe customer id, creating it on first use.

    The new id is committed immediately and survives a failed checkout.
    """
    if user.stripe_customer_id:
        return user.stripe_customer_id

    customer_id = await gateway.create_customer(user.email, str(user.user_id))
    user.stripe_customer_id = customer_id
    await db.commit()
    logger.info("Provisioned Stripe customer %s for user %s", customer_id, user.user_id)
    return customer_id


async def create_checkout(
    db: AsyncSession,
    gateway: StripeGateway,
    *,
    user_id: UUID,
    course_id: UUID,
    frontend_url: str,
) -> CheckoutSession:
    course = await get_course(db, course_id)
    if course.status != CourseStatus.PUBLISHED:
        raise CourseNotPublishedError()
    if await get_enrollment(db, user_id, course_id) is not None:
        raise AlreadyEnrolledError()

    user = await get_user(db, user_id)
    customer_id = await ensure_customer(db, gateway, user)

    base = frontend_url.rstrip("/")
    session = await gateway.create_checkout_session(
        customer_id=customer_id,
        item=LineItem(
            name=course.title,
            description=course.short_description,
            image_url=course.thumbnail_url,
        ),
        unit_amount=effective_unit_amount(course),
        success_url=f"{base}/courses/{course.slug}?success=true",
        cancel_url=f"{base}/courses/{course.slug}?canceled=true",
        metadata={"course_id": str(course.course_id), "user_id": str(user_id)},
    )
    logger.info(
        "Created checkout session %s for user %s course %s",
        session.session_id, user_id, course_id,
    )
    return session


# ---------------------------------------------------------------------------
# Webhook reconciliation
# ---------------------------------------------------------------------------


def _parse_uuid(value: Any) -> UUID | None:
    if not isinstance(value, str):
        return None
    try:
        return UUID(value)
    except ValueError:
        return None


def _amount_paid(amount_total: Any) -> Decimal:
    if amount_total is None:
        return Decimal("0.00")
    return (Decimal(int(amount_total)) / _MINOR_UNITS).quantize(Decimal("0.01"))


def _object_id(value: Any) -> str | None:
    # Stripe sends either the bare id or the expanded object
    if isinstance(value, dict):
        return value.get("id")
    return value


async def insert_enrollment_if_absent(
    db: AsyncSession,
    *,
    user_id: UUID,
    course_id: UUID,
    checkout_session_id: str | None,
    payment_intent_id: str | None,
    amount_paid: Decimal,
) -> UUID | None:
    """Insert the enrollment unless one already exists for (user, course).

    Returns the new enrollment id, or None when the unique constraint
    absorbed a concurrent or repeated delivery.
    """
    stmt = (
        dialect_insert(db, Enrollment)
        .values(
            enrollment_id=uuid4(),
            user_id=user_id,
            course_id=course_id,
            checkout_session_id=checkout_session_id,
            payment_intent_id=payment_intent_id,
            amount_paid=amount_paid,
            enrolled_at=datetime.now(timezone.utc),
        )
        .on_conflict_do_nothing(index_elements=["user_id", "course_id"])
        .returning(Enrollment.enrollment_id)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def handle_checkout_completed(
    db: AsyncSession, session_obj: dict[str, Any],
) -> UUID | None:
    """Turn a completed checkout session into an enrollment.

    Returns the created enrollment id, or None for every no-op branch
    (malformed metadata, unknown course or user, duplicate delivery).
    The caller owns the commit.
    """
    metadata = session_obj.get("metadata")
    if not isinstance(metadata, dict):
        metadata = {}
    course_id = _parse_uuid(metadata.get("course_id"))
    user_id = _parse_uuid(metadata.get("user_id"))
    session_id = session_obj.get("id")
    if course_id is None or user_id is None:
        logger.error(
            "Dropping checkout session %s: missing or malformed metadata %r",
            session_id, metadata,
        )
        return None

    course_exists = await db.scalar(select(Course.course_id).where(Course.course_id == course_id))
    if course_exists is None:
        logger.error("Dropping checkout session %s: course %s not found", session_id, course_id)
        return None
    user_exists = await db.scalar(select(User.user_id).where(User.user_id == user_id))
    if user_exists is None:
        logger.error("Dropping checkout session %s: user %s not found", session_id, user_id)
        return None

    if await get_enrollment(db, user_id, course_id) is not None:
        logger.info("Enrollment for user %s course %s already exists, skipping", user_id, course_id)
        return None

    enrollment_id = await insert_enrollment_if_absent(
        db,
        user_id=user_id,
        course_id=course_id,
        checkout_session_id=session_id,
        payment_intent_id=_object_id(session_obj.get("payment_intent")),
        amount_paid=_amount_paid(session_obj.get("amount_total")),
    )
    if enrollment_id is None:
        logger.info("Concurrent enrollment for user %s course %s, skipping", user_id, course_id)
        return None

    await db.execute(
        update(Course)
        .where(Course.course_id == course_id)
        .values(enrollment_count=Course.enrollment_count + 1)
    )
    logger.info("Enrolled user %s in course %s (%s)", user_id, course_id, enrollment_id)
    return enrollment_id


async def _log_payment_succeeded(db: AsyncSession, obj: dict[str, Any]) -> None:
    logger.info("Payment intent %s succeeded", obj.get("id"))


async def _log_payment_failed(db: AsyncSession, obj: dict[str, Any]) -> None:
    error = obj.get("last_payment_error") or {}
    logger.warning("Payment intent %s failed: %s", obj.get("id"), error.get("message"))


EventHandler = Callable[[AsyncSession, dict[str, Any]], Awaitable[Any]]

EVENT_HANDLERS: dict[str, EventHandler] = {
    "checkout.session.completed": handle_checkout_completed,
    "payment_intent.succeeded": _log_payment_succeeded,
    "payment_intent.payment_failed": _log_payment_failed,
}


async def dispatch_event(db: AsyncSession, event: dict[str, Any]) -> None:
    event_type = event.get("type")
    handler = EVENT_HANDLERS.get(event_type) if isinstance(event_type, str) else None
    if handler is None:
        logger.debug("Ignoring webhook event %s of type %r", event.get("id"), event_type)
        return
    obj = (event.get("data") or {}).get("object")
    if not isinstance(obj, dict):
        logger.error("Dropping webhook event %s: no data object", event.get("id"))
        return
    await handler(db, obj)


# ---------------------------------------------------------------------------
# Enrollment queries
# ---------------------------------------------------------------------------


async def list_enrollments(db: AsyncSession, user_id: UUID) -> list[Enrollment]:
    result = await db.execute(
        select(Enrollment)
        .where(Enrollment.user_id == user_id)
        .options(selectinload(Enrollment.course).selectinload(Course.instructor))
        .order_by(Enrollment.enrolled_at.desc())
    )
    return list(result.scalars().all())


async def check_enrollment(
    db: AsyncSession, user_id: UUID, course_id: UUID,
) -> Enrollment | None:
    return await get_enrollment(db, user_id, course_id)
