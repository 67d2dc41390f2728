"""Payments controller: maps service results to HTTP responses, catches domain exceptions."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.exceptions import (
    AlreadyEnrolledError,
    CourseNotFoundError,
    CourseNotPublishedError,
    InvalidWebhookSignatureError,
    PaymentGatewayError,
    UserNotFoundError,
)
from marketplace.payments import service
from marketplace.payments.gateway import StripeGateway
from marketplace.payments.schemas import (
    CheckoutSessionResponse,
    CreateCheckoutSessionRequest,
    EnrollmentResponse,
    EnrollmentStatusResponse,
    WebhookAckResponse,
)

logger = logging.getLogger(__name__)


def _handle_domain_error(exc: Exception) -> HTTPException:
    if isinstance(exc, (CourseNotFoundError, UserNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, CourseNotPublishedError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Course is not published.")
    if isinstance(exc, AlreadyEnrolledError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Already enrolled in this course.")
    if isinstance(exc, InvalidWebhookSignatureError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Webhook Error: {exc}")
    if isinstance(exc, PaymentGatewayError):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create checkout session.",
        )
    logger.exception("Unhandled error in payments controller")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal error.")


async def create_checkout_session(
    db: AsyncSession,
    gateway: StripeGateway,
    user_id: UUID,
    body: CreateCheckoutSessionRequest,
    frontend_url: str,
) -> CheckoutSessionResponse:
    try:
        session = await service.create_checkout(
            db, gateway,
            user_id=user_id,
            course_id=body.course_id,
            frontend_url=frontend_url,
        )
        return CheckoutSessionResponse(session_id=session.session_id, url=session.url)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def handle_webhook(
    db: AsyncSession,
    gateway: StripeGateway,
    payload: bytes,
    signature: str | None,
) -> WebhookAckResponse:
    try:
        event = gateway.construct_event(payload, signature or "")
    except InvalidWebhookSignatureError as exc:
        logger.warning("Rejected webhook: %s", exc)
        raise _handle_domain_error(exc) from exc

    try:
        await service.dispatch_event(db, event)
        await db.commit()
    except Exception as exc:
        await db.rollback()
        logger.exception("Webhook handler failed for event %s", event.get("id"))
        # 5xx makes Stripe redeliver
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook handler failed",
        ) from exc
    return WebhookAckResponse(received=True)


async def list_enrollments(db: AsyncSession, user_id: UUID) -> list[EnrollmentResponse]:
    try:
        enrollments = await service.list_enrollments(db, user_id)
        return [EnrollmentResponse.model_validate(e) for e in enrollments]
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def check_enrollment(
    db: AsyncSession, user_id: UUID, course_id: UUID,
) -> EnrollmentStatusResponse:
    try:
        enrollment = await service.check_enrollment(db, user_id, course_id)
        if enrollment is None:
            return EnrollmentStatusResponse(enrolled=False)
        return EnrollmentStatusResponse(enrolled=True, enrolled_at=enrollment.enrolled_at)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc
