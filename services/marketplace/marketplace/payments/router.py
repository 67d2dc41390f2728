"""Payments router. HTTP layer only.

Checkout-session initiation, the Stripe webhook receiver and the caller's
enrollment queries. Delegates to controller for orchestration.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Header, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.user import CurrentUser

from marketplace.config import Settings, get_settings
from marketplace.database import get_db
from marketplace.dependencies import get_current_user, get_gateway
from marketplace.payments import controller
from marketplace.payments.gateway import StripeGateway
from marketplace.payments.schemas import (
    CheckoutSessionResponse,
    CreateCheckoutSessionRequest,
    EnrollmentResponse,
    EnrollmentStatusResponse,
    WebhookAckResponse,
)

router = APIRouter(prefix="/payment", tags=["Payments"])


@router.post(
    "/create-checkout-session",
    response_model=CheckoutSessionResponse,
    status_code=status.HTTP_200_OK,
    summary="Start a Stripe Checkout session for a course",
    description="Rejects unknown, unpublished or already-owned courses before contacting Stripe. "
    "Provisions the caller's Stripe customer on first purchase.",
)
async def create_checkout_session(
    body: CreateCheckoutSessionRequest,
    db: AsyncSession = Depends(get_db),
    gateway: StripeGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
    current_user: CurrentUser = Depends(get_current_user),
) -> CheckoutSessionResponse:
    return await controller.create_checkout_session(
        db, gateway, current_user.id, body, settings.frontend_url,
    )


@router.post(
    "/webhook",
    response_model=WebhookAckResponse,
    status_code=status.HTTP_200_OK,
    summary="Stripe webhook receiver",
    description="Verifies the Stripe-Signature header over the raw body. "
    "checkout.session.completed creates the enrollment exactly once.",
    include_in_schema=False,
)
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(None, alias="Stripe-Signature"),
    db: AsyncSession = Depends(get_db),
    gateway: StripeGateway = Depends(get_gateway),
) -> WebhookAckResponse:
    payload = await request.body()
    return await controller.handle_webhook(db, gateway, payload, stripe_signature)


@router.get(
    "/enrollments",
    response_model=list[EnrollmentResponse],
    summary="List my enrollments",
    description="Newest first, each with a course summary.",
)
async def list_enrollments(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> list[EnrollmentResponse]:
    return await controller.list_enrollments(db, current_user.id)


@router.get(
    "/enrollment/{course_id}",
    response_model=EnrollmentStatusResponse,
    summary="Check enrollment in a course",
)
async def check_enrollment(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> EnrollmentStatusResponse:
    return await controller.check_enrollment(db, current_user.id, course_id)
