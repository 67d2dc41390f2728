"""Payments Pydantic V2 schemas.

Request models reject unknown fields; every model speaks camelCase on the wire.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import Field

from shared.models import CamelModel, CamelRequest, CamelResponse


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------


class CreateCheckoutSessionRequest(CamelRequest):
    course_id: UUID = Field(description="Course to purchase.")


class CheckoutSessionResponse(CamelModel):
    session_id: str
    url: str


class WebhookAckResponse(CamelModel):
    received: bool = True


# ---------------------------------------------------------------------------
# Enrollments
# ---------------------------------------------------------------------------


class InstructorSummary(CamelResponse):
    user_id: UUID
    first_name: str
    last_name: str


class EnrolledCourseSummary(CamelResponse):
    course_id: UUID
    title: str
    slug: str
    thumbnail_url: str | None = None
    price: Decimal
    discount_price: Decimal | None = None
    instructor: InstructorSummary | None = None


class EnrollmentResponse(CamelResponse):
    enrollment_id: UUID
    course: EnrolledCourseSummary
    amount_paid: Decimal
    enrolled_at: datetime


class EnrollmentStatusResponse(CamelModel):
    enrolled: bool
    enrolled_at: datetime | None = None
