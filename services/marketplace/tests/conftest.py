import hashlib
import hmac
import json
import time
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from shared.auth.config import AuthSettings
from shared.auth.dependencies import get_auth_settings
from shared.constants import Role
from shared.database.postgres import Base, get_session

from marketplace.auth.token_store import MemoryResetTokenStore
from marketplace.database import get_db
from marketplace.dependencies import get_gateway, get_reset_token_store
from marketplace.exceptions import PaymentGatewayError
from marketplace.main import create_app
from marketplace.models import Course, CourseSection, Enrollment, Lecture, User
from marketplace.models.enums import CourseStatus
from marketplace.payments.gateway import CheckoutSession, StripeGateway

TEST_DATABASE_URL = "sqlite+aiosqlite://"
WEBHOOK_SECRET = "whsec_test_secret"
TEST_AUTH = AuthSettings(
    secret="test-secret",
    algorithm="HS256",
    issuer="coursemart-identity",
    audience="coursemart-services",
)


class FakeGateway(StripeGateway):
    """Records outbound Stripe calls; webhook verification stays real."""

    def __init__(self) -> None:
        super().__init__("sk_test_fake", WEBHOOK_SECRET, tolerance=300)
        self.customers: list[tuple[str, str]] = []
        self.sessions: list[dict[str, Any]] = []
        self.fail_checkout = False

    async def create_customer(self, email: str, user_id: str) -> str:
        self.customers.append((email, user_id))
        return f"cus_test_{len(self.customers)}"

    async def create_checkout_session(self, **kwargs: Any) -> CheckoutSession:
        if self.fail_checkout:
            raise PaymentGatewayError("card network unavailable")
        self.sessions.append(kwargs)
        n = len(self.sessions)
        return CheckoutSession(
            session_id=f"cs_test_{n}",
            url=f"https://checkout.stripe.test/pay/cs_test_{n}",
        )


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Build a Stripe-Signature header the way Stripe does."""
    ts = timestamp if timestamp is not None else int(time.time())
    digest = hmac.new(secret.encode(), f"{ts}.{payload}".encode(), hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


def checkout_completed_event(
    *,
    user_id: Any,
    course_id: Any,
    amount_total: int | None = 5000,
    session_id: str = "cs_test_1",
    event_id: str = "evt_test_1",
) -> str:
    session: dict[str, Any] = {
        "id": session_id,
        "object": "checkout.session",
        "payment_intent": "pi_test_1",
        "metadata": {"user_id": str(user_id), "course_id": str(course_id)},
    }
    if amount_total is not None:
        session["amount_total"] = amount_total
    return json.dumps({
        "id": event_id,
        "object": "event",
        "type": "checkout.session.completed",
        "data": {"object": session},
    })


def token_for(user_id: UUID, email: str = "", roles: tuple[str, ...] = ("student",)) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "email": email,
        "roles": list(roles),
        "iss": TEST_AUTH.issuer,
        "aud": TEST_AUTH.audience,
        "iat": now,
        "exp": now + timedelta(minutes=15),
    }
    return jwt.encode(payload, TEST_AUTH.secret, algorithm=TEST_AUTH.algorithm)


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {token_for(user.user_id, user.email)}"}


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    yield factory
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def reset_store() -> MemoryResetTokenStore:
    return MemoryResetTokenStore(ttl_seconds=3600)


@pytest.fixture
def app(session_factory, gateway, reset_store) -> FastAPI:
    application = create_app()

    async def _get_db() -> AsyncGenerator[AsyncSession, None]:
        async for session in get_session(session_factory):
            yield session

    application.dependency_overrides[get_db] = _get_db
    application.dependency_overrides[get_gateway] = lambda: gateway
    application.dependency_overrides[get_reset_token_store] = lambda: reset_store
    application.dependency_overrides[get_auth_settings] = lambda: TEST_AUTH
    return application


@pytest_asyncio.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_user(session_factory):
    async def _make(
        email: str | None = None,
        *,
        role: Role = Role.STUDENT,
        password_hash: str = "not-a-real-hash",
        stripe_customer_id: str | None = None,
    ) -> User:
        async with session_factory() as session:
            user = User(
                email=email or f"user-{uuid4().hex[:8]}@example.com",
                password_hash=password_hash,
                first_name="Test",
                last_name="User",
                role=role,
                stripe_customer_id=stripe_customer_id,
            )
            session.add(user)
            await session.commit()
            return user

    return _make


@pytest.fixture
def make_course(session_factory, make_user):
    """Create a course with ``lectures_per_section`` lectures in each section.

    Returns ``(course, lectures)`` with lectures in curriculum order.
    """

    async def _make(
        *,
        lectures_per_section: tuple[int, ...] = (2, 2),
        status: CourseStatus = CourseStatus.PUBLISHED,
        price: Decimal = Decimal("49.99"),
        discount_price: Decimal | None = None,
    ) -> tuple[Course, list[Lecture]]:
        instructor = await make_user(role=Role.INSTRUCTOR)
        async with session_factory() as session:
            course = Course(
                instructor_id=instructor.user_id,
                title="Practical Python",
                slug=f"practical-python-{uuid4().hex[:8]}",
                short_description="Learn by building.",
                thumbnail_url="https://cdn.example.com/thumb.png",
                price=price,
                discount_price=discount_price,
                status=status,
            )
            session.add(course)
            await session.flush()

            lectures: list[Lecture] = []
            for s_idx, count in enumerate(lectures_per_section):
                section = CourseSection(
                    course_id=course.course_id,
                    title=f"Section {s_idx + 1}",
                    sort_order=s_idx,
                )
                session.add(section)
                await session.flush()
                for l_idx in range(count):
                    lecture = Lecture(
                        section_id=section.section_id,
                        title=f"Lecture {s_idx + 1}.{l_idx + 1}",
                        sort_order=l_idx,
                    )
                    session.add(lecture)
                    lectures.append(lecture)
            await session.commit()
            return course, lectures

    return _make


@pytest.fixture
def enroll(session_factory):
    async def _enroll(user_id: UUID, course_id: UUID) -> Enrollment:
        async with session_factory() as session:
            enrollment = Enrollment(
                user_id=user_id,
                course_id=course_id,
                amount_paid=Decimal("49.99"),
            )
            session.add(enrollment)
            await session.commit()
            return enrollment

    return _enroll


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def stripe_signature():
    return sign_payload


@pytest.fixture
def completed_event():
    return checkout_completed_event
