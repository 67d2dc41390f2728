import json
import time
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from marketplace.models.course import Course
from marketplace.models.enrollment import Enrollment
from marketplace.payments import service

URL = "/api/v1/payment/webhook"


async def _enrollment_count(session_factory) -> int:
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(Enrollment))


async def _course_counter(session_factory, course_id) -> int:
    async with session_factory() as session:
        return await session.scalar(
            select(Course.enrollment_count).where(Course.course_id == course_id)
        )


async def _post(client: AsyncClient, payload: str, signature: str | None):
    headers = {"Content-Type": "application/json"}
    if signature is not None:
        headers["Stripe-Signature"] = signature
    return await client.post(URL, content=payload, headers=headers)


@pytest.mark.asyncio
async def test_checkout_completed_creates_enrollment(
    async_client: AsyncClient, session_factory, make_user, make_course,
    completed_event, stripe_signature,
) -> None:
    user = await make_user()
    course, _ = await make_course()
    payload = completed_event(user_id=user.user_id, course_id=course.course_id, amount_total=5000)

    response = await _post(async_client, payload, stripe_signature(payload))

    assert response.status_code == 200
    assert response.json() == {"received": True}
    async with session_factory() as session:
        enrollment = (await session.execute(select(Enrollment))).scalar_one()
    assert enrollment.user_id == user.user_id
    assert enrollment.course_id == course.course_id
    assert enrollment.amount_paid == Decimal("50.00")
    assert enrollment.checkout_session_id == "cs_test_1"
    assert enrollment.payment_intent_id == "pi_test_1"
    assert await _course_counter(session_factory, course.course_id) == 1


@pytest.mark.asyncio
async def test_redelivered_event_enrolls_once(
    async_client: AsyncClient, session_factory, make_user, make_course,
    completed_event, stripe_signature,
) -> None:
    user = await make_user()
    course, _ = await make_course()
    payload = completed_event(user_id=user.user_id, course_id=course.course_id)

    first = await _post(async_client, payload, stripe_signature(payload))
    second = await _post(async_client, payload, stripe_signature(payload))

    assert first.status_code == 200
    assert second.status_code == 200
    assert await _enrollment_count(session_factory) == 1
    assert await _course_counter(session_factory, course.course_id) == 1


@pytest.mark.asyncio
async def test_missing_amount_total_records_zero(
    async_client: AsyncClient, session_factory, make_user, make_course,
    completed_event, stripe_signature,
) -> None:
    user = await make_user()
    course, _ = await make_course()
    payload = completed_event(user_id=user.user_id, course_id=course.course_id, amount_total=None)

    response = await _post(async_client, payload, stripe_signature(payload))

    assert response.status_code == 200
    async with session_factory() as session:
        enrollment = (await session.execute(select(Enrollment))).scalar_one()
    assert enrollment.amount_paid == Decimal("0")


@pytest.mark.asyncio
async def test_missing_signature_is_rejected(
    async_client: AsyncClient, session_factory, make_user, make_course, completed_event,
) -> None:
    user = await make_user()
    course, _ = await make_course()
    payload = completed_event(user_id=user.user_id, course_id=course.course_id)

    response = await _post(async_client, payload, None)

    assert response.status_code == 400
    assert await _enrollment_count(session_factory) == 0


@pytest.mark.asyncio
async def test_wrong_secret_is_rejected(
    async_client: AsyncClient, session_factory, make_user, make_course,
    completed_event, stripe_signature,
) -> None:
    user = await make_user()
    course, _ = await make_course()
    payload = completed_event(user_id=user.user_id, course_id=course.course_id)

    response = await _post(async_client, payload, stripe_signature(payload, secret="whsec_other"))

    assert response.status_code == 400
    assert response.json()["detail"].startswith("Webhook Error")
    assert await _enrollment_count(session_factory) == 0
    assert await _course_counter(session_factory, course.course_id) == 0


@pytest.mark.asyncio
async def test_tampered_body_is_rejected(
    async_client: AsyncClient, session_factory, make_user, make_course,
    completed_event, stripe_signature,
) -> None:
    user = await make_user()
    course, _ = await make_course()
    payload = completed_event(user_id=user.user_id, course_id=course.course_id, amount_total=5000)
    signature = stripe_signature(payload)
    tampered = payload.replace('"amount_total": 5000', '"amount_total": 1')

    response = await _post(async_client, tampered, signature)

    assert response.status_code == 400
    assert await _enrollment_count(session_factory) == 0


@pytest.mark.asyncio
async def test_stale_timestamp_is_rejected(
    async_client: AsyncClient, session_factory, make_user, make_course,
    completed_event, stripe_signature,
) -> None:
    user = await make_user()
    course, _ = await make_course()
    payload = completed_event(user_id=user.user_id, course_id=course.course_id)

    response = await _post(
        async_client, payload, stripe_signature(payload, timestamp=int(time.time()) - 3600),
    )

    assert response.status_code == 400
    assert await _enrollment_count(session_factory) == 0


@pytest.mark.asyncio
async def test_malformed_metadata_is_acknowledged_and_dropped(
    async_client: AsyncClient, session_factory, make_course, completed_event, stripe_signature,
) -> None:
    course, _ = await make_course()
    payload = completed_event(user_id="not-a-uuid", course_id=course.course_id)

    response = await _post(async_client, payload, stripe_signature(payload))

    assert response.status_code == 200
    assert response.json() == {"received": True}
    assert await _enrollment_count(session_factory) == 0


@pytest.mark.asyncio
async def test_payment_intent_events_change_nothing(
    async_client: AsyncClient, session_factory, stripe_signature,
) -> None:
    for event_type in ("payment_intent.succeeded", "payment_intent.payment_failed", "charge.refunded"):
        payload = json.dumps({
            "id": f"evt_{event_type}",
            "type": event_type,
            "data": {"object": {"id": "pi_test_1", "object": "payment_intent"}},
        })
        response = await _post(async_client, payload, stripe_signature(payload))
        assert response.status_code == 200
        assert response.json() == {"received": True}
    assert await _enrollment_count(session_factory) == 0


@pytest.mark.asyncio
async def test_handler_failure_returns_500_and_rolls_back(
    async_client: AsyncClient, session_factory, make_user, make_course,
    completed_event, stripe_signature, monkeypatch,
) -> None:
    user = await make_user()
    course, _ = await make_course()

    async def _explode(db, session_obj):
        await service.insert_enrollment_if_absent(
            db,
            user_id=user.user_id,
            course_id=course.course_id,
            checkout_session_id="cs_test_1",
            payment_intent_id=None,
            amount_paid=Decimal("50.00"),
        )
        raise RuntimeError("downstream failure")

    monkeypatch.setitem(service.EVENT_HANDLERS, "checkout.session.completed", _explode)
    payload = completed_event(user_id=user.user_id, course_id=course.course_id)

    response = await _post(async_client, payload, stripe_signature(payload))

    assert response.status_code == 500
    assert response.json() == {"detail": "Webhook handler failed"}
    assert await _enrollment_count(session_factory) == 0
