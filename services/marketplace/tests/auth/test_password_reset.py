import logging

import pytest
from httpx import AsyncClient

from marketplace.auth.passwords import hash_password, verify_password
from marketplace.auth.token_store import RedisResetTokenStore
from marketplace.dependencies import get_reset_token_store
from marketplace.models.user import User

FORGOT_URL = "/api/v1/auth/forgot-password"
RESET_URL = "/api/v1/auth/reset-password"


@pytest.mark.asyncio
async def test_forgot_password_same_message_for_known_and_unknown(
    async_client: AsyncClient, make_user, reset_store,
) -> None:
    await make_user("Known@Example.com")

    known = await async_client.post(FORGOT_URL, json={"email": "known@example.com"})
    unknown = await async_client.post(FORGOT_URL, json={"email": "ghost@example.com"})

    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()
    assert len(reset_store) == 1


@pytest.mark.asyncio
async def test_forgot_password_logs_reset_link(
    async_client: AsyncClient, make_user, caplog,
) -> None:
    await make_user("linked@example.com")
    with caplog.at_level(logging.INFO, logger="marketplace.auth.service"):
        await async_client.post(FORGOT_URL, json={"email": "linked@example.com"})
    assert "http://localhost:3000/reset-password?token=" in caplog.text


@pytest.mark.asyncio
async def test_reset_password_changes_hash_and_burns_token(
    async_client: AsyncClient, session_factory, make_user, reset_store,
) -> None:
    user = await make_user("reset@example.com", password_hash=hash_password("old-password"))
    token = await reset_store.issue(user.user_id)

    response = await async_client.post(RESET_URL, json={"token": token, "password": "new-password-1"})

    assert response.status_code == 200
    async with session_factory() as session:
        stored = await session.get(User, user.user_id)
    assert verify_password("new-password-1", stored.password_hash)
    assert not verify_password("old-password", stored.password_hash)

    reused = await async_client.post(RESET_URL, json={"token": token, "password": "another-pass"})
    assert reused.status_code == 400


@pytest.mark.asyncio
async def test_reset_password_unknown_token(async_client: AsyncClient) -> None:
    response = await async_client.post(RESET_URL, json={"token": "deadbeef", "password": "long-enough"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid or expired reset token."


@pytest.mark.asyncio
@pytest.mark.parametrize("password", ["short", "x" * 129])
async def test_reset_password_length_bounds(async_client: AsyncClient, password) -> None:
    response = await async_client.post(RESET_URL, json={"token": "abc", "password": password})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_forgot_password_rejects_invalid_email(async_client: AsyncClient) -> None:
    response = await async_client.post(FORGOT_URL, json={"email": "not-an-email"})
    assert response.status_code == 422


class _CorruptRedis:
    async def get(self, key: str) -> str:
        return "not-a-uuid"

    async def delete(self, key: str) -> None:
        pass


@pytest.mark.asyncio
async def test_reset_password_unreadable_stored_token_is_400(app, async_client: AsyncClient) -> None:
    app.dependency_overrides[get_reset_token_store] = lambda: RedisResetTokenStore(
        _CorruptRedis(), ttl_seconds=900,
    )

    response = await async_client.post(RESET_URL, json={"token": "abc123", "password": "long-enough"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid or expired reset token."
