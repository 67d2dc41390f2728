from uuid import uuid4

import pytest
from httpx import AsyncClient

from marketplace.models.user import User

ME_URL = "/api/v1/auth/me"
PROFILE_URL = "/api/v1/auth/profile"


@pytest.mark.asyncio
async def test_get_me_returns_own_profile(
    async_client: AsyncClient, make_user, headers_for,
) -> None:
    user = await make_user("me@example.com")

    response = await async_client.get(ME_URL, headers=headers_for(user))

    assert response.status_code == 200
    body = response.json()
    assert body["userId"] == str(user.user_id)
    assert body["email"] == "me@example.com"
    assert body["firstName"] == "Test"
    assert body["lastName"] == "User"
    assert body["role"] == "student"
    assert body["bio"] is None
    assert "passwordHash" not in body
    assert "stripeCustomerId" not in body


@pytest.mark.asyncio
async def test_get_me_requires_token(async_client: AsyncClient) -> None:
    response = await async_client.get(ME_URL)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_get_me_for_deleted_account_is_404(async_client: AsyncClient, headers_for) -> None:
    ghost = User(user_id=uuid4(), email="gone@example.com")
    response = await async_client.get(ME_URL, headers=headers_for(ghost))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_profile_writes_only_given_fields(
    async_client: AsyncClient, session_factory, make_user, headers_for,
) -> None:
    user = await make_user()

    response = await async_client.put(
        PROFILE_URL,
        json={"firstName": "Ada", "bio": "Teaches pandas on weekends."},
        headers=headers_for(user),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["firstName"] == "Ada"
    assert body["lastName"] == "User"
    assert body["bio"] == "Teaches pandas on weekends."

    async with session_factory() as session:
        stored = await session.get(User, user.user_id)
    assert stored.first_name == "Ada"
    assert stored.last_name == "User"
    assert stored.bio == "Teaches pandas on weekends."


@pytest.mark.asyncio
async def test_update_profile_can_clear_bio(
    async_client: AsyncClient, make_user, headers_for,
) -> None:
    user = await make_user()
    await async_client.put(PROFILE_URL, json={"bio": "temporary"}, headers=headers_for(user))

    response = await async_client.put(PROFILE_URL, json={"bio": None}, headers=headers_for(user))

    assert response.status_code == 200
    assert response.json()["bio"] is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"firstName": ""},
        {"lastName": None},
        {"bio": "x" * 501},
        {"email": "new@example.com"},
        {"role": "admin"},
    ],
)
async def test_update_profile_rejects_invalid_bodies(
    async_client: AsyncClient, make_user, headers_for, payload,
) -> None:
    user = await make_user()
    response = await async_client.put(PROFILE_URL, json=payload, headers=headers_for(user))
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_update_profile_requires_token(async_client: AsyncClient) -> None:
    response = await async_client.put(PROFILE_URL, json={"firstName": "Ada"})
    assert response.status_code == 401
