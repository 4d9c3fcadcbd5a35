from __future__ import annotations

from datetime import timedelta

import pytest
from httpx import AsyncClient

from projectflow.core.config import get_settings
from projectflow.core.security import TokenType, create_token

from .conftest import AuthenticatedUser, UserFactory

pytestmark = pytest.mark.asyncio


async def test_signup_issues_tokens_and_profile(client: AsyncClient) -> None:
    response = await client.post(
        "/api/auth/signup",
        json={"email": "Jane.Doe@example.com", "password": "StrongPass123!"},
    )

    assert response.status_code == 201, response.text
    payload = response.json()
    assert payload["user"]["email"] == "jane.doe@example.com"
    assert payload["user"]["name"] == "jane.doe"
    assert payload["user"]["role"] == "user"
    assert payload["tokens"]["token_type"] == "bearer"

    me = await client.get(
        "/api/users/me",
        headers={"Authorization": f"Bearer {payload['tokens']['access_token']}"},
    )
    assert me.status_code == 200
    assert me.json()["email"] == "jane.doe@example.com"


async def test_signup_rejects_duplicate_email(client: AsyncClient, member: AuthenticatedUser) -> None:
    response = await client.post(
        "/api/auth/signup",
        json={"email": member.email.upper(), "password": "StrongPass123!"},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "email_exists"


async def test_signup_disabled(client: AsyncClient) -> None:
    get_settings().allow_signup = False

    response = await client.post(
        "/api/auth/signup",
        json={"email": "late@example.com", "password": "StrongPass123!"},
    )

    assert response.status_code == 403


async def test_login_with_wrong_password(client: AsyncClient, member: AuthenticatedUser) -> None:
    response = await client.post(
        "/api/auth/login",
        data={"username": member.email, "password": "wrong-password"},
    )

    assert response.status_code == 401
    assert response.json()["code"] == "unauthenticated"


async def test_inactive_user_cannot_login(client: AsyncClient, user_factory: UserFactory) -> None:
    inactive = await user_factory(email="sleepy@example.com", is_active=False, login=False)

    response = await client.post(
        "/api/auth/login",
        data={"username": inactive.email, "password": inactive.password},
    )

    assert response.status_code == 403


async def test_refresh_rotates_tokens(client: AsyncClient, member: AuthenticatedUser) -> None:
    response = await client.post("/api/auth/refresh", json={"refresh_token": member.refresh_token})

    assert response.status_code == 200, response.text
    rotated = response.json()["tokens"]
    assert rotated["refresh_token"] != member.refresh_token

    replay = await client.post("/api/auth/refresh", json={"refresh_token": member.refresh_token})
    assert replay.status_code == 401


async def test_access_token_cannot_refresh(client: AsyncClient, member: AuthenticatedUser) -> None:
    response = await client.post("/api/auth/refresh", json={"refresh_token": member.access_token})

    assert response.status_code == 401


async def test_logout_revokes_access_token(client: AsyncClient, member: AuthenticatedUser) -> None:
    response = await client.post("/api/auth/logout", headers=member.headers)
    assert response.status_code == 200
    assert response.json() == {"success": True}

    me = await client.get("/api/users/me", headers=member.headers)
    assert me.status_code == 401


async def test_expired_token_is_rejected(client: AsyncClient, member: AuthenticatedUser) -> None:
    expired = create_token(
        subject=member.id,
        role="user",
        settings=get_settings(),
        token_type=TokenType.ACCESS,
        expires_delta=timedelta(minutes=-1),
    )

    response = await client.get("/api/users/me", headers={"Authorization": f"Bearer {expired.token}"})

    assert response.status_code == 401
    assert response.json()["error"] == "Token has expired."


async def test_deactivated_user_loses_access(
    client: AsyncClient,
    admin: AuthenticatedUser,
    member: AuthenticatedUser,
) -> None:
    response = await client.patch(
        f"/api/users/{member.id}/status",
        json={"is_active": False},
        headers=admin.headers,
    )
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    me = await client.get("/api/users/me", headers=member.headers)
    assert me.status_code == 403


async def test_admin_cannot_deactivate_self(client: AsyncClient, admin: AuthenticatedUser) -> None:
    response = await client.patch(
        f"/api/users/{admin.id}/status",
        json={"is_active": False},
        headers=admin.headers,
    )

    assert response.status_code == 400


async def test_last_admin_cannot_be_demoted(client: AsyncClient, admin: AuthenticatedUser) -> None:
    response = await client.patch(
        f"/api/users/{admin.id}/role",
        json={"role": "user"},
        headers=admin.headers,
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Cannot remove the last admin user"


async def test_admin_promotes_member(
    client: AsyncClient,
    admin: AuthenticatedUser,
    member: AuthenticatedUser,
) -> None:
    response = await client.patch(
        f"/api/users/{member.id}/role",
        json={"role": "admin"},
        headers=admin.headers,
    )

    assert response.status_code == 200
    assert response.json()["role"] == "admin"


async def test_member_cannot_change_roles(
    client: AsyncClient,
    member: AuthenticatedUser,
    outsider: AuthenticatedUser,
) -> None:
    response = await client.patch(
        f"/api/users/{outsider.id}/role",
        json={"role": "admin"},
        headers=member.headers,
    )

    assert response.status_code == 403


async def test_users_update_own_profile_only(
    client: AsyncClient,
    member: AuthenticatedUser,
    outsider: AuthenticatedUser,
) -> None:
    own = await client.patch(
        f"/api/users/{member.id}/profile",
        json={"name": "Mia M.", "avatar_url": "https://example.com/mia.png"},
        headers=member.headers,
    )
    assert own.status_code == 200
    assert own.json()["name"] == "Mia M."
    assert own.json()["avatar_url"] == "https://example.com/mia.png"

    other = await client.patch(
        f"/api/users/{outsider.id}/profile",
        json={"name": "Hacked"},
        headers=member.headers,
    )
    assert other.status_code == 403


async def test_any_user_lists_profiles(
    client: AsyncClient,
    admin: AuthenticatedUser,
    member: AuthenticatedUser,
) -> None:
    response = await client.get("/api/users", headers=member.headers)

    assert response.status_code == 200
    emails = {user["email"] for user in response.json()}
    assert {admin.email, member.email} <= emails
