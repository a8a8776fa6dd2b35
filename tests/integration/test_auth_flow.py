"""Integration tests for the account lifecycle: register, login, refresh, logout."""

import pytest

from karaoke.auth import ACCESS_TOKEN_COOKIE
from karaoke.redis import refresh_token_key


class TestRegistration:
    @pytest.mark.asyncio
    async def test_register_issues_tokens_and_cookie(self, async_client, mock_redis_client):
        response = await async_client.post(
            "/api/auth/register",
            json={"email": "  Cat.Lover@Example.com ", "password": "meow-meow-1"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["user"]["email"] == "cat.lover@example.com"
        assert body["token_type"] == "bearer"
        assert ACCESS_TOKEN_COOKIE in response.cookies
        key = refresh_token_key(body["user"]["id"])
        assert mock_redis_client.store[key] == body["refresh_token"]

    @pytest.mark.asyncio
    async def test_duplicate_email(self, async_client, make_user):
        await make_user(email="taken@example.com")

        response = await async_client.post(
            "/api/auth/register",
            json={"email": "taken@example.com", "password": "meow-meow-1"},
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_invalid_email(self, async_client):
        response = await async_client.post(
            "/api/auth/register", json={"email": "not-an-email", "password": "meow-meow-1"}
        )

        assert response.status_code == 422


class TestLoginFlow:
    @pytest.mark.asyncio
    async def test_login_then_me_via_cookie(self, async_client, make_user):
        await make_user(email="parrot@example.com", password="polly-wants-1")

        login = await async_client.post(
            "/api/auth/login",
            json={"email": "parrot@example.com", "password": "polly-wants-1"},
        )
        assert login.status_code == 200

        # The client keeps the HttpOnly cookie from the login response
        me = await async_client.get("/api/auth/me")
        assert me.status_code == 200
        assert me.json()["email"] == "parrot@example.com"

    @pytest.mark.asyncio
    async def test_wrong_password(self, async_client, make_user):
        await make_user(email="parrot@example.com", password="polly-wants-1")

        response = await async_client.post(
            "/api/auth/login",
            json={"email": "parrot@example.com", "password": "wrong-password"},
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_suspended_account(self, async_client, make_user):
        await make_user(email="banned@example.com", password="polly-wants-1", status="suspended")

        response = await async_client.post(
            "/api/auth/login",
            json={"email": "banned@example.com", "password": "polly-wants-1"},
        )

        assert response.status_code == 403


class TestRefreshAndLogout:
    @pytest.mark.asyncio
    async def test_refresh_rotates_tokens(self, async_client, make_user, mock_redis_client):
        await make_user(email="cat@example.com", password="whiskers-123")
        login = (
            await async_client.post(
                "/api/auth/login", json={"email": "cat@example.com", "password": "whiskers-123"}
            )
        ).json()

        refreshed = await async_client.post(
            "/api/auth/refresh", json={"refresh_token": login["refresh_token"]}
        )

        assert refreshed.status_code == 200
        new_refresh = refreshed.json()["refresh_token"]
        assert new_refresh != login["refresh_token"]
        stale = await async_client.post(
            "/api/auth/refresh", json={"refresh_token": login["refresh_token"]}
        )
        assert stale.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_revokes_refresh_token(self, async_client, make_user, mock_redis_client):
        await make_user(email="cat@example.com", password="whiskers-123")
        login = (
            await async_client.post(
                "/api/auth/login", json={"email": "cat@example.com", "password": "whiskers-123"}
            )
        ).json()
        headers = {"Authorization": f"Bearer {login['access_token']}"}

        response = await async_client.post("/api/auth/logout", headers=headers)

        assert response.status_code == 200
        assert refresh_token_key(login["user"]["id"]) not in mock_redis_client.store
        refreshed = await async_client.post(
            "/api/auth/refresh", json={"refresh_token": login["refresh_token"]}
        )
        assert refreshed.status_code == 401
