from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from app.models.password_reset_token import PasswordResetToken

pytestmark = pytest.mark.asyncio


class TestAuthRegister:
    """Tests for user registration endpoint."""

    async def test_register_success(self, client: AsyncClient):
        """Test successful user registration."""
        response = await client.post(
            "/api/v1/auth/register",
            json={
                "username": "newuser",
                "email": "NewUser@Example.com",
                "password": "NewPass123",
                "confirm_password": "NewPass123",
            },
        )
        assert response.status_code == 201
        data = response.json()
        assert data["user"]["username"] == "newuser"
        assert data["user"]["email"] == "newuser@example.com"
        assert data["user"]["role"] == "user"
        assert "access_token" in data["tokens"]
        assert "refresh_token" in data["tokens"]

    async def test_register_duplicate_email(self, client: AsyncClient, test_user):
        """Test registration with existing email."""
        response = await client.post(
            "/api/v1/auth/register",
            json={
                "username": "someoneelse",
                "email": "testuser@example.com",
                "password": "NewPass123",
                "confirm_password": "NewPass123",
            },
        )
        assert response.status_code == 400
        assert "already registered" in response.json()["message"]

    async def test_register_duplicate_username(self, client: AsyncClient, test_user):
        response = await client.post(
            "/api/v1/auth/register",
            json={
                "username": "testuser",
                "email": "fresh@example.com",
                "password": "NewPass123",
                "confirm_password": "NewPass123",
            },
        )
        assert response.status_code == 400
        assert "Username" in response.json()["message"]

    async def test_register_weak_password(self, client: AsyncClient):
        """Test registration with a password lacking digits."""
        response = await client.post(
            "/api/v1/auth/register",
            json={
                "username": "newuser",
                "email": "newuser@example.com",
                "password": "onlyletters",
                "confirm_password": "onlyletters",
            },
        )
        assert response.status_code == 422

    async def test_register_passwords_mismatch(self, client: AsyncClient):
        """Test registration with mismatched passwords."""
        response = await client.post(
            "/api/v1/auth/register",
            json={
                "username": "newuser",
                "email": "newuser@example.com",
                "password": "NewPass123",
                "confirm_password": "Different123",
            },
        )
        assert response.status_code == 422


class TestAuthLogin:
    """Tests for login with email or username."""

    async def test_login_with_email(self, client: AsyncClient, test_user):
        response = await client.post(
            "/api/v1/auth/login",
            json={"login": "testuser@example.com", "password": "TestPass123"},
        )
        assert response.status_code == 200
        assert response.json()["tokens"]["token_type"] == "bearer"

    async def test_login_with_username(self, client: AsyncClient, test_user):
        response = await client.post(
            "/api/v1/auth/login",
            json={"login": "testuser", "password": "TestPass123"},
        )
        assert response.status_code == 200
        assert response.json()["user"]["id"] == test_user.id

    async def test_login_wrong_password(self, client: AsyncClient, test_user):
        response = await client.post(
            "/api/v1/auth/login",
            json={"login": "testuser", "password": "WrongPass123"},
        )
        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHORIZED"

    async def test_swagger_token_endpoint(self, client: AsyncClient, test_user):
        response = await client.post(
            "/api/v1/auth/token",
            data={"username": "testuser", "password": "TestPass123"},
        )
        assert response.status_code == 200
        assert "access_token" in response.json()


class TestAuthSession:
    """Tests for refresh, logout and token revocation."""

    async def _login(self, client: AsyncClient) -> dict:
        response = await client.post(
            "/api/v1/auth/login",
            json={"login": "testuser", "password": "TestPass123"},
        )
        return response.json()["tokens"]

    async def test_refresh_token(self, client: AsyncClient, test_user):
        tokens = await self._login(client)
        response = await client.post(
            "/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]}
        )
        assert response.status_code == 200
        assert "access_token" in response.json()

    async def test_refresh_rejects_access_token(self, client: AsyncClient, test_user):
        tokens = await self._login(client)
        response = await client.post(
            "/api/v1/auth/refresh", json={"refresh_token": tokens["access_token"]}
        )
        assert response.status_code == 401

    async def test_logout_revokes_all_tokens(self, client: AsyncClient, test_user):
        """After logout neither the access nor the refresh token is accepted."""
        tokens = await self._login(client)
        headers = {"Authorization": f"Bearer {tokens['access_token']}"}

        response = await client.post("/api/v1/auth/logout", headers=headers)
        assert response.status_code == 200
        assert response.json()["revoked_before"] == 1

        response = await client.get("/api/v1/users/me", headers=headers)
        assert response.status_code == 401
        assert response.json()["message"] == "Token has been revoked"

        response = await client.post(
            "/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]}
        )
        assert response.status_code == 401

    async def test_me_requires_token(self, client: AsyncClient):
        response = await client.get("/api/v1/users/me")
        assert response.status_code == 401

    async def test_me_returns_account(self, client: AsyncClient, auth_headers, test_user):
        response = await client.get("/api/v1/users/me", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["username"] == "testuser"

    async def test_user_list_is_admin_only(
        self, client: AsyncClient, auth_headers, official_headers
    ):
        response = await client.get("/api/v1/users/", headers=auth_headers)
        assert response.status_code == 403

        # SK officials have admin rights
        response = await client.get("/api/v1/users/", headers=official_headers)
        assert response.status_code == 200


class TestPasswordReset:
    """Tests for the forgot and reset password flow."""

    async def _forgot(self, client: AsyncClient, email: str = "testuser@example.com") -> dict:
        response = await client.post("/api/v1/auth/forgot-password", json={"email": email})
        assert response.status_code == 200
        return response.json()

    async def _reset(self, client: AsyncClient, token: str, password: str = "BrandNew456"):
        return await client.post(
            "/api/v1/auth/reset-password",
            json={"token": token, "new_password": password, "confirm_password": password},
        )

    async def test_forgot_password_returns_token(self, client: AsyncClient, test_user):
        data = await self._forgot(client, "TestUser@Example.com")
        assert data["token"]
        assert "password reset link" in data["message"]

    async def test_forgot_password_unknown_email(self, client: AsyncClient):
        """Unknown emails get the same message and no token."""
        data = await self._forgot(client, "nobody@example.com")
        assert data["token"] is None
        assert "password reset link" in data["message"]

    async def test_reset_password_changes_login(self, client: AsyncClient, test_user):
        token = (await self._forgot(client))["token"]

        response = await self._reset(client, token)
        assert response.status_code == 200

        response = await client.post(
            "/api/v1/auth/login", json={"login": "testuser", "password": "TestPass123"}
        )
        assert response.status_code == 401

        response = await client.post(
            "/api/v1/auth/login", json={"login": "testuser", "password": "BrandNew456"}
        )
        assert response.status_code == 200

    async def test_reset_revokes_existing_sessions(
        self, client: AsyncClient, auth_headers, test_user
    ):
        token = (await self._forgot(client))["token"]
        assert (await self._reset(client, token)).status_code == 200

        response = await client.get("/api/v1/users/me", headers=auth_headers)
        assert response.status_code == 401

    async def test_token_is_single_use(self, client: AsyncClient, test_user):
        token = (await self._forgot(client))["token"]
        assert (await self._reset(client, token)).status_code == 200

        response = await self._reset(client, token, "Another789")
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid or expired reset token"

    async def test_new_request_invalidates_older_token(self, client: AsyncClient, test_user):
        first = (await self._forgot(client))["token"]
        second = (await self._forgot(client))["token"]

        assert (await self._reset(client, first)).status_code == 400
        assert (await self._reset(client, second)).status_code == 200

    async def test_expired_token_is_rejected(self, client: AsyncClient, db_session, test_user):
        token = (await self._forgot(client))["token"]
        reset_token = await PasswordResetToken.get_by_token(db_session, token)
        reset_token.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
        await db_session.commit()

        response = await self._reset(client, token)
        assert response.status_code == 400

    async def test_unknown_token(self, client: AsyncClient):
        response = await self._reset(client, "not-a-token")
        assert response.status_code == 400

    async def test_reset_requires_strong_password(self, client: AsyncClient, test_user):
        token = (await self._forgot(client))["token"]
        response = await self._reset(client, token, "onlyletters")
        assert response.status_code == 422
