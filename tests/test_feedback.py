import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


class TestFeedback:
    """Tests for feedback submission and review."""

    async def test_submit_feedback(self, client: AsyncClient, auth_headers, test_user):
        response = await client.post(
            "/api/v1/feedback/",
            json={"message": "Please add a volleyball program", "rating": 5, "category": "feature"},
            headers=auth_headers,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["user_id"] == test_user.id
        assert data["status"] == "pending"

    async def test_rating_out_of_range(self, client: AsyncClient, auth_headers):
        response = await client.post(
            "/api/v1/feedback/",
            json={"message": "Great", "rating": 6},
            headers=auth_headers,
        )
        assert response.status_code == 422

    async def test_admin_lists_and_resolves(
        self, client: AsyncClient, auth_headers, admin_headers
    ):
        for message, category in (("Login is slow", "bug"), ("Nice site", "general")):
            await client.post(
                "/api/v1/feedback/",
                json={"message": message, "category": category},
                headers=auth_headers,
            )

        response = await client.get(
            "/api/v1/feedback/", params={"category": "bug"}, headers=admin_headers
        )
        assert response.status_code == 200
        items = response.json()
        assert [f["message"] for f in items] == ["Login is slow"]

        response = await client.patch(
            f"/api/v1/feedback/{items[0]['id']}",
            json={"status": "resolved"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["status"] == "resolved"

        response = await client.get(
            "/api/v1/feedback/", params={"status": "pending"}, headers=admin_headers
        )
        assert [f["message"] for f in response.json()] == ["Nice site"]

    async def test_list_requires_admin(self, client: AsyncClient, auth_headers):
        response = await client.get("/api/v1/feedback/", headers=auth_headers)
        assert response.status_code == 403

    async def test_update_unknown_feedback(self, client: AsyncClient, admin_headers):
        response = await client.patch(
            "/api/v1/feedback/missing", json={"status": "closed"}, headers=admin_headers
        )
        assert response.status_code == 404
