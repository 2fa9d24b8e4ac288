import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from app.models.participant import Participant
from app.models.registration import Registration, RegistrationStatus
from app.services.participant_service import ParticipantService
from app.services.registration_service import RegistrationService

pytestmark = pytest.mark.asyncio


def _participant_payload(**overrides) -> dict:
    payload = {
        "first_name": "Liza",
        "last_name": "Reyes",
        "age": 17,
        "contact": "0917 555 1234",
        "email": "liza@example.com",
        "address": "Poblacion",
    }
    payload.update(overrides)
    return payload


class TestParticipantAdmin:
    """Tests for admin participant management."""

    async def test_create_with_programs_registers_approved(
        self, client: AsyncClient, admin_headers, db_session, test_program, second_program
    ):
        response = await client.post(
            "/api/v1/participants/",
            json=_participant_payload(program_ids=[test_program.id, second_program.id]),
            headers=admin_headers,
        )
        assert response.status_code == 201
        participant_id = response.json()["id"]

        for program in (test_program, second_program):
            registration = await Registration.get_by_pair(
                db_session, program.id, participant_id
            )
            assert registration.registration_status == RegistrationStatus.APPROVED

    async def test_create_with_unknown_program_writes_nothing(
        self, client: AsyncClient, admin_headers
    ):
        response = await client.post(
            "/api/v1/participants/",
            json=_participant_payload(program_ids=["missing"]),
            headers=admin_headers,
        )
        assert response.status_code == 422

        response = await client.get("/api/v1/participants/", headers=admin_headers)
        assert response.json() == []

    async def test_duplicate_participant(
        self, client: AsyncClient, admin_headers, test_participant
    ):
        response = await client.post(
            "/api/v1/participants/",
            json=_participant_payload(
                first_name="maria", last_name="SANTOS", contact="09171234567"
            ),
            headers=admin_headers,
        )
        assert response.status_code == 409
        assert response.json()["error_code"] == "DUPLICATE_PARTICIPANT"

    @pytest.mark.parametrize("contact", ["12345", "call me", "0917123456789012345"])
    async def test_invalid_contact(self, client: AsyncClient, admin_headers, contact):
        response = await client.post(
            "/api/v1/participants/",
            json=_participant_payload(contact=contact),
            headers=admin_headers,
        )
        assert response.status_code == 422

    async def test_search(self, client: AsyncClient, admin_headers, make_participant):
        await make_participant()
        await make_participant(first_name="Pedro", last_name="Garcia", contact="09990001111")

        response = await client.get(
            "/api/v1/participants/", params={"search": "garc"}, headers=admin_headers
        )
        assert [p["first_name"] for p in response.json()] == ["Pedro"]

    async def test_update_participant(
        self, client: AsyncClient, admin_headers, test_participant
    ):
        response = await client.put(
            f"/api/v1/participants/{test_participant.id}",
            json={"age": 20, "address": "Barangay 2"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["age"] == 20
        assert data["address"] == "Barangay 2"
        assert data["first_name"] == "Maria"

    async def test_delete_removes_registrations(
        self, client: AsyncClient, admin_headers, db_session, test_participant, test_program
    ):
        await RegistrationService(db_session).apply(test_participant.id, test_program.id)

        response = await client.delete(
            f"/api/v1/participants/{test_participant.id}", headers=admin_headers
        )
        assert response.status_code == 200
        assert (
            await Registration.get_by_pair(db_session, test_program.id, test_participant.id)
            is None
        )

        response = await client.get(
            f"/api/v1/participants/{test_participant.id}", headers=admin_headers
        )
        assert response.status_code == 404


class TestOwnProfile:
    """Tests for the current user's participant profile."""

    async def test_profile_created_on_first_read(
        self, client: AsyncClient, auth_headers, test_user
    ):
        response = await client.get("/api/v1/participants/me", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["user_id"] == test_user.id
        assert data["email"] == "testuser@example.com"
        assert data["registrations"] == []

    async def test_complete_profile_then_join(
        self, client: AsyncClient, auth_headers, test_program
    ):
        response = await client.put(
            "/api/v1/participants/me",
            json={
                "first_name": "Juan",
                "last_name": "Dela Cruz",
                "age": 18,
                "contact": "09181234567",
            },
            headers=auth_headers,
        )
        assert response.status_code == 200

        response = await client.post(
            "/api/v1/programs/join",
            json={"program_id": test_program.id},
            headers=auth_headers,
        )
        assert response.status_code == 201

        response = await client.get("/api/v1/participants/me", headers=auth_headers)
        registrations = response.json()["registrations"]
        assert registrations[0]["program_name"] == "Basketball League"
        assert registrations[0]["registration_status"] == "Pending"

    async def test_cannot_view_other_profile(
        self, client: AsyncClient, auth_headers, test_participant
    ):
        response = await client.get(
            f"/api/v1/participants/{test_participant.id}", headers=auth_headers
        )
        assert response.status_code == 403

    async def test_owner_can_view_own_profile(
        self, client: AsyncClient, auth_headers, user_participant
    ):
        response = await client.get(
            f"/api/v1/participants/{user_participant.id}", headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["last_name"] == "Dela Cruz"

    async def test_concurrent_profile_creation_returns_existing_row(
        self, db_session, monkeypatch, make_participant, test_user
    ):
        """Losing the race for the unique user link yields the winner's profile."""
        user_id = test_user.id
        winner = await make_participant(user_id=user_id)
        winner_id = winner.id

        get_by_user_id = Participant.get_by_user_id
        lookups = []

        async def lookup(session, target_user_id):
            lookups.append(target_user_id)
            if len(lookups) == 1:
                # The other request has not committed yet when we first look
                return None
            return await get_by_user_id(session, target_user_id)

        monkeypatch.setattr(Participant, "get_by_user_id", lookup)

        participant = await ParticipantService(db_session).get_or_create_for_user(
            user_id, "testuser@example.com"
        )

        assert participant.id == winner_id
        assert len(lookups) == 2
        result = await db_session.execute(
            select(func.count()).select_from(Participant).where(Participant.user_id == user_id)
        )
        assert result.scalar_one() == 1
