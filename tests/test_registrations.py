from datetime import date
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.expense import Expense
from app.models.participant import Participant
from app.models.program import Program
from app.models.registration import ProgramMembership, Registration, RegistrationStatus
from app.services.registration_service import (
    RegistrationService,
    allowed_sources,
    missing_profile_fields,
    parse_status,
)
from core.exceptions import (
    AlreadyAppliedException,
    ConflictException,
    IncompleteProfileException,
    NotFoundException,
    RegistrationNotFoundException,
    StoreException,
    ValidationException,
)

pytestmark = pytest.mark.asyncio


async def _count(db_session: AsyncSession, model, **where) -> int:
    query = select(func.count()).select_from(model)
    for column, value in where.items():
        query = query.where(getattr(model, column) == value)
    result = await db_session.execute(query)
    return result.scalar_one()


class TestProfileCompleteness:
    """Tests for the profile check done before applying."""

    async def test_complete_profile_has_no_missing_fields(self, test_participant):
        assert missing_profile_fields(test_participant) == []

    async def test_blank_fields_are_listed_by_display_name(self, make_participant):
        participant = await make_participant(contact="  ", age=None)
        assert missing_profile_fields(participant) == ["Age", "Contact Number"]

    async def test_apply_with_empty_contact_is_rejected(
        self, db_session: AsyncSession, make_participant, test_program
    ):
        """An empty contact number blocks the application and writes nothing."""
        participant = await make_participant(contact="")
        service = RegistrationService(db_session)

        with pytest.raises(IncompleteProfileException) as exc_info:
            await service.apply(participant.id, test_program.id)

        assert "Contact Number" in exc_info.value.data["missing_fields"]
        assert await _count(db_session, Registration) == 0
        assert await _count(db_session, ProgramMembership) == 0


class TestApply:
    """Tests for self-service applications."""

    async def test_apply_creates_pending_registration(
        self, db_session: AsyncSession, test_participant, test_program
    ):
        service = RegistrationService(db_session)
        registration = await service.apply(test_participant.id, test_program.id)

        assert registration.registration_status == RegistrationStatus.PENDING
        assert registration.participant.full_name == "Maria Santos"
        assert await _count(db_session, ProgramMembership) == 1

    async def test_duplicate_apply_reports_existing_status(
        self, db_session: AsyncSession, test_participant, test_program
    ):
        """A second apply keeps one row and says what the first one is."""
        service = RegistrationService(db_session)
        await service.apply(test_participant.id, test_program.id)
        await service.set_status(
            test_program.id, test_participant.id, RegistrationStatus.APPROVED
        )

        with pytest.raises(AlreadyAppliedException) as exc_info:
            await service.apply(test_participant.id, test_program.id)

        assert exc_info.value.data["registration_status"] == "Approved"
        assert "Approved" in exc_info.value.message
        assert await _count(db_session, Registration) == 1

    async def test_racing_insert_hits_unique_pair(
        self, db_session: AsyncSession, test_participant, test_program
    ):
        """An insert that slips past the existence check is refused by the store."""
        service = RegistrationService(db_session)
        await service.apply(test_participant.id, test_program.id)

        with pytest.raises(AlreadyAppliedException) as exc_info:
            await service._insert_registration(
                test_program.id, test_participant.id, RegistrationStatus.PENDING
            )

        assert exc_info.value.data["registration_status"] == "Pending"
        assert (
            await _count(
                db_session,
                Registration,
                program_id=test_program.id,
                participant_id=test_participant.id,
            )
            == 1
        )

    async def test_insert_for_deleted_program_is_not_a_duplicate(
        self, db_session: AsyncSession, test_participant
    ):
        """A foreign key failure reports the missing program and leaves no membership."""
        participant_id = test_participant.id
        service = RegistrationService(db_session)

        with pytest.raises(NotFoundException) as exc_info:
            await service._insert_registration(
                "gone-program", participant_id, RegistrationStatus.PENDING
            )

        assert not isinstance(exc_info.value, AlreadyAppliedException)
        assert "gone-program" in exc_info.value.message
        assert await _count(db_session, ProgramMembership) == 0
        assert await _count(db_session, Registration) == 0

    async def test_membership_without_registration_counts_as_applied(
        self, db_session: AsyncSession, test_participant, test_program
    ):
        db_session.add(
            ProgramMembership(
                program_id=test_program.id, participant_id=test_participant.id
            )
        )
        await db_session.commit()

        with pytest.raises(AlreadyAppliedException) as exc_info:
            await RegistrationService(db_session).apply(
                test_participant.id, test_program.id
            )
        assert exc_info.value.data["registration_status"] == "Pending"

    async def test_join_endpoint(
        self, client: AsyncClient, auth_headers, user_participant, test_program
    ):
        response = await client.post(
            "/api/v1/programs/join",
            json={"program_id": test_program.id},
            headers=auth_headers,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["registration_status"] == "Pending"
        assert data["participant_name"] == "Juan Dela Cruz"
        assert data["program_name"] == "Basketball League"

        response = await client.post(
            "/api/v1/programs/join",
            json={"program_id": test_program.id},
            headers=auth_headers,
        )
        assert response.status_code == 409
        body = response.json()
        assert body["error_code"] == "ALREADY_APPLIED"
        assert body["data"]["registration_status"] == "Pending"

    async def test_join_without_profile(
        self, client: AsyncClient, auth_headers, test_program
    ):
        response = await client.post(
            "/api/v1/programs/join",
            json={"program_id": test_program.id},
            headers=auth_headers,
        )
        assert response.status_code == 404

    async def test_join_with_incomplete_profile(
        self, client: AsyncClient, auth_headers, make_participant, test_user, test_program
    ):
        await make_participant(user_id=test_user.id, contact="")
        response = await client.post(
            "/api/v1/programs/join",
            json={"program_id": test_program.id},
            headers=auth_headers,
        )
        assert response.status_code == 422
        body = response.json()
        assert body["error_code"] == "PROFILE_INCOMPLETE"
        assert body["data"]["missing_fields"] == ["Contact Number"]


class TestSetStatus:
    """Tests for in-place status changes."""

    async def test_set_status_on_missing_pair_inserts_nothing(
        self, db_session: AsyncSession, test_participant, test_program
    ):
        service = RegistrationService(db_session)

        with pytest.raises(RegistrationNotFoundException):
            await service.set_status(test_program.id, test_participant.id, "Approved")

        assert await _count(db_session, Registration) == 0

    async def test_last_status_wins_without_history(
        self, db_session: AsyncSession, test_participant, test_program
    ):
        """Pending, then Approved, then Rejected leaves a single Rejected row."""
        service = RegistrationService(db_session)
        created = await service.apply(test_participant.id, test_program.id)

        await service.set_status(test_program.id, test_participant.id, "Approved")
        registration = await service.set_status(
            test_program.id, test_participant.id, "Rejected"
        )

        assert registration.id == created.id
        assert registration.registration_status == RegistrationStatus.REJECTED
        assert await _count(db_session, Registration) == 1

    async def test_invalid_status_lists_valid_values(
        self, db_session: AsyncSession, test_participant, test_program
    ):
        with pytest.raises(ValidationException) as exc_info:
            await RegistrationService(db_session).set_status(
                test_program.id, test_participant.id, "Maybe"
            )
        assert exc_info.value.data["valid_statuses"] == RegistrationStatus.values()

    async def test_parse_status_accepts_enum_and_value(self):
        assert parse_status(RegistrationStatus.WAITLISTED) is RegistrationStatus.WAITLISTED
        assert parse_status("Approved") is RegistrationStatus.APPROVED

    async def test_forward_only_policy_blocks_reopening(
        self, db_session: AsyncSession, test_participant, test_program
    ):
        service = RegistrationService(db_session, policy="forward_only")
        await service.apply(test_participant.id, test_program.id)
        await service.set_status(test_program.id, test_participant.id, "Waitlisted")
        await service.set_status(test_program.id, test_participant.id, "Approved")

        with pytest.raises(ConflictException) as exc_info:
            await service.set_status(test_program.id, test_participant.id, "Pending")

        assert exc_info.value.error_code == "INVALID_STATUS_TRANSITION"
        assert exc_info.value.data == {
            "current_status": "Approved",
            "requested_status": "Pending",
        }

    async def test_allowed_sources(self):
        assert allowed_sources(RegistrationStatus.APPROVED, "permissive") is None
        assert allowed_sources(RegistrationStatus.APPROVED, "forward_only") == {
            RegistrationStatus.PENDING,
            RegistrationStatus.WAITLISTED,
            RegistrationStatus.APPROVED,
        }
        assert allowed_sources(RegistrationStatus.PENDING, "forward_only") == {
            RegistrationStatus.PENDING
        }

    async def test_update_status_endpoint(
        self, client: AsyncClient, admin_headers, db_session, test_participant, test_program
    ):
        await RegistrationService(db_session).apply(test_participant.id, test_program.id)

        response = await client.post(
            "/api/v1/registrations/update-status",
            json={
                "program_id": test_program.id,
                "participant_id": test_participant.id,
                "status": "Waitlisted",
            },
            headers=admin_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["current_status"] == "Waitlisted"
        assert data["data"]["participant_name"] == "Maria Santos"

    async def test_update_status_endpoint_missing_pair(
        self, client: AsyncClient, admin_headers, test_participant, test_program
    ):
        response = await client.post(
            "/api/v1/registrations/update-status",
            json={
                "program_id": test_program.id,
                "participant_id": test_participant.id,
                "status": "Approved",
            },
            headers=admin_headers,
        )
        assert response.status_code == 404
        assert response.json()["error_code"] == "REGISTRATION_NOT_FOUND"

    async def test_update_status_requires_admin(
        self, client: AsyncClient, auth_headers, test_participant, test_program
    ):
        response = await client.post(
            "/api/v1/registrations/update-status",
            json={
                "program_id": test_program.id,
                "participant_id": test_participant.id,
                "status": "Approved",
            },
            headers=auth_headers,
        )
        assert response.status_code == 403


class TestAddParticipants:
    """Tests for admin-added participants."""

    async def test_add_participants_partial_success(
        self, db_session: AsyncSession, make_participant, test_program
    ):
        first = await make_participant()
        second = await make_participant(first_name="Ana", contact="09170000000")
        service = RegistrationService(db_session)
        await service.apply(second.id, test_program.id)

        result = await service.add_participants(
            test_program.id, [first.id, second.id, "missing-id"]
        )

        assert result.added == [first.id]
        assert len(result.errors) == 2
        assert "Ana Santos is already registered (Pending)" in result.errors
        assert result.partial is True

        registration = await Registration.get_by_pair(db_session, test_program.id, first.id)
        assert registration.registration_status == RegistrationStatus.APPROVED

    async def test_add_participants_endpoint(
        self, client: AsyncClient, admin_headers, test_participant, test_program
    ):
        response = await client.post(
            f"/api/v1/programs/{test_program.id}/participants",
            json={"participant_ids": [test_participant.id, test_participant.id]},
            headers=admin_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["added"] == [test_participant.id]
        assert data["errors"] == []
        assert data["partial"] is False


class TestReview:
    """Tests for admin review and the user's own registrations."""

    async def test_approve_and_reject_by_id(
        self, client: AsyncClient, admin_headers, db_session, test_participant, test_program
    ):
        registration = await RegistrationService(db_session).apply(
            test_participant.id, test_program.id
        )

        response = await client.post(
            f"/api/v1/registrations/{registration.id}/approve", headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["current_status"] == "Approved"

        response = await client.post(
            f"/api/v1/registrations/{registration.id}/reject", headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["current_status"] == "Rejected"

    async def test_approve_unknown_registration(self, client: AsyncClient, admin_headers):
        response = await client.post(
            "/api/v1/registrations/nope/approve", headers=admin_headers
        )
        assert response.status_code == 404

    async def test_requests_filtered_by_status(
        self,
        client: AsyncClient,
        admin_headers,
        db_session,
        make_participant,
        test_program,
        second_program,
    ):
        participant = await make_participant()
        service = RegistrationService(db_session)
        await service.apply(participant.id, test_program.id)
        await service.apply(participant.id, second_program.id)
        await service.set_status(second_program.id, participant.id, "Approved")

        response = await client.get(
            "/api/v1/registrations/requests",
            params={"status": "Pending"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["program_name"] == "Basketball League"

    async def test_my_registrations_and_statuses(
        self, client: AsyncClient, auth_headers, db_session, user_participant, test_program
    ):
        await RegistrationService(db_session).apply(user_participant.id, test_program.id)

        response = await client.get("/api/v1/registrations/my", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["total"] == 1

        response = await client.get(
            "/api/v1/registrations/my/statuses", headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["statuses"] == {test_program.id: "Pending"}

    async def test_my_registrations_without_profile(
        self, client: AsyncClient, auth_headers
    ):
        response = await client.get("/api/v1/registrations/my", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"items": [], "total": 0}

    async def test_program_roster(
        self, client: AsyncClient, admin_headers, db_session, test_participant, test_program
    ):
        await RegistrationService(db_session).apply(test_participant.id, test_program.id)

        response = await client.get(
            f"/api/v1/programs/{test_program.id}/roster", headers=admin_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["program_name"] == "Basketball League"
        assert data["items"][0]["contact"] == "09171234567"
        assert data["counts"]["Pending"] == 1
        assert data["counts"]["Approved"] == 0


class TestRemoval:
    """Tests for cascading removal when the store fails midway."""

    async def test_failed_program_removal_keeps_dependents(
        self, db_session: AsyncSession, monkeypatch, test_participant, test_program
    ):
        program_id = test_program.id
        participant_id = test_participant.id
        service = RegistrationService(db_session)
        await service.apply(participant_id, program_id)
        await Expense.create_expense(
            db_session,
            program_id=program_id,
            description="Jerseys",
            amount=Decimal("3000.00"),
            category="Equipment",
            date=date(2024, 5, 2),
        )

        delete_for_program = Registration.delete_for_program

        async def failing_delete(session, target_id):
            await delete_for_program(session, target_id)
            raise OperationalError("DELETE FROM programs", {}, Exception("connection lost"))

        monkeypatch.setattr(Registration, "delete_for_program", failing_delete)

        with pytest.raises(StoreException):
            await service.remove_program(program_id)

        assert await _count(db_session, Program, id=program_id) == 1
        assert await _count(db_session, Expense, program_id=program_id) == 1
        assert await _count(db_session, Registration, program_id=program_id) == 1
        assert await _count(db_session, ProgramMembership, program_id=program_id) == 1

    async def test_failed_participant_removal_keeps_registrations(
        self, db_session: AsyncSession, monkeypatch, test_participant, test_program
    ):
        program_id = test_program.id
        participant_id = test_participant.id
        service = RegistrationService(db_session)
        await service.apply(participant_id, program_id)

        delete_for_participant = Registration.delete_for_participant

        async def failing_delete(session, target_id):
            await delete_for_participant(session, target_id)
            raise OperationalError("DELETE FROM participants", {}, Exception("connection lost"))

        monkeypatch.setattr(Registration, "delete_for_participant", failing_delete)

        with pytest.raises(StoreException):
            await service.remove_participant(participant_id)

        assert await _count(db_session, Participant, id=participant_id) == 1
        assert await _count(db_session, Registration, participant_id=participant_id) == 1
        assert await _count(db_session, ProgramMembership, participant_id=participant_id) == 1
