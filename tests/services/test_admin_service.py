"""Tests for AdminService: dashboard numbers, profile and settings."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from src.app.core.exceptions import ForbiddenError
from src.app.models.enums import AccountStatus, DoctorStatus, UserRole
from src.app.repositories.admin_repository import AdminSettingRepository
from src.app.schemas.admin import AdminSettingsUpdate
from src.app.services.admin_service import CALENDLY_LINK_KEY, AdminService, first_name_from_email


@pytest.fixture
def service(db_session: AsyncSession) -> AdminService:
    return AdminService(db_session)


@pytest.mark.parametrize(
    ("email", "expected"),
    [
        ("jane.doe@example.com", "Jane Doe"),
        ("ops@example.com", "Ops"),
        ("a..b@example.com", "A B"),
    ],
)
def test_first_name_from_email(email, expected):
    assert first_name_from_email(email) == expected


class TestDashboard:
    async def test_counts(self, service, db_session, make_doctor, make_user, admin_user):
        await make_doctor("a@example.com", ahpra_number="A1", status=DoctorStatus.PENDING)
        stale = await make_doctor("b@example.com", ahpra_number="A2", status=DoctorStatus.INTERVIEW_SCHEDULED)
        await make_doctor("c@example.com", ahpra_number="A3", status=DoctorStatus.ACTIVE)
        await make_doctor("d@example.com", ahpra_number="A4", status=DoctorStatus.REJECTED)
        await make_user("p1@example.com", UserRole.PATIENT)
        await make_user("p2@example.com", UserRole.PATIENT)
        stale.created_at = datetime.now(UTC) - timedelta(days=30)
        await db_session.commit()

        stats = await service.dashboard_stats()

        assert stats.pending_applications == 2
        assert stats.active_doctors == 1
        assert stats.total_patients == 2
        assert stats.total_users == 7
        assert stats.recent_applications == 1

    async def test_empty_database(self, service):
        stats = await service.dashboard_stats()

        assert stats.model_dump() == {
            "pending_applications": 0,
            "active_doctors": 0,
            "total_patients": 0,
            "total_users": 0,
            "recent_applications": 0,
        }

    async def test_status_counts_cover_every_status(self, service, make_doctor):
        await make_doctor(status=DoctorStatus.SUSPENDED)

        counts = await service.status_counts()

        assert set(counts) == {s.value for s in DoctorStatus}
        assert counts["suspended"] == 1
        assert sum(counts.values()) == 1


class TestProfile:
    async def test_profile_created_on_first_access(self, service, admin_user):
        profile = await service.get_or_create_profile(admin_user)

        assert profile.user_id == admin_user.id
        assert profile.first_name == "Ops Team"
        assert profile.last_name == ""
        assert profile.status is AccountStatus.ACTIVE
        assert (await service.get_or_create_profile(admin_user)).id == profile.id

    async def test_non_admin_has_no_profile(self, service, make_user):
        patient = await make_user("p@example.com")

        with pytest.raises(ForbiddenError):
            await service.get_or_create_profile(patient)

    async def test_update_applies_only_non_empty_fields(self, service, admin_user):
        await service.get_or_create_profile(admin_user)

        profile = await service.update_settings(
            admin_user,
            AdminSettingsUpdate(first_name="Alex", last_name="  ", department="Recruitment"),
        )

        assert profile.first_name == "Alex"
        assert profile.last_name == ""
        assert profile.department == "Recruitment"

    async def test_calendly_link_is_stored_as_setting(self, service, db_session, admin_user):
        await service.update_settings(admin_user, AdminSettingsUpdate(calendly_link="https://calendly.com/a"))
        await service.update_settings(admin_user, AdminSettingsUpdate(calendly_link="https://calendly.com/b"))

        stored = await AdminSettingRepository(db_session).get_value(admin_user.id, CALENDLY_LINK_KEY)
        assert stored == "https://calendly.com/b"
        assert await AdminSettingRepository(db_session).count({"admin_id": admin_user.id}) == 1
        assert await service.saved_scheduling_link(admin_user) == "https://calendly.com/b"

    async def test_no_saved_link(self, service, admin_user):
        assert await service.saved_scheduling_link(admin_user) is None


async def test_list_users_filters(service, make_user, admin_user):
    await make_user("p@example.com", UserRole.PATIENT)
    await make_user("q@example.com", UserRole.PATIENT, AccountStatus.INACTIVE)

    users, total = await service.list_users(role=UserRole.PATIENT, status=AccountStatus.ACTIVE)

    assert total == 1
    assert [u.email for u in users] == ["p@example.com"]
