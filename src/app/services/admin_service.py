"""Admin Console Service.

Dashboard statistics, the admin's own profile and settings, and the user
listing.
"""
from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ForbiddenError
from ..db.session import atomic
from ..models.admin import AdminProfile
from ..models.enums import AccountStatus, DoctorStatus, UserRole
from ..models.user import User
from ..repositories.admin_repository import AdminProfileRepository, AdminSettingRepository
from ..repositories.doctor_repository import DoctorRepository
from ..repositories.user_repository import UserRepository
from ..schemas.admin import AdminProfileResponse, AdminSettingsUpdate, DashboardStats

log = structlog.get_logger(__name__)

CALENDLY_LINK_KEY = "calendly_link"
RECENT_WINDOW = timedelta(days=7)
MAX_PAGE_SIZE = 100


def first_name_from_email(email: str) -> str:
    """``jane.doe@example.com`` -> ``Jane Doe``."""
    local_part = email.split("@", 1)[0]
    return " ".join(part[:1].upper() + part[1:] for part in local_part.split(".") if part)


class AdminService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.users = UserRepository(session)
        self.doctors = DoctorRepository(session)
        self.profiles = AdminProfileRepository(session)
        self.settings = AdminSettingRepository(session)

    # =========================================================================
    # DASHBOARD
    # =========================================================================

    async def dashboard_stats(self, *, now: datetime | None = None) -> DashboardStats:
        now = now or datetime.now(UTC)
        pipeline = DoctorStatus.pipeline()
        return DashboardStats(
            pending_applications=await self.doctors.count({"status": pipeline}),
            active_doctors=await self.doctors.count({"status": DoctorStatus.ACTIVE}),
            total_patients=await self.users.count({"role": UserRole.PATIENT}),
            total_users=await self.users.count(),
            recent_applications=await self.doctors.count_created_since(pipeline, now - RECENT_WINDOW),
        )

    async def status_counts(self) -> dict[str, int]:
        counts = await self.doctors.count_by_status()
        return {status.value: total for status, total in counts.items()}

    # =========================================================================
    # PROFILE / SETTINGS
    # =========================================================================

    async def get_or_create_profile(self, user: User) -> AdminProfile:
        """The admin's profile, created with defaults on first access."""
        if user.role != UserRole.ADMIN:
            raise ForbiddenError(message="Admin access required", error_code="ADMIN_REQUIRED")

        profile = await self.profiles.get_by_user_id(user.id)
        if profile is not None:
            return profile

        async with atomic(self.session):
            profile = await self.profiles.insert(
                user_id=user.id,
                first_name=first_name_from_email(user.email),
                last_name="",
                status=AccountStatus.ACTIVE,
            )
        log.info("admin_profile_created", user_id=user.id)
        return profile

    async def update_settings(self, user: User, changes: AdminSettingsUpdate) -> AdminProfile:
        """Apply the non-empty fields; ``calendly_link`` is also kept as a setting."""
        profile = await self.get_or_create_profile(user)
        updates = {field: value for field, value in changes.model_dump().items() if value}

        async with atomic(self.session):
            for field, value in updates.items():
                setattr(profile, field, value)
            if CALENDLY_LINK_KEY in updates:
                await self.settings.upsert(user.id, CALENDLY_LINK_KEY, updates[CALENDLY_LINK_KEY])
            await self.session.flush()

        log.info("admin_settings_updated", user_id=user.id, fields=sorted(updates))
        return profile

    async def saved_scheduling_link(self, user: User) -> str | None:
        link = await self.settings.get_value(user.id, CALENDLY_LINK_KEY)
        if link:
            return link
        profile = await self.profiles.get_by_user_id(user.id)
        return profile.calendly_link if profile is not None else None

    @staticmethod
    def to_response(user: User, profile: AdminProfile) -> AdminProfileResponse:
        return AdminProfileResponse(
            id=profile.id,
            user_id=user.id,
            email=user.email,
            first_name=profile.first_name,
            last_name=profile.last_name,
            phone=profile.phone,
            calendly_link=profile.calendly_link,
            department=profile.department,
            title=profile.title,
            status=profile.status,
            created_at=profile.created_at,
            updated_at=profile.updated_at,
        )

    # =========================================================================
    # USERS
    # =========================================================================

    async def list_users(
        self,
        *,
        page: int = 1,
        page_size: int = 20,
        role: UserRole | None = None,
        status: AccountStatus | None = None,
    ) -> tuple[Sequence[User], int]:
        return await self.users.list_users(
            page=max(1, page),
            page_size=max(1, min(page_size, MAX_PAGE_SIZE)),
            role=role,
            status=status,
        )
