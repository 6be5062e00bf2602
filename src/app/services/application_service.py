"""Application Review Service.

Applies status-machine transitions to doctor applications together with
their side effects:
- approval stamps (approved_at / approved_by)
- the linked account's status (activated on approval, deactivated on
  rejection or suspension)
- one ``admin_actions`` audit row per administrative decision

Each decision is one atomic unit: the status write, the side effects and the
audit row are committed together or not at all.
"""
from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import DoctorNotFoundError, ValidationError
from ..db.session import atomic
from ..models.admin import AdminAction
from ..models.doctor import DoctorApplication
from ..models.document import DocumentUpload
from ..models.enums import AccountStatus, ApplicationAction, DoctorStatus
from ..repositories.admin_repository import AdminActionRepository
from ..repositories.doctor_repository import DoctorRepository
from ..repositories.document_repository import DocumentUploadRepository
from ..repositories.user_repository import UserRepository
from .status_machine import next_status

log = structlog.get_logger(__name__)

DEFAULT_APPROVE_REASON = "Application approved"
DEFAULT_INTERVIEW_REASON = "Interview scheduled"

MAX_PAGE_SIZE = 100

# Account status the linked user ends up in after an application reaches these statuses
_ACCOUNT_STATUS_AFTER: dict[DoctorStatus, AccountStatus] = {
    DoctorStatus.ACTIVE: AccountStatus.ACTIVE,
    DoctorStatus.REJECTED: AccountStatus.INACTIVE,
    DoctorStatus.SUSPENDED: AccountStatus.INACTIVE,
}


def _require_reason(reason: str | None) -> str:
    cleaned = (reason or "").strip()
    if not cleaned:
        raise ValidationError.for_field("reason", "A reason is required for this action")
    return cleaned


class ApplicationService:
    """Review workflow over the ``doctors`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.doctors = DoctorRepository(session)
        self.users = UserRepository(session)
        self.actions = AdminActionRepository(session)
        self.uploads = DocumentUploadRepository(session)

    # =========================================================================
    # READ OPERATIONS
    # =========================================================================

    async def get_application(self, doctor_id: str) -> DoctorApplication:
        doctor = await self.doctors.get(doctor_id)
        if doctor is None:
            raise DoctorNotFoundError(doctor_id=doctor_id)
        return doctor

    async def get_for_owner(
        self,
        *,
        user_id: str | None = None,
        email: str | None = None,
    ) -> DoctorApplication:
        """Application belonging to the account identified by ``user_id`` or ``email``."""
        doctor = None
        if user_id:
            doctor = await self.doctors.get_by_user_id(user_id)
        elif email:
            doctor = await self.doctors.get_by_email(email)
        if doctor is None:
            raise DoctorNotFoundError(doctor_id=user_id, email=email)
        return doctor

    async def list_uploads(self, doctor_id: str) -> Sequence[DocumentUpload]:
        return await self.uploads.list_for_doctor(doctor_id)

    async def list_pipeline(
        self,
        *,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[Sequence[DoctorApplication], int]:
        """Applications still awaiting a decision, newest first."""
        page_size = max(1, min(page_size, MAX_PAGE_SIZE))
        return await self.doctors.list_by_status(
            DoctorStatus.pipeline(),
            page=max(1, page),
            page_size=page_size,
        )

    async def list_actions(self, doctor_id: str) -> Sequence[AdminAction]:
        await self.get_application(doctor_id)
        return await self.actions.list_for_target(doctor_id)

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    def _apply(self, doctor: DoctorApplication, action: ApplicationAction) -> tuple[DoctorStatus, DoctorStatus]:
        previous = doctor.status
        doctor.status = next_status(previous, action)
        return previous, doctor.status

    async def _decide(
        self,
        doctor_id: str,
        *,
        admin_id: str,
        action: ApplicationAction,
        reason: str,
        extra: dict[str, Any] | None = None,
    ) -> DoctorApplication:
        """Run one administrative transition and its audit row as a single commit."""
        async with atomic(self.session):
            doctor = await self.get_application(doctor_id)
            previous, new = self._apply(doctor, action)
            now = datetime.now(UTC)

            if new == DoctorStatus.ACTIVE:
                doctor.approved_at = now
                doctor.approved_by = admin_id

            account_status = _ACCOUNT_STATUS_AFTER.get(new)
            if account_status is not None:
                await self.users.set_status(doctor.user_id, account_status)

            await self.actions.record(
                admin_id=admin_id,
                target_id=doctor.id,
                action=action,
                reason=reason,
                metadata={
                    "previous_status": previous.value,
                    "new_status": new.value,
                    "timestamp": now.isoformat(),
                    **(extra or {}),
                },
            )

        log.info(
            "doctor_status_changed",
            doctor_id=doctor.id,
            admin_id=admin_id,
            action=action.value,
            from_status=previous.value,
            to_status=new.value,
        )
        return doctor

    async def schedule_interview(
        self,
        doctor_id: str,
        *,
        admin_id: str,
        scheduling_link: str,
        reason: str | None = None,
    ) -> DoctorApplication:
        """Move to ``interview_scheduled``; repeating it records another invitation."""
        return await self._decide(
            doctor_id,
            admin_id=admin_id,
            action=ApplicationAction.SCHEDULE_INTERVIEW,
            reason=(reason or "").strip() or DEFAULT_INTERVIEW_REASON,
            extra={"scheduling_link": scheduling_link},
        )

    async def approve(self, doctor_id: str, *, admin_id: str, reason: str | None = None) -> DoctorApplication:
        return await self._decide(
            doctor_id,
            admin_id=admin_id,
            action=ApplicationAction.APPROVE,
            reason=(reason or "").strip() or DEFAULT_APPROVE_REASON,
        )

    async def reject(self, doctor_id: str, *, admin_id: str, reason: str | None) -> DoctorApplication:
        return await self._decide(
            doctor_id,
            admin_id=admin_id,
            action=ApplicationAction.REJECT,
            reason=_require_reason(reason),
        )

    async def request_documentation(
        self,
        doctor_id: str,
        *,
        admin_id: str,
        reason: str | None,
    ) -> DoctorApplication:
        return await self._decide(
            doctor_id,
            admin_id=admin_id,
            action=ApplicationAction.REQUEST_DOCUMENTATION,
            reason=_require_reason(reason),
        )

    async def suspend(self, doctor_id: str, *, admin_id: str, reason: str | None) -> DoctorApplication:
        return await self._decide(
            doctor_id,
            admin_id=admin_id,
            action=ApplicationAction.SUSPEND,
            reason=_require_reason(reason),
        )

    async def confirm_email(self, doctor: DoctorApplication) -> bool:
        """Apply ``confirm_email`` if the application still waits for it.

        Returns whether the status changed. Confirmation is the applicant's own
        step, so no audit row is written.
        """
        if doctor.status != DoctorStatus.EMAIL_UNCONFIRMED:
            return False
        async with atomic(self.session):
            previous, new = self._apply(doctor, ApplicationAction.CONFIRM_EMAIL)
        log.info(
            "doctor_status_changed",
            doctor_id=doctor.id,
            action=ApplicationAction.CONFIRM_EMAIL.value,
            from_status=previous.value,
            to_status=new.value,
        )
        return True
