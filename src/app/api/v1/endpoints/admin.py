"""
Admin Console API Endpoints.

- dashboard statistics
- application pipeline listing, detail and audit history
- review decisions (approve / reject / request documentation / suspend)
- interview scheduling (returns a ready-to-send mailto link)
- admin profile settings
- user listing

All endpoints require the admin role.
"""
from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ....core.exceptions import BadRequestError
from ....core.rbac import AdminUser
from ....core.responses import GenericResponse, PaginatedResponse, PaginationMeta
from ....db.session import get_db
from ....models.doctor import DoctorApplication
from ....models.enums import AccountStatus, UserRole
from ....schemas.admin import (
    AdminProfileResponse,
    AdminSettingsUpdate,
    DashboardStats,
    UserResponse,
)
from ....schemas.application import (
    AdminActionResponse,
    ApplicationSummary,
    DoctorApplicationResponse,
    ReasonRequest,
    RequiredReasonRequest,
    ScheduleInterviewRequest,
    ScheduleInterviewResult,
)
from ....services.admin_service import AdminService
from ....services.application_service import ApplicationService
from ....services.notification_service import (
    NotificationComposer,
    build_mailto_link,
    get_notification_composer,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/admin")


# =============================================================================
# Dependencies
# =============================================================================

async def get_application_service(
    db: AsyncSession = Depends(get_db),
) -> ApplicationService:
    return ApplicationService(db)


async def get_admin_service(
    db: AsyncSession = Depends(get_db),
) -> AdminService:
    return AdminService(db)


def _decision_response(message: str, doctor: DoctorApplication) -> GenericResponse[DoctorApplicationResponse]:
    return GenericResponse(message=message, data=DoctorApplicationResponse.model_validate(doctor))


# =============================================================================
# DASHBOARD
# =============================================================================

@router.get(
    "/dashboard",
    response_model=GenericResponse[DashboardStats],
    summary="Dashboard statistics",
)
async def dashboard(
    admin: AdminUser,
    service: Annotated[AdminService, Depends(get_admin_service)],
) -> GenericResponse[DashboardStats]:
    stats = await service.dashboard_stats()
    return GenericResponse(message="Dashboard statistics", data=stats)


# =============================================================================
# APPLICATIONS
# =============================================================================

@router.get(
    "/applications",
    response_model=PaginatedResponse[ApplicationSummary],
    summary="Applications awaiting a decision",
    description="email_unconfirmed, pending, documentation_required and interview_scheduled, newest first.",
)
async def list_applications(
    admin: AdminUser,
    service: Annotated[ApplicationService, Depends(get_application_service)],
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
) -> PaginatedResponse[ApplicationSummary]:
    rows, total = await service.list_pipeline(page=page, page_size=limit)
    return PaginatedResponse(
        message="Applications retrieved",
        data=[ApplicationSummary.model_validate(row) for row in rows],
        pagination=PaginationMeta.from_total(total, page, limit),
    )


@router.get(
    "/applications/{doctor_id}",
    response_model=GenericResponse[DoctorApplicationResponse],
    summary="One application",
)
async def get_application(
    doctor_id: str,
    admin: AdminUser,
    service: Annotated[ApplicationService, Depends(get_application_service)],
) -> GenericResponse[DoctorApplicationResponse]:
    doctor = await service.get_application(doctor_id)
    return GenericResponse(message="Application retrieved", data=DoctorApplicationResponse.model_validate(doctor))


@router.get(
    "/applications/{doctor_id}/actions",
    response_model=GenericResponse[list[AdminActionResponse]],
    summary="Audit history of an application",
)
async def list_application_actions(
    doctor_id: str,
    admin: AdminUser,
    service: Annotated[ApplicationService, Depends(get_application_service)],
) -> GenericResponse[list[AdminActionResponse]]:
    actions = await service.list_actions(doctor_id)
    return GenericResponse(
        message="Admin actions retrieved",
        data=[AdminActionResponse.model_validate(action) for action in actions],
    )


@router.post(
    "/applications/{doctor_id}/approve",
    response_model=GenericResponse[DoctorApplicationResponse],
    summary="Approve an application",
)
async def approve_application(
    doctor_id: str,
    admin: AdminUser,
    service: Annotated[ApplicationService, Depends(get_application_service)],
    payload: ReasonRequest | None = None,
) -> GenericResponse[DoctorApplicationResponse]:
    doctor = await service.approve(doctor_id, admin_id=admin.id, reason=payload.reason if payload else None)
    return _decision_response("Application approved", doctor)


@router.post(
    "/applications/{doctor_id}/reject",
    response_model=GenericResponse[DoctorApplicationResponse],
    summary="Reject an application",
)
async def reject_application(
    doctor_id: str,
    payload: RequiredReasonRequest,
    admin: AdminUser,
    service: Annotated[ApplicationService, Depends(get_application_service)],
) -> GenericResponse[DoctorApplicationResponse]:
    doctor = await service.reject(doctor_id, admin_id=admin.id, reason=payload.reason)
    return _decision_response("Application rejected", doctor)


@router.post(
    "/applications/{doctor_id}/request-documentation",
    response_model=GenericResponse[DoctorApplicationResponse],
    summary="Ask the applicant for more documentation",
)
async def request_documentation(
    doctor_id: str,
    payload: RequiredReasonRequest,
    admin: AdminUser,
    service: Annotated[ApplicationService, Depends(get_application_service)],
) -> GenericResponse[DoctorApplicationResponse]:
    doctor = await service.request_documentation(doctor_id, admin_id=admin.id, reason=payload.reason)
    return _decision_response("Documentation requested", doctor)


@router.post(
    "/applications/{doctor_id}/suspend",
    response_model=GenericResponse[DoctorApplicationResponse],
    summary="Suspend an active doctor",
)
async def suspend_doctor(
    doctor_id: str,
    payload: RequiredReasonRequest,
    admin: AdminUser,
    service: Annotated[ApplicationService, Depends(get_application_service)],
) -> GenericResponse[DoctorApplicationResponse]:
    doctor = await service.suspend(doctor_id, admin_id=admin.id, reason=payload.reason)
    return _decision_response("Doctor suspended", doctor)


@router.post(
    "/schedule-interview",
    response_model=GenericResponse[ScheduleInterviewResult],
    summary="Schedule an interview",
    description=(
        "Moves the application to interview_scheduled and returns a mailto link "
        "holding the invitation. Calling it again re-sends the invitation."
    ),
)
async def schedule_interview(
    payload: ScheduleInterviewRequest,
    admin: AdminUser,
    service: Annotated[ApplicationService, Depends(get_application_service)],
    admin_service: Annotated[AdminService, Depends(get_admin_service)],
    composer: Annotated[NotificationComposer, Depends(get_notification_composer)],
) -> GenericResponse[ScheduleInterviewResult]:
    scheduling_link = payload.scheduling_link or await admin_service.saved_scheduling_link(admin)
    if not scheduling_link:
        raise BadRequestError(
            message="No scheduling link provided and no calendly link saved in admin settings",
            error_code="SCHEDULING_LINK_REQUIRED",
        )

    doctor = await service.schedule_interview(
        payload.doctor_id,
        admin_id=admin.id,
        scheduling_link=scheduling_link,
        reason=payload.reason,
    )

    invite = composer.render_interview_invite(
        doctor_name=doctor.full_name,
        scheduling_link=scheduling_link,
        sender_name=payload.admin_name or admin.email,
    )
    doctor_email = doctor.email or ""
    logger.info("interview_invite_composed", doctor_id=doctor.id, admin_id=admin.id)

    return GenericResponse(
        message="Interview scheduled",
        data=ScheduleInterviewResult(
            doctor_id=doctor.id,
            doctor_name=doctor.full_name,
            doctor_email=doctor_email,
            status=doctor.status,
            subject=invite.subject,
            mailto_link=build_mailto_link(doctor_email, invite),
        ),
    )


# =============================================================================
# SETTINGS
# =============================================================================

@router.get(
    "/settings",
    response_model=GenericResponse[AdminProfileResponse],
    summary="Admin profile and settings",
)
async def get_settings_profile(
    admin: AdminUser,
    service: Annotated[AdminService, Depends(get_admin_service)],
) -> GenericResponse[AdminProfileResponse]:
    profile = await service.get_or_create_profile(admin)
    return GenericResponse(message="Admin settings", data=service.to_response(admin, profile))


@router.post(
    "/settings",
    response_model=GenericResponse[AdminProfileResponse],
    summary="Update admin profile and settings",
    description="Only non-empty fields are applied.",
)
async def update_settings_profile(
    payload: AdminSettingsUpdate,
    admin: AdminUser,
    service: Annotated[AdminService, Depends(get_admin_service)],
) -> GenericResponse[AdminProfileResponse]:
    profile = await service.update_settings(admin, payload)
    return GenericResponse(message="Admin settings updated", data=service.to_response(admin, profile))


# =============================================================================
# USERS
# =============================================================================

@router.get(
    "/users",
    response_model=PaginatedResponse[UserResponse],
    summary="List users",
)
async def list_users(
    admin: AdminUser,
    service: Annotated[AdminService, Depends(get_admin_service)],
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    role: UserRole | None = Query(None),
    status: AccountStatus | None = Query(None),
) -> PaginatedResponse[UserResponse]:
    users, total = await service.list_users(page=page, page_size=limit, role=role, status=status)
    return PaginatedResponse(
        message="Users retrieved",
        data=[UserResponse.model_validate(u) for u in users],
        pagination=PaginationMeta.from_total(total, page, limit),
    )
