"""
Doctor API Endpoints.

The doctor's own application profile. Admins may open any doctor's profile
by ``email`` or ``user_id``.
"""
from __future__ import annotations

from fastapi import APIRouter, Query

from ....core.exceptions import BadRequestError
from ....core.rbac import DoctorUser
from ....core.responses import GenericResponse
from ....db.session import DbSession
from ....models.enums import UserRole
from ....schemas.application import DoctorApplicationResponse
from ....schemas.doctor import DocumentUploadResponse, DoctorProfileResponse, display_status
from ....services.application_service import ApplicationService

router = APIRouter(prefix="/doctor")


@router.get(
    "/profile",
    response_model=GenericResponse[DoctorProfileResponse],
    summary="Doctor profile",
    description="The caller's own application. Admins pass email or user_id to view another doctor.",
)
async def get_profile(
    current_user: DoctorUser,
    db: DbSession,
    email: str | None = Query(None),
    user_id: str | None = Query(None),
) -> GenericResponse[DoctorProfileResponse]:
    service = ApplicationService(db)

    match current_user.role:
        case UserRole.ADMIN:
            if not (email or user_id):
                raise BadRequestError(message="Either user_id or email is required")
            doctor = await service.get_for_owner(user_id=user_id, email=email)
        case UserRole.DOCTOR | UserRole.PATIENT:
            doctor = await service.get_for_owner(user_id=current_user.id)

    uploads = await service.list_uploads(doctor.id)
    return GenericResponse(
        message="Doctor profile",
        data=DoctorProfileResponse(
            application=DoctorApplicationResponse.model_validate(doctor),
            display_status=display_status(doctor.status),
            uploads=[DocumentUploadResponse.model_validate(u) for u in uploads],
        ),
    )
