"""
Authentication API Endpoints.

PUBLIC:
- register                   submit a doctor application
- login / logout             session cookies
- verify-temporary-password  check the password from the invitation email
- set-permanent-password     replace it, confirm the application, auto-login
- resend-confirmation        re-send the invitation / confirmation email
- validate-session           identity behind a session token

AUTHENTICATED:
- me                         the signed-in user
- user-by-email              admin lookup
"""
from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Body, Depends, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ....core.config import Settings, get_settings
from ....core.exceptions import NotFoundError
from ....core.rbac import AdminUser, CurrentUser
from ....core.responses import GenericResponse
from ....core.security import clear_session_cookies, extract_session_token, set_session_cookies
from ....db.session import get_db
from ....repositories.user_repository import UserRepository
from ....schemas.admin import UserResponse
from ....schemas.application import ApplicationSubmit, RegistrationResult
from ....schemas.auth import (
    LoginRequest,
    LoginResponse,
    PermanentPasswordResult,
    ResendConfirmationRequest,
    SessionInfo,
    SessionUser,
    SetPermanentPasswordRequest,
    TemporaryPasswordRequest,
    TemporaryPasswordResult,
    ValidateSessionRequest,
)
from ....services.auth_service import AuthService
from ....services.identity_service import IdentityGateway, get_identity_gateway
from ....services.registration_service import RegistrationService

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/auth")


# =============================================================================
# Dependencies
# =============================================================================

def get_auth_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    gateway: Annotated[IdentityGateway, Depends(get_identity_gateway)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthService:
    return AuthService(db, gateway, settings)


def get_registration_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    gateway: Annotated[IdentityGateway, Depends(get_identity_gateway)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> RegistrationService:
    return RegistrationService(db, gateway, settings)


# =============================================================================
# REGISTRATION / CONFIRMATION
# =============================================================================

@router.post(
    "/register",
    response_model=GenericResponse[RegistrationResult],
    summary="Submit a doctor application",
    description=(
        "Creates the identity-provider account (which emails a temporary "
        "password) and the application in status email_unconfirmed."
    ),
)
async def register(
    payload: ApplicationSubmit,
    service: Annotated[RegistrationService, Depends(get_registration_service)],
) -> GenericResponse[RegistrationResult]:
    result = await service.submit_application(payload)
    return GenericResponse(
        message="Application submitted. Check your email for a temporary password.",
        data=result,
    )


@router.post(
    "/verify-temporary-password",
    response_model=GenericResponse[TemporaryPasswordResult],
    summary="Check the temporary password",
)
async def verify_temporary_password(
    payload: TemporaryPasswordRequest,
    service: Annotated[RegistrationService, Depends(get_registration_service)],
) -> GenericResponse[TemporaryPasswordResult]:
    await service.confirm_temporary_credential(payload.email, payload.temporary_password)
    return GenericResponse(
        message="Temporary password verified. Please set a new password.",
        data=TemporaryPasswordResult(),
    )


@router.post(
    "/set-permanent-password",
    response_model=GenericResponse[PermanentPasswordResult],
    summary="Replace the temporary password",
    description="Confirms the application and signs the doctor in when the new password authenticates.",
)
async def set_permanent_password(
    payload: SetPermanentPasswordRequest,
    response: Response,
    service: Annotated[RegistrationService, Depends(get_registration_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> GenericResponse[PermanentPasswordResult]:
    outcome = await service.set_permanent_credential(
        payload.email,
        payload.temporary_password,
        payload.new_password,
    )

    result = PermanentPasswordResult(email=outcome.email, auto_login=outcome.session is not None)
    if outcome.session is not None and outcome.user is not None:
        set_session_cookies(
            response,
            access_token=outcome.session.access_token,
            refresh_token=outcome.session.refresh_token,
            settings=settings,
        )
        result.user = SessionUser.model_validate(outcome.user)
        result.redirect_to = outcome.user.role.home_path

    return GenericResponse(message="Password set successfully", data=result)


@router.post(
    "/resend-confirmation",
    response_model=GenericResponse[dict[str, str]],
    summary="Re-send the confirmation email",
)
async def resend_confirmation(
    payload: ResendConfirmationRequest,
    service: Annotated[RegistrationService, Depends(get_registration_service)],
) -> GenericResponse[dict[str, str]]:
    await service.resend_confirmation(payload.email)
    return GenericResponse(
        message="Confirmation email sent",
        data={"email": payload.email.strip().lower()},
    )


# =============================================================================
# SESSION
# =============================================================================

@router.post(
    "/login",
    response_model=GenericResponse[LoginResponse],
    summary="Sign in with email and password",
)
async def login(
    payload: LoginRequest,
    response: Response,
    service: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> GenericResponse[LoginResponse]:
    user, issued = await service.login(payload.email, payload.password)
    set_session_cookies(
        response,
        access_token=issued.access_token,
        refresh_token=issued.refresh_token,
        settings=settings,
    )
    return GenericResponse(
        message="Login successful",
        data=LoginResponse(user=SessionUser.model_validate(user), redirect_to=user.role.home_path),
    )


@router.post(
    "/logout",
    response_model=GenericResponse[dict[str, bool]],
    summary="Sign out",
)
async def logout(
    response: Response,
    settings: Annotated[Settings, Depends(get_settings)],
) -> GenericResponse[dict[str, bool]]:
    clear_session_cookies(response, settings)
    return GenericResponse(message="Logged out", data={"logged_out": True})


@router.post(
    "/validate-session",
    response_model=GenericResponse[SessionInfo],
    summary="Validate a session token",
    description="Uses the token in the body, else the session cookie or Bearer header.",
)
async def validate_session(
    request: Request,
    service: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
    payload: Annotated[ValidateSessionRequest | None, Body()] = None,
) -> GenericResponse[SessionInfo]:
    token = (payload.token if payload else None) or extract_session_token(request, settings)
    claims = service.validate_token(token)
    return GenericResponse(
        message="Session is valid",
        data=SessionInfo(
            valid=True,
            user_id=claims.user_id,
            email=claims.email,
            role=claims.role,
            status=claims.status,
            expires_at=claims.expires_at,
        ),
    )


@router.get(
    "/me",
    response_model=GenericResponse[SessionUser],
    summary="Current user",
)
async def me(current_user: CurrentUser) -> GenericResponse[SessionUser]:
    return GenericResponse(message="Current user", data=SessionUser.model_validate(current_user))


@router.get(
    "/user-by-email",
    response_model=GenericResponse[UserResponse],
    summary="Look up a user by email (admin)",
)
async def user_by_email(
    admin: AdminUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    email: str = Query(..., min_length=3),
) -> GenericResponse[UserResponse]:
    user = await UserRepository(db).get_by_email(email)
    if user is None:
        raise NotFoundError(message="User not found", error_code="USER_NOT_FOUND", resource_type="user")
    return GenericResponse(message="User found", data=UserResponse.model_validate(user))
