"""RBAC (Role-Based Access Control) FastAPI dependencies.

The access guard middleware has already verified the session for every
non-public path and stored its claims on ``request.state.session``; these
dependencies reuse those claims instead of decoding the token again, load
the current ``User`` row and enforce the role an endpoint needs.

Usage:
    @router.get("/admin/dashboard")
    async def dashboard(admin: AdminUser):
        ...
"""
from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.session import get_db
from ..models.enums import AccountStatus, UserRole
from ..models.user import User
from ..repositories.user_repository import UserRepository
from .config import Settings, get_settings
from .exceptions import ForbiddenError, UnauthorizedError
from .security import SessionClaims, extract_session_token, verify_session_token

logger = structlog.get_logger(__name__)


async def get_session_claims(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> SessionClaims:
    """Claims of the request's session; verifies the token if the guard did not."""
    claims = getattr(request.state, "session", None)
    if isinstance(claims, SessionClaims):
        return claims

    token = extract_session_token(request, settings)
    if not token:
        raise UnauthorizedError(message="Not authenticated", error_code="UNAUTHORIZED")
    claims = verify_session_token(token, settings=settings)
    request.state.session = claims
    return claims


async def get_current_user(
    claims: Annotated[SessionClaims, Depends(get_session_claims)],
    db: AsyncSession = Depends(get_db),
) -> User:
    """Return the User the session belongs to.

    Raises:
        UnauthorizedError: The account no longer exists.
        ForbiddenError: The account is inactive.
    """
    user = await UserRepository(db).get_by_id(claims.user_id)
    if user is None:
        logger.warning("session_user_missing", user_id=claims.user_id)
        raise UnauthorizedError(message="User not found", error_code="USER_NOT_FOUND")

    if user.status == AccountStatus.INACTIVE:
        logger.warning("inactive_user_access", user_id=user.id)
        raise ForbiddenError(
            message="Your account has been deactivated. Please contact administrator.",
            error_code="USER_INACTIVE",
        )
    return user


def role_allowed(role: UserRole, required: UserRole) -> bool:
    """Admins may enter every role-scoped area; everyone else only their own."""
    match role:
        case UserRole.ADMIN:
            return True
        case UserRole.DOCTOR | UserRole.PATIENT:
            return role == required


async def require_admin(current_user: Annotated[User, Depends(get_current_user)]) -> User:
    """Require Admin role. Raises ForbiddenError otherwise."""
    if not role_allowed(current_user.role, UserRole.ADMIN):
        logger.warning("non_admin_access_attempt", user_id=current_user.id, role=current_user.role.value)
        raise ForbiddenError(message="Admin access required", error_code="ADMIN_REQUIRED")
    return current_user


async def require_doctor(current_user: Annotated[User, Depends(get_current_user)]) -> User:
    """Require Doctor (or Admin) role."""
    if not role_allowed(current_user.role, UserRole.DOCTOR):
        logger.warning("non_doctor_access_attempt", user_id=current_user.id, role=current_user.role.value)
        raise ForbiddenError(message="Doctor access required", error_code="DOCTOR_REQUIRED")
    return current_user


# ---------------------------------------------------------------------------
# Convenient type aliases for endpoint signatures
# ---------------------------------------------------------------------------
CurrentUser = Annotated[User, Depends(get_current_user)]
AdminUser = Annotated[User, Depends(require_admin)]
DoctorUser = Annotated[User, Depends(require_doctor)]
