"""Registration Service.

Doctor sign-up and the email confirmation that follows it:

1. ``submit_application`` creates the identity-provider account (which
   emails a temporary password) and then the local user + application rows.
2. ``confirm_temporary_credential`` checks the temporary password.
3. ``set_permanent_credential`` replaces it, confirms the application
   (``email_unconfirmed`` -> ``pending``) and signs the doctor in.
"""
from __future__ import annotations

from dataclasses import dataclass

import structlog
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings
from ..core.exceptions import (
    ConflictError,
    ExternalServiceError,
    UnauthorizedError,
    ValidationError,
)
from ..db.session import atomic
from ..models.enums import AccountStatus, DoctorStatus, UserRole
from ..models.user import User
from ..repositories.doctor_repository import DoctorRepository
from ..repositories.user_repository import UserRepository
from ..schemas.application import ApplicationSubmit, RegistrationResult
from ..schemas.auth import normalise_email, password_problems
from .application_service import ApplicationService
from .auth_service import AuthService, IssuedSession, email_fingerprint
from .identity_service import IdentityGateway, generate_temporary_password

log = structlog.get_logger(__name__)


@dataclass
class PermanentCredentialOutcome:
    email: str
    user: User | None
    session: IssuedSession | None
    status_changed: bool


class RegistrationService:
    def __init__(self, session: AsyncSession, gateway: IdentityGateway, settings: Settings) -> None:
        self.session = session
        self.gateway = gateway
        self.settings = settings
        self.users = UserRepository(session)
        self.doctors = DoctorRepository(session)

    async def submit_application(self, payload: ApplicationSubmit) -> RegistrationResult:
        """Create the doctor's account and application.

        Raises:
            ConflictError: Email or AHPRA number already registered.
            IdentityProviderError: Account creation failed; nothing was stored.
        """
        email = payload.email
        if await self.users.email_exists(email):
            raise ConflictError(message="User with this email already exists", error_code="EMAIL_EXISTS")
        if await self.doctors.ahpra_exists(payload.ahpra_number):
            raise ConflictError(
                message="An application with this AHPRA number already exists",
                error_code="AHPRA_EXISTS",
            )

        external_id = await self.gateway.create_account(
            email,
            generate_temporary_password(),
            {
                "given_name": payload.first_name,
                "family_name": payload.last_name,
                "custom:role": UserRole.DOCTOR.value,
            },
        )

        try:
            async with atomic(self.session):
                user = await self.users.create(
                    email,
                    UserRole.DOCTOR,
                    status=AccountStatus.PENDING,
                    cognito_user_id=external_id,
                )
                doctor = await self.doctors.insert(
                    user=user,
                    user_id=user.id,
                    first_name=payload.first_name,
                    last_name=payload.last_name,
                    phone=payload.phone,
                    medical_specialty=payload.specialty,
                    ahpra_number=payload.ahpra_number,
                    ahpra_registration_date=payload.ahpra_registration_date,
                    years_experience=payload.experience,
                    status=DoctorStatus.EMAIL_UNCONFIRMED,
                )
        except Exception as exc:
            await self._remove_orphan_account(email)
            if isinstance(exc, IntegrityError):
                raise ConflictError(
                    message="An application with this email or AHPRA number already exists",
                ) from exc
            raise

        log.info("application_submitted", doctor_id=doctor.id, user_id=user.id)
        return RegistrationResult(email=email)

    async def _remove_orphan_account(self, email: str) -> None:
        """Delete the provider account whose local rows could not be written."""
        try:
            await self.gateway.delete_account(email)
        except ExternalServiceError:
            log.error("orphan_account_cleanup_failed", email_hash=email_fingerprint(email))
        else:
            log.warning("orphan_account_removed", email_hash=email_fingerprint(email))

    async def confirm_temporary_credential(self, email: str, temporary_password: str) -> None:
        if not await self.gateway.verify_temporary_credential(email, temporary_password):
            raise UnauthorizedError(
                message="Invalid email or temporary password",
                error_code="INVALID_CREDENTIALS",
            )

    async def set_permanent_credential(
        self,
        email: str,
        temporary_password: str,
        new_password: str,
    ) -> PermanentCredentialOutcome:
        """Replace the temporary password and confirm the application.

        Calling it again leaves the application status alone. A session is
        issued only when the new password authenticates.
        """
        problems = password_problems(new_password)
        if problems:
            raise ValidationError(
                message=problems[0],
                errors=[
                    {"field": "new_password", "message": problem, "type": "value_error"}
                    for problem in problems
                ],
            )

        if not await self.gateway.replace_credential(email, temporary_password, new_password):
            raise UnauthorizedError(
                message="Invalid email or temporary password",
                error_code="INVALID_CREDENTIALS",
            )

        user = await self.users.get_by_email(email)
        status_changed = False
        if user is not None:
            doctor = await self.doctors.get_by_user_id(user.id)
            if doctor is not None:
                status_changed = await ApplicationService(self.session).confirm_email(doctor)

        issued: IssuedSession | None = None
        if await self.gateway.authenticate(email, new_password) is not None:
            auth = AuthService(self.session, self.gateway, self.settings)
            user = user or await auth.resolve_user(email)
            async with atomic(self.session):
                await self.users.touch_last_login(user)
            issued = auth.issue_session(user)
        else:
            log.warning("auto_login_failed", email_hash=email_fingerprint(email))

        return PermanentCredentialOutcome(
            email=email,
            user=user,
            session=issued,
            status_changed=status_changed,
        )

    async def resend_confirmation(self, email: str) -> None:
        try:
            email = normalise_email(email)
        except PydanticValidationError as exc:
            raise ValidationError.for_field("email", "Invalid email address") from exc
        if not await self.gateway.resend_confirmation(email):
            raise ExternalServiceError(
                service_name="cognito",
                message="Could not resend the confirmation email",
            )
        log.info("confirmation_resent", email_hash=email_fingerprint(email))
