"""Authentication Service.

Login against the identity provider, local account resolution and session
token issuance. Passwords never reach the database; the local ``users``
row only carries role and account status.
"""
from __future__ import annotations

import hashlib
from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings
from ..core.exceptions import ForbiddenError, UnauthorizedError
from ..core.security import SessionClaims, create_session_token, verify_session_token
from ..db.session import atomic
from ..models.enums import AccountStatus, UserRole
from ..models.user import User
from ..repositories.user_repository import UserRepository
from .identity_service import IdentityGateway

log = structlog.get_logger(__name__)


def email_fingerprint(email: str) -> str:
    """Short stable hash of an email for log lines."""
    return hashlib.sha256(email.strip().lower().encode("utf-8")).hexdigest()[:12]


@dataclass(frozen=True)
class IssuedSession:
    access_token: str
    refresh_token: str


class AuthService:
    def __init__(self, session: AsyncSession, gateway: IdentityGateway, settings: Settings) -> None:
        self.session = session
        self.gateway = gateway
        self.settings = settings
        self.users = UserRepository(session)

    def issue_session(self, user: User) -> IssuedSession:
        """Access + refresh tokens carrying the user's current role and status."""
        common = {
            "user_id": user.id,
            "email": user.email,
            "role": user.role,
            "status": user.status,
            "settings": self.settings,
        }
        return IssuedSession(
            access_token=create_session_token(token_type="access", **common),
            refresh_token=create_session_token(token_type="refresh", **common),
        )

    async def resolve_user(self, email: str) -> User:
        """Local account for an email the identity provider just authenticated.

        First sign-in of an account created outside this service gets a
        local row with the role recorded at the provider and status pending.
        """
        user = await self.users.get_by_email(email)
        if user is not None:
            return user

        account = await self.gateway.get_account(email)
        role = account.role if account is not None else UserRole.PATIENT
        async with atomic(self.session):
            user = await self.users.create(
                email,
                role,
                status=AccountStatus.PENDING,
                cognito_user_id=account.username if account is not None else None,
            )
        log.info("user_created_on_first_login", user_id=user.id, role=role.value)
        return user

    @staticmethod
    def check_can_sign_in(user: User) -> None:
        """Raise when the account may not start a session.

        Doctors stay locked out while their account is pending review;
        inactive accounts of any role are refused.
        """
        if user.role == UserRole.DOCTOR and user.status == AccountStatus.PENDING:
            raise ForbiddenError(
                message="Your account is pending approval. Please wait for admin confirmation.",
                error_code="ACCOUNT_PENDING",
                details={"is_pending": True},
            )
        if user.status == AccountStatus.INACTIVE:
            raise ForbiddenError(
                message="Your account has been deactivated. Please contact support.",
                error_code="USER_INACTIVE",
            )

    async def login(self, email: str, password: str) -> tuple[User, IssuedSession]:
        """Authenticate and return the local user with fresh session tokens.

        Raises:
            UnauthorizedError: Wrong email or password.
            ForbiddenError: Pending doctor or inactive account.
        """
        identity = await self.gateway.authenticate(email, password)
        if identity is None:
            log.warning("login_failed", email_hash=email_fingerprint(email))
            raise UnauthorizedError(message="Invalid email or password", error_code="INVALID_CREDENTIALS")

        user = await self.resolve_user(email)
        self.check_can_sign_in(user)

        async with atomic(self.session):
            await self.users.touch_last_login(user)

        log.info("login_succeeded", user_id=user.id, role=user.role.value)
        return user, self.issue_session(user)

    def validate_token(self, token: str | None) -> SessionClaims:
        if not token:
            raise UnauthorizedError(message="No session token provided", error_code="UNAUTHORIZED")
        return verify_session_token(token, settings=self.settings)
