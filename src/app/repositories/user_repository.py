"""User Repository - Data access layer for portal accounts."""
from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime

import structlog
from sqlalchemy import select

from ..models.enums import AccountStatus, UserRole
from ..models.user import User
from .base import BaseRepository

log = structlog.get_logger(__name__)


class UserRepository(BaseRepository[User]):
    """Repository for User CRUD operations."""

    model = User

    # =========================================================================
    # READ OPERATIONS
    # =========================================================================

    async def get_by_id(self, user_id: str) -> User | None:
        return await self.get(user_id)

    async def get_by_email(self, email: str) -> User | None:
        """Get user by email address (case-insensitive)."""
        query = select(User).where(User.email == email.strip().lower())
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def email_exists(self, email: str) -> bool:
        return await self.get_by_email(email) is not None

    async def list_users(
        self,
        *,
        page: int = 1,
        page_size: int = 20,
        role: UserRole | None = None,
        status: AccountStatus | None = None,
    ) -> tuple[Sequence[User], int]:
        """Return one page of users (newest first) and the matching total."""
        filters: dict = {}
        if role is not None:
            filters["role"] = role
        if status is not None:
            filters["status"] = status
        users = await self.find(
            filters,
            page=page,
            page_size=page_size,
            order_by=User.created_at.desc(),
        )
        total = await self.count(filters)
        return users, total

    # =========================================================================
    # WRITE OPERATIONS
    # =========================================================================

    async def create(
        self,
        email: str,
        role: UserRole,
        *,
        status: AccountStatus = AccountStatus.PENDING,
        cognito_user_id: str | None = None,
    ) -> User:
        user = await self.insert(
            email=email.strip().lower(),
            role=role,
            status=status,
            cognito_user_id=cognito_user_id,
        )
        log.info("user_created", user_id=user.id, role=role.value)
        return user

    async def set_status(self, user_id: str, status: AccountStatus) -> User | None:
        user = await self.update(user_id, status=status)
        if user is not None:
            log.info("user_status_staged", user_id=user_id, status=status.value)
        return user

    async def touch_last_login(self, user: User) -> None:
        user.last_login_at = datetime.now(UTC)
        await self.session.flush()
