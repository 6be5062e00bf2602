"""Doctor application repository."""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime

import structlog
from sqlalchemy import func, select

from ..models.doctor import DoctorApplication
from ..models.enums import DoctorStatus
from ..models.user import User
from .base import BaseRepository

log = structlog.get_logger(__name__)


class DoctorRepository(BaseRepository[DoctorApplication]):
    """Queries over the ``doctors`` table.

    Status is deliberately absent from the write helpers here; it is only
    changed through ``ApplicationService``.
    """

    model = DoctorApplication

    async def get_by_user_id(self, user_id: str) -> DoctorApplication | None:
        return await self.find_one(user_id=user_id)

    async def get_by_email(self, email: str) -> DoctorApplication | None:
        query = (
            select(DoctorApplication)
            .join(User, DoctorApplication.user_id == User.id)
            .where(User.email == email.strip().lower())
        )
        result = await self.session.execute(query)
        return result.scalars().first()

    async def ahpra_exists(self, ahpra_number: str) -> bool:
        query = select(DoctorApplication.id).where(
            func.upper(DoctorApplication.ahpra_number) == ahpra_number.strip().upper()
        )
        result = await self.session.execute(query)
        return result.first() is not None

    async def list_by_status(
        self,
        statuses: Iterable[DoctorStatus],
        *,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[Sequence[DoctorApplication], int]:
        """Newest-first page of applications in ``statuses`` plus the total."""
        filters = {"status": tuple(statuses)}
        rows = await self.find(
            filters,
            page=page,
            page_size=page_size,
            order_by=DoctorApplication.created_at.desc(),
        )
        total = await self.count(filters)
        return rows, total

    async def count_created_since(
        self,
        statuses: Iterable[DoctorStatus],
        since: datetime,
    ) -> int:
        query = select(func.count(DoctorApplication.id)).where(
            DoctorApplication.status.in_(list(statuses)),
            DoctorApplication.created_at >= since,
        )
        result = await self.session.execute(query)
        return result.scalar_one()

    async def count_by_status(self) -> dict[DoctorStatus, int]:
        query = select(DoctorApplication.status, func.count(DoctorApplication.id)).group_by(
            DoctorApplication.status
        )
        result = await self.session.execute(query)
        counts = {status: 0 for status in DoctorStatus}
        for status, total in result.all():
            counts[status] = total
        return counts
