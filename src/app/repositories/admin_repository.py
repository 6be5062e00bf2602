"""Admin profile, audit log and settings repositories."""
from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import structlog
from sqlalchemy import select

from ..models.admin import AdminAction, AdminProfile, AdminSetting
from ..models.enums import ApplicationAction, TargetType
from .base import BaseRepository

log = structlog.get_logger(__name__)


class AdminProfileRepository(BaseRepository[AdminProfile]):
    model = AdminProfile

    async def get_by_user_id(self, user_id: str) -> AdminProfile | None:
        return await self.find_one(user_id=user_id)


class AdminActionRepository(BaseRepository[AdminAction]):
    """Append-only access to ``admin_actions``; no update or delete helpers."""

    model = AdminAction

    async def record(
        self,
        *,
        admin_id: str,
        target_id: str,
        action: ApplicationAction,
        reason: str | None,
        metadata: dict[str, Any] | None = None,
        target_type: TargetType = TargetType.DOCTOR,
    ) -> AdminAction:
        entry = await self.insert(
            admin_id=admin_id,
            target_id=target_id,
            target_type=target_type,
            action=action,
            reason=reason,
            action_metadata=metadata or {},
        )
        log.info(
            "admin_action_recorded",
            admin_id=admin_id,
            target_id=target_id,
            action=action.value,
        )
        return entry

    async def list_for_target(
        self,
        target_id: str,
        target_type: TargetType = TargetType.DOCTOR,
    ) -> Sequence[AdminAction]:
        query = (
            select(AdminAction)
            .where(AdminAction.target_id == target_id, AdminAction.target_type == target_type)
            .order_by(AdminAction.created_at.desc())
        )
        result = await self.session.execute(query)
        return result.scalars().all()


class AdminSettingRepository(BaseRepository[AdminSetting]):
    model = AdminSetting

    async def get_value(self, admin_id: str, key: str) -> str | None:
        setting = await self.find_one(admin_id=admin_id, setting_key=key)
        return setting.setting_value if setting is not None else None

    async def upsert(self, admin_id: str, key: str, value: str | None) -> AdminSetting:
        """Insert or overwrite the value stored under (admin_id, key)."""
        setting = await self.find_one(admin_id=admin_id, setting_key=key)
        if setting is None:
            return await self.insert(admin_id=admin_id, setting_key=key, setting_value=value)
        setting.setting_value = value
        await self.session.flush()
        return setting
