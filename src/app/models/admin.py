"""Admin-side tables: profile, audit log and per-admin settings."""
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.session import Base
from .enums import AccountStatus, ApplicationAction, TargetType
from .mixins import TimestampMixin, UUIDPrimaryKeyMixin, enum_column, utc_now

if TYPE_CHECKING:
    from .user import User


class AdminProfile(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """admins table - display and contact details, created on first settings access."""

    __tablename__ = "admins"

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    phone: Mapped[str | None] = mapped_column(String(20))
    calendly_link: Mapped[str | None] = mapped_column(String(500))
    department: Mapped[str | None] = mapped_column(String(100))
    title: Mapped[str | None] = mapped_column(String(100))
    status: Mapped[AccountStatus] = mapped_column(
        enum_column(AccountStatus, "admin_status_enum"),
        nullable=False,
        default=AccountStatus.ACTIVE,
    )

    user: Mapped["User"] = relationship("User", back_populates="admin_profile")


class AdminAction(UUIDPrimaryKeyMixin, Base):
    """admin_actions table - append-only audit log of admin decisions.

    Rows are inserted in the same transaction as the change they describe
    and are never updated afterwards.
    """

    __tablename__ = "admin_actions"

    admin_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    target_id: Mapped[str] = mapped_column(String(36), nullable=False)
    target_type: Mapped[TargetType] = mapped_column(
        enum_column(TargetType, "admin_target_type_enum"),
        nullable=False,
    )
    action: Mapped[ApplicationAction] = mapped_column(
        enum_column(ApplicationAction, "admin_action_enum"),
        nullable=False,
    )
    reason: Mapped[str | None] = mapped_column(Text)
    # "metadata" is reserved on declarative classes
    action_metadata: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )

    __table_args__ = (
        Index("ix_admin_actions_target", "target_type", "target_id"),
    )


class AdminSetting(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """admin_settings table - one value per (admin, key)."""

    __tablename__ = "admin_settings"

    admin_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    setting_key: Mapped[str] = mapped_column(String(100), nullable=False)
    setting_value: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        UniqueConstraint("admin_id", "setting_key", name="uq_admin_settings_admin_key"),
    )
