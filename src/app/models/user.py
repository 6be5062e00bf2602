"""
User Model.

One row per portal account. Credentials live in the identity provider;
this table carries the role and account status the portal authorizes on.

Design:
    - Email is unique and stored lower-case.
    - cognito_user_id links the row to the identity provider account.
    - Profile data lives in role-specific tables (doctors, admins).
"""
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.session import Base
from .enums import AccountStatus, UserRole
from .mixins import TimestampMixin, UUIDPrimaryKeyMixin, enum_column

if TYPE_CHECKING:
    from .admin import AdminProfile
    from .doctor import DoctorApplication


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """
    Portal account used for authorization.

    Attributes:
        id: UUID primary key (JWT ``sub``)
        cognito_user_id: Identity-provider username / sub
        email: Unique login email
        role: admin, doctor or patient
        status: active, inactive or pending
        last_login_at: Last successful login
    """

    __tablename__ = "users"

    cognito_user_id: Mapped[str | None] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
        comment="Identity provider user reference"
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    role: Mapped[UserRole] = mapped_column(
        enum_column(UserRole, "user_role_enum"),
        nullable=False,
        index=True,
    )
    status: Mapped[AccountStatus] = mapped_column(
        enum_column(AccountStatus, "account_status_enum"),
        nullable=False,
        default=AccountStatus.PENDING,
    )
    last_login_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    doctor: Mapped["DoctorApplication | None"] = relationship(
        "DoctorApplication",
        back_populates="user",
        foreign_keys="DoctorApplication.user_id",
        uselist=False,
    )
    admin_profile: Mapped["AdminProfile | None"] = relationship(
        "AdminProfile",
        back_populates="user",
        uselist=False,
    )

    __table_args__ = (
        Index("ix_users_role_status", "role", "status"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, role='{self.role.value}', status='{self.status.value}')>"
