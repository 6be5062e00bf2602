"""Doctor application model (``doctors`` table).

One row per doctor account, created when the application is submitted.
The ``status`` column only changes through the transitions defined in
``services/status_machine.py``.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.session import Base
from .enums import DoctorStatus
from .mixins import TimestampMixin, UUIDPrimaryKeyMixin, enum_column

if TYPE_CHECKING:
    from .user import User


class DoctorApplication(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """doctors table - applicant identity, credentials and review status."""

    __tablename__ = "doctors"

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    # Identity
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    date_of_birth: Mapped[date | None] = mapped_column(Date)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)

    # Address
    address_street: Mapped[str | None] = mapped_column(Text)
    address_city: Mapped[str | None] = mapped_column(String(100))
    address_state: Mapped[str | None] = mapped_column(String(50))
    address_postcode: Mapped[str | None] = mapped_column(String(10))
    address_country: Mapped[str] = mapped_column(String(50), default="Australia", nullable=False)

    # Professional registration
    ahpra_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    ahpra_registration_date: Mapped[date] = mapped_column(Date, nullable=False)
    medical_specialty: Mapped[str] = mapped_column(String(100), nullable=False)
    years_experience: Mapped[int] = mapped_column(Integer, nullable=False)
    current_registration_status: Mapped[str | None] = mapped_column(String(50))

    qualifications: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    current_roles: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    languages_spoken: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    consultation_types: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    working_hours: Mapped[str | None] = mapped_column(Text)

    # Business details
    abn: Mapped[str | None] = mapped_column(String(20))
    bank_account_name: Mapped[str | None] = mapped_column(String(100))
    bsb: Mapped[str | None] = mapped_column(String(10))
    account_number: Mapped[str | None] = mapped_column(String(20))
    tax_file_number: Mapped[str | None] = mapped_column(String(20))

    # Insurance
    insurance_provider: Mapped[str | None] = mapped_column(String(100))
    insurance_policy_number: Mapped[str | None] = mapped_column(String(50))
    insurance_expiry_date: Mapped[date | None] = mapped_column(Date)

    documents: Mapped[dict[str, Any] | None] = mapped_column(JSON)

    status: Mapped[DoctorStatus] = mapped_column(
        enum_column(DoctorStatus, "doctor_status_enum"),
        nullable=False,
        default=DoctorStatus.EMAIL_UNCONFIRMED,
    )
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    approved_by: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
    )

    user: Mapped["User"] = relationship(
        "User",
        back_populates="doctor",
        foreign_keys=[user_id],
        lazy="joined",
    )

    __table_args__ = (
        Index("ix_doctors_status_created", "status", "created_at"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def email(self) -> str | None:
        return self.user.email if self.user is not None else None

    def __repr__(self) -> str:
        return f"<DoctorApplication(id={self.id}, status='{self.status.value}')>"
