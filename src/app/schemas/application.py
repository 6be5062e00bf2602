"""
Doctor application schemas.

Registration form input, the application as admins see it, the audit trail
and the bodies of the review actions.
"""
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models.enums import ApplicationAction, DoctorStatus, TargetType
from .auth import EmailAddress

OTHER_SPECIALTY = "other"


def parse_registration_year(v: str) -> date:
    """``"2015"`` -> 2015-01-01; a full ISO date is accepted as-is."""
    cleaned = v.strip()
    if re.fullmatch(r"\d{4}", cleaned):
        return date(int(cleaned), 1, 1)
    try:
        return date.fromisoformat(cleaned)
    except ValueError as exc:
        raise ValueError("Registration date must be a year (YYYY) or a date (YYYY-MM-DD)") from exc


def parse_experience(v: str) -> int:
    """Leading whole number of an experience range: ``"3-5"`` -> 3, ``"20+"`` -> 20."""
    match = re.match(r"\s*(\d+)", v)
    if match is None:
        raise ValueError("Experience must start with a number of years")
    return int(match.group(1))


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class ApplicationSubmit(BaseModel):
    """Registration form for a new doctor application."""

    type: Literal["doctor"] = Field(..., description="Registration type; only doctors may apply")
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailAddress = Field(..., examples=["dr.jane@example.com"])
    phone: str = Field(..., min_length=1, max_length=20)
    specialty: str = Field(..., min_length=1, max_length=100)
    custom_specialty: str | None = Field(default=None, max_length=100)
    ahpra_number: str = Field(..., min_length=1, max_length=50, examples=["MED0001234567"])
    ahpra_registration_date: date = Field(..., description="Registration year (YYYY) or date")
    experience: int = Field(..., ge=0, description="Years of experience or a range such as 3-5")

    model_config = ConfigDict(
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "type": "doctor",
                "first_name": "Jane",
                "last_name": "Citizen",
                "email": "dr.jane@example.com",
                "phone": "0412345678",
                "specialty": "obstetrics",
                "ahpra_number": "MED0001234567",
                "ahpra_registration_date": "2015",
                "experience": "6-10",
            }
        },
    )

    @field_validator("ahpra_number")
    @classmethod
    def normalise_ahpra(cls, v: str) -> str:
        return v.upper()

    @field_validator("ahpra_registration_date", mode="before")
    @classmethod
    def validate_registration_date(cls, v: Any) -> Any:
        if isinstance(v, int):
            v = str(v)
        if isinstance(v, str):
            return parse_registration_year(v)
        return v

    @field_validator("experience", mode="before")
    @classmethod
    def validate_experience(cls, v: Any) -> Any:
        if isinstance(v, str):
            return parse_experience(v)
        return v

    @model_validator(mode="after")
    def resolve_specialty(self) -> "ApplicationSubmit":
        if self.specialty.lower() == OTHER_SPECIALTY:
            if not self.custom_specialty:
                raise ValueError("custom_specialty is required when specialty is 'other'")
            self.specialty = self.custom_specialty
        return self


class ReasonRequest(BaseModel):
    """Body of approve: the reason is optional."""

    reason: str | None = Field(default=None, max_length=2000)


class RequiredReasonRequest(BaseModel):
    """Body of reject / request-documentation / suspend.

    Blank reasons are rejected by the service with a VALIDATION_ERROR.
    """

    reason: str | None = Field(default=None, max_length=2000)


class ScheduleInterviewRequest(BaseModel):
    doctor_id: str = Field(..., min_length=1)
    scheduling_link: str | None = Field(
        default=None,
        description="Booking link; falls back to the admin's saved calendly_link",
    )
    admin_name: str | None = Field(default=None, description="Sender name shown in the email")
    reason: str | None = Field(default=None, max_length=2000)


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class RegistrationResult(BaseModel):
    email: str
    requires_email_verification: bool = True


class ApplicationSummary(BaseModel):
    """Row of the admin pipeline listing."""

    id: str
    user_id: str
    email: str | None = None
    first_name: str
    last_name: str
    phone: str
    medical_specialty: str
    ahpra_number: str
    years_experience: int
    status: DoctorStatus
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DoctorApplicationResponse(ApplicationSummary):
    """Full application record."""

    date_of_birth: date | None = None
    address_street: str | None = None
    address_city: str | None = None
    address_state: str | None = None
    address_postcode: str | None = None
    address_country: str
    ahpra_registration_date: date
    current_registration_status: str | None = None
    qualifications: list[str] = Field(default_factory=list)
    current_roles: list[str] = Field(default_factory=list)
    languages_spoken: list[str] = Field(default_factory=list)
    consultation_types: list[str] = Field(default_factory=list)
    working_hours: str | None = None
    abn: str | None = None
    insurance_provider: str | None = None
    insurance_policy_number: str | None = None
    insurance_expiry_date: date | None = None
    documents: dict[str, Any] | None = None
    approved_at: datetime | None = None
    approved_by: str | None = None


class AdminActionResponse(BaseModel):
    id: str
    admin_id: str
    target_id: str
    target_type: TargetType
    action: ApplicationAction
    reason: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="action_metadata")
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class ScheduleInterviewResult(BaseModel):
    doctor_id: str
    doctor_name: str
    doctor_email: str
    status: DoctorStatus
    subject: str
    mailto_link: str
