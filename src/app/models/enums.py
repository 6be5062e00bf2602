"""Shared Enums for the application.

Defines enum types used across models, schemas and services.
"""
from enum import Enum


class UserRole(str, Enum):
    """Portal role.

    Attributes:
        ADMIN: Reviews applications and manages the recruitment pipeline
        DOCTOR: Applicant / onboarded doctor
        PATIENT: Patient account (dashboard only)
    """
    ADMIN = "admin"
    DOCTOR = "doctor"
    PATIENT = "patient"

    @property
    def home_path(self) -> str:
        """Landing page for this role."""
        match self:
            case UserRole.ADMIN:
                return "/admin/dashboard"
            case UserRole.DOCTOR:
                return "/doctor/profile"
            case UserRole.PATIENT:
                return "/patient/dashboard"


class AccountStatus(str, Enum):
    """Status of the user account itself (not the doctor application)."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"


class DoctorStatus(str, Enum):
    """Doctor application lifecycle.

    email_unconfirmed -> pending -> interview_scheduled / documentation_required
    -> active | rejected; suspended is reached from active.
    """
    EMAIL_UNCONFIRMED = "email_unconfirmed"
    PENDING = "pending"
    INTERVIEW_SCHEDULED = "interview_scheduled"
    DOCUMENTATION_REQUIRED = "documentation_required"
    ACTIVE = "active"
    REJECTED = "rejected"
    SUSPENDED = "suspended"

    @classmethod
    def pipeline(cls) -> tuple["DoctorStatus", ...]:
        """Statuses that still await an admin decision."""
        return (
            cls.EMAIL_UNCONFIRMED,
            cls.PENDING,
            cls.DOCUMENTATION_REQUIRED,
            cls.INTERVIEW_SCHEDULED,
        )


class ApplicationAction(str, Enum):
    """Actions that move a doctor application between statuses."""
    CONFIRM_EMAIL = "confirm_email"
    SCHEDULE_INTERVIEW = "schedule_interview"
    REQUEST_DOCUMENTATION = "request_documentation"
    APPROVE = "approve"
    REJECT = "reject"
    SUSPEND = "suspend"


class TargetType(str, Enum):
    """Entity kinds an admin action can point at."""
    DOCTOR = "doctor"
    USER = "user"


class DocumentStatus(str, Enum):
    UPLOADED = "uploaded"
    VERIFIED = "verified"
    REJECTED = "rejected"
