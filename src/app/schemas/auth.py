"""Authentication Schemas.

Request/response models for the credential flow:
- login / logout
- temporary password check and exchange for a permanent password
- confirmation resend
- session validation
"""
from __future__ import annotations

import re
from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, TypeAdapter

from ..models.enums import AccountStatus, UserRole

PASSWORD_MIN_LENGTH = 8

# Syntax is checked by email-validator; addresses are stored lower-cased
EmailAddress = Annotated[EmailStr, AfterValidator(str.lower)]

_email_adapter: TypeAdapter[str] = TypeAdapter(EmailAddress)


def normalise_email(v: str) -> str:
    """Trim, validate and lower-case an email address.

    Raises ``pydantic.ValidationError`` for malformed addresses.
    """
    return _email_adapter.validate_python(v.strip())


def password_problems(password: str) -> list[str]:
    """Human-readable reasons ``password`` is too weak; empty when it passes."""
    problems = []
    if len(password) < PASSWORD_MIN_LENGTH:
        problems.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if not re.search(r"[a-z]", password):
        problems.append("Password must contain at least one lowercase letter")
    if not re.search(r"[A-Z]", password):
        problems.append("Password must contain at least one uppercase letter")
    if not re.search(r"\d", password):
        problems.append("Password must contain at least one number")
    return problems


class _EmailRequest(BaseModel):
    email: EmailAddress = Field(..., description="Account email", examples=["dr.jane@example.com"])


class LoginRequest(_EmailRequest):
    """Request schema for email/password login."""

    password: str = Field(..., min_length=1, description="Account password")


class TemporaryPasswordRequest(_EmailRequest):
    """Request schema for checking the temporary password from the invite email."""

    temporary_password: str = Field(..., min_length=1)


class SetPermanentPasswordRequest(TemporaryPasswordRequest):
    """Request schema for replacing the temporary password.

    Strength rules are enforced by the registration service so that the
    error carries the same field-level layout as the identity provider's
    own password policy rejection.
    """

    new_password: str = Field(..., min_length=1)

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "email": "dr.jane@example.com",
            "temporary_password": "Tmp!x8Qa2bZk",
            "new_password": "Str0ngPassword",
        }
    })


class ResendConfirmationRequest(BaseModel):
    email: EmailAddress


class ValidateSessionRequest(BaseModel):
    token: str | None = Field(
        default=None,
        description="Session token; the cookie or Bearer header is used when omitted",
    )


class SessionUser(BaseModel):
    """Identity of the signed-in user as returned to clients."""

    id: str
    email: str
    role: UserRole
    status: AccountStatus
    last_login_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class LoginResponse(BaseModel):
    user: SessionUser
    redirect_to: str = Field(..., description="Home page for the user's role")


class SessionInfo(BaseModel):
    valid: bool
    user_id: str
    email: str
    role: UserRole
    status: AccountStatus
    expires_at: datetime


class TemporaryPasswordResult(BaseModel):
    requires_new_password: bool = True


class PermanentPasswordResult(BaseModel):
    email: str
    auto_login: bool = Field(..., description="Whether session cookies were issued")
    user: SessionUser | None = None
    redirect_to: str | None = None
