"""Admin console schemas: dashboard, profile/settings and user listing."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ..models.enums import AccountStatus, UserRole


class DashboardStats(BaseModel):
    pending_applications: int = Field(..., description="Applications still awaiting a decision")
    active_doctors: int
    total_patients: int
    total_users: int
    recent_applications: int = Field(..., description="Pipeline applications created in the last 7 days")


class AdminProfileResponse(BaseModel):
    id: str
    user_id: str
    email: str
    first_name: str
    last_name: str
    phone: str | None = None
    calendly_link: str | None = None
    department: str | None = None
    title: str | None = None
    status: AccountStatus
    created_at: datetime
    updated_at: datetime


class AdminSettingsUpdate(BaseModel):
    """Only non-empty fields are applied."""

    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=20)
    calendly_link: str | None = Field(default=None, max_length=500)
    department: str | None = Field(default=None, max_length=100)
    title: str | None = Field(default=None, max_length=100)

    model_config = ConfigDict(str_strip_whitespace=True)


class UserResponse(BaseModel):
    id: str
    email: str
    role: UserRole
    status: AccountStatus
    cognito_user_id: str | None = None
    last_login_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StatusCounts(BaseModel):
    """Applications per status (debug view)."""

    counts: dict[str, int]
    total: int
