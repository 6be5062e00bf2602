"""Doctor-facing profile schemas."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ..models.enums import DocumentStatus, DoctorStatus
from .application import DoctorApplicationResponse

PENDING_REVIEW = "pending_review"


def display_status(status: DoctorStatus) -> str:
    """Status label shown to the doctor; ``pending`` reads as ``pending_review``."""
    if status == DoctorStatus.PENDING:
        return PENDING_REVIEW
    return status.value


class DocumentUploadResponse(BaseModel):
    id: str
    document_type: str
    file_name: str
    original_name: str
    s3_url: str
    file_size: int
    mime_type: str
    description: str | None = None
    status: DocumentStatus
    uploaded_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DoctorProfileResponse(BaseModel):
    application: DoctorApplicationResponse
    display_status: str = Field(..., examples=[PENDING_REVIEW])
    uploads: list[DocumentUploadResponse] = Field(default_factory=list)
