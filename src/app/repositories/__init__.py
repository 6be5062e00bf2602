"""Repositories package - Data access layer."""
from .admin_repository import (
    AdminActionRepository,
    AdminProfileRepository,
    AdminSettingRepository,
)
from .doctor_repository import DoctorRepository
from .document_repository import DocumentUploadRepository
from .user_repository import UserRepository

__all__ = [
    "AdminActionRepository",
    "AdminProfileRepository",
    "AdminSettingRepository",
    "DoctorRepository",
    "DocumentUploadRepository",
    "UserRepository",
]
