"""Models package - SQLAlchemy ORM models."""
from .admin import AdminAction, AdminProfile, AdminSetting
from .doctor import DoctorApplication
from .document import DocumentUpload
from .user import User

__all__ = [
    "AdminAction",
    "AdminProfile",
    "AdminSetting",
    "DoctorApplication",
    "DocumentUpload",
    "User",
]
