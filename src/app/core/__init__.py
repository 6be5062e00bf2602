"""Core package - Configuration, exceptions, security and access control."""
from .config import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
