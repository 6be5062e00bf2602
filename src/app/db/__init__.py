"""Database package - Session management and declarative base."""
from .session import (
    Base,
    DatabaseManager,
    DbSession,
    atomic,
    get_db,
    get_db_manager,
    run_atomic,
)

__all__ = [
    "Base",
    "DatabaseManager",
    "DbSession",
    "atomic",
    "get_db",
    "get_db_manager",
    "run_atomic",
]
