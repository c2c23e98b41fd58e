"""Database package - Session management and base models."""
from .session import (
    Base,
    DatabaseManager,
    DbSession,
    get_db,
    get_db_manager,
)

__all__ = [
    "Base",
    "DatabaseManager",
    "DbSession",
    "get_db",
    "get_db_manager",
]
