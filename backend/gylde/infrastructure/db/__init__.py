"""
Database Infrastructure Package for Gylde

Exports database utilities and dependency providers.
"""

from gylde.infrastructure.db.database import (
    DatabaseManager,
    get_db_manager,
    get_session,
    get_session_context,
    init_db,
    close_db,
)


__all__ = [
    # Database management
    "DatabaseManager",
    "get_db_manager",
    "get_session",
    "get_session_context",
    "init_db",
    "close_db",
]
