"""Storage layer for persistent data."""

from zkpool.storage.database import (
    DatabaseManager,
    NullifierMarker,
    SqlNullifierRegistry,
    Base,
    get_db_manager,
    reset_db_manager,
)

__all__ = [
    "DatabaseManager",
    "NullifierMarker",
    "SqlNullifierRegistry",
    "Base",
    "get_db_manager",
    "reset_db_manager",
]
