"""Storage layer for persistent data."""

from zkmixer.storage.database import (
    DatabaseManager,
    MixerRoots,
    EventRecord,
    SQLStateStore,
    SQLEventLog,
    Base,
    get_db_manager,
    reset_db_manager,
)

__all__ = [
    "DatabaseManager",
    "MixerRoots",
    "EventRecord",
    "SQLStateStore",
    "SQLEventLog",
    "Base",
    "get_db_manager",
    "reset_db_manager",
]
