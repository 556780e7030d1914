"""Storage layer - Database schemas and repositories."""

from polybuddy_signals.storage.database import (
    DatabaseManager,
    create_async_db_engine,
    create_async_session_factory,
    init_async_db,
)
from polybuddy_signals.storage.models import Base

__all__ = [
    "Base",
    "DatabaseManager",
    "create_async_db_engine",
    "create_async_session_factory",
    "init_async_db",
]
