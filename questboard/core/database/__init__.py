"""
Database subsystem for Questboard.

Provides the async SQLAlchemy engine and session management, plus the ORM
base class, mixins and UTC helpers used by model definitions.
"""

from questboard.core.database.base import (
    Base,
    IdMixin,
    TimestampMixin,
    ensure_utc,
    utc_now,
)
from questboard.core.database.service import (
    DatabaseInitializationError,
    DatabaseNotInitializedError,
    DatabaseService,
)

__all__ = [
    "Base",
    "IdMixin",
    "TimestampMixin",
    "ensure_utc",
    "utc_now",
    "DatabaseService",
    "DatabaseInitializationError",
    "DatabaseNotInitializedError",
]
