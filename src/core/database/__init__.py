"""
Database subsystem for Cadence (2025).

Provides the async SQLAlchemy engine/session service and the ORM base
classes and mixins used by model definitions.
"""

from src.core.database.base import (
    Base,
    IdMixin,
    TimestampMixin,
    utc_now,
)
from src.core.database.service import (
    DatabaseInitializationError,
    DatabaseNotInitializedError,
    DatabaseService,
    DatabaseSettings,
)

__all__ = [
    # ORM Base & Mixins
    "Base",
    "IdMixin",
    "TimestampMixin",
    "utc_now",
    # Service
    "DatabaseService",
    "DatabaseSettings",
    # Exceptions
    "DatabaseInitializationError",
    "DatabaseNotInitializedError",
]
