"""
Core infrastructure layer for Cadence.

Purpose
-------
Provide a single import surface for the infrastructure subsystems:

- Configuration (Config, Environment)
- Database subsystem (DatabaseService, DatabaseSettings)
- Logging (structured logging, logger factory)
- Events (EventBus)
- Exception root and infrastructure exceptions

Non-Responsibilities
--------------------
- Business logic (lives in ``src.modules``)
- Domain exceptions (``src.modules.shared.exceptions``); they are not
  re-exported here so the domain layer can import core without cycles
"""

from __future__ import annotations

from src.core.config import Config, Environment
from src.core.database import DatabaseService, DatabaseSettings
from src.core.event import EventBus
from src.core.exceptions import (
    CadenceError,
    CadenceInfrastructureException,
    ConfigurationError,
    DatabaseError,
    ErrorSeverity,
)
from src.core.logging import get_logger, setup_logging

__all__ = [
    # Configuration
    "Config",
    "Environment",
    # Database
    "DatabaseService",
    "DatabaseSettings",
    # Events
    "EventBus",
    # Logging
    "setup_logging",
    "get_logger",
    # Exceptions
    "CadenceError",
    "CadenceInfrastructureException",
    "ConfigurationError",
    "DatabaseError",
    "ErrorSeverity",
]
