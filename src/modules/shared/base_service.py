"""
Base Service Foundation

Purpose
-------
Provides the foundational class for Cadence domain services. Services
orchestrate the pure engines, persist through injected repositories and
emit domain events after state has been written.

Design Notes
------------
This base class provides:
- Structured logging with operation context (``operation_context`` binds
  user and operation onto every record emitted inside the block)
- Safe config access
- Event emission through the injected EventBus

What this class does NOT do:
- Manage database sessions (repositories and DatabaseService do that)
- Contain scoring or progression rules (those live in ``*_logic`` modules)

Usage
-----
    class CoachingService(BaseService):
        def __init__(self, outcome_log, config, event_bus, logger):
            super().__init__(config, event_bus, logger)
            self._outcomes = outcome_log
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional, Type

from src.core.exceptions import CadenceError, ConfigurationError
from src.core.logging.logger import LogContext

if TYPE_CHECKING:
    from logging import Logger

    from src.core.config.config import Config
    from src.core.event.bus import EventBus


class BaseService:
    """
    Base class for all domain services.

    Args:
        config: Application configuration (the ``Config`` class or any object
            exposing ``get(key, default)``)
        event_bus: Event bus for cross-module communication
        logger: Structured logger instance
    """

    def __init__(
        self,
        config: Type[Config],
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        self._config = config
        self._events = event_bus
        self.log = logger

    def get_config(
        self, key: str, default: Optional[Any] = None, required: bool = False
    ) -> Any:
        """
        Safely retrieve a configuration value.

        Raises:
            ConfigurationError: If required=True and the key is missing
        """
        value = self._config.get(key, default)
        if required and value is None:
            raise ConfigurationError(
                key, f"Required configuration key '{key}' is missing"
            )
        return value

    async def emit_event(
        self,
        event_type: str,
        data: Dict[str, Any],
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Publish a domain event.

        Args:
            event_type: Event name, e.g. ``progression.leveled_up``
            data: Event payload
            context: Optional extra fields merged into the payload
        """
        await self._events.publish(event_type, {**data, **(context or {})})

    def operation_context(self, operation: str, user_id: Optional[str] = None) -> LogContext:
        """
        Log context for one service call.

        Usage:
            async with self.operation_context("award_xp", user_id):
                ...
        """
        return LogContext(
            user_id=user_id,
            component=type(self).__name__,
            operation=operation,
        )

    def log_operation(self, operation: str, **context: Any) -> None:
        self.log.info(
            f"Service operation: {operation}",
            extra={"operation": operation, **context},
        )

    def log_error(
        self,
        operation: str,
        error: Exception,
        **context: Any,
    ) -> None:
        """Log a service error with its type and message."""
        self.log.error(
            f"Service error during {operation}: {str(error)}",
            extra={
                "operation": operation,
                "error_type": type(error).__name__,
                "error_message": str(error),
                "error_code": error.error_code if isinstance(error, CadenceError) else None,
                **context,
            },
        )
