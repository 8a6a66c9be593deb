"""
Cadence Logging Subsystem (2025)

Purpose
-------
Single logging stack for the coaching engine:

- Structured JSON records (production, and always in the rotating file)
- Colored human-readable console output on a dev TTY
- Per-operation context (user, component, operation, correlation id) held
  in a ContextVar, so concurrent sessions for different users never bleed
  into each other's records
- Non-blocking emission through a bounded QueueHandler/QueueListener pair;
  on overload records are dropped and counted instead of stalling the
  event loop

Usage
-----
    log = get_logger(__name__)

    async with LogContext(user_id="user-1", operation="record_session"):
        log.info("Session recorded", extra={"streak": 4})

Fields passed through ``extra={...}`` land under ``"extra"`` in the JSON
payload; context fields land at the top level.

Dependencies
------------
- src.core.config.config.Config (level, format flags, logs directory)
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from src.core.config.config import Config

CONTEXT_FIELDS: Tuple[str, ...] = ("user_id", "component", "operation", "correlation_id")
UNSET = "N/A"

_log_context: ContextVar[Dict[str, Any]] = ContextVar("cadence_log_context", default={})

_INIT_FLAG = "_cadence_logging_initialized"


# ============================================================================
# Settings
# ============================================================================


@dataclass(frozen=True)
class LoggerConfig:
    """Static logging settings; dynamic ones are read from ``Config``."""

    CONSOLE_FORMAT: str = "%(asctime)s | %(levelname)-8s | %(name)-36s | %(message)s"
    DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"
    FILE_NAME: str = "cadence_daily.json.log"
    FILE_BACKUP_COUNT: int = 1
    QUEUE_MAX_SIZE: int = 10_000

    @property
    def level(self) -> int:
        name = Config.get("LOG_LEVEL", "INFO")
        if not isinstance(name, str):
            return logging.INFO
        return getattr(logging, name.upper(), logging.INFO)

    @property
    def use_json(self) -> bool:
        return bool(Config.get("LOG_JSON", Config.is_production()))

    @property
    def use_colors(self) -> bool:
        if self.use_json:
            return False
        return bool(Config.get("LOG_COLORS", True)) and sys.stdout.isatty()

    @property
    def logs_dir(self) -> Path:
        return Path(Config.LOGS_DIR).resolve()


LOGGER_CONFIG = LoggerConfig()


@dataclass
class _PipelineCounters:
    enqueued: int = 0
    dropped: int = 0
    handler_errors: int = 0


@dataclass(frozen=True)
class LoggingHealth:
    initialized: bool
    queue_size: int
    queue_max_size: int
    records_enqueued: int
    records_dropped: int
    listener_errors: int


_counters = _PipelineCounters()
_log_queue: Optional["queue.Queue[logging.LogRecord]"] = None
_queue_listener: Optional[QueueListener] = None


# ============================================================================
# Filters & Formatters
# ============================================================================


class ContextFilter(logging.Filter):
    """Stamp the active log context onto each record; explicit extras win."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        context = _log_context.get()
        for field in CONTEXT_FIELDS:
            if not hasattr(record, field):
                setattr(record, field, context.get(field) or UNSET)
        if record.component == UNSET:
            record.component = record.name.rsplit(".", 1)[-1]
        return True


class ColoredFormatter(logging.Formatter):
    RESET = "\033[0m"
    LEVEL_COLORS: Dict[str, str] = {
        "DEBUG": "\033[90m",
        "INFO": "\033[94m",
        "WARNING": "\033[93m",
        "ERROR": "\033[91m",
        "CRITICAL": "\033[91m\033[1m",
    }

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        levelname = record.levelname
        color = self.LEVEL_COLORS.get(levelname)
        if color:
            record.levelname = f"{color}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    RESERVED = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        payload.update(
            {
                field: getattr(record, field)
                for field in CONTEXT_FIELDS
                if getattr(record, field, UNSET) not in (None, UNSET)
            }
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in self.RESERVED
            and key not in CONTEXT_FIELDS
            and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra

        return json.dumps(payload, ensure_ascii=False, default=str)


# ============================================================================
# Queue pipeline
# ============================================================================


class CadenceQueueHandler(QueueHandler):
    def enqueue(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        _counters.enqueued += 1
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            _counters.dropped += 1
            sys.stderr.write("Cadence logging queue full; record dropped.\n")


class CadenceQueueListener(QueueListener):
    def handleError(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        _counters.handler_errors += 1
        sys.stderr.write("Cadence logging handler failed to emit a record.\n")


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(LOGGER_CONFIG.level)
    if LOGGER_CONFIG.use_json:
        formatter: logging.Formatter = JSONFormatter()
    elif LOGGER_CONFIG.use_colors:
        formatter = ColoredFormatter(LOGGER_CONFIG.CONSOLE_FORMAT, LOGGER_CONFIG.DATE_FORMAT)
    else:
        formatter = logging.Formatter(LOGGER_CONFIG.CONSOLE_FORMAT, LOGGER_CONFIG.DATE_FORMAT)
    handler.setFormatter(formatter)
    return handler


def _file_handler() -> logging.Handler:
    LOGGER_CONFIG.logs_dir.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        filename=str(LOGGER_CONFIG.logs_dir / LOGGER_CONFIG.FILE_NAME),
        when="midnight",
        backupCount=LOGGER_CONFIG.FILE_BACKUP_COUNT,
        encoding="utf-8",
        utc=True,
    )
    handler.setLevel(LOGGER_CONFIG.level)
    handler.setFormatter(JSONFormatter())
    return handler


def setup_logging() -> None:
    """Install the queue-backed handlers on the root logger. Idempotent."""
    global _counters, _log_queue, _queue_listener

    root = logging.getLogger()
    if getattr(root, _INIT_FLAG, False):
        return

    _counters = _PipelineCounters()
    _log_queue = queue.Queue(LOGGER_CONFIG.QUEUE_MAX_SIZE)
    _queue_listener = CadenceQueueListener(
        _log_queue, _console_handler(), _file_handler(), respect_handler_level=True
    )
    _queue_listener.start()

    queue_handler = CadenceQueueHandler(_log_queue)
    queue_handler.setLevel(LOGGER_CONFIG.level)
    # On the handler, not the root logger, so child logger records are stamped too
    queue_handler.addFilter(ContextFilter())

    root.handlers.clear()
    root.filters.clear()
    root.setLevel(LOGGER_CONFIG.level)
    root.addHandler(queue_handler)

    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    setattr(root, _INIT_FLAG, True)

    logging.getLogger(__name__).info(
        "Logging initialized",
        extra={
            "environment": Config.ENVIRONMENT,
            "log_level": logging.getLevelName(LOGGER_CONFIG.level),
            "json": LOGGER_CONFIG.use_json,
            "logs_dir": str(LOGGER_CONFIG.logs_dir),
        },
    )


def shutdown_logging() -> None:
    """Flush the queue and detach all root handlers."""
    global _log_queue, _queue_listener

    root = logging.getLogger()
    if not getattr(root, _INIT_FLAG, False):
        return

    logging.getLogger(__name__).info("Shutting down logging subsystem")

    if _queue_listener is not None:
        _queue_listener.stop()
        _queue_listener = None

    for handler in list(root.handlers):
        handler.flush()
        handler.close()
        root.removeHandler(handler)

    setattr(root, _INIT_FLAG, False)
    _log_queue = None


def get_logging_health() -> LoggingHealth:
    return LoggingHealth(
        initialized=bool(getattr(logging.getLogger(), _INIT_FLAG, False)),
        queue_size=_log_queue.qsize() if _log_queue is not None else 0,
        queue_max_size=_log_queue.maxsize if _log_queue is not None else 0,
        records_enqueued=_counters.enqueued,
        records_dropped=_counters.dropped,
        listener_errors=_counters.handler_errors,
    )


# ============================================================================
# Public API
# ============================================================================


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


class LogContext:
    """
    Bind context fields to every record emitted inside the block.

    Nested contexts inherit the outer fields and correlation id, and
    override only what they set.

    Usage
    -----
    >>> async with LogContext(user_id="user-1", operation="award_xp"):
    ...     await service.award_xp("user-1", 25)
    """

    def __init__(
        self,
        user_id: Optional[str] = None,
        component: Optional[str] = None,
        operation: Optional[str] = None,
        correlation_id: Optional[str] = None,
        **extra: Any,
    ) -> None:
        self.fields: Dict[str, Any] = {
            key: value
            for key, value in {
                "user_id": str(user_id) if user_id is not None else None,
                "component": component,
                "operation": operation,
                "correlation_id": correlation_id,
                **extra,
            }.items()
            if value is not None
        }
        self.context: Dict[str, Any] = {}
        self._token: Optional[Token[Dict[str, Any]]] = None

    def __enter__(self) -> LogContext:
        outer = _log_context.get()
        self.context = {**outer, **self.fields}
        self.context.setdefault("correlation_id", uuid.uuid4().hex[:8])
        self._token = _log_context.set(self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None

    async def __aenter__(self) -> LogContext:
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


def set_log_context(**fields: Any) -> None:
    """Merge fields into the current task's context; None values are ignored."""
    current = dict(_log_context.get())
    current.update({key: value for key, value in fields.items() if value is not None})
    _log_context.set(current)


def get_log_context() -> Dict[str, Any]:
    return dict(_log_context.get())


def clear_log_context() -> None:
    _log_context.set({})


setup_logging()
