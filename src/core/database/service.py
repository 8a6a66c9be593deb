"""
Database Service - Core Infrastructure Layer (Cadence 2025)

Purpose
-------
Async database engine and session management for the Cadence persistence
adapters. Provides atomic transactions and a liveness probe.

Responsibilities
----------------
- Own one AsyncEngine with connection pooling
- Provide async context managers for read sessions and atomic transactions
- Enforce transaction discipline: commit on success, rollback on exception
- Configure PostgreSQL statement timeouts per transaction
- Idempotent initialization under an async lock

Non-Responsibilities
--------------------
- Schema migrations (``create_all`` is offered for tests and bootstrap only)
- Compare-and-swap semantics (implemented by the repositories)
- Domain logic, business rules, or event emission

Architecture Notes
------------------
- Instance-based: the ``ServiceContainer`` builds one ``DatabaseService``
  and injects it into the SQL repositories. Tests create their own
  instance pointed at a throwaway database.
- QueuePool in production, NullPool when ENVIRONMENT=testing.

Usage Example
-------------
>>> database = DatabaseService.from_config(Config)
>>> await database.initialize()
>>> async with database.get_transaction() as session:
...     session.add(UserProgressionModel(user_id="u-1"))
...     # Automatic commit on exit
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Dict, Optional, Type

from sqlalchemy import text
from sqlalchemy.exc import ArgumentError, DBAPIError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool, NullPool, Pool

from src.core.database.base import Base
from src.core.logging.logger import get_logger

logger = get_logger(__name__)


# ============================================================================
# Exceptions
# ============================================================================


class DatabaseInitializationError(RuntimeError):
    """Raised when database engine initialization fails."""


class DatabaseNotInitializedError(RuntimeError):
    """Raised when database operations are attempted before initialization."""


# ============================================================================
# Configuration Snapshot
# ============================================================================


@dataclass(frozen=True)
class DatabaseSettings:
    """
    Immutable snapshot of database configuration.

    Provides a stable configuration view for the lifetime of the engine.
    """

    url: str
    echo: bool = False
    pool_class: Type[Pool] = AsyncAdaptedQueuePool
    pool_size: int = 20
    max_overflow: int = 10
    pool_recycle: int = 3600
    pool_timeout: int = 30
    statement_timeout_ms: int = 30_000

    @property
    def is_postgres(self) -> bool:
        return self.url.startswith(("postgresql://", "postgresql+asyncpg://"))

    @property
    def url_scheme(self) -> str:
        return self.url.split(":", 1)[0] if ":" in self.url else "unknown"


# ============================================================================
# DatabaseService - Core Infrastructure
# ============================================================================


class DatabaseService:
    """
    Async database engine and session management.

    Public API
    ----------
    - initialize() / shutdown()
    - get_session() -> read access, no automatic commit
    - get_transaction() -> atomic write transaction (preferred)
    - create_schema() -> create all mapped tables
    - health_check() -> fast reachability probe
    """

    def __init__(self, settings: DatabaseSettings) -> None:
        self._settings = settings
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._init_lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config: Any) -> "DatabaseService":
        """
        Build a service from the static ``Config`` class.

        Raises
        ------
        DatabaseInitializationError
            If DATABASE_URL is missing or invalid.
        """
        database_url = config.get("DATABASE_URL")
        if not database_url or not isinstance(database_url, str):
            logger.error("DATABASE_URL is not configured or invalid")
            raise DatabaseInitializationError(
                "DATABASE_URL must be configured as a non-empty string"
            )

        is_testing = str(config.get("ENVIRONMENT", "development")).lower() == "testing"

        return cls(
            DatabaseSettings(
                url=database_url,
                echo=bool(config.get("DATABASE_ECHO", False)),
                pool_class=NullPool if is_testing else AsyncAdaptedQueuePool,
                pool_size=int(config.get("DATABASE_POOL_SIZE", 20)),
                max_overflow=int(config.get("DATABASE_MAX_OVERFLOW", 10)),
                pool_recycle=int(config.get("DATABASE_POOL_RECYCLE", 3600)),
            )
        )

    # ========================================================================
    # Initialization & Shutdown
    # ========================================================================

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    async def initialize(self) -> None:
        """
        Initialize the engine and session factory.

        Idempotent: returns immediately when already initialized.

        Raises
        ------
        DatabaseInitializationError
            If engine creation fails.
        """
        async with self._init_lock:
            if self._engine is not None:
                logger.debug("DatabaseService already initialized; skipping")
                return

            settings = self._settings
            logger.info(
                "Initializing DatabaseService",
                extra={
                    "url_scheme": settings.url_scheme,
                    "pool_class": settings.pool_class.__name__,
                },
            )

            engine_kwargs: Dict[str, Any] = {
                "echo": settings.echo,
                "poolclass": settings.pool_class,
            }
            if settings.pool_class is not NullPool:
                engine_kwargs.update(
                    {
                        "pool_size": settings.pool_size,
                        "max_overflow": settings.max_overflow,
                        "pool_recycle": settings.pool_recycle,
                        "pool_timeout": settings.pool_timeout,
                    }
                )

            try:
                self._engine = create_async_engine(settings.url, **engine_kwargs)
            except (ArgumentError, ValueError) as exc:
                logger.error(
                    "DatabaseService initialization failed",
                    extra={"error": str(exc), "error_type": type(exc).__name__},
                    exc_info=True,
                )
                raise DatabaseInitializationError(
                    f"Database initialization failed: {exc}"
                ) from exc

            self._session_factory = async_sessionmaker(
                bind=self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )

            logger.info("DatabaseService initialized successfully")

    async def shutdown(self) -> None:
        """Dispose the engine; safe to call multiple times."""
        async with self._init_lock:
            if self._engine is None:
                logger.debug("DatabaseService not initialized; nothing to shutdown")
                return

            logger.info("Shutting down DatabaseService")
            try:
                await self._engine.dispose()
            finally:
                self._engine = None
                self._session_factory = None

            logger.info("DatabaseService shutdown complete")

    async def create_schema(self) -> None:
        """Create every table registered on ``Base.metadata``."""
        engine = self._require_engine()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ensured")

    async def drop_schema(self) -> None:
        engine = self._require_engine()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    # ========================================================================
    # Health Check
    # ========================================================================

    async def health_check(self) -> bool:
        """
        Execute ``SELECT 1``; never raises.

        Returns
        -------
        bool
            True if the database is reachable and responsive.
        """
        if self._engine is None:
            logger.warning("Health check called on uninitialized DatabaseService")
            return False

        start = time.perf_counter()
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (DBAPIError, OSError) as exc:
            logger.error(
                "Database health check failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return False

        logger.debug(
            "Database health check passed",
            extra={"duration_ms": (time.perf_counter() - start) * 1000.0},
        )
        return True

    # ========================================================================
    # Session & Transaction Context Managers
    # ========================================================================

    def _require_engine(self) -> AsyncEngine:
        if self._engine is None:
            raise DatabaseNotInitializedError(
                "DatabaseService must be initialized before use. "
                "Call initialize() during startup."
            )
        return self._engine

    def _require_session_factory(self) -> async_sessionmaker[AsyncSession]:
        self._require_engine()
        assert self._session_factory is not None
        return self._session_factory

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Create a session without automatic commit.

        For write operations, prefer ``get_transaction()``.

        Raises
        ------
        DatabaseNotInitializedError
            If the service has not been initialized.
        """
        session_factory = self._require_session_factory()

        async with session_factory() as session:
            logger.debug("Database session opened (read-only)")
            yield session

    @asynccontextmanager
    async def get_transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Create a session wrapped in an atomic transaction.

        Commits on success; rolls back and re-raises on any exception.

        Usage Example
        -------------
        >>> async with database.get_transaction() as session:
        ...     row = await session.get(UserProgressionModel, 1)
        ...     row.total_xp += 15
        """
        session_factory = self._require_session_factory()

        start = time.perf_counter()
        async with session_factory() as session:
            try:
                if self._settings.is_postgres:
                    await session.execute(
                        text(
                            f"SET LOCAL statement_timeout = "
                            f"{self._settings.statement_timeout_ms}"
                        )
                    )

                yield session

                await session.commit()
                logger.debug(
                    "Database transaction committed",
                    extra={"duration_ms": (time.perf_counter() - start) * 1000.0},
                )

            except Exception as exc:
                await session.rollback()
                logger.warning(
                    "Database transaction rolled back",
                    extra={
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                        "duration_ms": (time.perf_counter() - start) * 1000.0,
                    },
                )
                raise
