"""
Service Container
=================

Purpose
-------
Composition root for the Cadence services. Builds the repositories, wires
them together with config, the event bus and per-service loggers, and
hands out singleton service instances.

Responsibilities
----------------
- Choose the persistence backend (in-memory by default, SQL when a
  DatabaseService is supplied)
- Initialize all domain services with required dependencies
- Manage service lifecycle (initialization, shutdown)

Non-Responsibilities
--------------------
- Business logic
- Schema management (``DatabaseService.create_schema`` is left to callers)

Architecture Notes
------------------
- All domain services share the constructor tail (config, event_bus, logger)
- The progression and coaching services share one outcome log instance

Usage
-----
    container = ServiceContainer(Config, EventBus(), get_logger("cadence"))
    await container.initialize()

    result = await container.progression.record_session_completion(...)
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Dict, Optional, Type

from src.core.logging.logger import get_logger
from src.modules.assessment.service import AssessmentService
from src.modules.coaching.service import CoachingService
from src.modules.progression.locks import UserLockRegistry
from src.modules.progression.repository import (
    InMemoryOutcomeLog,
    InMemoryProgressionRepository,
    OutcomeLogRepository,
    ProgressionRepository,
)
from src.modules.progression.service import ProgressionService

if TYPE_CHECKING:
    from logging import Logger

    from src.core.config.config import Config
    from src.core.database.service import DatabaseService
    from src.core.event.bus import EventBus

SERVICE_COUNT = 3


class ServiceContainer:
    """
    Dependency injection container for the domain services.

    Args:
        config: Application configuration
        event_bus: Event bus shared by all services
        logger: Container logger
        database: Optional DatabaseService; when given, services persist
            through the SQL repositories
        progression_repository: Optional explicit progression repository
        outcome_log: Optional explicit outcome log
    """

    def __init__(
        self,
        config: Type[Config],
        event_bus: EventBus,
        logger: Logger,
        database: Optional[DatabaseService] = None,
        progression_repository: Optional[ProgressionRepository] = None,
        outcome_log: Optional[OutcomeLogRepository] = None,
    ) -> None:
        self._config = config
        self._event_bus = event_bus
        self._logger = logger
        self._database = database

        self._progression_repository = progression_repository
        self._outcome_log = outcome_log

        self._progression: Optional[ProgressionService] = None
        self._coaching: Optional[CoachingService] = None
        self._assessment: Optional[AssessmentService] = None

        self._initialized = False

        self._service_init_times: Dict[str, float] = {}
        self._init_start: Optional[float] = None
        self._init_end: Optional[float] = None

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def initialize(self) -> None:
        """Build repositories and services. Safe to call twice."""
        if self._initialized:
            self._logger.warning("ServiceContainer already initialized")
            return

        self._init_start = time.perf_counter()
        self._logger.info("Service container initialization starting...")

        try:
            await self._build_repositories()

            self._progression = self._create_service(
                "progression",
                ProgressionService,
                progression_repository=self._progression_repository,
                outcome_log=self._outcome_log,
                locks=UserLockRegistry(),
            )
            self._coaching = self._create_service(
                "coaching",
                CoachingService,
                outcome_log=self._outcome_log,
            )
            self._assessment = self._create_service("assessment", AssessmentService)

            self._initialized = True
            self._init_end = time.perf_counter()

            self._logger.info(
                "Service container initialized successfully",
                extra={
                    "service_count": len(self._service_init_times),
                    "backend": self.backend,
                    "total_init_time_seconds": round(self._init_end - self._init_start, 3),
                },
            )

        except Exception as e:
            self._logger.critical(
                "Service container initialization failed",
                exc_info=True,
                extra={"error": str(e)},
            )
            raise

    async def _build_repositories(self) -> None:
        if self._database is not None:
            from src.modules.progression.sql_repository import (
                SqlOutcomeLogRepository,
                SqlProgressionRepository,
            )

            if not self._database.is_initialized:
                await self._database.initialize()
            if self._progression_repository is None:
                self._progression_repository = SqlProgressionRepository(self._database)
            if self._outcome_log is None:
                self._outcome_log = SqlOutcomeLogRepository(self._database)
            return

        if self._progression_repository is None:
            self._progression_repository = InMemoryProgressionRepository()
        if self._outcome_log is None:
            self._outcome_log = InMemoryOutcomeLog()

    def _create_service(self, name: str, cls: type, **dependencies: Any) -> Any:
        """Instantiate a service with the shared dependencies and time it."""
        start = time.perf_counter()

        try:
            instance = cls(
                config=self._config,
                event_bus=self._event_bus,
                logger=get_logger(f"{cls.__module__}.{cls.__name__}"),
                **dependencies,
            )
        except Exception:
            self._logger.error(f"Failed to initialize {name}", exc_info=True)
            raise

        duration = time.perf_counter() - start
        self._service_init_times[name] = duration
        self._logger.debug(f"Initialized {name} in {duration:.3f}s")

        return instance

    async def shutdown(self) -> None:
        """Let background listeners finish and close the database pool."""
        if not self._initialized:
            return

        self._logger.info("Shutting down service container...")

        await self._event_bus.drain()
        if self._database is not None:
            await self._database.shutdown()

        self._initialized = False
        self._logger.info("Service container shut down")

    async def health_check(self) -> Dict[str, Any]:
        """Snapshot for diagnostics."""
        database_ok: Optional[bool] = None
        if self._database is not None and self._initialized:
            database_ok = await self._database.health_check()

        return {
            "initialized": self._initialized,
            "backend": self.backend,
            "service_count": len(self._service_init_times),
            "total_init_time_seconds": (
                round(self._init_end - self._init_start, 3)
                if self._init_start and self._init_end
                else None
            ),
            "all_services_available": self._initialized
            and len(self._service_init_times) == SERVICE_COUNT,
            "database_healthy": database_ok,
        }

    # ========================================================================
    # Accessors
    # ========================================================================

    @property
    def backend(self) -> str:
        return "sql" if self._database is not None else "memory"

    @property
    def progression(self) -> ProgressionService:
        return self._require(self._progression, "progression")

    @property
    def coaching(self) -> CoachingService:
        return self._require(self._coaching, "coaching")

    @property
    def assessment(self) -> AssessmentService:
        return self._require(self._assessment, "assessment")

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @staticmethod
    def _require(service: Any, name: str) -> Any:
        if service is None:
            raise RuntimeError(
                f"Service '{name}' requested before ServiceContainer.initialize()"
            )
        return service
