"""
Pytest Configuration and Fixtures for Cadence Tests
===================================================

Purpose
-------
Centralized test fixtures for the Cadence test suite: in-memory
repositories, mocked infrastructure, service factories, domain record
factories and the PostgreSQL testcontainer used by integration tests.

Architecture Notes
------------------
- Unit tests use in-memory repositories and mocks (fast, isolated)
- Integration tests use testcontainers (real PostgreSQL) and are skipped
  when Docker is not available
- Fixtures follow scope hierarchy: session > function
"""

from __future__ import annotations

import os
from typing import Any, AsyncGenerator, Dict, Generator, Optional

import pytest
import pytest_asyncio
from sqlalchemy.pool import NullPool

from src.core.config.config import Config
from src.core.database.service import DatabaseService, DatabaseSettings
from src.core.event.bus import EventBus
from src.core.logging.logger import get_logger
from src.domain.models.progression import UserProgressionRecord
from src.modules.assessment.service import AssessmentService
from src.modules.coaching.service import CoachingService
from src.modules.progression.locks import UserLockRegistry
from src.modules.progression.repository import (
    InMemoryOutcomeLog,
    InMemoryProgressionRepository,
)
from src.modules.progression.service import ProgressionService

logger = get_logger(__name__)

# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """Configure pytest environment."""
    os.environ.setdefault("ENVIRONMENT", "testing")
    os.environ.setdefault("LOG_LEVEL", "DEBUG")
    Config.load()


# ============================================================================
# CONFIG FIXTURES
# ============================================================================


class StaticConfig:
    """Dict-backed stand-in for ``Config`` exposing the same ``get`` method."""

    def __init__(self, values: Optional[Dict[str, Any]] = None) -> None:
        self._values = dict(values or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key.upper(), default)

    def set(self, key: str, value: Any) -> None:
        self._values[key.upper()] = value


@pytest.fixture
def test_config() -> StaticConfig:
    """
    Configuration with the production defaults of the progression engine.

    Scope: function (tests may override values with ``set``)
    """
    return StaticConfig(
        {
            "PROGRESSION_MAX_UPDATE_RETRIES": 3,
            "STREAK_TIMEZONE": "UTC",
        }
    )


# ============================================================================
# MOCK FIXTURES (Unit Tests)
# ============================================================================


@pytest.fixture
def mock_event_bus(mocker):
    """
    Mock EventBus for unit tests.

    Scope: function
    Uses: Unit tests that assert on published events
    """
    mock_bus = mocker.MagicMock()
    mock_bus.publish = mocker.AsyncMock()
    mock_bus.subscribe = mocker.MagicMock()
    mock_bus.drain = mocker.AsyncMock()
    return mock_bus


@pytest.fixture
def mock_logger(mocker):
    """Mock logger so tests can assert on warnings."""
    return mocker.MagicMock()


@pytest.fixture
def event_bus() -> EventBus:
    """Real EventBus instance for tests that exercise listeners."""
    return EventBus()


# ============================================================================
# REPOSITORY FIXTURES
# ============================================================================


@pytest.fixture
def progression_repository() -> InMemoryProgressionRepository:
    return InMemoryProgressionRepository()


@pytest.fixture
def outcome_log() -> InMemoryOutcomeLog:
    return InMemoryOutcomeLog()


# ============================================================================
# SERVICE FIXTURES
# ============================================================================


@pytest.fixture
def progression_service(
    progression_repository,
    outcome_log,
    test_config,
    mock_event_bus,
    mock_logger,
) -> ProgressionService:
    return ProgressionService(
        progression_repository=progression_repository,
        outcome_log=outcome_log,
        config=test_config,
        event_bus=mock_event_bus,
        logger=mock_logger,
        locks=UserLockRegistry(),
    )


@pytest.fixture
def coaching_service(outcome_log, test_config, mock_event_bus, mock_logger) -> CoachingService:
    return CoachingService(
        outcome_log=outcome_log,
        config=test_config,
        event_bus=mock_event_bus,
        logger=mock_logger,
    )


@pytest.fixture
def assessment_service(test_config, mock_event_bus, mock_logger) -> AssessmentService:
    return AssessmentService(
        config=test_config,
        event_bus=mock_event_bus,
        logger=mock_logger,
    )


# ============================================================================
# DOMAIN FACTORIES
# ============================================================================


@pytest.fixture
def make_record():
    """
    Factory for ``UserProgressionRecord`` test data.

    Usage:
        record = make_record(current_streak=5, streak_freeze_tokens=1)
    """

    def _make(user_id: str = "user-1", **overrides: Any) -> UserProgressionRecord:
        return UserProgressionRecord(user_id=user_id, **overrides)

    return _make


# ============================================================================
# TESTCONTAINERS FIXTURES (Integration Tests)
# ============================================================================


def start_postgres_container() -> Any:
    """
    Start a PostgreSQL testcontainer, skipping the calling test when Docker
    is unavailable.
    """
    from testcontainers.postgres import PostgresContainer

    logger.info("Starting PostgreSQL testcontainer...")
    try:
        # the constructor already talks to the docker daemon
        container = PostgresContainer(image="postgres:16-alpine", driver="asyncpg")
        container.start()
    except Exception as exc:  # docker daemon missing or unreachable
        pytest.skip(f"PostgreSQL testcontainer unavailable: {exc}")
    return container


@pytest.fixture(scope="session")
def postgres_container() -> Generator[Any, None, None]:
    """
    Start PostgreSQL testcontainer for integration tests.

    Scope: session (container persists across all tests)
    Skipped when Docker is unavailable.
    """
    container = start_postgres_container()

    logger.info("PostgreSQL testcontainer started: %s", container.get_connection_url())

    yield container

    logger.info("Stopping PostgreSQL testcontainer...")
    container.stop()


@pytest_asyncio.fixture
async def database(postgres_container) -> AsyncGenerator[DatabaseService, None]:
    """
    Initialised DatabaseService on a freshly created schema.

    Scope: function (schema dropped and recreated per test, clean slate)
    """
    url = postgres_container.get_connection_url().replace("psycopg2", "asyncpg")
    service = DatabaseService(DatabaseSettings(url=url, pool_class=NullPool))
    await service.initialize()
    await service.drop_schema()
    await service.create_schema()

    yield service

    await service.shutdown()


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================


def published_events(mock_event_bus) -> Dict[str, list]:
    """
    Group the payloads published on a mock bus by event name.

    Usage:
        events = published_events(mock_event_bus)
        assert events["progression.leveled_up"][0]["new_level"] == 2
    """
    grouped: Dict[str, list] = {}
    for call in mock_event_bus.publish.await_args_list:
        name, payload = call.args
        grouped.setdefault(name, []).append(payload)
    return grouped


def assert_domain_event_emitted(domain_model, event_name: str) -> bool:
    """
    Check that a domain model queued a specific event.

    Usage:
        progression.add_experience(100)
        assert assert_domain_event_emitted(progression, "progression.leveled_up")
    """
    events = domain_model.get_pending_events()
    return any(event.event_name == event_name for event in events)


def get_domain_event_payload(domain_model, event_name: str) -> Optional[dict]:
    """Payload of the first queued event with the given name."""
    for event in domain_model.get_pending_events():
        if event.event_name == event_name:
            return event.payload
    return None
