"""
Pytest Configuration and Fixtures for Questboard Tests
======================================================

Purpose
-------
Shared fixtures for the unit and integration suites.

Responsibilities
----------------
- Point Config at a testing environment before the package is imported
- Fresh ConfigManager (YAML from ./config) and EventBus per test
- File-backed SQLite database through aiosqlite per test
- Service container and actor helpers for integration tests
- PostgreSQL testcontainer for the tests that need real PostgreSQL

Architecture Notes
------------------
- Unit tests use pure engines and mocks (fast, isolated)
- Integration tests run the real services against SQLite
- `postgres_url` skips cleanly when Docker is not available
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, Generator, List, Optional, Tuple

PROJECT_ROOT = Path(__file__).resolve().parents[1]

os.environ["ENVIRONMENT"] = "testing"
os.environ["LOG_TO_FILE"] = "false"
os.environ["LOG_COLORS"] = "false"
os.environ["LOG_JSON"] = "false"
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ["CONFIG_DIR"] = str(PROJECT_ROOT / "config")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy import update  # noqa: E402

from questboard.core.config.manager import ConfigManager  # noqa: E402
from questboard.core.database.service import DatabaseService  # noqa: E402
from questboard.core.event.bus import EventBus  # noqa: E402
from questboard.core.logging.logger import get_logger  # noqa: E402
from questboard.core.services.container import ServiceContainer  # noqa: E402
from questboard.database.models import Actor  # noqa: E402
from questboard.modules.progression.ledger import level_for_xp  # noqa: E402

logger = get_logger(__name__)

FIXED_NOW = datetime(2026, 3, 10, 12, 0, 0, tzinfo=timezone.utc)


# ============================================================================
# CONFIG & EVENTS
# ============================================================================


@pytest.fixture(autouse=True)
def config_manager() -> Generator[type[ConfigManager], None, None]:
    """
    ConfigManager loaded from the repository's config/ directory.

    Overrides set by a test are dropped afterwards.
    """
    ConfigManager.reset()
    ConfigManager.initialize(PROJECT_ROOT / "config")
    yield ConfigManager
    ConfigManager.reset()


@pytest_asyncio.fixture
async def event_bus(config_manager) -> AsyncGenerator[EventBus, None]:
    bus = EventBus(config_manager)
    yield bus
    await bus.drain()
    bus.clear()


@pytest_asyncio.fixture
async def recorded_events(event_bus) -> List[Tuple[str, Dict[str, Any]]]:
    """Every domain event published on `event_bus` as ``(name, payload)``."""
    events: List[Tuple[str, Dict[str, Any]]] = []

    def _recorder(event_name: str):
        async def _listener(payload: Dict[str, Any]) -> None:
            events.append((event_name, payload))

        return _listener

    for name in (
        "actor.leveled_up",
        "boss.spawned",
        "boss.damaged",
        "boss.defeated",
        "duel.resolved",
        "praise.given",
    ):
        event_bus.subscribe(name, _recorder(name), identifier=f"recorder:{name}")

    return events


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


# ============================================================================
# DATABASE
# ============================================================================


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[None, None]:
    """Fresh SQLite database file with the full schema."""
    await DatabaseService.shutdown()
    await DatabaseService.initialize(f"sqlite+aiosqlite:///{tmp_path / 'questboard.db'}")
    await DatabaseService.create_schema()
    yield
    await DatabaseService.shutdown()


@pytest.fixture(scope="session")
def postgres_url() -> Generator[str, None, None]:
    """
    asyncpg URL of a PostgreSQL testcontainer.

    Skips when Docker is unavailable.
    """
    try:
        from testcontainers.postgres import PostgresContainer

        container = PostgresContainer(image="postgres:16-alpine", driver="asyncpg")
        container.start()
    except Exception as exc:
        pytest.skip(f"PostgreSQL testcontainer unavailable: {exc}")

    logger.info("PostgreSQL testcontainer started")
    try:
        yield container.get_connection_url()
    finally:
        container.stop()


@pytest_asyncio.fixture
async def postgres_database(postgres_url) -> AsyncGenerator[None, None]:
    await DatabaseService.shutdown()
    await DatabaseService.initialize(postgres_url)
    await DatabaseService.drop_schema()
    await DatabaseService.create_schema()
    yield
    await DatabaseService.shutdown()


# ============================================================================
# SERVICES
# ============================================================================


@pytest.fixture
def services(database, config_manager, event_bus) -> ServiceContainer:
    container = ServiceContainer(config_manager, event_bus)
    container.initialize()
    return container


@pytest.fixture
def progression(services):
    return services.progression


@pytest.fixture
def boss_service(services):
    return services.boss


@pytest.fixture
def duel_service(services):
    return services.duel


@pytest.fixture
def praise_service(services):
    return services.praise


async def set_actor_state(
    actor_id: str,
    *,
    xp: Optional[int] = None,
    gold: Optional[int] = None,
    updated_at: Optional[datetime] = None,
) -> None:
    """Write actor fields directly, keeping level consistent with xp."""
    values: Dict[str, Any] = {}
    if xp is not None:
        values["xp"] = xp
        values["level"] = level_for_xp(xp)
    if gold is not None:
        values["gold"] = gold
    if updated_at is not None:
        values["updated_at"] = updated_at

    async with DatabaseService.get_transaction() as session:
        await session.execute(update(Actor).where(Actor.id == actor_id).values(**values))


@pytest.fixture
def make_actor(progression, now):
    """
    Factory: ``await make_actor("alice", xp=400, gold=100)``.

    Actors are registered an hour before ``now`` so no rate limit applies.
    """

    async def _make(
        actor_id: str,
        *,
        name: Optional[str] = None,
        xp: int = 0,
        gold: int = 0,
        is_admin: bool = False,
    ) -> Dict[str, Any]:
        earlier = now - timedelta(hours=1)
        await progression.ensure_actor(actor_id, name or actor_id.title(), is_admin=is_admin, now=earlier)
        if xp or gold:
            await set_actor_state(actor_id, xp=xp, gold=gold, updated_at=earlier)
        return await progression.get_actor(actor_id)

    return _make
