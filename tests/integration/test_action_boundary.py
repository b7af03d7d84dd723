"""
Integration Tests for the Action Boundary
=========================================

Test Coverage
-------------
- Registration through ProgressionActions persists the actor
- Boss reads and hits through BossActions succeed and emit their events
- Malformed notification cursors come back as validation failures

Testing Strategy
----------------
- Real services against a per-test SQLite database
- INFO logging enabled on the `questboard` loggers so every service log
  record is actually built
"""

import logging

import pytest
from sqlalchemy import func, select

from questboard.actions import BossActions, DuelActions, Identity, ProgressionActions
from questboard.core.database.service import DatabaseService
from questboard.database.models import Actor, BossState


@pytest.fixture(autouse=True)
def info_logging(caplog):
    caplog.set_level(logging.INFO, logger="questboard")
    return caplog


@pytest.mark.integration
@pytest.mark.database
class TestRegisterThroughActions:
    async def test_register_persists_actor(self, services):
        # Act
        result = await ProgressionActions(services).register(Identity(actor_id="alice"), "Alice")

        # Assert
        assert result.success is True
        assert result.data["id"] == "alice"
        async with DatabaseService.get_session() as session:
            count = (await session.execute(select(func.count(Actor.id)))).scalar_one()
        assert count == 1

    async def test_second_register_is_idempotent(self, services):
        actions = ProgressionActions(services)
        await actions.register(Identity(actor_id="alice"), "Alice")

        result = await actions.register(Identity(actor_id="alice"), "Other")

        assert result.success is True
        assert result.data["name"] == "Alice"


@pytest.mark.integration
@pytest.mark.database
class TestBossThroughActions:
    async def test_first_read_spawns_and_succeeds(self, services, recorded_events):
        # Act
        result = await BossActions(services).active_boss(Identity(actor_id="alice"))

        # Assert
        assert result.success is True
        assert result.data["name"] == "Ancient Dragon"
        assert [name for name, _ in recorded_events] == ["boss.spawned"]
        async with DatabaseService.get_session() as session:
            count = (await session.execute(select(func.count(BossState.id)))).scalar_one()
        assert count == 1

    async def test_hit_reports_success(self, services, recorded_events):
        # Arrange
        player = Identity(actor_id="alice")
        await ProgressionActions(services).register(player, "Alice")

        # Act
        result = await BossActions(services).attack(player, None)

        # Assert
        assert result.success is True
        assert result.data["new_hp"] == pytest.approx(999_999)
        assert result.data["xp_exact"] == pytest.approx(0.1)
        assert [name for name, _ in recorded_events] == ["boss.spawned", "boss.damaged"]


@pytest.mark.integration
@pytest.mark.database
class TestDuelThroughActions:
    async def test_bad_notification_cursor_is_a_validation_failure(self, services):
        # Arrange
        player = Identity(actor_id="alice")
        await ProgressionActions(services).register(player, "Alice")

        # Act
        result = await DuelActions(services).notifications(player, "latest")

        # Assert
        assert result.success is False
        assert result.error_code == "VALIDATION_SINCE_RECORD_ID"
