"""
Unit Tests for the Action Boundary
==================================

Test Coverage
-------------
- Unauthenticated identities rejected before any service call
- Admin-only actions gated on Identity.is_admin
- Domain exceptions become failures carrying reason, code and retry hint
- Storage and unexpected failures become generic failures
- Successful calls wrap the service result

Testing Strategy
----------------
- Services replaced with AsyncMocks via pytest-mock
- AAA pattern (Arrange, Act, Assert)
"""

import pytest

from questboard.actions import (
    BossActions,
    DuelActions,
    Identity,
    PraiseActions,
    ProgressionActions,
)
from questboard.actions.base import GENERIC_SYSTEM_ERROR, GENERIC_UNEXPECTED_ERROR
from questboard.core.exceptions import DatabaseError
from questboard.modules.progression.ledger import grant_xp
from questboard.modules.shared.exceptions import (
    CooldownActiveError,
    DailyLimitError,
    RateLimitError,
)

PLAYER = Identity(actor_id="player-1")
ADMIN = Identity(actor_id="admin-1", is_admin=True)


@pytest.fixture
def services(mocker):
    container = mocker.MagicMock()
    container.progression = mocker.AsyncMock()
    container.boss = mocker.AsyncMock()
    container.duel = mocker.AsyncMock()
    container.praise = mocker.AsyncMock()
    return container


@pytest.mark.unit
class TestAuthentication:
    async def test_anonymous_rejected(self, services):
        # Act
        result = await PraiseActions(services).give(Identity.anonymous())

        # Assert
        assert result.success is False
        assert result.error_code == "UNAUTHENTICATED"
        services.praise.give_praise.assert_not_awaited()

    async def test_authenticated_call_passes_actor_id(self, services):
        services.praise.give_praise.return_value = {"xp_earned": 10}

        result = await PraiseActions(services).give(PLAYER)

        assert result.success is True
        assert result.data == {"xp_earned": 10}
        services.praise.give_praise.assert_awaited_once_with("player-1")


@pytest.mark.unit
class TestAdminGating:
    async def test_non_admin_cannot_spawn_boss(self, services):
        result = await BossActions(services).spawn(PLAYER, name="Hydra", max_hp=10)

        assert result.success is False
        assert result.error_code == "PERMISSION_DENIED"
        services.boss.spawn_boss.assert_not_awaited()

    async def test_admin_can_spawn_boss(self, services):
        services.boss.spawn_boss.return_value = {"id": 2, "name": "Hydra"}

        result = await BossActions(services).spawn(ADMIN, name="Hydra", max_hp=10)

        assert result.success is True
        services.boss.spawn_boss.assert_awaited_once_with(name="Hydra", max_hp=10)

    async def test_admin_grant_xp_summarises_grant(self, services):
        # Arrange
        services.progression.grant_xp.return_value = grant_xp(90, 20)

        # Act
        result = await ProgressionActions(services).grant_xp(ADMIN, "player-1", 20)

        # Assert
        assert result.success is True
        assert result.data == {
            "xp_earned": 20,
            "old_level": 1,
            "new_level": 2,
            "leveled_up": True,
            "total_xp": 110,
        }

    async def test_non_admin_cannot_deactivate(self, services):
        result = await ProgressionActions(services).deactivate(PLAYER, "player-2")

        assert result.error_code == "PERMISSION_DENIED"
        services.progression.deactivate_actor.assert_not_awaited()


@pytest.mark.unit
class TestErrorTranslation:
    async def test_cooldown_carries_retry_after(self, services):
        # Arrange
        services.duel.attack.side_effect = CooldownActiveError("attack", 12)

        # Act
        result = await DuelActions(services).attack(PLAYER, "player-2")

        # Assert
        assert result.success is False
        assert result.error_code == "COOLDOWN_ACTIVE"
        assert result.retry_after == 12
        assert result.to_dict() == {
            "success": False,
            "reason": "attack is on cooldown: 12s remaining",
            "error_code": "COOLDOWN_ACTIVE",
            "retry_after": 12,
        }

    async def test_rate_limit_on_boss_attack(self, services):
        services.boss.apply_damage.side_effect = RateLimitError("boss_attack", 0.25)

        result = await BossActions(services).attack(PLAYER, {"damage_multiplier": 2})

        assert result.error_code == "RATE_LIMIT_EXCEEDED"
        assert result.retry_after == pytest.approx(0.25)
        services.boss.apply_damage.assert_awaited_once_with("player-1", {"damage_multiplier": 2})

    async def test_daily_limit(self, services):
        services.praise.give_praise.side_effect = DailyLimitError("praise", 3)

        result = await PraiseActions(services).give(PLAYER)

        assert result.error_code == "DAILY_LIMIT_REACHED"
        assert result.details == {"action": "praise", "limit": 3}

    async def test_database_error_is_generic(self, services):
        services.duel.get_stats.side_effect = DatabaseError("transaction", RuntimeError("disk full"))

        result = await DuelActions(services).stats(PLAYER)

        assert result.success is False
        assert result.reason == GENERIC_SYSTEM_ERROR
        assert result.error_code == "DATABASE_ERROR"
        assert "disk full" not in result.reason

    async def test_unexpected_error_is_generic(self, services):
        services.praise.status.side_effect = KeyError("boom")

        result = await PraiseActions(services).status(PLAYER)

        assert result.success is False
        assert result.reason == GENERIC_UNEXPECTED_ERROR
        assert result.error_code == "INTERNAL_ERROR"


@pytest.mark.unit
class TestDelegation:
    async def test_profile_defaults_to_caller(self, services):
        services.progression.get_actor.return_value = {"id": "player-1"}

        await ProgressionActions(services).profile(PLAYER)

        services.progression.get_actor.assert_awaited_once_with("player-1")

    async def test_stats_of_other_actor(self, services):
        await DuelActions(services).stats(PLAYER, "player-9")

        services.duel.get_stats.assert_awaited_once_with("player-9")

    async def test_notifications_since(self, services):
        services.duel.notifications.return_value = []

        result = await DuelActions(services).notifications(PLAYER, since_record_id=5)

        assert result.data == []
        services.duel.notifications.assert_awaited_once_with("player-1", 5)

    async def test_success_to_dict(self, services):
        services.boss.leaderboard.return_value = []

        result = await BossActions(services).leaderboard(PLAYER)

        assert result.to_dict() == {"success": True, "data": []}
