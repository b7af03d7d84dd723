"""
Integration Tests for ProgressionService
========================================

Test Coverage
-------------
- Lazy registration and profile reads
- Clamped XP grants and the actor.leveled_up event
- Raid XP intake: caps, level bonus, rate limit
- Deactivation resets the economy and blocks further grants

Testing Strategy
----------------
- Real service against a per-test SQLite database
- Injected clock (`now` fixture) for deterministic timing
"""

from datetime import timedelta

import pytest

from questboard.modules.shared.exceptions import (
    InvalidOperationError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)


@pytest.mark.integration
@pytest.mark.database
class TestRegistration:
    async def test_ensure_actor_creates_level_one(self, progression, now):
        # Act
        actor = await progression.ensure_actor("alice", "Alice", now=now)

        # Assert
        assert actor == {
            "id": "alice",
            "name": "Alice",
            "level": 1,
            "xp": 0,
            "gold": 0,
            "is_active": True,
            "is_admin": False,
        }

    async def test_ensure_actor_is_idempotent(self, progression, make_actor, now):
        await make_actor("alice", xp=250)

        actor = await progression.ensure_actor("alice", "Renamed", now=now)

        assert actor["name"] == "Alice"
        assert actor["xp"] == 250
        assert actor["level"] == 3

    async def test_name_defaults_to_id(self, progression, now):
        actor = await progression.ensure_actor("u-77", now=now)

        assert actor["name"] == "u-77"

    async def test_get_missing_actor(self, progression):
        with pytest.raises(NotFoundError) as exc_info:
            await progression.get_actor("ghost")

        assert exc_info.value.error_code == "ACTOR_NOT_FOUND"

    async def test_blank_id_rejected(self, progression):
        with pytest.raises(ValidationError):
            await progression.ensure_actor("  ")


@pytest.mark.integration
@pytest.mark.database
class TestGrantXp:
    async def test_grant_levels_up_and_publishes(
        self, progression, make_actor, recorded_events, now
    ):
        # Arrange
        await make_actor("alice", xp=90)

        # Act
        grant = await progression.grant_xp("alice", 20, "quest", now=now)

        # Assert
        assert (grant.new_xp, grant.new_level, grant.leveled_up) == (110, 2, True)
        actor = await progression.get_actor("alice")
        assert actor["xp"] == 110
        assert actor["level"] == 2
        assert recorded_events == [
            (
                "actor.leveled_up",
                {
                    "actor_id": "alice",
                    "old_level": 1,
                    "new_level": 2,
                    "levels": [2],
                    "reason": "quest",
                },
            )
        ]

    async def test_grant_is_clamped_to_max(self, progression, make_actor, now):
        await make_actor("alice")

        grant = await progression.grant_xp("alice", 5000, "admin", now=now)

        assert grant.amount == 1000
        assert grant.new_level == 11

    @pytest.mark.parametrize("amount", [-40, "lots", None, float("nan")])
    async def test_invalid_amounts_grant_nothing(self, progression, make_actor, now, amount):
        await make_actor("alice", xp=30)

        grant = await progression.grant_xp("alice", amount, "admin", now=now)

        assert grant.amount == 0
        assert (await progression.get_actor("alice"))["xp"] == 30

    async def test_no_event_without_level_up(
        self, progression, make_actor, recorded_events, now
    ):
        await make_actor("alice")

        await progression.grant_xp("alice", 5, "quest", now=now)

        assert recorded_events == []

    async def test_grant_to_missing_actor(self, progression):
        with pytest.raises(NotFoundError):
            await progression.grant_xp("ghost", 10, "quest")


@pytest.mark.integration
@pytest.mark.database
class TestRaidXp:
    async def test_raid_bonus_applied(self, progression, make_actor, now):
        # Arrange
        await make_actor("alice")

        # Act: level 21 gives a 2x bonus
        result = await progression.add_raid_xp("alice", 100, 21, now=now)

        # Assert
        assert result["xp_earned"] == 200
        assert result["bonus"] == pytest.approx(2.0)
        assert result["new_level"] == 3
        assert result["leveled_up"] is True
        assert (await progression.get_actor("alice"))["xp"] == 200

    async def test_raid_values_are_capped(self, progression, make_actor, now):
        await make_actor("alice")

        result = await progression.add_raid_xp("alice", 99_999, 99_999, now=now)

        # 1000 xp at the 50x bonus ceiling
        assert result["xp_earned"] == 50_000
        assert result["bonus"] == pytest.approx(50.0)

    async def test_raid_garbage_counts_as_zero(self, progression, make_actor, now):
        await make_actor("alice")

        result = await progression.add_raid_xp("alice", "NaN", "high", now=now)

        assert result["xp_earned"] == 0
        assert result["bonus"] == pytest.approx(1.0)

    async def test_raid_rate_limit(self, progression, make_actor, now):
        # Arrange
        await make_actor("alice")
        await progression.add_raid_xp("alice", 10, 1, now=now)

        # Act & Assert
        with pytest.raises(RateLimitError) as exc_info:
            await progression.add_raid_xp("alice", 10, 1, now=now + timedelta(milliseconds=50))
        assert exc_info.value.retry_after == pytest.approx(0.05)

        result = await progression.add_raid_xp(
            "alice", 10, 1, now=now + timedelta(milliseconds=100)
        )
        assert result["total_xp"] == 20


@pytest.mark.integration
@pytest.mark.database
class TestDeactivation:
    async def test_deactivate_resets_economy(self, progression, make_actor, now):
        # Arrange
        await make_actor("alice", xp=750, gold=300)

        # Act
        result = await progression.deactivate_actor("alice", now=now)

        # Assert
        assert result["is_active"] is False
        assert (result["xp"], result["level"], result["gold"]) == (0, 1, 0)

    async def test_deactivated_actor_cannot_gain_xp(self, progression, make_actor, now):
        await make_actor("alice")
        await progression.deactivate_actor("alice", now=now)

        with pytest.raises(InvalidOperationError) as exc_info:
            await progression.grant_xp("alice", 10, "quest", now=now)

        assert exc_info.value.error_code == "INVALID_ACT"

    async def test_list_actors_hides_inactive(self, progression, make_actor, now):
        await make_actor("alice", xp=500)
        await make_actor("bob", xp=100)
        await make_actor("carol")
        await progression.deactivate_actor("carol", now=now)

        active = await progression.list_actors()
        everyone = await progression.list_actors(include_inactive=True)

        assert [a["id"] for a in active] == ["alice", "bob"]
        assert {a["id"] for a in everyone} == {"alice", "bob", "carol"}

    async def test_deactivate_missing_actor(self, progression):
        with pytest.raises(NotFoundError):
            await progression.deactivate_actor("ghost")
