"""
Unit Tests for BossEncounter
============================

Test Coverage
-------------
- Base damage per level
- Upgrade sanitizing (out-of-range, non-finite, non-numeric values ignored)
- Hit rate limit
- Damage application, HP floor and defeat detection
- Contribution ranking and tie-breaks
- Config-driven tuning

Testing Strategy
----------------
- Pure engine, no database
- AAA pattern (Arrange, Act, Assert)
"""

from datetime import datetime, timedelta, timezone

import pytest

from questboard.modules.boss.engine import (
    BossEncounter,
    BossSnapshot,
    BossUpgrades,
    Contribution,
)
from questboard.modules.shared.exceptions import BossDefeatedError, RateLimitError

NOW = datetime(2026, 3, 10, 12, 0, 0, tzinfo=timezone.utc)


def fresh_boss(current_hp: float = 1_000_000, boss_id: int = 1) -> BossSnapshot:
    return BossSnapshot(
        id=boss_id,
        current_hp=current_hp,
        max_hp=1_000_000,
        xp_per_damage=0.1,
        gold_reward=10_000,
    )


@pytest.fixture
def engine() -> BossEncounter:
    return BossEncounter()


@pytest.mark.unit
class TestBaseDamage:
    @pytest.mark.parametrize("level, expected", [(1, 1.0), (2, 1.5), (5, 3.0), (21, 11.0)])
    def test_base_damage_by_level(self, engine, level, expected):
        assert engine.base_damage(level) == pytest.approx(expected)


@pytest.mark.unit
class TestSanitizeUpgrades:
    def test_missing_payload_uses_defaults(self, engine):
        assert engine.sanitize_upgrades(None) == BossUpgrades(1.0, 0.0)
        assert engine.sanitize_upgrades({}) == BossUpgrades(1.0, 0.0)

    def test_valid_values_are_kept(self, engine):
        # Act
        upgrades = engine.sanitize_upgrades({"damage_multiplier": 2.5, "xp_bonus": 0.5})

        # Assert
        assert upgrades.damage_multiplier == pytest.approx(2.5)
        assert upgrades.xp_bonus == pytest.approx(0.5)

    def test_range_edges_are_valid(self, engine):
        upgrades = engine.sanitize_upgrades({"damage_multiplier": 10, "xp_bonus": 4})

        assert upgrades == BossUpgrades(10.0, 4.0)

    def test_damage_multiplier_of_fifty_behaves_as_one(self, engine):
        upgrades = engine.sanitize_upgrades({"damage_multiplier": 50})

        assert upgrades.damage_multiplier == 1.0

    @pytest.mark.parametrize(
        "raw",
        [
            {"damage_multiplier": -1},
            {"damage_multiplier": float("nan")},
            {"damage_multiplier": float("inf")},
            {"damage_multiplier": "9"},
            {"damage_multiplier": True},
            {"damage_multiplier": None},
        ],
    )
    def test_invalid_multiplier_ignored(self, engine, raw):
        assert engine.sanitize_upgrades(raw).damage_multiplier == 1.0

    @pytest.mark.parametrize("bonus", [4.01, -0.1, float("nan"), "lots"])
    def test_invalid_xp_bonus_ignored(self, engine, bonus):
        assert engine.sanitize_upgrades({"xp_bonus": bonus}).xp_bonus == 0.0

    def test_one_invalid_field_does_not_discard_the_other(self, engine):
        upgrades = engine.sanitize_upgrades({"damage_multiplier": 99, "xp_bonus": 1})

        assert upgrades == BossUpgrades(1.0, 1.0)

    def test_non_mapping_payload_ignored(self, engine):
        assert engine.sanitize_upgrades(["damage_multiplier", 5]) == BossUpgrades()


@pytest.mark.unit
class TestRateLimit:
    def test_first_hit_is_allowed(self, engine):
        engine.check_rate_limit(None, NOW)

    def test_hit_after_window_is_allowed(self, engine):
        engine.check_rate_limit(NOW - timedelta(milliseconds=500), NOW)

    def test_hit_inside_window_is_rejected(self, engine):
        # Act
        with pytest.raises(RateLimitError) as exc_info:
            engine.check_rate_limit(NOW - timedelta(milliseconds=200), NOW)

        # Assert
        assert exc_info.value.error_code == "RATE_LIMIT_EXCEEDED"
        assert exc_info.value.retry_after == pytest.approx(0.3)

    def test_naive_timestamps_are_treated_as_utc(self, engine):
        naive_last = (NOW - timedelta(milliseconds=100)).replace(tzinfo=None)

        with pytest.raises(RateLimitError):
            engine.check_rate_limit(naive_last, NOW)


@pytest.mark.unit
class TestApplyDamage:
    def test_level_one_hit_on_fresh_boss(self, engine):
        # Act
        outcome = engine.apply_damage(fresh_boss(), 1, BossUpgrades())

        # Assert
        assert outcome.actual_damage == pytest.approx(1.0)
        assert outcome.xp_earned == pytest.approx(0.1)
        assert outcome.new_hp == pytest.approx(999_999)
        assert outcome.defeated is False

    def test_raw_payload_is_sanitized(self, engine):
        outcome = engine.apply_damage(fresh_boss(), 1, {"damage_multiplier": 50})

        assert outcome.actual_damage == pytest.approx(1.0)
        assert outcome.new_hp == pytest.approx(999_999)

    def test_upgrades_scale_damage_and_xp(self, engine):
        outcome = engine.apply_damage(
            fresh_boss(), 5, BossUpgrades(damage_multiplier=2.0, xp_bonus=1.0)
        )

        assert outcome.actual_damage == pytest.approx(6.0)
        assert outcome.xp_earned == pytest.approx(6.0 * 0.1 * 2.0)

    def test_overkill_floors_hp_at_zero(self, engine):
        outcome = engine.apply_damage(fresh_boss(current_hp=2.0), 21, BossUpgrades())

        assert outcome.new_hp == 0.0
        assert outcome.defeated is True
        assert outcome.actual_damage == pytest.approx(11.0)

    def test_exact_kill_is_a_defeat(self, engine):
        outcome = engine.apply_damage(fresh_boss(current_hp=1.0), 1, BossUpgrades())

        assert outcome.new_hp == 0.0
        assert outcome.defeated is True

    def test_hit_on_defeated_boss_is_rejected(self, engine):
        with pytest.raises(BossDefeatedError) as exc_info:
            engine.apply_damage(fresh_boss(current_hp=0.0, boss_id=7), 1, BossUpgrades())

        assert exc_info.value.error_code == "BOSS_DEFEATED"

    def test_hp_never_negative_over_many_hits(self, engine):
        # Arrange
        hp = 50.0

        # Act
        while hp > 0:
            outcome = engine.apply_damage(fresh_boss(current_hp=hp), 13, BossUpgrades(3.0))
            # Assert
            assert outcome.new_hp >= 0
            hp = outcome.new_hp

        assert hp == 0.0


@pytest.mark.unit
class TestRanking:
    def test_ranked_by_total_damage(self, engine):
        rows = [
            Contribution("a", 10.0, 1.0, NOW, "A"),
            Contribution("b", 30.0, 3.0, NOW, "B"),
            Contribution("c", 20.0, 2.0, NOW, "C"),
        ]

        ranked = engine.rank_contributions(rows)

        assert [entry.actor_id for entry in ranked] == ["b", "c", "a"]
        assert [entry.rank for entry in ranked] == [1, 2, 3]

    def test_ties_go_to_earliest_contributor_then_id(self, engine):
        rows = [
            Contribution("zed", 10.0, 1.0, NOW, "Zed"),
            Contribution("amy", 10.0, 1.0, NOW + timedelta(seconds=5), "Amy"),
            Contribution("bob", 10.0, 1.0, NOW, "Bob"),
        ]

        ranked = engine.rank_contributions(rows)

        assert [entry.actor_id for entry in ranked] == ["bob", "zed", "amy"]

    def test_empty_rows(self, engine):
        assert engine.rank_contributions([]) == []


@pytest.mark.unit
class TestConfigDrivenTuning:
    def test_reads_overrides_from_config(self, config_manager):
        # Arrange
        config_manager.set_override("boss.damage_per_level", 1.0)
        config_manager.set_override("boss.max_damage_multiplier", 100)
        engine = BossEncounter(config_manager)

        # Act
        upgrades = engine.sanitize_upgrades({"damage_multiplier": 50})

        # Assert
        assert engine.base_damage(3) == pytest.approx(3.0)
        assert upgrades.damage_multiplier == 50.0

    def test_default_template_matches_documented_boss(self, config_manager):
        template = BossEncounter(config_manager).default_template()

        assert template.name == "Ancient Dragon"
        assert template.max_hp == 1_000_000
        assert template.xp_per_damage == pytest.approx(0.1)
        assert template.gold_reward == 10_000
