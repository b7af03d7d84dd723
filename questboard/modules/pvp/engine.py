"""
Duel Resolver
=============

Deterministic PvP resolution from the two participants' levels. Nothing
persists between duels; every attack is computed fresh.

    attacker_damage = 10 + (attacker_level - 1) * 5
    defender_hp     = 50 + (defender_level - 1) * 5
    level_diff      = attacker_level - defender_level
    multiplier      = min(1 + level_diff * 0.1, 3)
    actual_damage   = max(1, floor(attacker_damage * multiplier))
    attacker_won    = actual_damage >= defender_hp

Win: attacker +50 XP, +100 gold; defender -50 gold.
Loss: attacker +floor(50 * 0.2) = 10 XP, no gold either way.

The multiplier has no lower bound; a much weaker attacker can push it to
zero or below and the final damage floor of 1 takes over.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from questboard.core.database.base import ensure_utc
from questboard.modules.shared.constants import (
    PVP_BASE_CLICK_DAMAGE,
    PVP_BASE_HP,
    PVP_COOLDOWN_MS,
    PVP_DAMAGE_PER_LEVEL,
    PVP_GOLD_LOSS_ON_DEFEAT,
    PVP_GOLD_PER_WIN,
    PVP_HP_PER_LEVEL,
    PVP_LEVEL_DIFF_STEP,
    PVP_LOSS_XP_RATIO,
    PVP_MULTIPLIER_CAP,
    PVP_XP_PER_WIN,
)
from questboard.modules.shared.exceptions import CooldownActiveError, SelfAttackError

if TYPE_CHECKING:
    from questboard.core.config.manager import ConfigManager


@dataclass(frozen=True)
class DuelOutcome:
    attacker_id: str
    defender_id: str
    attacker_level: int
    defender_level: int
    attacker_damage: int
    defender_hp: int
    level_diff: int
    multiplier: float
    actual_damage: int
    attacker_won: bool
    xp_earned: int
    gold_earned: int
    gold_lost: int


class DuelResolver:
    """PvP rules, tunable through ``pvp.*`` config keys."""

    def __init__(self, config_manager: Optional[type[ConfigManager]] = None) -> None:
        self._config = config_manager

    def _get(self, key: str, default: Any) -> Any:
        if self._config is None:
            return default
        return self._config.get(key, default)

    @property
    def cooldown_ms(self) -> int:
        return int(self._get("pvp.cooldown_ms", PVP_COOLDOWN_MS))

    def attacker_damage(self, level: int) -> int:
        base = int(self._get("pvp.base_click_damage", PVP_BASE_CLICK_DAMAGE))
        per_level = int(self._get("pvp.damage_per_level", PVP_DAMAGE_PER_LEVEL))
        return base + (level - 1) * per_level

    def defender_hp(self, level: int) -> int:
        base = int(self._get("pvp.base_hp", PVP_BASE_HP))
        per_level = int(self._get("pvp.hp_per_level", PVP_HP_PER_LEVEL))
        return base + (level - 1) * per_level

    def multiplier(self, level_diff: int) -> float:
        step = float(self._get("pvp.level_diff_step", PVP_LEVEL_DIFF_STEP))
        cap = float(self._get("pvp.multiplier_cap", PVP_MULTIPLIER_CAP))
        return min(1 + level_diff * step, cap)

    def check_cooldown(self, last_attack_at: Optional[datetime], now: datetime) -> None:
        """
        Raises:
            CooldownActiveError: With the remaining time rounded up to whole seconds
        """
        if last_attack_at is None:
            return

        cooldown_ms = self.cooldown_ms
        elapsed_ms = (ensure_utc(now) - ensure_utc(last_attack_at)).total_seconds() * 1000.0
        if elapsed_ms < cooldown_ms:
            raise CooldownActiveError(
                "attack",
                remaining_seconds=math.ceil((cooldown_ms - elapsed_ms) / 1000.0),
            )

    def resolve(
        self,
        attacker_id: str,
        attacker_level: int,
        defender_id: str,
        defender_level: int,
    ) -> DuelOutcome:
        """
        Resolve a single attack.

        Raises:
            SelfAttackError: If attacker and defender are the same actor
        """
        if attacker_id == defender_id:
            raise SelfAttackError(attacker_id)

        attacker_level = max(1, int(attacker_level or 1))
        defender_level = max(1, int(defender_level or 1))

        attacker_damage = self.attacker_damage(attacker_level)
        defender_hp = self.defender_hp(defender_level)
        level_diff = attacker_level - defender_level
        multiplier = self.multiplier(level_diff)
        actual_damage = max(1, math.floor(attacker_damage * multiplier))
        attacker_won = actual_damage >= defender_hp

        xp_per_win = int(self._get("pvp.xp_per_win", PVP_XP_PER_WIN))
        if attacker_won:
            xp_earned = xp_per_win
            gold_earned = int(self._get("pvp.gold_per_win", PVP_GOLD_PER_WIN))
            gold_lost = int(self._get("pvp.gold_loss_on_defeat", PVP_GOLD_LOSS_ON_DEFEAT))
        else:
            ratio = float(self._get("pvp.loss_xp_ratio", PVP_LOSS_XP_RATIO))
            xp_earned = math.floor(xp_per_win * ratio)
            gold_earned = 0
            gold_lost = 0

        return DuelOutcome(
            attacker_id=attacker_id,
            defender_id=defender_id,
            attacker_level=attacker_level,
            defender_level=defender_level,
            attacker_damage=attacker_damage,
            defender_hp=defender_hp,
            level_diff=level_diff,
            multiplier=multiplier,
            actual_damage=actual_damage,
            attacker_won=attacker_won,
            xp_earned=xp_earned,
            gold_earned=gold_earned,
            gold_lost=gold_lost,
        )
