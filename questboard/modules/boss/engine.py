"""
Boss Encounter Engine
=====================

Purpose
-------
Pure rules for the shared boss: per-hit damage, upgrade sanitizing, the
per-actor hit rate limit, XP payout and contribution ranking. No storage,
no clock; callers pass timestamps in.

Formulas
--------
    base_damage(level) = 1 + (level - 1) * 0.5
    damage             = base_damage(level) * damage_multiplier
    new_hp             = max(0, current_hp - damage)
    xp_earned          = damage * xp_per_damage * (1 + xp_bonus)

Upgrades
--------
Client-reported upgrades are untrusted. ``damage_multiplier`` is honoured
only inside [0, 10] and ``xp_bonus`` only inside [0, 4]; anything missing,
non-numeric, non-finite or out of range is ignored and the default
(1 and 0) applies.

Ranking
-------
Descending total damage; ties go to whoever contributed first, then to the
lower actor id.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Iterable, List, Mapping, Optional, Union

from questboard.core.database.base import ensure_utc
from questboard.core.logging.logger import get_logger
from questboard.modules.shared.constants import (
    BOSS_BASE_DAMAGE,
    BOSS_DAMAGE_PER_LEVEL,
    BOSS_DEFAULT_DESCRIPTION,
    BOSS_DEFAULT_LEVEL,
    BOSS_DEFAULT_MAX_HP,
    BOSS_DEFAULT_NAME,
    BOSS_GOLD_REWARD,
    BOSS_HIT_RATE_LIMIT_MS,
    BOSS_MAX_DAMAGE_MULTIPLIER,
    BOSS_MAX_XP_BONUS,
    BOSS_XP_PER_DAMAGE,
)
from questboard.modules.shared.exceptions import BossDefeatedError, RateLimitError
from questboard.modules.shared.validators import coerce_finite

if TYPE_CHECKING:
    from questboard.core.config.manager import ConfigManager

logger = get_logger(__name__)


# ============================================================================
# Data Models
# ============================================================================


@dataclass(frozen=True)
class BossUpgrades:
    damage_multiplier: float = 1.0
    xp_bonus: float = 0.0


@dataclass(frozen=True)
class BossSnapshot:
    """The slice of a boss row the engine needs."""

    id: Optional[int]
    current_hp: float
    max_hp: float
    xp_per_damage: float
    gold_reward: int = 0


@dataclass(frozen=True)
class BossTemplate:
    """Field values for a freshly spawned boss."""

    name: str
    description: str
    level: int
    max_hp: float
    xp_per_damage: float
    gold_reward: int


@dataclass(frozen=True)
class DamageOutcome:
    new_hp: float
    defeated: bool
    xp_earned: float
    actual_damage: float


@dataclass(frozen=True)
class Contribution:
    """Aggregated damage of one actor against one boss."""

    actor_id: str
    total_damage: float
    total_xp: float
    first_dealt_at: datetime
    name: str = ""


@dataclass(frozen=True)
class RankedContribution:
    rank: int
    actor_id: str
    name: str
    total_damage: float
    total_xp: float
    first_dealt_at: datetime


# ============================================================================
# BossEncounter
# ============================================================================


class BossEncounter:
    """
    Boss rules, tunable through ``boss.*`` config keys.

    Configuration Keys
    ------------------
    - boss.default_name / boss.default_description / boss.default_level
    - boss.default_max_hp (1_000_000)
    - boss.xp_per_damage (0.1)
    - boss.gold_reward (10_000)
    - boss.base_damage (1) / boss.damage_per_level (0.5)
    - boss.hit_rate_limit_ms (500)
    - boss.max_damage_multiplier (10) / boss.max_xp_bonus (4)
    """

    def __init__(self, config_manager: Optional[type[ConfigManager]] = None) -> None:
        self._config = config_manager

    def _get(self, key: str, default: Any) -> Any:
        if self._config is None:
            return default
        return self._config.get(key, default)

    # ------------------------------------------------------------------ #
    # Spawning
    # ------------------------------------------------------------------ #

    def default_template(self) -> BossTemplate:
        return BossTemplate(
            name=str(self._get("boss.default_name", BOSS_DEFAULT_NAME)),
            description=str(self._get("boss.default_description", BOSS_DEFAULT_DESCRIPTION)),
            level=int(self._get("boss.default_level", BOSS_DEFAULT_LEVEL)),
            max_hp=float(self._get("boss.default_max_hp", BOSS_DEFAULT_MAX_HP)),
            xp_per_damage=float(self._get("boss.xp_per_damage", BOSS_XP_PER_DAMAGE)),
            gold_reward=int(self._get("boss.gold_reward", BOSS_GOLD_REWARD)),
        )

    # ------------------------------------------------------------------ #
    # Damage
    # ------------------------------------------------------------------ #

    def base_damage(self, level: int) -> float:
        """
        >>> BossEncounter().base_damage(1), BossEncounter().base_damage(5)
        (1.0, 3.0)
        """
        base = float(self._get("boss.base_damage", BOSS_BASE_DAMAGE))
        per_level = float(self._get("boss.damage_per_level", BOSS_DAMAGE_PER_LEVEL))
        return base + (max(1, int(level)) - 1) * per_level

    def _accept(self, raw: Mapping[str, Any], key: str, maximum: float, default: float) -> float:
        if key not in raw:
            return default
        value = coerce_finite(raw[key])
        if value is None or value < 0 or value > maximum:
            logger.warning(
                "Ignored invalid boss upgrade value",
                extra={"upgrade": key, "value": repr(raw[key]), "max": maximum},
            )
            return default
        return value

    def sanitize_upgrades(self, raw: Optional[Mapping[str, Any]]) -> BossUpgrades:
        """
        >>> BossEncounter().sanitize_upgrades({"damage_multiplier": 50})
        BossUpgrades(damage_multiplier=1.0, xp_bonus=0.0)
        """
        if not raw or not isinstance(raw, Mapping):
            return BossUpgrades()

        return BossUpgrades(
            damage_multiplier=self._accept(
                raw,
                "damage_multiplier",
                float(self._get("boss.max_damage_multiplier", BOSS_MAX_DAMAGE_MULTIPLIER)),
                1.0,
            ),
            xp_bonus=self._accept(
                raw,
                "xp_bonus",
                float(self._get("boss.max_xp_bonus", BOSS_MAX_XP_BONUS)),
                0.0,
            ),
        )

    def check_rate_limit(self, last_hit_at: Optional[datetime], now: datetime) -> None:
        """
        Raises:
            RateLimitError: If the actor's previous hit is too recent
        """
        if last_hit_at is None:
            return

        limit_ms = float(self._get("boss.hit_rate_limit_ms", BOSS_HIT_RATE_LIMIT_MS))
        elapsed_ms = (ensure_utc(now) - ensure_utc(last_hit_at)).total_seconds() * 1000.0
        if elapsed_ms < limit_ms:
            raise RateLimitError(
                "boss_attack",
                retry_after=max(0.0, limit_ms - elapsed_ms) / 1000.0,
            )

    def apply_damage(
        self,
        boss: BossSnapshot,
        actor_level: int,
        upgrades: Union[BossUpgrades, Mapping[str, Any], None] = None,
    ) -> DamageOutcome:
        """
        Resolve one hit against ``boss``.

        ``upgrades`` may be a raw client payload; it is sanitized first.

        Raises:
            BossDefeatedError: If the boss is already at 0 HP
        """
        if boss.current_hp <= 0:
            raise BossDefeatedError(boss.id)
        if not isinstance(upgrades, BossUpgrades):
            upgrades = self.sanitize_upgrades(upgrades)

        damage = self.base_damage(actor_level) * upgrades.damage_multiplier
        new_hp = max(0.0, boss.current_hp - damage)
        xp_earned = damage * boss.xp_per_damage * (1 + upgrades.xp_bonus)

        return DamageOutcome(
            new_hp=new_hp,
            defeated=new_hp <= 0,
            xp_earned=xp_earned,
            actual_damage=damage,
        )

    # ------------------------------------------------------------------ #
    # Leaderboard
    # ------------------------------------------------------------------ #

    @staticmethod
    def rank_contributions(rows: Iterable[Contribution]) -> List[RankedContribution]:
        ordered = sorted(
            rows,
            key=lambda row: (-row.total_damage, ensure_utc(row.first_dealt_at), row.actor_id),
        )
        return [
            RankedContribution(
                rank=index,
                actor_id=row.actor_id,
                name=row.name,
                total_damage=row.total_damage,
                total_xp=row.total_xp,
                first_dealt_at=row.first_dealt_at,
            )
            for index, row in enumerate(ordered, start=1)
        ]
