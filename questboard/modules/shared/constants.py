"""
Questboard Economy Constants

Purpose
-------
Reference values for the progression and combat economy. Every value here
is also the default for a ConfigManager key (see `config/economy.yaml`),
so services read `self.get_config("pvp.cooldown_ms", PVP_COOLDOWN_MS)` and
an empty config directory still yields this exact economy.

Design Notes
------------
- Values are annotated with typing.Final
- Grouped by game system
- No side effects at import time
"""

from __future__ import annotations

from typing import Final

# ============================================================================
# LEVELING
# ============================================================================

XP_PER_LEVEL: Final[int] = 100
MAX_XP_GRANT: Final[int] = 1000  # per single grant; larger requests are clamped

# ============================================================================
# BOSS ENCOUNTER
# ============================================================================

BOSS_DEFAULT_NAME: Final[str] = "Ancient Dragon"
BOSS_DEFAULT_DESCRIPTION: Final[str] = (
    "A mighty dragon that has terrorized the city for centuries. "
    "Work together to defeat it!"
)
BOSS_DEFAULT_LEVEL: Final[int] = 1
BOSS_DEFAULT_MAX_HP: Final[float] = 1_000_000
BOSS_XP_PER_DAMAGE: Final[float] = 0.1
BOSS_GOLD_REWARD: Final[int] = 10_000

BOSS_BASE_DAMAGE: Final[float] = 1.0
BOSS_DAMAGE_PER_LEVEL: Final[float] = 0.5
BOSS_HIT_RATE_LIMIT_MS: Final[int] = 500

BOSS_MAX_DAMAGE_MULTIPLIER: Final[float] = 10.0
BOSS_MAX_XP_BONUS: Final[float] = 4.0

# ============================================================================
# PVP DUELS
# ============================================================================

PVP_BASE_CLICK_DAMAGE: Final[int] = 10
PVP_DAMAGE_PER_LEVEL: Final[int] = 5
PVP_BASE_HP: Final[int] = 50
PVP_HP_PER_LEVEL: Final[int] = 5
PVP_COOLDOWN_MS: Final[int] = 30_000
PVP_XP_PER_WIN: Final[int] = 50
PVP_GOLD_PER_WIN: Final[int] = 100
PVP_GOLD_LOSS_ON_DEFEAT: Final[int] = 50
PVP_LOSS_XP_RATIO: Final[float] = 0.2
PVP_LEVEL_DIFF_STEP: Final[float] = 0.1
PVP_MULTIPLIER_CAP: Final[float] = 3.0

PVP_NOTIFICATION_LIMIT: Final[int] = 10
PVP_LEADERBOARD_SIZE: Final[int] = 10

# ============================================================================
# RAID XP INTAKE
# ============================================================================

RAID_MAX_XP: Final[int] = 1000
RAID_MAX_LEVEL: Final[int] = 1000
RAID_RATE_LIMIT_MS: Final[int] = 100
RAID_BONUS_PER_LEVEL: Final[float] = 0.05
RAID_MAX_BONUS: Final[float] = 50.0

# ============================================================================
# PRAISE
# ============================================================================

PRAISE_XP: Final[int] = 10
PRAISE_DAILY_LIMIT: Final[int] = 3
PRAISE_LEADERBOARD_SIZE: Final[int] = 10
