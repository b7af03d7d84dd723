"""
Database Models Package
=======================

SQLAlchemy ORM models for the Questboard economy, organized by domain.

- core: Actor
- combat: BossState, DamageEvent, DuelRecord, DuelStats
- social: Praise

Models are schema-only; rules live in `questboard.modules`.
"""

from questboard.core.database.base import Base

from .combat import BossState, DamageEvent, DuelRecord, DuelStats
from .core import Actor
from .social import Praise

__all__ = [
    "Base",
    "Actor",
    "BossState",
    "DamageEvent",
    "DuelRecord",
    "DuelStats",
    "Praise",
]
