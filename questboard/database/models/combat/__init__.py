from .boss import BossState, DamageEvent
from .duel import DuelRecord, DuelStats

__all__ = ["BossState", "DamageEvent", "DuelRecord", "DuelStats"]
