from .engine import BossEncounter, BossSnapshot, BossUpgrades, DamageOutcome
from .service import BossEncounterService

__all__ = [
    "BossEncounter",
    "BossSnapshot",
    "BossUpgrades",
    "DamageOutcome",
    "BossEncounterService",
]
