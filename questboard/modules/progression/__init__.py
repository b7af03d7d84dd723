from .ledger import XpGrant, grant_xp, level_for_xp, xp_for_level
from .service import ActorRepository, ProgressionService

__all__ = [
    "XpGrant",
    "grant_xp",
    "level_for_xp",
    "xp_for_level",
    "ActorRepository",
    "ProgressionService",
]
