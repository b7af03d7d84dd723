from .engine import DuelOutcome, DuelResolver
from .service import DuelService

__all__ = ["DuelOutcome", "DuelResolver", "DuelService"]
