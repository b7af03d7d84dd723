"""
Questboard Actions

Request/response entry points for a presentation layer. Each action group
wraps the matching service from the ServiceContainer.
"""

from .base import ActionResult, BaseActions, ErrorResponder, Identity
from .boss import BossActions
from .praise import PraiseActions
from .progression import ProgressionActions
from .pvp import DuelActions

__all__ = [
    "ActionResult",
    "BaseActions",
    "ErrorResponder",
    "Identity",
    "BossActions",
    "DuelActions",
    "PraiseActions",
    "ProgressionActions",
]
