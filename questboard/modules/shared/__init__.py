"""
Questboard Shared Module

Domain-level foundations for the economy modules:
- BaseService / BaseRepository patterns
- Domain exceptions
- Economy constants
- Validation and sanitization helpers
"""

from __future__ import annotations

from .base_repository import BaseRepository
from .base_service import BaseService
from .exceptions import (
    BossDefeatedError,
    CooldownActiveError,
    DailyLimitError,
    InvalidOperationError,
    NotFoundError,
    PermissionDeniedError,
    QuestboardDomainException,
    RateLimitError,
    SelfAttackError,
    ValidationError,
)
from .validators import (
    clamp,
    clamp_untrusted_int,
    coerce_finite,
    validate_actor_id,
    validate_limit,
    validate_record_id,
)

__all__ = [
    "BaseRepository",
    "BaseService",
    "QuestboardDomainException",
    "BossDefeatedError",
    "CooldownActiveError",
    "DailyLimitError",
    "InvalidOperationError",
    "NotFoundError",
    "PermissionDeniedError",
    "RateLimitError",
    "SelfAttackError",
    "ValidationError",
    "clamp",
    "clamp_untrusted_int",
    "coerce_finite",
    "validate_actor_id",
    "validate_limit",
    "validate_record_id",
]
