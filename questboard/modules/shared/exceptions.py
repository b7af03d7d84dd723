"""
Domain exceptions for the Questboard economy.

Purpose
-------
Define the structured exception hierarchy for game rule violations. Services
raise these; the action layer (`questboard.actions`) turns them into
`ActionResult` failures for the dashboard.

Design Notes
------------
- All domain exceptions inherit from `QuestboardDomainException`.
- Each exception carries:
  - `message`: human-readable description
  - `details`: additional structured context
  - `severity`: `ErrorSeverity` value for logging
  - `is_retryable`: whether the same request may succeed later
  - `error_code`: short, stable identifier shown to clients
- Timing rejections (cooldown, rate limit) expose `retry_after` in seconds.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from questboard.core.exceptions import ErrorSeverity


class QuestboardDomainException(Exception):
    """
    Base exception for all Questboard domain-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.INFO
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    @property
    def retry_after(self) -> Optional[float]:
        return self.details.get("retry_after")

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"severity={self.severity.value!r}, "
            f"is_retryable={self.is_retryable!r}"
            ")"
        )


class NotFoundError(QuestboardDomainException):
    """
    Raised when a requested entity does not exist (or is deactivated where
    only active entities qualify, e.g. duel defenders).

    Args:
        resource_type: Type of resource (e.g., "Actor", "Boss")
        identifier: Optional identifier for the missing resource
    """

    def __init__(self, resource_type: str, identifier: Optional[Any] = None) -> None:
        self.resource_type = resource_type
        self.identifier = identifier

        if identifier is not None:
            message = f"{resource_type} not found: {identifier}"
        else:
            message = f"{resource_type} not found"

        super().__init__(
            message,
            details={"resource_type": resource_type, "identifier": identifier},
            error_code=f"{resource_type.upper()}_NOT_FOUND",
        )


class ValidationError(QuestboardDomainException):
    """
    Raised when input fails domain validation.

    Args:
        field: Name of the field that failed validation
        message: Explanation of why validation failed
    """

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        super().__init__(
            f"Validation error for {field}: {message}",
            details={"field": field, "validation_message": message},
            error_code=f"VALIDATION_{field.upper()}",
        )


class SelfAttackError(QuestboardDomainException):
    """Raised when an actor targets themselves in a duel."""

    def __init__(self, actor_id: str) -> None:
        self.actor_id = actor_id
        super().__init__(
            "You cannot attack yourself",
            details={"actor_id": actor_id},
            error_code="SELF_ATTACK",
        )


class CooldownActiveError(QuestboardDomainException):
    """
    Raised when an action is on cooldown.

    Args:
        action: Name of the action on cooldown
        remaining_seconds: Whole seconds remaining (rounded up)
    """

    DEFAULT_SEVERITY = ErrorSeverity.DEBUG
    DEFAULT_RETRYABLE = True

    def __init__(self, action: str, remaining_seconds: int) -> None:
        self.action = action
        self.remaining_seconds = remaining_seconds
        super().__init__(
            f"{action} is on cooldown: {remaining_seconds}s remaining",
            details={
                "action": action,
                "remaining": remaining_seconds,
                "retry_after": remaining_seconds,
            },
            error_code="COOLDOWN_ACTIVE",
        )


class RateLimitError(QuestboardDomainException):
    """
    Raised when an actor repeats an action faster than allowed.

    Args:
        command: Name of the rate-limited action
        retry_after: Seconds until the actor can retry
    """

    DEFAULT_SEVERITY = ErrorSeverity.DEBUG
    DEFAULT_RETRYABLE = True

    def __init__(self, command: str, retry_after: float) -> None:
        self.command = command
        super().__init__(
            f"Rate limit exceeded for {command}: retry after {retry_after:.2f}s",
            details={"command": command, "retry_after": retry_after},
            error_code="RATE_LIMIT_EXCEEDED",
        )


class BossDefeatedError(QuestboardDomainException):
    """
    Raised when a hit lands on a boss that is already at 0 HP.

    The client is holding a stale boss; retrying targets the next boss.
    """

    DEFAULT_RETRYABLE = True

    def __init__(self, boss_id: Optional[int]) -> None:
        self.boss_id = boss_id
        super().__init__(
            "Boss already defeated",
            details={"boss_id": boss_id},
            error_code="BOSS_DEFEATED",
        )


class DailyLimitError(QuestboardDomainException):
    """
    Raised when a per-day quota is used up.

    Args:
        action: Name of the limited action
        limit: Allowed uses per UTC day
    """

    DEFAULT_RETRYABLE = True

    def __init__(self, action: str, limit: int) -> None:
        self.action = action
        self.limit = limit
        super().__init__(
            f"Daily limit reached for {action} ({limit} per day)",
            details={"action": action, "limit": limit},
            error_code="DAILY_LIMIT_REACHED",
        )


class PermissionDeniedError(QuestboardDomainException):
    """
    Raised when an identity may not perform an action.

    Args:
        action: The attempted action
        reason: Why it is not allowed
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING

    def __init__(self, action: str, reason: str) -> None:
        self.action = action
        self.reason = reason
        super().__init__(
            f"Permission denied for '{action}': {reason}",
            details={"action": action, "reason": reason},
            error_code="PERMISSION_DENIED",
        )


class InvalidOperationError(QuestboardDomainException):
    """
    Raised when an action violates game rules for the current state.

    Args:
        action: Description of the invalid action
        reason: Explanation of why it's not allowed
    """

    def __init__(self, action: str, reason: str) -> None:
        self.action = action
        self.reason = reason
        super().__init__(
            f"Invalid operation '{action}': {reason}",
            details={"action": action, "reason": reason},
            error_code=f"INVALID_{action.upper()}",
        )

