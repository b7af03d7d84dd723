"""
Action Boundary Foundation
==========================

Purpose
-------
Request/response surface for whatever presentation layer sits on top of
the economy (web handlers, a bot, a CLI). Every action takes an `Identity`
and returns an `ActionResult`; nothing raises to the caller.

Responsibilities
----------------
- Reject unauthenticated identities
- Gate admin-only actions on ``Identity.is_admin``
- Bind `LogContext` (actor, action, correlation id) around each call
- Convert domain exceptions into failure results carrying the reason,
  error code and retry hint
- Convert storage and unexpected failures into a generic failure result

Non-Responsibilities
--------------------
- Business rules (services)
- Retrying storage failures
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional

from questboard.core.exceptions import QuestboardInfrastructureException
from questboard.core.logging.logger import LogContext, get_logger
from questboard.modules.shared.exceptions import (
    PermissionDeniedError,
    QuestboardDomainException,
)

if TYPE_CHECKING:
    from questboard.core.services.container import ServiceContainer


GENERIC_SYSTEM_ERROR = "A system error occurred. Please try again in a moment."
GENERIC_UNEXPECTED_ERROR = "An unexpected error occurred."


@dataclass(frozen=True)
class Identity:
    """Who is calling. Produced by the presentation layer's auth."""

    actor_id: Optional[str]
    is_authenticated: bool = True
    is_admin: bool = False

    @classmethod
    def anonymous(cls) -> "Identity":
        return cls(actor_id=None, is_authenticated=False, is_admin=False)


@dataclass(frozen=True)
class ActionResult:
    success: bool
    data: Any = None
    reason: Optional[str] = None
    error_code: Optional[str] = None
    retry_after: Optional[float] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: Any = None) -> "ActionResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls,
        reason: str,
        error_code: str,
        retry_after: Optional[float] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> "ActionResult":
        return cls(
            success=False,
            reason=reason,
            error_code=error_code,
            retry_after=retry_after,
            details=details or {},
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": self.success}
        if self.success:
            payload["data"] = self.data
        else:
            payload["reason"] = self.reason
            payload["error_code"] = self.error_code
            if self.retry_after is not None:
                payload["retry_after"] = self.retry_after
        return payload


class ErrorResponder:
    """Exception -> failed ActionResult."""

    def to_result(self, error: Exception) -> ActionResult:
        if isinstance(error, QuestboardDomainException):
            return ActionResult.fail(
                reason=error.message,
                error_code=error.error_code,
                retry_after=error.retry_after,
                details=error.details,
            )
        if isinstance(error, QuestboardInfrastructureException):
            return ActionResult.fail(reason=GENERIC_SYSTEM_ERROR, error_code=error.error_code)
        return ActionResult.fail(reason=GENERIC_UNEXPECTED_ERROR, error_code="INTERNAL_ERROR")


class BaseActions:
    """
    Base class for action groups.

    Usage:
        class PraiseActions(BaseActions):
            async def give(self, identity):
                return await self._execute(
                    identity, "praise.give",
                    lambda: self.services.praise.give_praise(identity.actor_id),
                )
    """

    def __init__(
        self,
        services: ServiceContainer,
        error_responder: Optional[ErrorResponder] = None,
    ) -> None:
        self.services = services
        self.error_responder = error_responder or ErrorResponder()
        self.logger = get_logger(f"questboard.actions.{type(self).__name__}")

    async def _execute(
        self,
        identity: Identity,
        action: str,
        call: Callable[[], Awaitable[Any]],
        *,
        admin: bool = False,
    ) -> ActionResult:
        if not identity.is_authenticated or not identity.actor_id:
            self.logger.info("Rejected unauthenticated action", extra={"rejected_action": action})
            return ActionResult.fail("Not authenticated", "UNAUTHENTICATED")

        async with LogContext(actor_id=identity.actor_id, action=action):
            try:
                if admin and not identity.is_admin:
                    raise PermissionDeniedError(action, "admin only")
                data = await call()

            except QuestboardDomainException as exc:
                getattr(self.logger, exc.severity.value)(
                    f"{action} rejected: {exc.message}",
                    extra={"error_code": exc.error_code, "details": exc.details},
                )
                return self.error_responder.to_result(exc)

            except QuestboardInfrastructureException as exc:
                self.logger.error(
                    f"{action} failed: {exc}",
                    extra={"error_code": exc.error_code},
                    exc_info=True,
                )
                return self.error_responder.to_result(exc)

            except Exception as exc:
                self.logger.error(
                    f"{action} failed unexpectedly: {exc}",
                    extra={"error_type": type(exc).__name__},
                    exc_info=True,
                )
                return self.error_responder.to_result(exc)

            return ActionResult.ok(data)
