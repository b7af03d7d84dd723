"""
Base Service Foundation

Purpose
-------
Foundational class for the Questboard economy services. Services implement
the business rules, open transactions through DatabaseService, raise domain
exceptions and emit domain events.

Design Notes
------------
This base class provides:
- Structured logging with operation context
- Config access with documented defaults
- Event emission helpers
- Injectable clock (`now` parameters) for deterministic tests

What this class does NOT do:
- Manage database transactions (that's DatabaseService's job)
- Translate exceptions for clients (that's `questboard.actions`)

Usage
-----
    class PraiseService(BaseService):
        def __init__(self, config_manager, event_bus, progression, logger):
            super().__init__(config_manager, event_bus, logger)
            self._progression = progression
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Optional

from questboard.core.database.base import ensure_utc, utc_now
from questboard.core.logging.logger import safe_extra

if TYPE_CHECKING:
    from logging import Logger

    from questboard.core.config.manager import ConfigManager
    from questboard.core.event.bus import EventBus


class BaseService:
    """
    Base class for all domain services.

    Args:
        config_manager: Application configuration manager
        event_bus: Event bus for cross-module communication
        logger: Structured logger instance
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        self._config = config_manager
        self._events = event_bus
        self.log = logger

    def get_config(
        self, key: str, default: Optional[Any] = None, required: bool = False
    ) -> Any:
        """
        Retrieve a configuration value.

        Raises:
            ConfigurationError: If required=True and key is missing
        """
        from questboard.core.exceptions import ConfigurationError

        value = self._config.get(key, default)
        if required and value is None:
            raise ConfigurationError(
                key, f"Required configuration key '{key}' is missing"
            )
        return value

    async def emit_event(
        self,
        event_type: str,
        data: Dict[str, Any],
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        await self._events.publish(event_type, {**data, **(context or {})})

    @staticmethod
    def resolve_now(now: Optional[datetime]) -> datetime:
        """Use the injected clock if given, else wall-clock UTC."""
        return ensure_utc(now) if now is not None else utc_now()

    def log_operation(self, operation: str, **context: Any) -> None:
        self.log.info(
            f"Service operation: {operation}",
            extra=safe_extra(operation=operation, **context),
        )
