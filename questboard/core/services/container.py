"""
Service Container
=================

Purpose
-------
Dependency injection container for the economy services. Builds each
service once with the shared ConfigManager, EventBus and logger, and wires
ProgressionService into the services that grant XP.

Responsibilities
----------------
- Initialize all domain services with required dependencies
- Provide typed access to services for the action layer
- Expose init timings for health reporting

Non-Responsibilities
--------------------
- Database / config lifecycle (see `questboard.app`)
- Business logic
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, TypeVar

from questboard.core.logging.logger import get_logger
from questboard.modules.boss.service import BossEncounterService
from questboard.modules.praise.service import PraiseService
from questboard.modules.progression.service import ProgressionService
from questboard.modules.pvp.service import DuelService

if TYPE_CHECKING:
    from logging import Logger

    from questboard.core.config.manager import ConfigManager
    from questboard.core.event.bus import EventBus

S = TypeVar("S")


class ServiceContainer:
    """
    Usage:
        container = ServiceContainer(ConfigManager, event_bus, logger)
        container.initialize()
        await container.boss.apply_damage("u-1", {})
    """

    def __init__(
        self,
        config_manager: type[ConfigManager],
        event_bus: EventBus,
        logger: Optional[Logger] = None,
    ) -> None:
        self._config_manager = config_manager
        self._event_bus = event_bus
        self._logger = logger or get_logger(__name__)

        self._progression: Optional[ProgressionService] = None
        self._boss: Optional[BossEncounterService] = None
        self._duel: Optional[DuelService] = None
        self._praise: Optional[PraiseService] = None

        self._initialized = False
        self._service_init_times: Dict[str, float] = {}

    # ========================================================================
    # Lifecycle
    # ========================================================================

    def _create_service(self, name: str, factory: Callable[..., S], *args: Any) -> S:
        start = time.perf_counter()
        service = factory(
            self._config_manager,
            self._event_bus,
            *args,
            logger=get_logger(f"questboard.services.{name}"),
        )
        self._service_init_times[name] = time.perf_counter() - start
        return service

    def initialize(self) -> None:
        if self._initialized:
            self._logger.warning("ServiceContainer already initialized")
            return

        start = time.perf_counter()
        self._progression = self._create_service("progression", ProgressionService)
        self._boss = self._create_service("boss", BossEncounterService, self._progression)
        self._duel = self._create_service("duel", DuelService, self._progression)
        self._praise = self._create_service("praise", PraiseService, self._progression)
        self._initialized = True

        self._logger.info(
            "Service container initialized",
            extra={
                "service_count": len(self._service_init_times),
                "duration_ms": round((time.perf_counter() - start) * 1000.0, 3),
            },
        )

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def _require(self, service: Optional[S], name: str) -> S:
        if service is None:
            raise RuntimeError(
                f"ServiceContainer not initialized; '{name}' is unavailable"
            )
        return service

    # ========================================================================
    # Services
    # ========================================================================

    @property
    def config_manager(self) -> type[ConfigManager]:
        return self._config_manager

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def progression(self) -> ProgressionService:
        return self._require(self._progression, "progression")

    @property
    def boss(self) -> BossEncounterService:
        return self._require(self._boss, "boss")

    @property
    def duel(self) -> DuelService:
        return self._require(self._duel, "duel")

    @property
    def praise(self) -> PraiseService:
        return self._require(self._praise, "praise")

    def get_health(self) -> Dict[str, Any]:
        return {
            "initialized": self._initialized,
            "services": sorted(self._service_init_times),
            "init_times_ms": {
                name: round(seconds * 1000.0, 3)
                for name, seconds in self._service_init_times.items()
            },
        }
