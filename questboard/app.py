"""
Questboard Application Bootstrap
================================

- Config load
- ConfigManager YAML initialization
- Database initialization (and optional schema creation)
- Service container initialization
- Graceful shutdown
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from questboard.core.config.config import Config
from questboard.core.config.manager import ConfigManager
from questboard.core.database.service import DatabaseService
from questboard.core.event import event_bus
from questboard.core.event.bus import EventBus
from questboard.core.logging.logger import get_logger, shutdown_logging
from questboard.core.services.container import ServiceContainer

logger = get_logger(__name__)


async def startup(
    *,
    database_url: Optional[str] = None,
    config_dir: Optional[Path] = None,
    create_schema: bool = False,
    bus: Optional[EventBus] = None,
) -> ServiceContainer:
    """Initialize infrastructure and return a ready ServiceContainer."""
    logger.info("Questboard initialization start")

    try:
        ConfigManager.initialize(config_dir)
    except Exception as exc:
        logger.critical(f"Config manager initialization failed: {exc}", exc_info=True)
        raise

    try:
        await DatabaseService.initialize(database_url)
        if create_schema:
            await DatabaseService.create_schema()
    except Exception as exc:
        logger.critical(f"Database initialization failed: {exc}", exc_info=True)
        raise

    container = ServiceContainer(
        ConfigManager,
        bus if bus is not None else event_bus,
        get_logger("questboard.core.services.container"),
    )
    container.initialize()

    logger.info(
        "Questboard initialized",
        extra={"environment": Config.ENVIRONMENT, **container.get_health()},
    )
    return container


async def shutdown(container: Optional[ServiceContainer] = None) -> None:
    """Drain background listeners, dispose the engine and flush logs."""
    logger.info("Questboard shutdown start")

    if container is not None:
        try:
            await container.event_bus.drain()
        except Exception as exc:
            logger.error(f"Event bus drain error: {exc}", exc_info=True)

    try:
        await DatabaseService.shutdown()
    except Exception as exc:
        logger.error(f"Database service shutdown error: {exc}", exc_info=True)

    logger.info("Questboard shutdown complete")
    shutdown_logging()
