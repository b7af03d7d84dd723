"""
Praise Service
==============

Daily praise: each actor may praise up to three times per UTC calendar day
and earns 10 XP each time. Praises are logged so the monthly top-praiser
board can be built from them.

Events
------
- praise.given {actor_id, xp_earned, praises_remaining}
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select

from questboard.core.database.service import DatabaseService
from questboard.core.logging.logger import get_logger
from questboard.database.models import Actor, Praise
from questboard.modules.shared.base_repository import BaseRepository
from questboard.modules.shared.base_service import BaseService
from questboard.modules.shared.constants import (
    PRAISE_DAILY_LIMIT,
    PRAISE_LEADERBOARD_SIZE,
    PRAISE_XP,
)
from questboard.modules.shared.exceptions import DailyLimitError, NotFoundError
from questboard.modules.shared.validators import validate_actor_id, validate_limit

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from questboard.core.config.manager import ConfigManager
    from questboard.core.event.bus import EventBus
    from questboard.modules.progression.service import ProgressionService


def day_window(now: datetime) -> Tuple[datetime, datetime]:
    """[start, end) of the UTC calendar day containing ``now``."""
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1)


def month_window(now: datetime) -> Tuple[datetime, datetime]:
    """[start, end) of the UTC calendar month containing ``now``."""
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


class PraiseRepository(BaseRepository[Praise]):
    async def count_between(
        self, session: AsyncSession, actor_id: str, start: datetime, end: datetime
    ) -> int:
        return await self.count(
            session,
            Praise.actor_id == actor_id,
            Praise.praised_at >= start,
            Praise.praised_at < end,
        )


class PraiseService(BaseService):
    """
    Public Methods
    --------------
    - give_praise() -> Log a praise and grant its XP
    - status() -> Today's usage for an actor
    - top_praisers() -> This month's most frequent praisers
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        progression: ProgressionService,
        logger: Optional[Logger] = None,
    ) -> None:
        super().__init__(config_manager, event_bus, logger or get_logger(__name__))
        self._progression = progression
        self._praise_repo = PraiseRepository(
            model_class=Praise,
            logger=get_logger(f"{__name__}.PraiseRepository"),
        )

    @property
    def daily_limit(self) -> int:
        return int(self.get_config("praise.daily_limit", PRAISE_DAILY_LIMIT))

    async def give_praise(self, actor_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Raises:
            NotFoundError: If the actor does not exist
            InvalidOperationError: If the actor is deactivated
            DailyLimitError: If the actor already praised ``praise.daily_limit`` times today
        """
        actor_id = validate_actor_id(actor_id)
        current = self.resolve_now(now)
        start, end = day_window(current)
        limit = self.daily_limit
        xp = int(self.get_config("praise.xp", PRAISE_XP))

        async with DatabaseService.get_transaction() as session:
            # The actor lock serializes concurrent praises from the same actor.
            await self._progression.lock_active_actor(session, actor_id)

            today = await self._praise_repo.count_between(session, actor_id, start, end)
            if today >= limit:
                raise DailyLimitError("praise", limit)

            self._praise_repo.add(
                session, Praise(actor_id=actor_id, xp_earned=xp, praised_at=current)
            )
            grant = await self._progression.grant_xp(
                actor_id, xp, "praise", session=session, now=current
            )

        remaining = max(0, limit - today - 1)
        self.log_operation("give_praise", actor_id=actor_id, praises_remaining=remaining)
        await self.emit_event(
            "praise.given",
            {"actor_id": actor_id, "xp_earned": grant.amount, "praises_remaining": remaining},
        )
        await self._progression.publish_level_up(actor_id, grant, "praise")

        return {
            "xp_earned": grant.amount,
            "total_xp": grant.new_xp,
            "praises_remaining": remaining,
            "leveled_up": grant.leveled_up,
            "new_level": grant.new_level,
        }

    async def status(self, actor_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Raises:
            NotFoundError: If the actor does not exist
        """
        actor_id = validate_actor_id(actor_id)
        start, end = day_window(self.resolve_now(now))

        async with DatabaseService.get_session() as session:
            actor = await self._progression.actors.get(session, actor_id)
            if actor is None:
                raise NotFoundError("Actor", actor_id)
            today = await self._praise_repo.count_between(session, actor_id, start, end)

        return {
            "total_xp": actor.xp,
            "praises_today": today,
            "praises_remaining": max(0, self.daily_limit - today),
        }

    async def top_praisers(
        self, now: Optional[datetime] = None, limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Actors by number of praises in the current UTC month."""
        limit = validate_limit(
            limit if limit is not None else self.get_config(
                "praise.leaderboard_size", PRAISE_LEADERBOARD_SIZE
            )
        )
        start, end = month_window(self.resolve_now(now))

        praise_count = func.count(Praise.id)
        stmt = (
            select(
                Praise.actor_id,
                Actor.name,
                Actor.xp,
                praise_count,
                func.sum(Praise.xp_earned),
            )
            .join(Actor, Actor.id == Praise.actor_id)
            .where(Praise.praised_at >= start, Praise.praised_at < end)
            .group_by(Praise.actor_id, Actor.name, Actor.xp)
            .order_by(praise_count.desc(), Praise.actor_id.asc())
            .limit(limit)
        )

        async with DatabaseService.get_session() as session:
            result = await session.execute(stmt)
            rows = result.all()

        return [
            {
                "rank": index,
                "actor_id": actor_id,
                "name": name,
                "total_praises": int(total),
                "praise_xp": int(praise_xp or 0),
                "total_xp": xp,
            }
            for index, (actor_id, name, xp, total, praise_xp) in enumerate(rows, start=1)
        ]
