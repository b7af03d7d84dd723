"""
Progression Service
===================

Purpose
-------
Owns the Actor row: lazy registration, profile reads, every XP grant
(direct, raid intake, and on behalf of the boss/duel/praise services) and
the admin economy reset.

Domain
------
- XP grants clamped to [0, leveling.max_grant] with the actor row locked
- Raid XP intake: anti-cheat caps, 100 ms rate limit, raid-level bonus
- Deactivation resets xp/level/gold; actors are never deleted

Design Notes
------------
- `apply_xp()` works inside a caller's transaction and emits nothing; the
  caller publishes `actor.leveled_up` via `publish_level_up()` once its
  transaction has committed.
- `grant_xp()` without a session opens its own transaction and publishes
  itself.
- Registration inserts under a SAVEPOINT; a concurrent insert of the same
  id is recovered by re-reading the winner.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from questboard.core.database.base import ensure_utc
from questboard.core.database.service import DatabaseService
from questboard.core.logging.logger import get_logger
from questboard.database.models import Actor
from questboard.modules.progression.ledger import XpGrant, grant_xp, level_for_xp
from questboard.modules.shared.base_repository import BaseRepository
from questboard.modules.shared.base_service import BaseService
from questboard.modules.shared.constants import (
    MAX_XP_GRANT,
    RAID_BONUS_PER_LEVEL,
    RAID_MAX_BONUS,
    RAID_MAX_LEVEL,
    RAID_MAX_XP,
    RAID_RATE_LIMIT_MS,
    XP_PER_LEVEL,
)
from questboard.modules.shared.exceptions import (
    InvalidOperationError,
    NotFoundError,
    RateLimitError,
)
from questboard.modules.shared.validators import clamp_untrusted_int, validate_actor_id

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from questboard.core.config.manager import ConfigManager
    from questboard.core.event.bus import EventBus


# ============================================================================
# Repository
# ============================================================================


class ActorRepository(BaseRepository[Actor]):
    async def list_active_except(self, session: AsyncSession, actor_id: str) -> List[Actor]:
        return await self.find_many_where(
            session,
            Actor.is_active.is_(True),
            Actor.id != actor_id,
            order_by=[Actor.level.desc(), Actor.xp.desc(), Actor.id.asc()],
        )


def actor_to_dict(actor: Actor) -> Dict[str, Any]:
    return {
        "id": actor.id,
        "name": actor.name,
        "level": actor.level,
        "xp": actor.xp,
        "gold": actor.gold,
        "is_active": actor.is_active,
        "is_admin": actor.is_admin,
    }


# ============================================================================
# ProgressionService
# ============================================================================


class ProgressionService(BaseService):
    """
    Actor lifecycle and XP granting.

    Public Methods
    --------------
    - ensure_actor() -> Register an actor if missing
    - get_actor() -> Profile read
    - grant_xp() -> Clamped XP grant with level-up event
    - add_raid_xp() -> Raid mini game XP intake
    - deactivate_actor() -> Admin economy reset
    - apply_xp() / publish_level_up() -> Building blocks for other services
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Optional[Logger] = None,
    ) -> None:
        super().__init__(config_manager, event_bus, logger or get_logger(__name__))
        self._actor_repo = ActorRepository(
            model_class=Actor,
            logger=get_logger(f"{__name__}.ActorRepository"),
        )

    @property
    def actors(self) -> ActorRepository:
        return self._actor_repo

    @property
    def xp_per_level(self) -> int:
        return int(self.get_config("leveling.xp_per_level", XP_PER_LEVEL))

    # ========================================================================
    # Lookups used by other services
    # ========================================================================

    async def lock_active_actor(self, session: AsyncSession, actor_id: str) -> Actor:
        """
        Load and row-lock an actor that is allowed to act.

        Raises:
            NotFoundError: If the actor does not exist
            InvalidOperationError: If the actor is deactivated
        """
        actor = await self._actor_repo.get_for_update(session, actor_id)
        if actor is None:
            raise NotFoundError("Actor", actor_id)
        if not actor.is_active:
            raise InvalidOperationError("act", f"actor {actor_id} is deactivated")
        return actor

    # ========================================================================
    # PUBLIC API - Registration & Reads
    # ========================================================================

    async def ensure_actor(
        self,
        actor_id: str,
        name: str = "",
        *,
        is_admin: bool = False,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Return the actor, creating it at level 1 / 0 XP / 0 gold if missing.
        """
        actor_id = validate_actor_id(actor_id)
        current = self.resolve_now(now)

        async with DatabaseService.get_transaction() as session:
            actor = await self._actor_repo.get(session, actor_id)
            if actor is not None:
                return actor_to_dict(actor)

            try:
                async with session.begin_nested():
                    actor = Actor(
                        id=actor_id,
                        name=name or actor_id,
                        level=1,
                        xp=0,
                        gold=0,
                        is_active=True,
                        is_admin=is_admin,
                        created_at=current,
                        updated_at=current,
                    )
                    self._actor_repo.add(session, actor)
            except IntegrityError:
                self.log.info(
                    "Concurrent actor registration; using existing row",
                    extra={"actor_id": actor_id},
                )
                actor = await self._actor_repo.get(session, actor_id)
                if actor is None:
                    raise
                return actor_to_dict(actor)

            self.log_operation("ensure_actor", actor_id=actor_id, was_created=True)
            return actor_to_dict(actor)

    async def get_actor(self, actor_id: str) -> Dict[str, Any]:
        """
        Raises:
            NotFoundError: If the actor does not exist
        """
        actor_id = validate_actor_id(actor_id)
        async with DatabaseService.get_session() as session:
            actor = await self._actor_repo.get(session, actor_id)
            if actor is None:
                raise NotFoundError("Actor", actor_id)
            return actor_to_dict(actor)

    # ========================================================================
    # PUBLIC API - XP
    # ========================================================================

    def apply_xp(self, actor: Actor, amount: int, now: datetime) -> XpGrant:
        """
        Apply an already-sanitized XP amount to a locked actor row.

        Does not flush, commit or publish.
        """
        grant = grant_xp(actor.xp, amount, self.xp_per_level)
        actor.xp = grant.new_xp
        actor.level = grant.new_level
        actor.updated_at = now
        return grant

    async def publish_level_up(self, actor_id: str, grant: XpGrant, reason: str) -> None:
        if not grant.leveled_up:
            return
        self.log.info(
            "Actor leveled up",
            extra={
                "actor_id": actor_id,
                "old_level": grant.old_level,
                "new_level": grant.new_level,
                "reason": reason,
            },
        )
        await self.emit_event(
            "actor.leveled_up",
            {
                "actor_id": actor_id,
                "old_level": grant.old_level,
                "new_level": grant.new_level,
                "levels": list(grant.levels_crossed()),
                "reason": reason,
            },
        )

    async def grant_xp(
        self,
        actor_id: str,
        amount: Any,
        reason: str,
        session: Optional[AsyncSession] = None,
        *,
        now: Optional[datetime] = None,
    ) -> XpGrant:
        """
        Grant XP to an actor.

        ``amount`` is untrusted: non-numbers count as 0 and the value is
        clamped into ``[0, leveling.max_grant]``.

        When ``session`` is supplied the grant joins the caller's
        transaction and the caller must call `publish_level_up()` after
        commit.

        Raises:
            NotFoundError: If the actor does not exist
            InvalidOperationError: If the actor is deactivated
        """
        actor_id = validate_actor_id(actor_id)
        max_grant = int(self.get_config("leveling.max_grant", MAX_XP_GRANT))
        safe_amount = clamp_untrusted_int(amount, 0, max_grant, "xp_amount", default=0)
        current = self.resolve_now(now)

        if session is not None:
            actor = await self.lock_active_actor(session, actor_id)
            return self.apply_xp(actor, safe_amount, current)

        async with DatabaseService.get_transaction() as tx:
            actor = await self.lock_active_actor(tx, actor_id)
            grant = self.apply_xp(actor, safe_amount, current)

        self.log_operation(
            "grant_xp",
            actor_id=actor_id,
            amount=grant.amount,
            reason=reason,
            new_level=grant.new_level,
        )
        await self.publish_level_up(actor_id, grant, reason)
        return grant

    @staticmethod
    def raid_bonus(raid_level: int, per_level: float, max_bonus: float) -> float:
        """
        >>> ProgressionService.raid_bonus(1, 0.05, 50)
        1.0
        >>> ProgressionService.raid_bonus(21, 0.05, 50)
        2.0
        """
        return min(1 + (raid_level - 1) * per_level, max_bonus)

    async def add_raid_xp(
        self,
        actor_id: str,
        raid_xp: Any,
        raid_level: Any,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Convert raid mini game XP into main-level XP.

        - ``raid_xp`` clamped to ``[0, raid.max_xp]``
        - ``raid_level`` clamped to ``[1, raid.max_level]``
        - rejected when the actor row changed less than ``raid.rate_limit_ms`` ago
        - grants ``floor(raid_xp * min(1 + (raid_level - 1) * 0.05, 50))``

        Raises:
            RateLimitError: If submissions arrive too quickly
        """
        actor_id = validate_actor_id(actor_id)
        safe_xp = clamp_untrusted_int(
            raid_xp, 0, int(self.get_config("raid.max_xp", RAID_MAX_XP)), "raid_xp", default=0
        )
        safe_level = clamp_untrusted_int(
            raid_level,
            1,
            int(self.get_config("raid.max_level", RAID_MAX_LEVEL)),
            "raid_level",
            default=1,
        )
        rate_limit_ms = float(self.get_config("raid.rate_limit_ms", RAID_RATE_LIMIT_MS))
        bonus = self.raid_bonus(
            safe_level,
            float(self.get_config("raid.bonus_per_level", RAID_BONUS_PER_LEVEL)),
            float(self.get_config("raid.max_bonus", RAID_MAX_BONUS)),
        )
        xp_earned = math.floor(safe_xp * bonus)
        current = self.resolve_now(now)

        async with DatabaseService.get_transaction() as session:
            actor = await self.lock_active_actor(session, actor_id)

            last_update = ensure_utc(actor.updated_at)
            if last_update is not None:
                elapsed_ms = (current - last_update).total_seconds() * 1000.0
                if elapsed_ms < rate_limit_ms:
                    raise RateLimitError(
                        "raid_xp",
                        retry_after=max(0.0, rate_limit_ms - elapsed_ms) / 1000.0,
                    )

            grant = self.apply_xp(actor, xp_earned, current)

        self.log_operation(
            "add_raid_xp",
            actor_id=actor_id,
            raid_xp=safe_xp,
            raid_level=safe_level,
            bonus=bonus,
            xp_earned=xp_earned,
        )
        await self.publish_level_up(actor_id, grant, "raid")

        return {
            "xp_earned": xp_earned,
            "bonus": bonus,
            "old_level": grant.old_level,
            "new_level": grant.new_level,
            "leveled_up": grant.leveled_up,
            "total_xp": grant.new_xp,
        }

    # ========================================================================
    # PUBLIC API - Admin
    # ========================================================================

    async def deactivate_actor(
        self, actor_id: str, now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Deactivate an actor and reset their economy (xp 0, level 1, gold 0).

        Raises:
            NotFoundError: If the actor does not exist
        """
        actor_id = validate_actor_id(actor_id)
        current = self.resolve_now(now)

        async with DatabaseService.get_transaction() as session:
            actor = await self._actor_repo.get_for_update(session, actor_id)
            if actor is None:
                raise NotFoundError("Actor", actor_id)

            actor.xp = 0
            actor.level = level_for_xp(0, self.xp_per_level)
            actor.gold = 0
            actor.is_active = False
            actor.updated_at = current
            result = actor_to_dict(actor)

        self.log_operation("deactivate_actor", actor_id=actor_id)
        return result

    async def list_actors(self, include_inactive: bool = False) -> List[Dict[str, Any]]:
        """Actors by level, highest first."""
        async with DatabaseService.get_session() as session:
            stmt = select(Actor).order_by(Actor.level.desc(), Actor.xp.desc(), Actor.id.asc())
            if not include_inactive:
                stmt = stmt.where(Actor.is_active.is_(True))
            result = await session.execute(stmt)
            return [actor_to_dict(actor) for actor in result.scalars().all()]
