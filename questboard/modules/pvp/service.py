"""
Duel Service
============

Purpose
-------
Persists PvP duels: the attack transaction, per-actor duel stats, defender
notifications and the win leaderboard.

Domain
------
- One transaction per attack; a rejected attack mutates nothing
- Both actor rows are locked in id order to avoid lock-order deadlocks
- Cooldown read from the attacker's DuelStats.last_attack_at
- Only the attacker's last_attack_at moves; defending never starts a cooldown
- Defender gold loss is floored at 0
- DuelStats rows are created lazily under a SAVEPOINT

Events
------
- duel.resolved {record_id, attacker_id, defender_id, attacker_won,
                 damage, xp_earned, gold_earned, gold_lost}
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from questboard.core.database.service import DatabaseService
from questboard.core.logging.logger import get_logger
from questboard.database.models import Actor, DuelRecord, DuelStats
from questboard.modules.pvp.engine import DuelResolver
from questboard.modules.shared.base_repository import BaseRepository
from questboard.modules.shared.base_service import BaseService
from questboard.modules.shared.constants import PVP_LEADERBOARD_SIZE, PVP_NOTIFICATION_LIMIT
from questboard.modules.shared.exceptions import (
    InvalidOperationError,
    NotFoundError,
    SelfAttackError,
)
from questboard.modules.shared.validators import (
    validate_actor_id,
    validate_limit,
    validate_record_id,
)

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from questboard.core.config.manager import ConfigManager
    from questboard.core.event.bus import EventBus
    from questboard.modules.progression.service import ProgressionService


def win_rate(wins: int, losses: int) -> float:
    """
    Percentage rounded half-up to one decimal.

    >>> win_rate(2, 1)
    66.7
    >>> win_rate(0, 0)
    0.0
    """
    total = wins + losses
    if total <= 0:
        return 0.0
    return math.floor(wins / total * 1000 + 0.5) / 10


# ============================================================================
# Repositories
# ============================================================================


class DuelStatsRepository(BaseRepository[DuelStats]):
    async def for_actor(
        self, session: AsyncSession, actor_id: str, for_update: bool = False
    ) -> Optional[DuelStats]:
        return await self.find_one_where(
            session, DuelStats.actor_id == actor_id, for_update=for_update
        )


class DuelRecordRepository(BaseRepository[DuelRecord]):
    pass


# ============================================================================
# DuelService
# ============================================================================


class DuelService(BaseService):
    """
    Public Methods
    --------------
    - attack() -> Resolve and persist one duel
    - get_stats() -> Per-actor win/loss totals
    - list_opponents() -> Active actors that can be attacked
    - notifications() -> Duels the actor defended, newest first
    - leaderboard() -> Actors ranked by wins
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
        self._resolver = DuelResolver(config_manager)
        self._stats_repo = DuelStatsRepository(
            model_class=DuelStats,
            logger=get_logger(f"{__name__}.DuelStatsRepository"),
        )
        self._record_repo = DuelRecordRepository(
            model_class=DuelRecord,
            logger=get_logger(f"{__name__}.DuelRecordRepository"),
        )

    @property
    def resolver(self) -> DuelResolver:
        return self._resolver

    # ========================================================================
    # Attack
    # ========================================================================

    async def _lock_stats(self, session: AsyncSession, actor_id: str) -> DuelStats:
        stats = await self._stats_repo.for_actor(session, actor_id, for_update=True)
        if stats is not None:
            return stats

        try:
            async with session.begin_nested():
                stats = DuelStats(
                    actor_id=actor_id,
                    wins=0,
                    losses=0,
                    total_damage_dealt=0,
                    total_damage_taken=0,
                    last_attack_at=None,
                )
                self._stats_repo.add(session, stats)
        except IntegrityError:
            self.log.info(
                "Concurrent duel stats creation; using existing row",
                extra={"actor_id": actor_id},
            )
            stats = await self._stats_repo.for_actor(session, actor_id, for_update=True)
            if stats is None:
                raise
        return stats

    async def attack(
        self,
        attacker_id: str,
        defender_id: str,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Resolve one attack from ``attacker_id`` on ``defender_id``.

        Raises:
            SelfAttackError: If attacker and defender are the same
            NotFoundError: If either actor is missing or the defender is inactive
            InvalidOperationError: If the attacker is deactivated
            CooldownActiveError: If the attacker attacked within the cooldown
        """
        attacker_id = validate_actor_id(attacker_id, "attacker_id")
        defender_id = validate_actor_id(defender_id, "defender_id")
        if attacker_id == defender_id:
            raise SelfAttackError(attacker_id)
        current = self.resolve_now(now)

        async with DatabaseService.get_transaction() as session:
            locked: Dict[str, Optional[Actor]] = {}
            for actor_id in sorted((attacker_id, defender_id)):
                locked[actor_id] = await self._progression.actors.get_for_update(
                    session, actor_id
                )

            attacker = locked[attacker_id]
            defender = locked[defender_id]
            if attacker is None:
                raise NotFoundError("Actor", attacker_id)
            if not attacker.is_active:
                raise InvalidOperationError("act", f"actor {attacker_id} is deactivated")
            if defender is None or not defender.is_active:
                raise NotFoundError("Defender", defender_id)

            existing = await self._stats_repo.for_actor(session, attacker_id, for_update=True)
            self._resolver.check_cooldown(
                existing.last_attack_at if existing is not None else None, current
            )

            outcome = self._resolver.resolve(
                attacker_id, attacker.level, defender_id, defender.level
            )

            grant = await self._progression.grant_xp(
                attacker_id, outcome.xp_earned, "duel", session=session, now=current
            )

            if outcome.gold_earned:
                attacker.gold += outcome.gold_earned
                attacker.updated_at = current
            if outcome.gold_lost and defender.gold > 0:
                defender.gold = max(0, defender.gold - outcome.gold_lost)
                defender.updated_at = current

            record = DuelRecord(
                attacker_id=attacker_id,
                defender_id=defender_id,
                attacker_level=outcome.attacker_level,
                defender_level=outcome.defender_level,
                attacker_damage=outcome.attacker_damage,
                defender_hp=outcome.defender_hp,
                multiplier=outcome.multiplier,
                damage_dealt=outcome.actual_damage,
                attacker_won=outcome.attacker_won,
                xp_earned=outcome.xp_earned,
                gold_earned=outcome.gold_earned,
                gold_lost=outcome.gold_lost,
                created_at=current,
            )
            self._record_repo.add(session, record)

            attacker_stats = existing or await self._lock_stats(session, attacker_id)
            defender_stats = await self._lock_stats(session, defender_id)

            if outcome.attacker_won:
                attacker_stats.wins += 1
                defender_stats.losses += 1
            else:
                attacker_stats.losses += 1
                defender_stats.wins += 1
            attacker_stats.total_damage_dealt += outcome.actual_damage
            defender_stats.total_damage_taken += outcome.actual_damage
            attacker_stats.last_attack_at = current

            await session.flush()
            record_id = record.id

        self.log_operation(
            "attack",
            attacker_id=attacker_id,
            defender_id=defender_id,
            attacker_won=outcome.attacker_won,
            damage=outcome.actual_damage,
        )
        await self.emit_event(
            "duel.resolved",
            {
                "record_id": record_id,
                "attacker_id": attacker_id,
                "defender_id": defender_id,
                "attacker_won": outcome.attacker_won,
                "damage": outcome.actual_damage,
                "xp_earned": outcome.xp_earned,
                "gold_earned": outcome.gold_earned,
                "gold_lost": outcome.gold_lost,
            },
        )
        await self._progression.publish_level_up(attacker_id, grant, "duel")

        return {
            "record_id": record_id,
            "attacker_won": outcome.attacker_won,
            "attacker_damage": outcome.attacker_damage,
            "defender_hp": outcome.defender_hp,
            "multiplier": outcome.multiplier,
            "damage_dealt": outcome.actual_damage,
            "xp_earned": outcome.xp_earned,
            "gold_earned": outcome.gold_earned,
            "gold_lost": outcome.gold_lost,
            "leveled_up": grant.leveled_up,
            "new_level": grant.new_level,
        }

    # ========================================================================
    # Reads
    # ========================================================================

    async def get_stats(self, actor_id: str) -> Dict[str, Any]:
        """Duel totals for ``actor_id``; all zeros before the first duel."""
        actor_id = validate_actor_id(actor_id)
        async with DatabaseService.get_session() as session:
            stats = await self._stats_repo.for_actor(session, actor_id)

        if stats is None:
            return {
                "wins": 0,
                "losses": 0,
                "total_damage_dealt": 0,
                "total_damage_taken": 0,
                "win_rate": 0.0,
                "last_attack_at": None,
            }
        return {
            "wins": stats.wins,
            "losses": stats.losses,
            "total_damage_dealt": stats.total_damage_dealt,
            "total_damage_taken": stats.total_damage_taken,
            "win_rate": win_rate(stats.wins, stats.losses),
            "last_attack_at": stats.last_attack_at,
        }

    async def list_opponents(self, actor_id: str) -> List[Dict[str, Any]]:
        actor_id = validate_actor_id(actor_id)
        async with DatabaseService.get_session() as session:
            actors = await self._progression.actors.list_active_except(session, actor_id)
            return [
                {"id": a.id, "name": a.name, "level": a.level, "xp": a.xp} for a in actors
            ]

    async def notifications(
        self,
        actor_id: str,
        since_record_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Duels in which ``actor_id`` was the defender, newest first.

        With ``since_record_id`` only records with a larger id are returned.
        """
        actor_id = validate_actor_id(actor_id)
        limit = validate_limit(
            limit if limit is not None else self.get_config(
                "pvp.notification_limit", PVP_NOTIFICATION_LIMIT
            )
        )

        stmt = (
            select(DuelRecord, Actor.name)
            .join(Actor, Actor.id == DuelRecord.attacker_id)
            .where(DuelRecord.defender_id == actor_id)
            .order_by(DuelRecord.id.desc())
            .limit(limit)
        )
        if since_record_id is not None:
            stmt = stmt.where(
                DuelRecord.id > validate_record_id(since_record_id, "since_record_id")
            )

        async with DatabaseService.get_session() as session:
            result = await session.execute(stmt)
            rows = result.all()

        return [
            {
                "id": record.id,
                "attacker_id": record.attacker_id,
                "attacker_name": attacker_name,
                "attacker_level": record.attacker_level,
                "defender_won": not record.attacker_won,
                "damage_dealt": record.damage_dealt,
                "gold_lost": record.gold_lost,
                "created_at": record.created_at,
            }
            for record, attacker_name in rows
        ]

    async def leaderboard(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Actors ranked by wins, then fewer losses, then id."""
        limit = validate_limit(
            limit if limit is not None else self.get_config(
                "pvp.leaderboard_size", PVP_LEADERBOARD_SIZE
            )
        )

        stmt = (
            select(DuelStats, Actor.name, Actor.level)
            .join(Actor, Actor.id == DuelStats.actor_id)
            .order_by(DuelStats.wins.desc(), DuelStats.losses.asc(), DuelStats.actor_id.asc())
            .limit(limit)
        )
        async with DatabaseService.get_session() as session:
            result = await session.execute(stmt)
            rows = result.all()

        return [
            {
                "rank": index,
                "actor_id": stats.actor_id,
                "name": name,
                "level": level,
                "wins": stats.wins,
                "losses": stats.losses,
                "win_rate": win_rate(stats.wins, stats.losses),
                "total_damage_dealt": stats.total_damage_dealt,
            }
            for index, (stats, name, level) in enumerate(rows, start=1)
        ]
