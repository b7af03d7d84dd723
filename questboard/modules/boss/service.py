"""
Boss Encounter Service
======================

Purpose
-------
Persists the shared boss: lazy spawning, the atomic damage path, the killing
blow reward and the per-boss damage leaderboard.

Domain
------
- Exactly one active boss at a time (partial unique index on is_active)
- HP decrements are a single conditional ``UPDATE ... RETURNING`` so two
  concurrent hits can never push HP below 0 or both claim the kill
- XP from a hit is floored before it reaches the actor; the damage event
  keeps the exact float
- The killing-blow actor receives the boss gold reward
- Defeated bosses are never revived; the next read spawns a new one

Events
------
- boss.spawned   {boss_id, name, max_hp}
- boss.damaged   {boss_id, actor_id, damage, xp_earned, new_hp}
- boss.defeated  {boss_id, actor_id, gold_reward}
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import DateTime, case, false, func, literal, select, update
from sqlalchemy.exc import IntegrityError

from questboard.core.database.service import DatabaseService
from questboard.core.logging.logger import get_logger
from questboard.database.models import Actor, BossState, DamageEvent
from questboard.modules.boss.engine import (
    BossEncounter,
    BossSnapshot,
    Contribution,
)
from questboard.modules.shared.base_repository import BaseRepository
from questboard.modules.shared.base_service import BaseService
from questboard.modules.shared.exceptions import (
    BossDefeatedError,
    NotFoundError,
    ValidationError,
)
from questboard.modules.shared.validators import (
    coerce_finite,
    validate_actor_id,
    validate_limit,
)

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from questboard.core.config.manager import ConfigManager
    from questboard.core.event.bus import EventBus
    from questboard.modules.progression.service import ProgressionService


# ============================================================================
# Repositories
# ============================================================================


class BossRepository(BaseRepository[BossState]):
    async def get_active(self, session: AsyncSession) -> Optional[BossState]:
        return await self.find_one_where(session, BossState.is_active.is_(True))


class DamageEventRepository(BaseRepository[DamageEvent]):
    async def last_hit_at(self, session: AsyncSession, actor_id: str) -> Optional[datetime]:
        stmt = select(func.max(DamageEvent.dealt_at)).where(DamageEvent.actor_id == actor_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def contributions(self, session: AsyncSession, boss_id: int) -> List[Contribution]:
        stmt = (
            select(
                DamageEvent.actor_id,
                Actor.name,
                func.sum(DamageEvent.damage_amount),
                func.sum(DamageEvent.xp_earned),
                func.min(DamageEvent.dealt_at),
            )
            .join(Actor, Actor.id == DamageEvent.actor_id)
            .where(DamageEvent.boss_id == boss_id)
            .group_by(DamageEvent.actor_id, Actor.name)
        )
        result = await session.execute(stmt)
        return [
            Contribution(
                actor_id=actor_id,
                name=name,
                total_damage=float(total_damage or 0),
                total_xp=float(total_xp or 0),
                first_dealt_at=first_dealt_at,
            )
            for actor_id, name, total_damage, total_xp, first_dealt_at in result.all()
        ]


def boss_to_dict(boss: BossState) -> Dict[str, Any]:
    return {
        "id": boss.id,
        "name": boss.name,
        "description": boss.description,
        "level": boss.level,
        "max_hp": boss.max_hp,
        "current_hp": boss.current_hp,
        "xp_per_damage": boss.xp_per_damage,
        "gold_reward": boss.gold_reward,
        "is_active": boss.is_active,
        "spawn_time": boss.spawn_time,
        "defeated_at": boss.defeated_at,
    }


# ============================================================================
# BossEncounterService
# ============================================================================


class BossEncounterService(BaseService):
    """
    Public Methods
    --------------
    - get_or_create_active() -> Current boss, spawning one if none is active
    - apply_damage() -> One hit from an actor
    - leaderboard() -> Damage ranking for a boss
    - spawn_boss() -> Admin: retire the active boss and spawn a fresh one
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
        self._engine = BossEncounter(config_manager)
        self._boss_repo = BossRepository(
            model_class=BossState,
            logger=get_logger(f"{__name__}.BossRepository"),
        )
        self._damage_repo = DamageEventRepository(
            model_class=DamageEvent,
            logger=get_logger(f"{__name__}.DamageEventRepository"),
        )

    @property
    def engine(self) -> BossEncounter:
        return self._engine

    # ========================================================================
    # Spawning
    # ========================================================================

    async def _get_or_create_in_session(
        self,
        session: AsyncSession,
        now: datetime,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> Tuple[BossState, bool]:
        boss = await self._boss_repo.get_active(session)
        if boss is not None:
            return boss, False

        template = self._engine.default_template()
        values = {
            "name": template.name,
            "description": template.description,
            "level": template.level,
            "max_hp": template.max_hp,
            "xp_per_damage": template.xp_per_damage,
            "gold_reward": template.gold_reward,
        }
        values.update({k: v for k, v in (overrides or {}).items() if v is not None})

        try:
            async with session.begin_nested():
                boss = BossState(
                    **values,
                    current_hp=float(values["max_hp"]),
                    is_active=True,
                    spawn_time=now,
                    defeated_at=None,
                )
                self._boss_repo.add(session, boss)
        except IntegrityError:
            self.log.info("Concurrent boss spawn; using existing active boss")
            boss = await self._boss_repo.get_active(session)
            if boss is None:
                raise
            return boss, False

        return boss, True

    async def _announce_spawn(self, boss: Dict[str, Any]) -> None:
        self.log_operation("spawn_boss", boss_id=boss["id"], boss_name=boss["name"])
        await self.emit_event(
            "boss.spawned",
            {"boss_id": boss["id"], "name": boss["name"], "max_hp": boss["max_hp"]},
        )

    async def get_or_create_active(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Return the active boss, spawning one at full HP if none exists."""
        current = self.resolve_now(now)

        async with DatabaseService.get_transaction() as session:
            boss, created = await self._get_or_create_in_session(session, current)
            result = boss_to_dict(boss)

        if created:
            await self._announce_spawn(result)
        return result

    async def spawn_boss(
        self,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        max_hp: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Retire the active boss (if any) and spawn a fresh one.

        The retired boss keeps its HP and gets no ``defeated_at``.
        """
        current = self.resolve_now(now)
        if max_hp is not None:
            max_hp = coerce_finite(max_hp)
            if max_hp is None or max_hp <= 0:
                raise ValidationError("max_hp", "must be a positive finite number")
        overrides = {"name": name, "description": description, "max_hp": max_hp}

        async with DatabaseService.get_transaction() as session:
            active = await self._boss_repo.find_one_where(
                session, BossState.is_active.is_(True), for_update=True
            )
            if active is not None:
                active.is_active = False
                await session.flush()
            boss, _ = await self._get_or_create_in_session(session, current, overrides)
            result = boss_to_dict(boss)

        await self._announce_spawn(result)
        return result

    # ========================================================================
    # Damage
    # ========================================================================

    async def apply_damage(
        self,
        actor_id: str,
        raw_upgrades: Optional[Mapping[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Apply one hit from ``actor_id`` to the active boss.

        ``raw_upgrades`` is the untrusted client payload; see
        `BossEncounter.sanitize_upgrades`.

        Raises:
            NotFoundError: If the actor does not exist
            InvalidOperationError: If the actor is deactivated
            RateLimitError: If the actor hit less than 500 ms ago
            BossDefeatedError: If another hit already killed this boss
        """
        actor_id = validate_actor_id(actor_id)
        current = self.resolve_now(now)
        upgrades = self._engine.sanitize_upgrades(raw_upgrades)

        spawned: Optional[Dict[str, Any]] = None
        async with DatabaseService.get_transaction() as session:
            actor = await self._progression.lock_active_actor(session, actor_id)
            self._engine.check_rate_limit(
                await self._damage_repo.last_hit_at(session, actor_id), current
            )

            boss, created = await self._get_or_create_in_session(session, current)
            if created:
                spawned = boss_to_dict(boss)
            boss_id = boss.id

            outcome = self._engine.apply_damage(
                BossSnapshot(
                    id=boss_id,
                    current_hp=boss.current_hp,
                    max_hp=boss.max_hp,
                    xp_per_damage=boss.xp_per_damage,
                    gold_reward=boss.gold_reward,
                ),
                actor.level,
                upgrades,
            )

            remaining = BossState.current_hp - outcome.actual_damage
            kills = remaining <= 0
            stmt = (
                update(BossState)
                .where(BossState.id == boss_id, BossState.current_hp > 0)
                .values(
                    current_hp=case((kills, 0.0), else_=remaining),
                    is_active=case((kills, false()), else_=BossState.is_active),
                    defeated_at=case(
                        (kills, literal(current, DateTime(timezone=True))),
                        else_=BossState.defeated_at,
                    ),
                )
                .returning(BossState.current_hp, BossState.max_hp, BossState.gold_reward)
                .execution_options(synchronize_session=False)
            )
            row = (await session.execute(stmt)).first()
            if row is None:
                raise BossDefeatedError(boss_id)

            new_hp, max_hp, gold_reward = float(row[0]), float(row[1]), int(row[2])
            defeated = new_hp <= 0

            self._damage_repo.add(
                session,
                DamageEvent(
                    boss_id=boss_id,
                    actor_id=actor_id,
                    damage_amount=outcome.actual_damage,
                    xp_earned=outcome.xp_earned,
                    dealt_at=current,
                ),
            )

            xp_granted = math.floor(outcome.xp_earned)
            grant = await self._progression.grant_xp(
                actor_id, xp_granted, "boss_damage", session=session, now=current
            )

            gold_awarded = 0
            if defeated:
                gold_awarded = gold_reward
                actor.gold += gold_awarded
                actor.updated_at = current

            await session.flush()

        self.log_operation(
            "apply_damage",
            actor_id=actor_id,
            boss_id=boss_id,
            damage=outcome.actual_damage,
            new_hp=new_hp,
            defeated=defeated,
        )

        if spawned is not None:
            await self._announce_spawn(spawned)
        await self.emit_event(
            "boss.damaged",
            {
                "boss_id": boss_id,
                "actor_id": actor_id,
                "damage": outcome.actual_damage,
                "xp_earned": xp_granted,
                "xp_exact": outcome.xp_earned,
                "new_hp": new_hp,
            },
        )
        if defeated:
            self.log.info(
                "Boss defeated",
                extra={"boss_id": boss_id, "actor_id": actor_id, "gold_reward": gold_awarded},
            )
            await self.emit_event(
                "boss.defeated",
                {"boss_id": boss_id, "actor_id": actor_id, "gold_reward": gold_awarded},
            )
        await self._progression.publish_level_up(actor_id, grant, "boss_damage")

        return {
            "boss_id": boss_id,
            "damage": outcome.actual_damage,
            "xp_earned": xp_granted,
            "xp_exact": outcome.xp_earned,
            "new_hp": new_hp,
            "max_hp": max_hp,
            "defeated": defeated,
            "gold_awarded": gold_awarded,
            "leveled_up": grant.leveled_up,
            "new_level": grant.new_level,
        }

    # ========================================================================
    # Leaderboard
    # ========================================================================

    async def leaderboard(
        self,
        boss_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Damage ranking for ``boss_id`` (default: the active boss).

        Returns an empty list when no boss is active and none is named.

        Raises:
            NotFoundError: If ``boss_id`` names no boss
        """
        if limit is not None:
            limit = validate_limit(limit)

        async with DatabaseService.get_session() as session:
            if boss_id is None:
                boss = await self._boss_repo.get_active(session)
                if boss is None:
                    return []
            else:
                boss = await self._boss_repo.get(session, boss_id)
                if boss is None:
                    raise NotFoundError("Boss", boss_id)

            rows = await self._damage_repo.contributions(session, boss.id)

        ranked = self._engine.rank_contributions(rows)
        if limit is not None:
            ranked = ranked[:limit]

        return [
            {
                "rank": entry.rank,
                "actor_id": entry.actor_id,
                "name": entry.name,
                "total_damage": entry.total_damage,
                "total_xp": entry.total_xp,
            }
            for entry in ranked
        ]
