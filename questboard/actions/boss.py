"""Shared boss actions."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from questboard.actions.base import ActionResult, BaseActions, Identity


class BossActions(BaseActions):
    async def active_boss(self, identity: Identity) -> ActionResult:
        return await self._execute(
            identity,
            "boss.active",
            lambda: self.services.boss.get_or_create_active(),
        )

    async def attack(
        self, identity: Identity, upgrades: Optional[Mapping[str, Any]] = None
    ) -> ActionResult:
        """``upgrades`` is the raw client payload; invalid values are ignored."""
        return await self._execute(
            identity,
            "boss.attack",
            lambda: self.services.boss.apply_damage(identity.actor_id, upgrades),
        )

    async def leaderboard(
        self, identity: Identity, boss_id: Optional[int] = None, limit: Optional[int] = None
    ) -> ActionResult:
        return await self._execute(
            identity,
            "boss.leaderboard",
            lambda: self.services.boss.leaderboard(boss_id, limit),
        )

    async def spawn(
        self,
        identity: Identity,
        name: Optional[str] = None,
        max_hp: Optional[float] = None,
    ) -> ActionResult:
        return await self._execute(
            identity,
            "boss.spawn",
            lambda: self.services.boss.spawn_boss(name=name, max_hp=max_hp),
            admin=True,
        )
