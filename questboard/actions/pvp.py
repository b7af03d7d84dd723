"""PvP duel actions."""

from __future__ import annotations

from typing import Optional

from questboard.actions.base import ActionResult, BaseActions, Identity


class DuelActions(BaseActions):
    async def attack(self, identity: Identity, defender_id: str) -> ActionResult:
        return await self._execute(
            identity,
            "pvp.attack",
            lambda: self.services.duel.attack(identity.actor_id, defender_id),
        )

    async def stats(self, identity: Identity, actor_id: Optional[str] = None) -> ActionResult:
        return await self._execute(
            identity,
            "pvp.stats",
            lambda: self.services.duel.get_stats(actor_id or identity.actor_id),
        )

    async def opponents(self, identity: Identity) -> ActionResult:
        return await self._execute(
            identity,
            "pvp.opponents",
            lambda: self.services.duel.list_opponents(identity.actor_id),
        )

    async def notifications(
        self, identity: Identity, since_record_id: Optional[int] = None
    ) -> ActionResult:
        return await self._execute(
            identity,
            "pvp.notifications",
            lambda: self.services.duel.notifications(identity.actor_id, since_record_id),
        )

    async def leaderboard(self, identity: Identity, limit: Optional[int] = None) -> ActionResult:
        return await self._execute(
            identity,
            "pvp.leaderboard",
            lambda: self.services.duel.leaderboard(limit),
        )
