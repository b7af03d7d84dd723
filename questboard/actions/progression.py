"""Actor registration, profile, XP and admin reset actions."""

from __future__ import annotations

from typing import Any, Optional

from questboard.actions.base import ActionResult, BaseActions, Identity


class ProgressionActions(BaseActions):
    async def register(self, identity: Identity, name: str = "") -> ActionResult:
        return await self._execute(
            identity,
            "progression.register",
            lambda: self.services.progression.ensure_actor(
                identity.actor_id, name, is_admin=identity.is_admin
            ),
        )

    async def profile(self, identity: Identity, actor_id: Optional[str] = None) -> ActionResult:
        return await self._execute(
            identity,
            "progression.profile",
            lambda: self.services.progression.get_actor(actor_id or identity.actor_id),
        )

    async def add_raid_xp(
        self, identity: Identity, raid_xp: Any, raid_level: Any
    ) -> ActionResult:
        return await self._execute(
            identity,
            "progression.raid_xp",
            lambda: self.services.progression.add_raid_xp(
                identity.actor_id, raid_xp, raid_level
            ),
        )

    async def grant_xp(
        self, identity: Identity, actor_id: str, amount: Any, reason: str = "admin"
    ) -> ActionResult:
        async def call() -> dict:
            grant = await self.services.progression.grant_xp(actor_id, amount, reason)
            return {
                "xp_earned": grant.amount,
                "old_level": grant.old_level,
                "new_level": grant.new_level,
                "leveled_up": grant.leveled_up,
                "total_xp": grant.new_xp,
            }

        return await self._execute(identity, "progression.grant_xp", call, admin=True)

    async def deactivate(self, identity: Identity, actor_id: str) -> ActionResult:
        return await self._execute(
            identity,
            "progression.deactivate",
            lambda: self.services.progression.deactivate_actor(actor_id),
            admin=True,
        )

    async def list_actors(
        self, identity: Identity, include_inactive: bool = False
    ) -> ActionResult:
        return await self._execute(
            identity,
            "progression.list_actors",
            lambda: self.services.progression.list_actors(include_inactive),
            admin=True,
        )
