"""Daily praise actions."""

from __future__ import annotations

from questboard.actions.base import ActionResult, BaseActions, Identity


class PraiseActions(BaseActions):
    async def give(self, identity: Identity) -> ActionResult:
        return await self._execute(
            identity,
            "praise.give",
            lambda: self.services.praise.give_praise(identity.actor_id),
        )

    async def status(self, identity: Identity) -> ActionResult:
        return await self._execute(
            identity,
            "praise.status",
            lambda: self.services.praise.status(identity.actor_id),
        )

    async def top_praisers(self, identity: Identity) -> ActionResult:
        return await self._execute(
            identity,
            "praise.top",
            lambda: self.services.praise.top_praisers(),
        )
