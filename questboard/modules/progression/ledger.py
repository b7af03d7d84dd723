"""
Leveling Ledger
===============

Pure XP <-> level conversion. Every other economy component reads levels
through here.

Formula
-------
    level = floor(xp / XP_PER_LEVEL) + 1      (XP_PER_LEVEL = 100)

    xp    0 ->  level 1
    xp   99 ->  level 1
    xp  100 ->  level 2
    xp  250 ->  level 3

No failure modes: callers clamp untrusted amounts before granting.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from questboard.modules.shared.constants import XP_PER_LEVEL


@dataclass(frozen=True)
class XpGrant:
    """Result of applying an XP grant to an actor's running total."""

    old_xp: int
    new_xp: int
    old_level: int
    new_level: int
    leveled_up: bool

    @property
    def amount(self) -> int:
        return self.new_xp - self.old_xp

    def levels_crossed(self) -> Iterator[int]:
        """Levels newly reached by this grant, lowest first."""
        return iter(range(self.old_level + 1, self.new_level + 1))


def level_for_xp(xp: int, xp_per_level: int = XP_PER_LEVEL) -> int:
    """
    >>> level_for_xp(0), level_for_xp(99), level_for_xp(100), level_for_xp(250)
    (1, 1, 2, 3)
    """
    return max(0, int(xp)) // xp_per_level + 1


def xp_for_level(level: int, xp_per_level: int = XP_PER_LEVEL) -> int:
    """Minimum total XP at which ``level`` is reached."""
    return (max(1, int(level)) - 1) * xp_per_level


def grant_xp(current_xp: int, amount: int, xp_per_level: int = XP_PER_LEVEL) -> XpGrant:
    """
    Add ``amount`` XP to ``current_xp``.

    Negative amounts are treated as 0 so XP never decreases through a grant.
    """
    old_xp = max(0, int(current_xp))
    new_xp = old_xp + max(0, int(amount))
    old_level = level_for_xp(old_xp, xp_per_level)
    new_level = level_for_xp(new_xp, xp_per_level)
    return XpGrant(
        old_xp=old_xp,
        new_xp=new_xp,
        old_level=old_level,
        new_level=new_level,
        leveled_up=new_level > old_level,
    )
