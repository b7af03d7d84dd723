"""
Actor: a dashboard user participating in the economy.
Schema only.
"""

from __future__ import annotations

from sqlalchemy import Boolean, CheckConstraint, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from questboard.core.database.base import Base, TimestampMixin


class Actor(Base, TimestampMixin):
    """
    Economy participant.

    Schema-only:
    - id (opaque string primary key supplied by the auth layer)
    - level / xp (level is always floor(xp / 100) + 1)
    - gold
    - is_active (actors are deactivated, never deleted)
    - is_admin
    - created_at / updated_at (from TimestampMixin; updated_at also gates
      raid XP submissions)
    """

    __tablename__ = "actors"
    __table_args__ = (
        CheckConstraint("level >= 1", name="level_positive"),
        CheckConstraint("xp >= 0", name="xp_non_negative"),
        CheckConstraint("gold >= 0", name="gold_non_negative"),
        Index("ix_actors_active_level", "is_active", "level"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    gold: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Actor id={self.id!r} level={self.level} xp={self.xp} gold={self.gold}>"
