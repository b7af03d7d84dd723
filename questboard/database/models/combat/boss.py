"""
BossState and DamageEvent: the shared boss encounter.
Schema only.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from questboard.core.database.base import Base, IdMixin, utc_now


class BossState(Base, IdMixin):
    """
    One boss instance. A defeated boss is never revived; a new row is
    created instead.

    Schema-only:
    - name / description / level
    - max_hp / current_hp (0 <= current_hp <= max_hp)
    - xp_per_damage / gold_reward
    - is_active (at most one active row, enforced by a partial unique index)
    - spawn_time / defeated_at
    """

    __tablename__ = "boss_state"
    __table_args__ = (
        CheckConstraint("current_hp >= 0", name="hp_non_negative"),
        CheckConstraint("current_hp <= max_hp", name="hp_within_max"),
        Index(
            "uq_boss_state_single_active",
            "is_active",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    max_hp: Mapped[float] = mapped_column(Float, nullable=False)
    current_hp: Mapped[float] = mapped_column(Float, nullable=False)

    xp_per_damage: Mapped[float] = mapped_column(Float, nullable=False)
    gold_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    spawn_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    defeated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return (
            f"<BossState id={self.id} hp={self.current_hp}/{self.max_hp} "
            f"active={self.is_active}>"
        )


class DamageEvent(Base, IdMixin):
    """
    Append-only record of one hit on a boss.

    Used for leaderboard aggregation and the per-actor hit rate limit.
    """

    __tablename__ = "damage_events"
    __table_args__ = (
        Index("ix_damage_events_actor_dealt", "actor_id", "dealt_at"),
        Index("ix_damage_events_boss_actor", "boss_id", "actor_id"),
    )

    boss_id: Mapped[int] = mapped_column(
        ForeignKey("boss_state.id", ondelete="CASCADE"), nullable=False
    )
    actor_id: Mapped[str] = mapped_column(
        ForeignKey("actors.id", ondelete="CASCADE"), nullable=False
    )
    damage_amount: Mapped[float] = mapped_column(Float, nullable=False)
    xp_earned: Mapped[float] = mapped_column(Float, nullable=False)
    dealt_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
