"""
DuelRecord and DuelStats: PvP history and per-actor aggregates.
Schema only.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column

from questboard.core.database.base import Base, IdMixin, utc_now


class DuelRecord(Base, IdMixin):
    """
    Append-only record of one resolved duel.

    Stores both levels and every derived number so history stays readable
    after the participants level up.
    """

    __tablename__ = "duel_records"
    __table_args__ = (
        Index("ix_duel_records_defender_id_desc", "defender_id", "id"),
        Index("ix_duel_records_attacker_created", "attacker_id", "created_at"),
    )

    attacker_id: Mapped[str] = mapped_column(
        ForeignKey("actors.id", ondelete="CASCADE"), nullable=False
    )
    defender_id: Mapped[str] = mapped_column(
        ForeignKey("actors.id", ondelete="CASCADE"), nullable=False
    )
    attacker_level: Mapped[int] = mapped_column(Integer, nullable=False)
    defender_level: Mapped[int] = mapped_column(Integer, nullable=False)

    attacker_damage: Mapped[int] = mapped_column(Integer, nullable=False)
    defender_hp: Mapped[int] = mapped_column(Integer, nullable=False)
    multiplier: Mapped[float] = mapped_column(Float, nullable=False)
    damage_dealt: Mapped[int] = mapped_column(Integer, nullable=False)
    attacker_won: Mapped[bool] = mapped_column(Boolean, nullable=False)

    xp_earned: Mapped[int] = mapped_column(Integer, nullable=False)
    gold_earned: Mapped[int] = mapped_column(Integer, nullable=False)
    gold_lost: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )


class DuelStats(Base, IdMixin):
    """
    One row per actor, created lazily on the first duel and updated
    additively for both participants afterwards.
    """

    __tablename__ = "duel_stats"

    actor_id: Mapped[str] = mapped_column(
        ForeignKey("actors.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    wins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    losses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_damage_dealt: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_damage_taken: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_attack_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
