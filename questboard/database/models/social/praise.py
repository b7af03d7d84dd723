"""
Praise: append-only log of praise XP grants.
Schema only.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column

from questboard.core.database.base import Base, IdMixin, utc_now


class Praise(Base, IdMixin):
    __tablename__ = "praises"
    __table_args__ = (Index("ix_praises_actor_praised", "actor_id", "praised_at"),)

    actor_id: Mapped[str] = mapped_column(
        ForeignKey("actors.id", ondelete="CASCADE"), nullable=False
    )
    xp_earned: Mapped[int] = mapped_column(Integer, nullable=False)
    praised_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
