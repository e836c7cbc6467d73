from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Integer, SmallInteger, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from pairplay.db.models.base import Base


class PairingStats(Base):
    __tablename__ = "pairing_stats"
    __table_args__ = (
        CheckConstraint(
            "sync_score >= 0 AND sync_score <= 100",
            name="ck_pairing_stats_sync_score_range",
        ),
        CheckConstraint(
            "total_matches <= total_slots_completed",
            name="ck_pairing_stats_matches_bounded",
        ),
    )

    pairing_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("pairings.id"), primary_key=True
    )
    total_slots_completed: Mapped[int] = mapped_column(Integer, nullable=False)
    total_matches: Mapped[int] = mapped_column(Integer, nullable=False)
    sync_score: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    last_completed_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
