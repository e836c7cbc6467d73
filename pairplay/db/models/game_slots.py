from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from pairplay.db.models.base import Base


class GameSlot(Base):
    __tablename__ = "game_slots"
    __table_args__ = (
        UniqueConstraint(
            "pairing_id",
            "game_date",
            "position",
            name="uq_game_slots_pairing_date_position",
        ),
        CheckConstraint(
            (
                "status IN ("
                "'AWAITING_BOTH','AWAITING_INITIATOR','AWAITING_COUNTERPART',"
                "'COMPLETED','EXPIRED'"
                ")"
            ),
            name="ck_game_slots_status",
        ),
        CheckConstraint("position >= 1", name="ck_game_slots_position_positive"),
        CheckConstraint(
            (
                "(status <> 'AWAITING_BOTH' OR "
                "(initiator_answer IS NULL AND counterpart_answer IS NULL)) AND "
                "(status <> 'AWAITING_COUNTERPART' OR "
                "(initiator_answer IS NOT NULL AND counterpart_answer IS NULL)) AND "
                "(status <> 'AWAITING_INITIATOR' OR "
                "(initiator_answer IS NULL AND counterpart_answer IS NOT NULL)) AND "
                "(status <> 'COMPLETED' OR "
                "(initiator_answer IS NOT NULL AND counterpart_answer IS NOT NULL))"
            ),
            name="ck_game_slots_answers_match_status",
        ),
        CheckConstraint(
            "(status = 'COMPLETED') = (is_match IS NOT NULL)",
            name="ck_game_slots_match_iff_completed",
        ),
        Index("idx_game_slots_pairing_date", "pairing_id", "game_date", "position"),
        Index("idx_game_slots_pairing_completed", "pairing_id", "completed_at"),
        Index("idx_game_slots_status_expires", "status", "expires_at"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    pairing_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("pairings.id"), nullable=False)
    question_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("questions.id"), nullable=False
    )
    game_date: Mapped[date] = mapped_column(Date, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(24), nullable=False)
    initiator_answer: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    counterpart_answer: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    is_match: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    initiator_answered_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    counterpart_answered_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
