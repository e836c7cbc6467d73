from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from pairplay.db.models.base import Base, JSONVariant


class Pairing(Base):
    __tablename__ = "pairings"
    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING','ACCEPTED','DECLINED','BLOCKED','EXPIRED')",
            name="ck_pairings_status",
        ),
        CheckConstraint(
            (
                "relationship_kind IN ("
                "'ROMANTIC','FRIEND','FAMILY','SIBLING','PARENT','CHILD','COUSIN'"
                ")"
            ),
            name="ck_pairings_relationship_kind",
        ),
        CheckConstraint(
            "daily_quota >= 1 AND daily_quota <= 50",
            name="ck_pairings_daily_quota_range",
        ),
        CheckConstraint(
            "counterpart_user_id IS NULL OR counterpart_user_id <> initiator_user_id",
            name="ck_pairings_distinct_members",
        ),
        CheckConstraint(
            "status <> 'ACCEPTED' OR counterpart_user_id IS NOT NULL",
            name="ck_pairings_accepted_has_counterpart",
        ),
        UniqueConstraint("invite_code", name="uq_pairings_invite_code"),
        Index("idx_pairings_initiator_status", "initiator_user_id", "status"),
        Index("idx_pairings_counterpart_status", "counterpart_user_id", "status"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    initiator_user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    counterpart_user_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    relationship_kind: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    daily_quota: Mapped[int] = mapped_column(Integer, nullable=False)
    allowed_categories: Mapped[list[str]] = mapped_column(JSONVariant, nullable=False)
    nickname: Mapped[str | None] = mapped_column(String(64), nullable=True)
    invite_code: Mapped[str | None] = mapped_column(String(16), nullable=True)
    invite_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
