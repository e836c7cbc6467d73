from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pairplay.db.models.base import Base, JSONVariant


class Question(Base):
    __tablename__ = "questions"
    __table_args__ = (
        Index("idx_questions_category_active", "category", "is_active"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    options: Mapped[list[str]] = mapped_column(JSONVariant, nullable=False)
    for_couples: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    for_friends: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    for_family: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
