"""pairplay_core

Revision ID: 0001_pairplay_core
Revises:
Create Date: 2026-10-17 09:00:00.000000
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "0001_pairplay_core"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "pairings",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("initiator_user_id", sa.Uuid(), nullable=False),
        sa.Column("counterpart_user_id", sa.Uuid(), nullable=True),
        sa.Column("relationship_kind", sa.String(16), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("daily_quota", sa.Integer(), nullable=False, server_default=sa.text("10")),
        sa.Column("allowed_categories", postgresql.JSONB(), nullable=False),
        sa.Column("nickname", sa.String(64), nullable=True),
        sa.Column("invite_code", sa.String(16), nullable=True),
        sa.Column("invite_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('PENDING','ACCEPTED','DECLINED','BLOCKED','EXPIRED')",
            name="ck_pairings_status",
        ),
        sa.CheckConstraint(
            "relationship_kind IN ('ROMANTIC','FRIEND','FAMILY','SIBLING','PARENT','CHILD','COUSIN')",
            name="ck_pairings_relationship_kind",
        ),
        sa.CheckConstraint(
            "daily_quota >= 1 AND daily_quota <= 50",
            name="ck_pairings_daily_quota_range",
        ),
        sa.CheckConstraint(
            "counterpart_user_id IS NULL OR counterpart_user_id <> initiator_user_id",
            name="ck_pairings_distinct_members",
        ),
        sa.CheckConstraint(
            "status <> 'ACCEPTED' OR counterpart_user_id IS NOT NULL",
            name="ck_pairings_accepted_has_counterpart",
        ),
        sa.UniqueConstraint("invite_code", name="uq_pairings_invite_code"),
    )
    op.create_index("idx_pairings_initiator_status", "pairings", ["initiator_user_id", "status"])
    op.create_index("idx_pairings_counterpart_status", "pairings", ["counterpart_user_id", "status"])

    op.create_table(
        "questions",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("category", sa.String(32), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("options", postgresql.JSONB(), nullable=False),
        sa.Column("for_couples", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("for_friends", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("for_family", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("idx_questions_category_active", "questions", ["category", "is_active"])

    op.create_table(
        "game_slots",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("pairing_id", sa.Uuid(), nullable=False),
        sa.Column("question_id", sa.String(64), nullable=False),
        sa.Column("game_date", sa.Date(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(24), nullable=False),
        sa.Column("initiator_answer", sa.SmallInteger(), nullable=True),
        sa.Column("counterpart_answer", sa.SmallInteger(), nullable=True),
        sa.Column("is_match", sa.Boolean(), nullable=True),
        sa.Column("initiator_answered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("counterpart_answered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["pairing_id"], ["pairings.id"]),
        sa.ForeignKeyConstraint(["question_id"], ["questions.id"]),
        sa.UniqueConstraint(
            "pairing_id",
            "game_date",
            "position",
            name="uq_game_slots_pairing_date_position",
        ),
        sa.CheckConstraint(
            "status IN ('AWAITING_BOTH','AWAITING_INITIATOR','AWAITING_COUNTERPART','COMPLETED','EXPIRED')",
            name="ck_game_slots_status",
        ),
        sa.CheckConstraint("position >= 1", name="ck_game_slots_position_positive"),
        sa.CheckConstraint(
            "(status <> 'AWAITING_BOTH' OR "
            "(initiator_answer IS NULL AND counterpart_answer IS NULL)) AND "
            "(status <> 'AWAITING_COUNTERPART' OR "
            "(initiator_answer IS NOT NULL AND counterpart_answer IS NULL)) AND "
            "(status <> 'AWAITING_INITIATOR' OR "
            "(initiator_answer IS NULL AND counterpart_answer IS NOT NULL)) AND "
            "(status <> 'COMPLETED' OR "
            "(initiator_answer IS NOT NULL AND counterpart_answer IS NOT NULL))",
            name="ck_game_slots_answers_match_status",
        ),
        sa.CheckConstraint(
            "(status = 'COMPLETED') = (is_match IS NOT NULL)",
            name="ck_game_slots_match_iff_completed",
        ),
    )
    op.create_index("idx_game_slots_pairing_date", "game_slots", ["pairing_id", "game_date", "position"])
    op.create_index("idx_game_slots_pairing_completed", "game_slots", ["pairing_id", "completed_at"])
    op.create_index("idx_game_slots_status_expires", "game_slots", ["status", "expires_at"])

    op.create_table(
        "pairing_stats",
        sa.Column("pairing_id", sa.Uuid(), nullable=False),
        sa.Column("total_slots_completed", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_matches", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("sync_score", sa.SmallInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_completed_date", sa.Date(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "sync_score >= 0 AND sync_score <= 100",
            name="ck_pairing_stats_sync_score_range",
        ),
        sa.CheckConstraint(
            "total_matches <= total_slots_completed",
            name="ck_pairing_stats_matches_bounded",
        ),
        sa.ForeignKeyConstraint(["pairing_id"], ["pairings.id"]),
        sa.PrimaryKeyConstraint("pairing_id"),
    )


def downgrade() -> None:
    op.drop_table("pairing_stats")

    op.drop_index("idx_game_slots_status_expires", table_name="game_slots")
    op.drop_index("idx_game_slots_pairing_completed", table_name="game_slots")
    op.drop_index("idx_game_slots_pairing_date", table_name="game_slots")
    op.drop_table("game_slots")

    op.drop_index("idx_questions_category_active", table_name="questions")
    op.drop_table("questions")

    op.drop_index("idx_pairings_counterpart_status", table_name="pairings")
    op.drop_index("idx_pairings_initiator_status", table_name="pairings")
    op.drop_table("pairings")
