"""Initial reviews table for stored quality reports.

Revision ID: 20261018000000
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "20261018000000"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "reviews",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("file_name", sa.String(length=1024), nullable=True),
        sa.Column("language", sa.String(length=32), nullable=False),
        sa.Column("code", sa.Text(), nullable=False),
        sa.Column("overall_score", sa.Integer(), nullable=False),
        sa.Column("readability", sa.Integer(), nullable=False),
        sa.Column("maintainability", sa.Integer(), nullable=False),
        sa.Column("security", sa.Integer(), nullable=False),
        sa.Column("performance", sa.Integer(), nullable=False),
        sa.Column("bug_risk_estimate", sa.Float(), nullable=False),
        sa.Column("total_issues", sa.Integer(), nullable=False),
        sa.Column("high_severity", sa.Integer(), nullable=False),
        sa.Column("medium_severity", sa.Integer(), nullable=False),
        sa.Column("low_severity", sa.Integer(), nullable=False),
        sa.Column("lines_of_code", sa.Integer(), nullable=False),
        sa.Column("complexity", sa.Float(), nullable=False),
        sa.Column("ai_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("ai_summary", sa.Text(), nullable=True),
        sa.Column("issues", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("metrics", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("patterns", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_reviews")),
    )
    op.create_index(op.f("ix_reviews_language"), "reviews", ["language"], unique=False)
    op.create_index(op.f("ix_reviews_overall_score"), "reviews", ["overall_score"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_reviews_overall_score"), table_name="reviews")
    op.drop_index(op.f("ix_reviews_language"), table_name="reviews")
    op.drop_table("reviews")
