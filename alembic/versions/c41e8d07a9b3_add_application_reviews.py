"""add application reviews

Revision ID: c41e8d07a9b3
Revises: a7c3e91f2b04
Create Date: 2026-10-17 15:30:00.000000

This migration:
1. Creates the review type and review status enum types
2. Adds 'review_recorded' to stage_event_type
3. Creates application_reviews
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "c41e8d07a9b3"
down_revision: str | Sequence[str] | None = "a7c3e91f2b04"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


REVIEW_TYPE = postgresql.ENUM(
    "initial_screening",
    "document_verification",
    "academic_review",
    "interview",
    "final_decision",
    name="application_review_type",
)
REVIEW_STATUS = postgresql.ENUM(
    "approved",
    "rejected",
    "pending_info",
    "escalated",
    name="application_review_status",
)


def upgrade() -> None:
    """Add application reviews."""
    bind = op.get_bind()
    REVIEW_TYPE.create(bind, checkfirst=True)
    REVIEW_STATUS.create(bind, checkfirst=True)

    op.execute("ALTER TYPE stage_event_type ADD VALUE IF NOT EXISTS 'review_recorded'")

    op.create_table(
        "application_reviews",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "school_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("schools.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "application_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("admission_applications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("reviewer_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column(
            "review_type",
            postgresql.ENUM(name="application_review_type", create_type=False),
            nullable=False,
        ),
        sa.Column(
            "status",
            postgresql.ENUM(name="application_review_status", create_type=False),
            nullable=False,
        ),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_application_reviews_application",
        "application_reviews",
        ["application_id", "created_at"],
    )
    op.create_index(
        "ix_application_reviews_school",
        "application_reviews",
        ["school_id", "created_at"],
    )


def downgrade() -> None:
    """Drop application reviews."""
    op.drop_index("ix_application_reviews_school", table_name="application_reviews")
    op.drop_index("ix_application_reviews_application", table_name="application_reviews")
    op.drop_table("application_reviews")

    bind = op.get_bind()
    REVIEW_STATUS.drop(bind, checkfirst=True)
    REVIEW_TYPE.drop(bind, checkfirst=True)
    # PostgreSQL can't drop a single enum value; 'review_recorded' stays on
    # stage_event_type and is unused after downgrade.
