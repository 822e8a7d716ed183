"""Create cached_articles, user_preferences and user_articles tables"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op


revision = "20251020_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "cached_articles",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("source_id", sa.String(length=100), nullable=True),
        sa.Column("source_name", sa.String(length=200), nullable=True),
        sa.Column("author", sa.String(length=512), nullable=True),
        sa.Column("title", sa.String(length=1024), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("url", sa.String(length=2048), nullable=False),
        sa.Column("url_to_image", sa.String(length=2048), nullable=True),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("country", sa.String(length=2), nullable=False),
        sa.Column("language", sa.String(length=2), nullable=False),
        sa.Column("fetched_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("url", name="uq_cached_articles_url"),
    )
    op.create_index(
        "ix_cached_articles_partition_fetched",
        "cached_articles",
        ["category", "country", "language", "fetched_at"],
        unique=False,
    )
    op.create_index("ix_cached_articles_expires", "cached_articles", ["expires_at"], unique=False)

    op.create_table(
        "user_preferences",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("categories", sa.JSON(), nullable=True),
        sa.Column("country", sa.String(length=2), nullable=True),
        sa.Column("language", sa.String(length=2), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", name="uq_user_preferences_user"),
    )

    op.create_table(
        "user_articles",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("article_url", sa.String(length=2048), nullable=False),
        sa.Column("article_title", sa.String(length=1024), nullable=True),
        sa.Column("article_source", sa.String(length=200), nullable=True),
        sa.Column("article_image", sa.String(length=2048), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_favorite", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("favorited_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "article_url", name="uq_user_articles_user_url"),
    )
    op.create_index("ix_user_articles_user_read", "user_articles", ["user_id", "is_read"], unique=False)
    op.create_index("ix_user_articles_user_favorite", "user_articles", ["user_id", "is_favorite"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_user_articles_user_favorite", table_name="user_articles")
    op.drop_index("ix_user_articles_user_read", table_name="user_articles")
    op.drop_table("user_articles")
    op.drop_table("user_preferences")
    op.drop_index("ix_cached_articles_expires", table_name="cached_articles")
    op.drop_index("ix_cached_articles_partition_fetched", table_name="cached_articles")
    op.drop_table("cached_articles")
