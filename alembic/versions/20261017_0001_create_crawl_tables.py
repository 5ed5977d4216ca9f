"""create crawled_pages and scraping_reports tables

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "crawled_pages",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("status", sa.Integer(), nullable=False),
        sa.Column("fetched_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("sha256", sa.String(length=64), nullable=True),
        sa.Column("html", sa.Text(), nullable=True),
        sa.Column("text_content", sa.Text(), nullable=True),
        sa.Column("fetch_strategy", sa.String(length=32), nullable=False),
        sa.Column("meta", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("data", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_crawled_pages"),
        sa.UniqueConstraint("url", name="uq_crawled_pages_url"),
    )
    op.create_index("ix_crawled_pages_status", "crawled_pages", ["status"], unique=False)
    op.create_index("ix_crawled_pages_fetched_at", "crawled_pages", ["fetched_at"], unique=False)
    op.create_index(
        "ix_crawled_pages_data",
        "crawled_pages",
        ["data"],
        unique=False,
        postgresql_using="gin",
    )

    op.create_table(
        "scraping_reports",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("report_data", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("total_urls", sa.Integer(), nullable=False),
        sa.Column("successful_urls", sa.Integer(), nullable=False),
        sa.Column("failed_urls", sa.Integer(), nullable=False),
        sa.Column("success_rate", sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column("duration_ms", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_scraping_reports"),
    )
    op.create_index("ix_scraping_reports_created_at", "scraping_reports", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_scraping_reports_created_at", table_name="scraping_reports")
    op.drop_table("scraping_reports")
    op.drop_index("ix_crawled_pages_data", table_name="crawled_pages")
    op.drop_index("ix_crawled_pages_fetched_at", table_name="crawled_pages")
    op.drop_index("ix_crawled_pages_status", table_name="crawled_pages")
    op.drop_table("crawled_pages")
