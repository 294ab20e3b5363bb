"""Create alert rules, history, deliveries and watchlist tables.

Revision ID: 20261017_01
Revises:
Create Date: 2026-10-17
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision: str = "20261017_01"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

UUID = postgresql.UUID(as_uuid=True)
JSON_TYPE = postgresql.JSONB().with_variant(sa.JSON(), "sqlite")


def _timestamps() -> list[sa.Column]:
    return [sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)]


def upgrade() -> None:
    op.create_table(
        "company_profiles",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("slug", sa.String(length=200), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_company_profiles_slug", "company_profiles", ["slug"], unique=True)

    op.create_table(
        "alert_rules",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("user_id", UUID, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("trigger_type", sa.String(length=64), nullable=False),
        sa.Column("trigger_config", JSON_TYPE, nullable=False),
        sa.Column("channels", JSON_TYPE, nullable=False),
        sa.Column("priority", sa.String(length=16), nullable=False, server_default="normal"),
        sa.Column("last_triggered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cooldown_minutes", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("trigger_count", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_alert_rules_user_id", "alert_rules", ["user_id"])
    op.create_index("ix_alert_rules_trigger_active", "alert_rules", ["trigger_type", "is_active"])

    op.create_table(
        "alert_history",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("alert_rule_id", UUID, nullable=False),
        sa.Column("user_id", UUID, nullable=False),
        sa.Column("trigger_type", sa.String(length=64), nullable=False),
        sa.Column("trigger_data", JSON_TYPE, nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["alert_rule_id"], ["alert_rules.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_alert_history_alert_rule_id", "alert_history", ["alert_rule_id"])
    op.create_index("ix_alert_history_user_id", "alert_history", ["user_id"])

    op.create_table(
        "alert_deliveries",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("alert_rule_id", UUID, nullable=True),
        sa.Column("alert_history_id", UUID, nullable=True),
        sa.Column("user_id", UUID, nullable=False),
        sa.Column("channel", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("data", JSON_TYPE, nullable=True),
        sa.Column("source", sa.String(length=32), nullable=True),
        sa.Column("fail_reason", sa.Text(), nullable=True),
        *_timestamps(),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["alert_rule_id"], ["alert_rules.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["alert_history_id"], ["alert_history.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_alert_deliveries_alert_rule_id", "alert_deliveries", ["alert_rule_id"])
    op.create_index("ix_alert_deliveries_alert_history_id", "alert_deliveries", ["alert_history_id"])
    op.create_index("ix_alert_deliveries_user_id", "alert_deliveries", ["user_id"])
    op.create_index("ix_alert_deliveries_status_channel", "alert_deliveries", ["status", "channel"])

    op.create_table(
        "company_watchlist_items",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("user_id", UUID, nullable=False),
        sa.Column("company_profile_id", UUID, nullable=False),
        sa.Column("notify_news", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("notify_contracts", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("notify_listings", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(["company_profile_id"], ["company_profiles.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "company_profile_id", name="uq_company_watchlist_items_user_company"),
    )
    op.create_index("ix_company_watchlist_items_user_id", "company_watchlist_items", ["user_id"])
    op.create_index(
        "ix_company_watchlist_items_company_profile_id", "company_watchlist_items", ["company_profile_id"]
    )

    op.create_table(
        "watchlist_alert_logs",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("user_id", UUID, nullable=False),
        sa.Column("company_profile_id", UUID, nullable=False),
        sa.Column("alert_type", sa.String(length=16), nullable=False),
        sa.Column("reference_id", sa.String(length=64), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["company_profile_id"], ["company_profiles.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "user_id",
            "company_profile_id",
            "alert_type",
            "reference_id",
            name="uq_watchlist_alert_logs_user_company_type_ref",
        ),
    )

    op.create_table(
        "news_articles",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("url", sa.String(length=1000), nullable=False),
        sa.Column("source", sa.String(length=200), nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_news_articles_published_at", "news_articles", ["published_at"])

    op.create_table(
        "news_article_company_tags",
        sa.Column("news_article_id", UUID, primary_key=True),
        sa.Column("company_profile_id", UUID, primary_key=True),
        sa.ForeignKeyConstraint(["news_article_id"], ["news_articles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["company_profile_id"], ["company_profiles.id"], ondelete="CASCADE"),
    )

    op.create_table(
        "government_contract_awards",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("title", sa.String(length=500), nullable=True),
        sa.Column("agency", sa.String(length=200), nullable=False),
        sa.Column("award_amount", sa.Float(), nullable=True),
        sa.Column("award_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("company_profile_id", UUID, nullable=True),
        sa.ForeignKeyConstraint(["company_profile_id"], ["company_profiles.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_government_contract_awards_award_date", "government_contract_awards", ["award_date"])
    op.create_index(
        "ix_government_contract_awards_company_profile_id", "government_contract_awards", ["company_profile_id"]
    )

    op.create_table(
        "service_listings",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("title", sa.String(length=500), nullable=True),
        sa.Column("category", sa.String(length=120), nullable=False),
        sa.Column("company_profile_id", UUID, nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["company_profile_id"], ["company_profiles.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_service_listings_created_at", "service_listings", ["created_at"])
    op.create_index("ix_service_listings_company_profile_id", "service_listings", ["company_profile_id"])


def downgrade() -> None:
    op.drop_table("service_listings")
    op.drop_table("government_contract_awards")
    op.drop_table("news_article_company_tags")
    op.drop_table("news_articles")
    op.drop_table("watchlist_alert_logs")
    op.drop_table("company_watchlist_items")
    op.drop_table("alert_deliveries")
    op.drop_table("alert_history")
    op.drop_table("alert_rules")
    op.drop_table("company_profiles")
