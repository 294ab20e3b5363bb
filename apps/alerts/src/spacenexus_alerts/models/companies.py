"""Company profiles, watchlists, and the watchlist dedup log."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID

from spacenexus_alerts.db.base import Base


class WatchlistAlertType(str, Enum):
    NEWS = "news"
    CONTRACT = "contract"
    LISTING = "listing"


class CompanyProfile(Base):
    __tablename__ = "company_profiles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(length=200), nullable=False)
    slug = Column(String(length=200), nullable=False, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class CompanyWatchlistItem(Base):
    """One user's subscription to alerts about one company."""

    __tablename__ = "company_watchlist_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    company_profile_id = Column(
        UUID(as_uuid=True), ForeignKey("company_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    notify_news = Column(Boolean, nullable=False, default=True, server_default="true")
    notify_contracts = Column(Boolean, nullable=False, default=True, server_default="true")
    notify_listings = Column(Boolean, nullable=False, default=True, server_default="true")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "company_profile_id", name="uq_company_watchlist_items_user_company"),
    )


class WatchlistAlertLog(Base):
    """Ledger guaranteeing at most one watchlist alert per (user, entity)."""

    __tablename__ = "watchlist_alert_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False)
    company_profile_id = Column(
        UUID(as_uuid=True), ForeignKey("company_profiles.id", ondelete="CASCADE"), nullable=False
    )
    alert_type = Column(String(length=16), nullable=False)
    reference_id = Column(String(length=64), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "company_profile_id",
            "alert_type",
            "reference_id",
            name="uq_watchlist_alert_logs_user_company_type_ref",
        ),
    )


__all__ = ["CompanyProfile", "CompanyWatchlistItem", "WatchlistAlertLog", "WatchlistAlertType"]
