"""Domain entities that feed watchlist alerts."""

from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, Float, ForeignKey, String, Table, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from spacenexus_alerts.db.base import Base


news_article_company_tags = Table(
    "news_article_company_tags",
    Base.metadata,
    Column("news_article_id", UUID(as_uuid=True), ForeignKey("news_articles.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "company_profile_id",
        UUID(as_uuid=True),
        ForeignKey("company_profiles.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class NewsArticle(Base):
    __tablename__ = "news_articles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    title = Column(String(length=500), nullable=False)
    summary = Column(Text, nullable=True)
    url = Column(String(length=1000), nullable=False)
    source = Column(String(length=200), nullable=False)
    published_at = Column(DateTime(timezone=True), nullable=False, index=True)

    company_tags = relationship("CompanyProfile", secondary=news_article_company_tags, lazy="selectin")


class GovernmentContractAward(Base):
    __tablename__ = "government_contract_awards"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    title = Column(String(length=500), nullable=True)
    agency = Column(String(length=200), nullable=False)
    award_amount = Column(Float, nullable=True)
    award_date = Column(DateTime(timezone=True), nullable=False, index=True)
    company_profile_id = Column(
        UUID(as_uuid=True), ForeignKey("company_profiles.id", ondelete="SET NULL"), nullable=True, index=True
    )

    company_profile = relationship("CompanyProfile", lazy="joined")


class ServiceListing(Base):
    __tablename__ = "service_listings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    title = Column(String(length=500), nullable=True)
    category = Column(String(length=120), nullable=False)
    company_profile_id = Column(
        UUID(as_uuid=True), ForeignKey("company_profiles.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    company_profile = relationship("CompanyProfile", lazy="joined")


__all__ = ["GovernmentContractAward", "NewsArticle", "ServiceListing", "news_article_company_tags"]
