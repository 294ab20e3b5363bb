"""Fan out watchlist alerts for recent news, contract awards and listings.

Each (user, company, alert type, entity) pair is alerted at most once. The
guarantee comes from the unique constraint on ``watchlist_alert_logs``: the log
row is inserted before any delivery, and a conflict on that insert means the
user was already notified by an earlier or concurrent run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Sequence
from uuid import UUID

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from spacenexus_alerts.core.settings import get_settings
from spacenexus_alerts.models import (
    AlertChannel,
    AlertDelivery,
    AlertDeliveryStatus,
    CompanyWatchlistItem,
    GovernmentContractAward,
    NewsArticle,
    ServiceListing,
    WatchlistAlertLog,
    WatchlistAlertType,
)
from spacenexus_alerts.observability.alerts import AlertObservabilityStore, get_alert_store

from .processor import Clock, ensure_utc, utcnow

WATCHLIST_SOURCE = "watchlist"
EMAIL_FREQUENCY = "daily_digest"

# SQLSTATE for unique_violation on Postgres.
_UNIQUE_VIOLATION = "23505"


@dataclass(slots=True)
class WatchlistAlertStats:
    news_alerts: int = 0
    contract_alerts: int = 0
    listing_alerts: int = 0

    @property
    def total(self) -> int:
        return self.news_alerts + self.contract_alerts + self.listing_alerts

    def increment(self, alert_type: WatchlistAlertType) -> None:
        if alert_type is WatchlistAlertType.NEWS:
            self.news_alerts += 1
        elif alert_type is WatchlistAlertType.CONTRACT:
            self.contract_alerts += 1
        else:
            self.listing_alerts += 1

    def as_dict(self) -> dict[str, int]:
        return {
            "newsAlerts": self.news_alerts,
            "contractAlerts": self.contract_alerts,
            "listingAlerts": self.listing_alerts,
        }


@dataclass(frozen=True, slots=True)
class _Company:
    id: UUID
    name: str
    slug: str


@dataclass(frozen=True, slots=True)
class _Notice:
    """Rendered alert for one entity, shared by every watcher of its company."""

    alert_type: WatchlistAlertType
    company: _Company
    reference_id: str
    title: str
    message: str
    data: dict[str, Any]
    channels: tuple[str, ...]
    email_extras: dict[str, Any] = field(default_factory=dict)


def _format_award_amount(amount: float | None) -> str:
    if not amount:
        return "undisclosed amount"
    return f"${amount / 1_000_000:.1f}M"


def _is_unique_violation(exc: IntegrityError) -> bool:
    """Tell a dedup conflict apart from FK or NOT NULL failures."""

    orig = exc.orig
    for candidate in (orig, getattr(orig, "__cause__", None)):
        sqlstate = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if sqlstate:
            return sqlstate == _UNIQUE_VIOLATION
    return "UNIQUE constraint failed" in str(orig)


def _company(profile: Any) -> _Company:
    return _Company(id=profile.id, name=profile.name, slug=profile.slug)


class WatchlistAlertProcessor:
    """Run the news, contract and listing pipelines once.

    A failing lookup ends the whole batch and the counters reached so far are
    returned. Writes for a single watcher are isolated and never end the batch.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        clock: Clock | None = None,
        lookback_hours: int | None = None,
        observability: AlertObservabilityStore | None = None,
    ) -> None:
        self._session = session
        self._clock = clock or utcnow
        self._lookback_hours = lookback_hours or get_settings().watchlist_alert_lookback_hours
        self._observability = observability or get_alert_store()

    async def process(self) -> WatchlistAlertStats:
        stats = WatchlistAlertStats()
        since = ensure_utc(self._clock()) - timedelta(hours=self._lookback_hours)

        try:
            await self._run_pipeline(WatchlistAlertType.NEWS, self._news_notices, since, stats)
            await self._run_pipeline(WatchlistAlertType.CONTRACT, self._contract_notices, since, stats)
            await self._run_pipeline(WatchlistAlertType.LISTING, self._listing_notices, since, stats)
        except Exception:
            await self._session.rollback()
            logger.exception("Watchlist alert processing failed", **stats.as_dict())
            return stats

        logger.info("Watchlist alert processing complete", **stats.as_dict())
        return stats

    async def _run_pipeline(
        self,
        alert_type: WatchlistAlertType,
        load_notices: Callable[[datetime], Awaitable[list[_Notice]]],
        since: datetime,
        stats: WatchlistAlertStats,
    ) -> None:
        for notice in await load_notices(since):
            for user_id in await self._watchers(notice.company.id, alert_type):
                if await self._notify(user_id, notice):
                    stats.increment(alert_type)

    async def _news_notices(self, since: datetime) -> list[_Notice]:
        stmt = (
            select(NewsArticle)
            .where(NewsArticle.published_at >= since, NewsArticle.company_tags.any())
            .options(selectinload(NewsArticle.company_tags))
            .order_by(NewsArticle.published_at, NewsArticle.id)
        )
        articles = (await self._session.execute(stmt)).scalars().all()

        notices: list[_Notice] = []
        for article in articles:
            for profile in article.company_tags:
                company = _company(profile)
                notices.append(
                    _Notice(
                        alert_type=WatchlistAlertType.NEWS,
                        company=company,
                        reference_id=str(article.id),
                        title=f"{company.name}: {article.title}",
                        message=article.summary or f"New article about {company.name} from {article.source}",
                        data={
                            "type": "watchlist_news",
                            "companySlug": company.slug,
                            "companyName": company.name,
                            "articleUrl": article.url,
                            "articleId": str(article.id),
                            "link": f"/company-profiles/{company.slug}",
                        },
                        channels=(AlertChannel.IN_APP.value, AlertChannel.EMAIL.value),
                        email_extras={"emailFrequency": EMAIL_FREQUENCY},
                    )
                )
        return notices

    async def _contract_notices(self, since: datetime) -> list[_Notice]:
        stmt = (
            select(GovernmentContractAward)
            .where(
                GovernmentContractAward.award_date >= since,
                GovernmentContractAward.company_profile_id.is_not(None),
            )
            .order_by(GovernmentContractAward.award_date, GovernmentContractAward.id)
        )
        contracts = (await self._session.execute(stmt)).unique().scalars().all()

        notices: list[_Notice] = []
        for contract in contracts:
            if contract.company_profile is None:
                continue
            company = _company(contract.company_profile)
            notices.append(
                _Notice(
                    alert_type=WatchlistAlertType.CONTRACT,
                    company=company,
                    reference_id=str(contract.id),
                    title=f"{company.name}: New {_format_award_amount(contract.award_amount)} Contract",
                    message=contract.title or f"New contract awarded by {contract.agency}",
                    data={
                        "type": "watchlist_contract",
                        "companySlug": company.slug,
                        "companyName": company.name,
                        "contractId": str(contract.id),
                        "link": f"/company-profiles/{company.slug}?tab=contracts",
                    },
                    channels=(AlertChannel.IN_APP.value, AlertChannel.EMAIL.value),
                    email_extras={"emailFrequency": EMAIL_FREQUENCY},
                )
            )
        return notices

    async def _listing_notices(self, since: datetime) -> list[_Notice]:
        stmt = (
            select(ServiceListing)
            .where(ServiceListing.created_at >= since, ServiceListing.company_profile_id.is_not(None))
            .order_by(ServiceListing.created_at, ServiceListing.id)
        )
        listings = (await self._session.execute(stmt)).unique().scalars().all()

        notices: list[_Notice] = []
        for listing in listings:
            if listing.company_profile is None:
                continue
            company = _company(listing.company_profile)
            notices.append(
                _Notice(
                    alert_type=WatchlistAlertType.LISTING,
                    company=company,
                    reference_id=str(listing.id),
                    title=f"{company.name}: New Marketplace Listing",
                    message=listing.title or f"New {listing.category} listing",
                    data={
                        "type": "watchlist_listing",
                        "companySlug": company.slug,
                        "companyName": company.name,
                        "listingId": str(listing.id),
                        "link": f"/marketplace/listings/{listing.id}",
                    },
                    # Listings only surface in-app.
                    channels=(AlertChannel.IN_APP.value,),
                )
            )
        return notices

    async def _watchers(self, company_id: UUID, alert_type: WatchlistAlertType) -> Sequence[UUID]:
        flag = {
            WatchlistAlertType.NEWS: CompanyWatchlistItem.notify_news,
            WatchlistAlertType.CONTRACT: CompanyWatchlistItem.notify_contracts,
            WatchlistAlertType.LISTING: CompanyWatchlistItem.notify_listings,
        }[alert_type]
        stmt = (
            select(CompanyWatchlistItem.user_id)
            .where(CompanyWatchlistItem.company_profile_id == company_id, flag.is_(True))
            .order_by(CompanyWatchlistItem.created_at, CompanyWatchlistItem.id)
        )
        return (await self._session.execute(stmt)).scalars().all()

    async def _notify(self, user_id: UUID, notice: _Notice) -> bool:
        """Log then deliver for one watcher; return whether deliveries were committed."""

        alert_type = notice.alert_type.value
        try:
            self._session.add(
                WatchlistAlertLog(
                    user_id=user_id,
                    company_profile_id=notice.company.id,
                    alert_type=alert_type,
                    reference_id=notice.reference_id,
                )
            )
            try:
                await self._session.flush()
            except IntegrityError as exc:
                if not _is_unique_violation(exc):
                    raise
                await self._session.rollback()
                self._observability.record_watchlist_duplicate(alert_type)
                logger.debug(
                    "Watchlist alert already sent, skipping",
                    user_id=str(user_id),
                    alert_type=alert_type,
                    reference_id=notice.reference_id,
                )
                return False

            self._session.add_all(_build_deliveries(user_id, notice))
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            self._observability.record_watchlist_failure(alert_type)
            logger.exception(
                "Failed to deliver watchlist alert",
                user_id=str(user_id),
                alert_type=alert_type,
                reference_id=notice.reference_id,
            )
            return False

        self._observability.record_watchlist_alert(alert_type)
        return True


def _build_deliveries(user_id: UUID, notice: _Notice) -> list[AlertDelivery]:
    deliveries = []
    for channel in notice.channels:
        data = dict(notice.data)
        if channel == AlertChannel.EMAIL.value:
            data.update(notice.email_extras)
        deliveries.append(
            AlertDelivery(
                user_id=user_id,
                channel=channel,
                status=AlertDeliveryStatus.PENDING.value,
                title=notice.title,
                message=notice.message,
                data=data,
                source=WATCHLIST_SOURCE,
            )
        )
    return deliveries


async def process_watchlist_alerts(
    session: AsyncSession,
    *,
    clock: Clock | None = None,
    lookback_hours: int | None = None,
) -> WatchlistAlertStats:
    """Run every watchlist pipeline once and return per-pipeline alert counts."""

    processor = WatchlistAlertProcessor(session, clock=clock, lookback_hours=lookback_hours)
    return await processor.process()


__all__ = ["WatchlistAlertProcessor", "WatchlistAlertStats", "process_watchlist_alerts"]
