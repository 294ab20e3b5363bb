from datetime import timedelta
from uuid import UUID, uuid4

import pytest
from sqlalchemy import event, func, select, text

from spacenexus_alerts.models import (
    AlertDelivery,
    CompanyProfile,
    CompanyWatchlistItem,
    GovernmentContractAward,
    NewsArticle,
    ServiceListing,
    WatchlistAlertLog,
    WatchlistAlertType,
)
from spacenexus_alerts.observability.alerts import get_alert_store
from spacenexus_alerts.services.alerts.processor import AlertProcessor, utcnow
from spacenexus_alerts.services.alerts.watchlist import (
    WatchlistAlertProcessor,
    WatchlistAlertStats,
    _Company,
    _Notice,
    process_watchlist_alerts,
)


async def _create_company(session_factory, name: str, slug: str) -> CompanyProfile:
    async with session_factory() as session:
        company = CompanyProfile(name=name, slug=slug)
        session.add(company)
        await session.commit()
        return company


async def _watch(session_factory, company_id: UUID, user_id: UUID | None = None, **flags) -> UUID:
    user_id = user_id or uuid4()
    async with session_factory() as session:
        session.add(CompanyWatchlistItem(user_id=user_id, company_profile_id=company_id, **flags))
        await session.commit()
    return user_id


async def _create_article(session_factory, published_at, companies, **overrides) -> UUID:
    values = {
        "title": "Orbital refueling demo succeeds",
        "summary": "The demo transferred propellant between two spacecraft.",
        "url": "https://example.com/refueling",
        "source": "SpaceNews",
        "published_at": published_at,
    }
    values.update(overrides)
    async with session_factory() as session:
        article = NewsArticle(**values)
        article.company_tags = [await session.get(CompanyProfile, company.id) for company in companies]
        session.add(article)
        await session.commit()
        return article.id


async def _create_contract(session_factory, award_date, company_id, **overrides) -> UUID:
    values = {
        "title": "Lunar cargo delivery",
        "agency": "NASA",
        "award_amount": None,
        "award_date": award_date,
        "company_profile_id": company_id,
    }
    values.update(overrides)
    async with session_factory() as session:
        contract = GovernmentContractAward(**values)
        session.add(contract)
        await session.commit()
        return contract.id


async def _create_listing(session_factory, created_at, company_id, **overrides) -> UUID:
    values = {
        "title": "Thermal vacuum testing",
        "category": "testing",
        "created_at": created_at,
        "company_profile_id": company_id,
    }
    values.update(overrides)
    async with session_factory() as session:
        listing = ServiceListing(**values)
        session.add(listing)
        await session.commit()
        return listing.id


async def _deliveries(session_factory, *criteria) -> list[AlertDelivery]:
    async with session_factory() as session:
        stmt = select(AlertDelivery)
        if criteria:
            stmt = stmt.where(*criteria)
        return list((await session.execute(stmt)).scalars().all())


async def _log_count(session_factory) -> int:
    async with session_factory() as session:
        return (await session.execute(select(func.count()).select_from(WatchlistAlertLog))).scalar_one()


@pytest.mark.asyncio
async def test_news_article_tagged_to_two_companies_alerts_each_watcher(session_factory, clock) -> None:
    astra = await _create_company(session_factory, "Astra Orbital", "astra-orbital")
    beacon = await _create_company(session_factory, "Beacon Space", "beacon-space")
    astra_watcher = await _watch(session_factory, astra.id)
    beacon_watcher = await _watch(session_factory, beacon.id)
    article_id = await _create_article(session_factory, clock() - timedelta(hours=2), [astra, beacon])

    async with session_factory() as session:
        stats = await process_watchlist_alerts(session, clock=clock)

    assert stats.as_dict() == {"newsAlerts": 2, "contractAlerts": 0, "listingAlerts": 0}

    deliveries = await _deliveries(session_factory)
    assert len(deliveries) == 4

    astra_deliveries = {d.channel: d for d in deliveries if d.user_id == astra_watcher}
    assert set(astra_deliveries) == {"in_app", "email"}
    in_app = astra_deliveries["in_app"]
    assert in_app.title == "Astra Orbital: Orbital refueling demo succeeds"
    assert in_app.message == "The demo transferred propellant between two spacecraft."
    assert in_app.source == "watchlist"
    assert in_app.status == "pending"
    assert in_app.data["type"] == "watchlist_news"
    assert in_app.data["companySlug"] == "astra-orbital"
    assert in_app.data["link"] == "/company-profiles/astra-orbital"
    assert in_app.data["articleId"] == str(article_id)
    assert "emailFrequency" not in in_app.data
    assert astra_deliveries["email"].data["emailFrequency"] == "daily_digest"
    assert astra_deliveries["email"].title == in_app.title

    assert {d.user_id for d in deliveries} == {astra_watcher, beacon_watcher}


@pytest.mark.asyncio
async def test_news_message_falls_back_without_summary(session_factory, clock) -> None:
    company = await _create_company(session_factory, "Astra Orbital", "astra-orbital")
    await _watch(session_factory, company.id)
    await _create_article(session_factory, clock() - timedelta(hours=1), [company], summary=None)

    async with session_factory() as session:
        await process_watchlist_alerts(session, clock=clock)

    deliveries = await _deliveries(session_factory)
    assert {d.message for d in deliveries} == {"New article about Astra Orbital from SpaceNews"}


@pytest.mark.asyncio
async def test_second_run_is_deduplicated(session_factory, clock) -> None:
    company = await _create_company(session_factory, "Astra Orbital", "astra-orbital")
    await _watch(session_factory, company.id)
    await _create_article(session_factory, clock() - timedelta(hours=1), [company])
    await _create_contract(session_factory, clock() - timedelta(hours=3), company.id, award_amount=5_000_000)
    await _create_listing(session_factory, clock() - timedelta(hours=4), company.id)

    async with session_factory() as session:
        first = await process_watchlist_alerts(session, clock=clock)
    async with session_factory() as session:
        second = await process_watchlist_alerts(session, clock=clock)

    assert first.as_dict() == {"newsAlerts": 1, "contractAlerts": 1, "listingAlerts": 1}
    assert second.as_dict() == {"newsAlerts": 0, "contractAlerts": 0, "listingAlerts": 0}
    assert len(await _deliveries(session_factory)) == 5
    assert await _log_count(session_factory) == 3
    assert get_alert_store().snapshot().watchlist["duplicates_by_type"] == {
        "news": 1,
        "contract": 1,
        "listing": 1,
    }


@pytest.mark.asyncio
async def test_existing_log_row_suppresses_delivery(session_factory, clock) -> None:
    company = await _create_company(session_factory, "Astra Orbital", "astra-orbital")
    user_id = await _watch(session_factory, company.id)
    article_id = await _create_article(session_factory, clock() - timedelta(hours=1), [company])

    async with session_factory() as session:
        session.add(
            WatchlistAlertLog(
                user_id=user_id,
                company_profile_id=company.id,
                alert_type="news",
                reference_id=str(article_id),
            )
        )
        await session.commit()

    async with session_factory() as session:
        stats = await process_watchlist_alerts(session, clock=clock)

    assert stats.news_alerts == 0
    assert await _deliveries(session_factory) == []


@pytest.mark.asyncio
async def test_contract_without_amount_is_undisclosed(session_factory, clock) -> None:
    company = await _create_company(session_factory, "Beacon Space", "beacon-space")
    await _watch(session_factory, company.id)
    contract_id = await _create_contract(session_factory, clock() - timedelta(hours=1), company.id, title=None)

    async with session_factory() as session:
        stats = await process_watchlist_alerts(session, clock=clock)

    assert stats.contract_alerts == 1
    deliveries = await _deliveries(session_factory)
    assert sorted(d.channel for d in deliveries) == ["email", "in_app"]
    for delivery in deliveries:
        assert "undisclosed amount" in delivery.title
        assert delivery.title == "Beacon Space: New undisclosed amount Contract"
        assert delivery.message == "New contract awarded by NASA"
        assert delivery.data["type"] == "watchlist_contract"
        assert delivery.data["contractId"] == str(contract_id)
        assert delivery.data["link"] == "/company-profiles/beacon-space?tab=contracts"


@pytest.mark.asyncio
async def test_contract_amount_formatted_in_millions(session_factory, clock) -> None:
    company = await _create_company(session_factory, "Beacon Space", "beacon-space")
    await _watch(session_factory, company.id)
    await _create_contract(session_factory, clock() - timedelta(hours=1), company.id, award_amount=12_500_000)

    async with session_factory() as session:
        await process_watchlist_alerts(session, clock=clock)

    deliveries = await _deliveries(session_factory)
    assert {d.title for d in deliveries} == {"Beacon Space: New $12.5M Contract"}
    assert {d.message for d in deliveries} == {"Lunar cargo delivery"}


@pytest.mark.asyncio
async def test_contract_without_company_is_skipped(session_factory, clock) -> None:
    await _create_contract(session_factory, clock() - timedelta(hours=1), None)

    async with session_factory() as session:
        stats = await process_watchlist_alerts(session, clock=clock)

    assert stats.contract_alerts == 0
    assert await _deliveries(session_factory) == []


@pytest.mark.asyncio
async def test_listing_creates_in_app_delivery_only(session_factory, clock) -> None:
    company = await _create_company(session_factory, "Astra Orbital", "astra-orbital")
    await _watch(session_factory, company.id)
    listing_id = await _create_listing(session_factory, clock() - timedelta(hours=1), company.id, title=None)
    await _create_listing(session_factory, clock() - timedelta(hours=1), None)

    async with session_factory() as session:
        stats = await process_watchlist_alerts(session, clock=clock)

    assert stats.listing_alerts == 1
    deliveries = await _deliveries(session_factory)
    assert len(deliveries) == 1
    delivery = deliveries[0]
    assert delivery.channel == "in_app"
    assert delivery.title == "Astra Orbital: New Marketplace Listing"
    assert delivery.message == "New testing listing"
    assert delivery.data["type"] == "watchlist_listing"
    assert delivery.data["link"] == f"/marketplace/listings/{listing_id}"


@pytest.mark.asyncio
async def test_notify_flags_gate_each_pipeline(session_factory, clock) -> None:
    company = await _create_company(session_factory, "Astra Orbital", "astra-orbital")
    await _watch(session_factory, company.id, notify_news=False, notify_listings=False)
    await _create_article(session_factory, clock() - timedelta(hours=1), [company])
    await _create_contract(session_factory, clock() - timedelta(hours=1), company.id)
    await _create_listing(session_factory, clock() - timedelta(hours=1), company.id)

    async with session_factory() as session:
        stats = await process_watchlist_alerts(session, clock=clock)

    assert stats.as_dict() == {"newsAlerts": 0, "contractAlerts": 1, "listingAlerts": 0}


@pytest.mark.asyncio
async def test_lookback_window_excludes_older_entities(session_factory, clock) -> None:
    company = await _create_company(session_factory, "Astra Orbital", "astra-orbital")
    await _watch(session_factory, company.id)
    await _create_article(session_factory, clock() - timedelta(hours=23), [company], title="Recent")
    await _create_article(session_factory, clock() - timedelta(hours=25), [company], title="Stale")

    async with session_factory() as session:
        stats = await process_watchlist_alerts(session, clock=clock)
    assert stats.news_alerts == 1
    assert {d.title for d in await _deliveries(session_factory)} == {"Astra Orbital: Recent"}

    async with session_factory() as session:
        widened = await process_watchlist_alerts(session, clock=clock, lookback_hours=48)
    assert widened.news_alerts == 1


@pytest.mark.asyncio
async def test_failed_news_lookup_ends_the_batch(session_factory, clock, monkeypatch) -> None:
    company = await _create_company(session_factory, "Astra Orbital", "astra-orbital")
    await _watch(session_factory, company.id)
    await _create_article(session_factory, clock() - timedelta(hours=1), [company])
    await _create_contract(session_factory, clock() - timedelta(hours=1), company.id)

    async def _boom(self, since):
        raise RuntimeError("news query failed")

    monkeypatch.setattr(WatchlistAlertProcessor, "_news_notices", _boom)

    async with session_factory() as session:
        stats = await process_watchlist_alerts(session, clock=clock)

    assert stats.as_dict() == {"newsAlerts": 0, "contractAlerts": 0, "listingAlerts": 0}
    assert await _deliveries(session_factory) == []
    assert await _log_count(session_factory) == 0


@pytest.mark.asyncio
async def test_failed_contract_lookup_keeps_news_counts(session_factory, clock, monkeypatch) -> None:
    company = await _create_company(session_factory, "Astra Orbital", "astra-orbital")
    await _watch(session_factory, company.id)
    await _create_article(session_factory, clock() - timedelta(hours=1), [company])
    await _create_listing(session_factory, clock() - timedelta(hours=1), company.id)

    async def _boom(self, since):
        raise RuntimeError("contract query failed")

    monkeypatch.setattr(WatchlistAlertProcessor, "_contract_notices", _boom)

    async with session_factory() as session:
        stats = await process_watchlist_alerts(session, clock=clock)

    assert stats.as_dict() == {"newsAlerts": 1, "contractAlerts": 0, "listingAlerts": 0}
    deliveries = await _deliveries(session_factory)
    assert sorted(d.channel for d in deliveries) == ["email", "in_app"]
    assert {d.data["type"] for d in deliveries} == {"watchlist_news"}


@pytest.mark.asyncio
async def test_foreign_key_failure_is_not_counted_as_duplicate(session_factory, clock) -> None:
    missing = _Company(id=uuid4(), name="Gone Aerospace", slug="gone-aerospace")
    notice = _Notice(
        alert_type=WatchlistAlertType.LISTING,
        company=missing,
        reference_id=str(uuid4()),
        title="Gone Aerospace: New Marketplace Listing",
        message="Launch integration services",
        data={"type": "watchlist_listing"},
        channels=("in_app",),
    )

    async with session_factory() as session:
        await session.execute(text("PRAGMA foreign_keys=ON"))
        processor = WatchlistAlertProcessor(session, clock=clock)
        assert await processor._notify(uuid4(), notice) is False

    snapshot = get_alert_store().snapshot().watchlist
    assert snapshot["duplicates_by_type"] == {}
    assert snapshot["failures_by_type"] == {"listing": 1}
    assert await _log_count(session_factory) == 0
    assert await _deliveries(session_factory) == []


@pytest.mark.asyncio
async def test_delivery_failure_rolls_back_log_for_that_watcher(session_factory, clock) -> None:
    company = await _create_company(session_factory, "Astra Orbital", "astra-orbital")
    unlucky = await _watch(session_factory, company.id)
    lucky = await _watch(session_factory, company.id)
    await _create_listing(session_factory, clock() - timedelta(hours=1), company.id)

    def _fail_for_unlucky(mapper, connection, target) -> None:
        if target.user_id == unlucky:
            raise RuntimeError("delivery write failed")

    event.listen(AlertDelivery, "before_insert", _fail_for_unlucky)
    try:
        async with session_factory() as session:
            stats = await process_watchlist_alerts(session, clock=clock)
    finally:
        event.remove(AlertDelivery, "before_insert", _fail_for_unlucky)

    assert stats.listing_alerts == 1
    assert [d.user_id for d in await _deliveries(session_factory)] == [lucky]
    assert get_alert_store().snapshot().watchlist["failures_by_type"] == {"listing": 1}

    async with session_factory() as session:
        retry = await process_watchlist_alerts(session, clock=clock)

    assert retry.listing_alerts == 1
    assert {d.user_id for d in await _deliveries(session_factory)} == {lucky, unlucky}


def test_stats_total_and_camel_case_keys() -> None:
    stats = WatchlistAlertStats(news_alerts=2, contract_alerts=1)

    assert stats.total == 3
    assert stats.as_dict() == {"newsAlerts": 2, "contractAlerts": 1, "listingAlerts": 0}


@pytest.mark.asyncio
async def test_processors_share_the_default_clock(session_factory) -> None:
    async with session_factory() as session:
        watchlist = WatchlistAlertProcessor(session)
        rules = AlertProcessor(session)

    assert watchlist._clock is utcnow
    assert rules._clock is utcnow
