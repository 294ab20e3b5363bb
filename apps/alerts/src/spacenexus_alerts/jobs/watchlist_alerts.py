"""Job entry point for the periodic watchlist alert run."""

from __future__ import annotations

from typing import Any, Dict

from loguru import logger

from spacenexus_alerts.db.session import async_session
from spacenexus_alerts.services.alerts.processor import Clock
from spacenexus_alerts.services.alerts.watchlist import process_watchlist_alerts

from ._session import SessionFactory, open_session


async def run_watchlist_alerts(
    *,
    session_factory: SessionFactory | None = None,
    clock: Clock | None = None,
    lookback_hours: int | None = None,
) -> Dict[str, Any]:
    """Scan recent news, contracts and listings and alert company watchers."""

    session = await open_session(session_factory or async_session)
    async with session as managed_session:
        stats = await process_watchlist_alerts(managed_session, clock=clock, lookback_hours=lookback_hours)

    summary = stats.as_dict()
    logger.bind(summary=summary).info("Watchlist alert run completed")
    return summary


__all__ = ["run_watchlist_alerts"]
