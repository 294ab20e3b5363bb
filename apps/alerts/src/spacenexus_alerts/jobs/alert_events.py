"""In-process entry point for event producers."""

from __future__ import annotations

from typing import Any, Dict, Mapping

from loguru import logger

from spacenexus_alerts.db.session import async_session
from spacenexus_alerts.services.alerts.processor import Clock, process_alerts

from ._session import SessionFactory, open_session


async def dispatch_alert_event(
    trigger_type: str,
    event_data: Mapping[str, Any],
    *,
    session_factory: SessionFactory | None = None,
    clock: Clock | None = None,
) -> Dict[str, Any]:
    """Evaluate one event against every active rule of its trigger type."""

    session = await open_session(session_factory or async_session)
    async with session as managed_session:
        triggered = await process_alerts(trigger_type, event_data, managed_session, clock=clock)

    summary = {"triggerType": trigger_type, "triggered": triggered}
    logger.bind(summary=summary).info("Alert event dispatched")
    return summary


__all__ = ["dispatch_alert_event"]
