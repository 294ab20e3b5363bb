"""Scheduled and on-demand alert jobs."""

from .alert_events import dispatch_alert_event
from .watchlist_alerts import run_watchlist_alerts

__all__ = ["dispatch_alert_event", "run_watchlist_alerts"]
