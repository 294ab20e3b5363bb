"""Alert matching and delivery fan-out."""

from .content import AlertContent
from .matchers import TriggerDefinition, TriggerType, get_trigger, match_trigger, register_trigger
from .processor import AlertProcessor, process_alerts
from .watchlist import WatchlistAlertProcessor, WatchlistAlertStats, process_watchlist_alerts

__all__ = [
    "AlertContent",
    "AlertProcessor",
    "TriggerDefinition",
    "TriggerType",
    "WatchlistAlertProcessor",
    "WatchlistAlertStats",
    "get_trigger",
    "match_trigger",
    "process_alerts",
    "process_watchlist_alerts",
    "register_trigger",
]
