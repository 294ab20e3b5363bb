"""In-process counters for the alert pipeline and its scheduler."""

from .alerts import AlertObservabilityStore, get_alert_store
from .scheduler import SchedulerObservabilityStore, get_scheduler_store

__all__ = [
    "AlertObservabilityStore",
    "SchedulerObservabilityStore",
    "get_alert_store",
    "get_scheduler_store",
]
