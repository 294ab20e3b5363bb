from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from threading import Lock
from typing import Dict, Iterable


@dataclass
class AlertSnapshot:
    rules: Dict[str, Dict[str, int]]
    watchlist: Dict[str, Dict[str, int]]

    def as_dict(self) -> Dict[str, object]:
        return {
            "rules": {key: dict(value) for key, value in self.rules.items()},
            "watchlist": {key: dict(value) for key, value in self.watchlist.items()},
        }


class AlertObservabilityStore:
    """Collect alert pipeline counters for dashboards and alerting."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._triggered: Dict[str, int] = defaultdict(int)
        self._deliveries: Dict[str, int] = defaultdict(int)
        self._cooldown_skips: Dict[str, int] = defaultdict(int)
        self._rule_failures: Dict[str, int] = defaultdict(int)
        self._watchlist_alerts: Dict[str, int] = defaultdict(int)
        self._watchlist_duplicates: Dict[str, int] = defaultdict(int)
        self._watchlist_failures: Dict[str, int] = defaultdict(int)

    def record_rule_triggered(self, trigger_type: str, channels: Iterable[str]) -> None:
        with self._lock:
            self._triggered[trigger_type] += 1
            for channel in channels:
                self._deliveries[channel or "unknown"] += 1

    def record_cooldown_skip(self, trigger_type: str) -> None:
        with self._lock:
            self._cooldown_skips[trigger_type] += 1

    def record_rule_failure(self, trigger_type: str) -> None:
        with self._lock:
            self._rule_failures[trigger_type] += 1

    def record_watchlist_alert(self, alert_type: str) -> None:
        with self._lock:
            self._watchlist_alerts[alert_type] += 1

    def record_watchlist_duplicate(self, alert_type: str) -> None:
        with self._lock:
            self._watchlist_duplicates[alert_type] += 1

    def record_watchlist_failure(self, alert_type: str) -> None:
        with self._lock:
            self._watchlist_failures[alert_type] += 1

    def snapshot(self) -> AlertSnapshot:
        with self._lock:
            rules = {
                "triggered_by_type": dict(self._triggered),
                "deliveries_by_channel": dict(self._deliveries),
                "cooldown_skips": dict(self._cooldown_skips),
                "failures": dict(self._rule_failures),
            }
            watchlist = {
                "alerts_by_type": dict(self._watchlist_alerts),
                "duplicates_by_type": dict(self._watchlist_duplicates),
                "failures_by_type": dict(self._watchlist_failures),
            }
        return AlertSnapshot(rules=rules, watchlist=watchlist)

    def reset(self) -> None:
        with self._lock:
            self._triggered.clear()
            self._deliveries.clear()
            self._cooldown_skips.clear()
            self._rule_failures.clear()
            self._watchlist_alerts.clear()
            self._watchlist_duplicates.clear()
            self._watchlist_failures.clear()


_STORE = AlertObservabilityStore()


def get_alert_store() -> AlertObservabilityStore:
    return _STORE


__all__ = ["AlertObservabilityStore", "AlertSnapshot", "get_alert_store"]
