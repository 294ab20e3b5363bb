"""Per-job metrics for the alert job scheduler."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Dict


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass
class JobMetrics:
    job_id: str
    task: str
    runs: int = 0
    successes: int = 0
    run_failures: int = 0
    attempt_failures: int = 0
    retries: int = 0
    consecutive_failures: int = 0
    runtime_seconds: float = 0.0
    last_started_at: datetime | None = None
    last_success_at: datetime | None = None
    last_error_at: datetime | None = None
    last_error: str | None = None
    last_attempts: int = 0
    last_retry_delay_seconds: float | None = None
    last_result: Dict[str, object] | None = field(default=None)

    def as_dict(self) -> Dict[str, object]:
        finished = self.successes + self.run_failures
        return {
            "job_id": self.job_id,
            "task": self.task,
            "totals": {
                "runs": self.runs,
                "success": self.successes,
                "run_failures": self.run_failures,
                "attempt_failures": self.attempt_failures,
                "retries": self.retries,
                "consecutive_failures": self.consecutive_failures,
            },
            "average_runtime_seconds": self.runtime_seconds / finished if finished else None,
            "last_started_at": _isoformat(self.last_started_at),
            "last_success_at": _isoformat(self.last_success_at),
            "last_error_at": _isoformat(self.last_error_at),
            "last_error": self.last_error,
            "last_attempts": self.last_attempts,
            "last_retry_delay_seconds": self.last_retry_delay_seconds,
            "last_result": self.last_result,
        }


class SchedulerObservabilityStore:
    """Tracks dispatches, retries and outcomes of scheduled alert jobs."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._jobs: Dict[str, JobMetrics] = {}

    def _metrics(self, job_id: str, task: str) -> JobMetrics:
        metrics = self._jobs.get(job_id)
        if metrics is None:
            metrics = self._jobs[job_id] = JobMetrics(job_id=job_id, task=task)
        metrics.task = task
        return metrics

    def record_dispatch(self, job_id: str, task: str) -> None:
        with self._lock:
            metrics = self._metrics(job_id, task)
            metrics.runs += 1
            metrics.last_started_at = _utcnow()
            metrics.last_attempts = 0
            metrics.last_retry_delay_seconds = None

    def record_attempt_failure(self, job_id: str, task: str, *, attempts: int, error: str) -> None:
        with self._lock:
            metrics = self._metrics(job_id, task)
            metrics.attempt_failures += 1
            metrics.last_attempts = attempts
            metrics.last_error = error
            metrics.last_error_at = _utcnow()

    def record_retry(self, job_id: str, task: str, *, delay_seconds: float, attempts: int) -> None:
        with self._lock:
            metrics = self._metrics(job_id, task)
            metrics.retries += 1
            metrics.last_attempts = attempts
            metrics.last_retry_delay_seconds = delay_seconds

    def record_success(
        self,
        job_id: str,
        task: str,
        *,
        runtime_seconds: float,
        attempts: int,
        result: Dict[str, object] | None = None,
    ) -> None:
        with self._lock:
            metrics = self._metrics(job_id, task)
            metrics.successes += 1
            metrics.consecutive_failures = 0
            metrics.runtime_seconds += runtime_seconds
            metrics.last_attempts = attempts
            metrics.last_success_at = _utcnow()
            metrics.last_result = result
            metrics.last_error = None
            metrics.last_error_at = None

    def record_run_failure(self, job_id: str, task: str, *, runtime_seconds: float, attempts: int, error: str) -> None:
        with self._lock:
            metrics = self._metrics(job_id, task)
            metrics.run_failures += 1
            metrics.consecutive_failures += 1
            metrics.runtime_seconds += runtime_seconds
            metrics.last_attempts = attempts
            metrics.last_error = error
            metrics.last_error_at = _utcnow()

    def job(self, job_id: str) -> Dict[str, object] | None:
        with self._lock:
            metrics = self._jobs.get(job_id)
            return metrics.as_dict() if metrics else None

    def snapshot(self) -> Dict[str, object]:
        with self._lock:
            jobs = {job_id: metrics.as_dict() for job_id, metrics in self._jobs.items()}
            totals = {
                "runs": sum(metrics.runs for metrics in self._jobs.values()),
                "success": sum(metrics.successes for metrics in self._jobs.values()),
                "run_failures": sum(metrics.run_failures for metrics in self._jobs.values()),
                "retries": sum(metrics.retries for metrics in self._jobs.values()),
            }
        return {"totals": totals, "jobs": jobs}

    def reset(self) -> None:
        with self._lock:
            self._jobs.clear()


_SCHEDULER_STORE = SchedulerObservabilityStore()


def get_scheduler_store() -> SchedulerObservabilityStore:
    return _SCHEDULER_STORE


__all__ = ["JobMetrics", "SchedulerObservabilityStore", "get_scheduler_store"]
