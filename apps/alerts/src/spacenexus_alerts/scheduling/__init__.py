"""Recurring alert job scheduling."""

from .config import JobDefinition, ScheduleConfig, load_job_definitions
from .runner import AlertJobScheduler

__all__ = ["AlertJobScheduler", "JobDefinition", "ScheduleConfig", "load_job_definitions"]
