"""Stored job records and their batch recategorization."""

from job_tracker.jobs.recategorize import (
    RecategorizationResult,
    RecategorizationStats,
    get_recategorization_stats,
    run_recategorization,
)
from job_tracker.jobs.store import JobRecord, JobStore, SqlJobStore

__all__ = [
    "JobRecord",
    "JobStore",
    "SqlJobStore",
    "RecategorizationResult",
    "RecategorizationStats",
    "get_recategorization_stats",
    "run_recategorization",
]
