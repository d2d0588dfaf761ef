"""
Job health scoring

Classifies how much attention a job needs from its age, its estimated
duration and how long it has gone without an update. Advisory only: nothing
in the lifecycle reads these values to make decisions.

Thresholds are per status, in days, and come from settings.JOB_HEALTH.
A threshold of None means the status is never flagged for age.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from django.conf import settings
from django.utils import timezone

from apps.job.enums import JobHealth, JobStatus

MINUTES_PER_DAY = 1440

HEALTH_PRIORITY = {
    JobHealth.OVERDUE: 4,
    JobHealth.CRITICAL: 3,
    JobHealth.WARNING: 2,
    JobHealth.HEALTHY: 1,
}


@dataclass(frozen=True)
class JobHealthIndicator:
    health: JobHealth
    reason: str
    days_old: int
    days_overdue: int
    is_inactive: bool
    last_update: datetime


def days_since(when: datetime, now: datetime) -> int:
    """Whole days between two instants, rounded up. A few hours counts as 1."""
    elapsed = abs(now - when)
    return math.ceil(elapsed / timedelta(days=1))


def estimated_days(estimated_duration_minutes: Optional[int]) -> int:
    if not estimated_duration_minutes:
        return 0
    return math.ceil(estimated_duration_minutes / MINUTES_PER_DAY)


def _thresholds_for(status: str) -> dict:
    thresholds = settings.JOB_HEALTH["THRESHOLDS"]
    # Statuses without their own entry (ready_for_pickup) score like in_progress
    return thresholds.get(status) or thresholds[JobStatus.IN_PROGRESS]


def _reached(days: int, threshold: Optional[int]) -> bool:
    return threshold is not None and days >= threshold


def _status_text(status: str) -> str:
    return status.replace("_", " ")


def calculate_job_health(job, now: Optional[datetime] = None) -> JobHealthIndicator:
    """
    Score one job.

    Args:
        job: Anything with status, created_at, updated_at and
            estimated_duration (minutes); a Job or a JobSnapshot.
        now: The instant to score at. Defaults to the current time.

    Returns:
        JobHealthIndicator. The same job and now always give the same result.
    """
    now = now or timezone.now()

    days_old = days_since(job.created_at, now)
    last_update = job.updated_at or job.created_at
    days_since_update = days_since(last_update, now)
    is_inactive = days_since_update >= settings.JOB_HEALTH["INACTIVITY_WARNING_DAYS"]

    days_overdue = 0
    if job.estimated_duration:
        days_overdue = max(0, days_old - estimated_days(job.estimated_duration))

    thresholds = _thresholds_for(job.status)

    if days_overdue > 0:
        health = JobHealth.OVERDUE
        reason = f"{days_overdue} day{'s' if days_overdue != 1 else ''} overdue"
    elif _reached(days_old, thresholds["critical"]):
        health = JobHealth.CRITICAL
        reason = f"In {_status_text(job.status)} for {days_old} days"
    elif _reached(days_old, thresholds["warning"]):
        health = JobHealth.WARNING
        reason = f"In {_status_text(job.status)} for {days_old} days"
    elif is_inactive and job.status != JobStatus.COMPLETED:
        health = JobHealth.WARNING
        reason = f"No updates for {days_since_update} days"
    else:
        health = JobHealth.HEALTHY
        reason = "On track"

    return JobHealthIndicator(
        health=health,
        reason=reason,
        days_old=days_old,
        days_overdue=days_overdue,
        is_inactive=is_inactive,
        last_update=last_update,
    )


def get_health_label(health: str) -> str:
    try:
        return JobHealth(health).label
    except ValueError:
        return "Unknown"


def filter_jobs_by_health(
    jobs: Iterable, target: str, now: Optional[datetime] = None
) -> List:
    now = now or timezone.now()
    return [job for job in jobs if calculate_job_health(job, now).health == target]


def sort_jobs_by_health(jobs: Iterable, now: Optional[datetime] = None) -> List:
    """Most urgent first. Jobs with equal health keep their order."""
    now = now or timezone.now()
    return sorted(
        jobs,
        key=lambda job: HEALTH_PRIORITY[calculate_job_health(job, now).health],
        reverse=True,
    )
