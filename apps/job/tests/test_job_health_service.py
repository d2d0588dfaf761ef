from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from types import SimpleNamespace

from django.test import SimpleTestCase, override_settings

from apps.job.enums import JobHealth, JobStatus
from apps.job.services.job_health_service import (
    calculate_job_health,
    days_since,
    filter_jobs_by_health,
    get_health_label,
    sort_jobs_by_health,
)

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=dt_timezone.utc)


def job(status=JobStatus.IN_PROGRESS, age=None, idle=None, estimated_duration=None, name=""):
    age = age if age is not None else timedelta(hours=2)
    idle = idle if idle is not None else age
    return SimpleNamespace(
        name=name,
        status=status,
        created_at=NOW - age,
        updated_at=NOW - idle,
        estimated_duration=estimated_duration,
    )


class DaysSinceTests(SimpleTestCase):
    def test_partial_day_rounds_up(self):
        self.assertEqual(days_since(NOW - timedelta(hours=3), NOW), 1)

    def test_whole_days(self):
        self.assertEqual(days_since(NOW - timedelta(days=2), NOW), 2)
        self.assertEqual(days_since(NOW, NOW), 0)

    def test_future_dates_count_as_distance(self):
        self.assertEqual(days_since(NOW + timedelta(hours=30), NOW), 2)


class CalculateJobHealthTests(SimpleTestCase):
    def test_overdue_takes_precedence(self):
        indicator = calculate_job_health(
            job(age=timedelta(days=2), estimated_duration=1440), NOW
        )
        self.assertEqual(indicator.health, JobHealth.OVERDUE)
        self.assertEqual(indicator.days_overdue, 1)
        self.assertEqual(indicator.reason, "1 day overdue")

    def test_overdue_plural(self):
        indicator = calculate_job_health(
            job(age=timedelta(days=4), estimated_duration=60), NOW
        )
        self.assertEqual(indicator.reason, "3 days overdue")

    def test_estimate_minutes_round_up_to_days(self):
        # 1441 minutes is two days of work
        indicator = calculate_job_health(
            job(age=timedelta(days=2), estimated_duration=1441), NOW
        )
        self.assertEqual(indicator.days_overdue, 0)
        self.assertEqual(indicator.health, JobHealth.HEALTHY)

    def test_critical_by_age(self):
        indicator = calculate_job_health(
            job(status=JobStatus.NOT_STARTED, age=timedelta(days=8)), NOW
        )
        self.assertEqual(indicator.health, JobHealth.CRITICAL)
        self.assertEqual(indicator.reason, "In not started for 8 days")

    def test_warning_by_age(self):
        indicator = calculate_job_health(
            job(status=JobStatus.NOT_STARTED, age=timedelta(days=4)), NOW
        )
        self.assertEqual(indicator.health, JobHealth.WARNING)
        self.assertEqual(indicator.days_old, 4)

    def test_warning_by_inactivity(self):
        indicator = calculate_job_health(
            job(
                status=JobStatus.WAITING_FOR_PARTS,
                age=timedelta(days=6),
                idle=timedelta(days=5),
            ),
            NOW,
        )
        self.assertEqual(indicator.health, JobHealth.WARNING)
        self.assertEqual(indicator.reason, "No updates for 5 days")
        self.assertTrue(indicator.is_inactive)

    def test_healthy(self):
        indicator = calculate_job_health(job(age=timedelta(days=1)), NOW)
        self.assertEqual(indicator.health, JobHealth.HEALTHY)
        self.assertEqual(indicator.reason, "On track")
        self.assertFalse(indicator.is_inactive)

    def test_completed_jobs_are_not_flagged_for_age_or_inactivity(self):
        indicator = calculate_job_health(
            job(status=JobStatus.COMPLETED, age=timedelta(days=60)), NOW
        )
        self.assertEqual(indicator.health, JobHealth.HEALTHY)
        self.assertTrue(indicator.is_inactive)

    def test_unknown_status_scores_like_in_progress(self):
        indicator = calculate_job_health(
            job(status=JobStatus.READY_FOR_PICKUP, age=timedelta(days=6)), NOW
        )
        self.assertEqual(indicator.health, JobHealth.WARNING)
        self.assertEqual(indicator.reason, "In ready for pickup for 6 days")

    def test_same_instant_same_result(self):
        subject = job(age=timedelta(days=3, hours=5), idle=timedelta(hours=7))
        self.assertEqual(
            calculate_job_health(subject, NOW), calculate_job_health(subject, NOW)
        )

    @override_settings(
        JOB_HEALTH={
            "THRESHOLDS": {
                "in_progress": {"warning": 1, "critical": 2},
            },
            "INACTIVITY_WARNING_DAYS": 5,
        }
    )
    def test_thresholds_come_from_settings(self):
        indicator = calculate_job_health(job(age=timedelta(days=2)), NOW)
        self.assertEqual(indicator.health, JobHealth.CRITICAL)


class HealthListTests(SimpleTestCase):
    def setUp(self):
        self.healthy_a = job(age=timedelta(hours=5), name="healthy_a")
        self.overdue = job(age=timedelta(days=3), estimated_duration=60, name="overdue")
        self.healthy_b = job(age=timedelta(hours=9), name="healthy_b")
        self.warning = job(
            status=JobStatus.NOT_STARTED, age=timedelta(days=4), name="warning"
        )
        self.critical = job(
            status=JobStatus.NOT_STARTED, age=timedelta(days=9), name="critical"
        )

    def test_sort_is_by_priority_and_stable(self):
        jobs = [
            self.healthy_a,
            self.overdue,
            self.healthy_b,
            self.warning,
            self.critical,
        ]
        ordered = sort_jobs_by_health(jobs, NOW)
        self.assertEqual(
            [j.name for j in ordered],
            ["overdue", "critical", "warning", "healthy_a", "healthy_b"],
        )

    def test_filter(self):
        jobs = [self.healthy_a, self.overdue, self.healthy_b]
        self.assertEqual(
            filter_jobs_by_health(jobs, JobHealth.HEALTHY, NOW),
            [self.healthy_a, self.healthy_b],
        )

    def test_labels(self):
        self.assertEqual(get_health_label(JobHealth.WARNING), "Needs Attention")
        self.assertEqual(get_health_label("overdue"), "Overdue")
        self.assertEqual(get_health_label("mystery"), "Unknown")
