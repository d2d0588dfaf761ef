from datetime import timedelta
from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from django.utils import timezone

from apps.job.enums import JobStatus
from apps.job.models import Job
from apps.job.serializers.work_order_serializer import work_order_to_dict
from apps.job.tests.utils import create_job
from apps.job.work_order import Finding, WorkOrderDocument


def age(job, days):
    then = timezone.now() - timedelta(days=days)
    Job.objects.filter(pk=job.pk).update(created_at=then, updated_at=then)


class JobHealthReportTests(TestCase):
    def run_report(self, *args):
        out, err = StringIO(), StringIO()
        call_command("job_health_report", *args, stdout=out, stderr=err)
        return out.getvalue(), err.getvalue()

    def test_empty(self):
        out, _ = self.run_report()
        self.assertIn("No jobs to report.", out)

    def test_most_urgent_first(self):
        create_job(job_number="FRESH1", status=JobStatus.IN_PROGRESS)
        stale = create_job(
            job_number="STALE1",
            status=JobStatus.IN_PROGRESS,
            work_order_data=work_order_to_dict(
                WorkOrderDocument(findings=(Finding(id="f1", description="Leak"),))
            ),
            work_order_stage=3,
        )
        age(stale, 12)

        out, _ = self.run_report()

        lines = out.splitlines()
        self.assertIn("STALE1", lines[0])
        self.assertIn("Critical", lines[0])
        self.assertIn("stage 3/6", lines[0])
        self.assertIn("In in progress for", lines[0])
        self.assertIn("FRESH1", lines[1])
        self.assertIn("stage -/6", lines[1])
        self.assertIn("2 job(s) listed", out)

    def test_health_filter_and_limit(self):
        for number in ("OLD001", "OLD002"):
            age(create_job(job_number=number, status=JobStatus.IN_PROGRESS), 6)
        create_job(job_number="NEW001", status=JobStatus.IN_PROGRESS)

        out, _ = self.run_report("--health", "warning", "--limit", "1")

        self.assertNotIn("NEW001", out)
        self.assertIn("1 job(s) listed", out)

    def test_completed_jobs_are_skipped_by_default(self):
        create_job(job_number="DONE01", status=JobStatus.COMPLETED)

        out, _ = self.run_report()
        self.assertNotIn("DONE01", out)

        out, _ = self.run_report("--include-completed")
        self.assertIn("DONE01", out)

    def test_unreadable_work_order_is_skipped(self):
        create_job(job_number="BROKEN", work_order_data={"parts": "nonsense"})

        out, err = self.run_report()

        self.assertIn("Skipping job BROKEN", err)
        self.assertIn("No jobs to report.", out)

    def test_limit_must_be_positive(self):
        with self.assertRaises(CommandError):
            self.run_report("--limit", "0")
