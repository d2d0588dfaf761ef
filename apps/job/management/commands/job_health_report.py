from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from apps.job.enums import JobHealth, JobStatus
from apps.job.exceptions import WorkOrderValidationError
from apps.job.models import Job
from apps.job.services.job_health_service import (
    calculate_job_health,
    get_health_label,
    sort_jobs_by_health,
)
from apps.job.snapshot import JobSnapshot
from apps.job.work_order import infer_stage


class Command(BaseCommand):
    help = "List open jobs, most urgent first, with their health and work order stage"

    def add_arguments(self, parser):
        parser.add_argument(
            "--health",
            choices=JobHealth.values,
            help="Only show jobs with this health",
        )
        parser.add_argument(
            "--limit", type=int, default=50, help="Maximum number of jobs to show"
        )
        parser.add_argument(
            "--include-completed",
            action="store_true",
            help="Include completed jobs",
        )

    def handle(self, *args, **options):
        if options["limit"] < 1:
            raise CommandError("--limit must be at least 1")

        now = timezone.now()
        jobs = Job.objects.all()
        if not options["include_completed"]:
            jobs = jobs.exclude(status=JobStatus.COMPLETED)

        snapshots = []
        for job in jobs:
            try:
                snapshots.append(JobSnapshot.from_job(job))
            except WorkOrderValidationError as exc:
                self.stderr.write(
                    self.style.WARNING(f"Skipping job {job.job_number}: {exc}")
                )

        rows = sort_jobs_by_health(snapshots, now)
        if options["health"]:
            rows = [
                s for s in rows if calculate_job_health(s, now).health == options["health"]
            ]
        rows = rows[: options["limit"]]

        if not rows:
            self.stdout.write("No jobs to report.")
            return

        for snapshot in rows:
            indicator = calculate_job_health(snapshot, now)
            stage = infer_stage(snapshot.work_order) if snapshot.work_order else "-"
            line = (
                f"{snapshot.job_number:<8} "
                f"{snapshot.vehicle_license_plate:<10} "
                f"{snapshot.status:<18} "
                f"{get_health_label(indicator.health):<16} "
                f"stage {stage}/6  "
                f"{indicator.reason}"
            )
            if indicator.health in (JobHealth.OVERDUE, JobHealth.CRITICAL):
                self.stdout.write(self.style.ERROR(line))
            elif indicator.health == JobHealth.WARNING:
                self.stdout.write(self.style.WARNING(line))
            else:
                self.stdout.write(line)

        self.stdout.write(self.style.SUCCESS(f"{len(rows)} job(s) listed"))
