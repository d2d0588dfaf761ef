import re
from unittest import mock

from django.test import TestCase

from apps.job.enums import JobEventType, JobStatus
from apps.job.exceptions import DuplicateSubmissionError, JobError, JobValidationError
from apps.job.models import Job, JobEvent
from apps.job.services.job_intake_service import JobIntakeService
from apps.job.services.job_store import DjangoJobStore
from apps.job.services.notification_service import LoggingNotificationDispatcher
from apps.job.services.submission_guard import SubmissionGuard
from apps.job.tests.utils import create_job

DRAFT = {
    "vehicle_id": "vehicle-9",
    "customer_id": "customer-3",
    "vehicle_license_plate": "AB-456-CD",
    "vehicle_brand": "DAF",
    "vehicle_model": "XF",
    "customer_name": "Northern Freight",
    "problem_description": "Air leak on trailer brakes",
    "priority": "urgent",
    "estimated_duration": 240,
}


class JobIntakeServiceTests(TestCase):
    def setUp(self):
        self.store = DjangoJobStore()
        self.addCleanup(self.store.close)
        self.notifications = mock.Mock(spec=LoggingNotificationDispatcher)
        self.guard = SubmissionGuard()
        self.service = JobIntakeService(self.store, self.notifications, self.guard)

    def test_create_job(self):
        snapshot = self.service.create_job(DRAFT, "office-1", "submit-1")

        self.assertRegex(snapshot.job_number, re.compile(r"^[A-Z0-9]{6}$"))
        self.assertEqual(snapshot.status, JobStatus.NOT_STARTED)
        self.assertEqual(snapshot.version, 1)
        self.assertEqual(snapshot.created_by, "office-1")
        self.assertIsNone(snapshot.assigned_at)
        self.assertEqual(
            JobEvent.objects.get(job_id=snapshot.id).event_type,
            JobEventType.JOB_CREATED,
        )
        self.assertFalse(self.guard.is_in_flight("create-job:submit-1"))
        self.notifications.notify_job_assigned.assert_not_called()

    def test_assigned_mechanic_is_notified(self):
        draft = {**DRAFT, "assigned_mechanic_id": "mech-2"}

        with self.captureOnCommitCallbacks(execute=True):
            snapshot = self.service.create_job(draft, "office-1", "submit-2")

        self.assertIsNotNone(snapshot.assigned_at)
        self.notifications.notify_job_assigned.assert_called_once()
        self.assertEqual(
            self.notifications.notify_job_assigned.call_args.args[1], "mech-2"
        )

    def test_rejects_fields_intake_does_not_set(self):
        with self.assertRaises(JobValidationError):
            self.service.create_job({**DRAFT, "status": "completed"}, "office-1", "k")
        self.assertFalse(Job.objects.exists())

    def test_requires_vehicle(self):
        draft = {k: v for k, v in DRAFT.items() if k != "vehicle_id"}
        with self.assertRaises(JobValidationError):
            self.service.create_job(draft, "office-1", "k")

    def test_duplicate_submission_is_rejected(self):
        self.guard.acquire("create-job:submit-3")

        with self.assertRaises(DuplicateSubmissionError):
            self.service.create_job(DRAFT, "office-1", "submit-3")
        self.assertFalse(Job.objects.exists())

    def test_same_key_can_be_used_after_the_first_attempt_finishes(self):
        self.service.create_job(DRAFT, "office-1", "submit-4")
        self.service.create_job(DRAFT, "office-1", "submit-4")
        self.assertEqual(Job.objects.count(), 2)

    def test_taken_job_number_is_retried(self):
        create_job(job_number="AAAAAA")

        with mock.patch(
            "apps.job.services.job_intake_service.generate_job_number",
            side_effect=["AAAAAA", "BBBBBB"],
        ):
            snapshot = self.service.create_job(DRAFT, "office-1", "submit-5")

        self.assertEqual(snapshot.job_number, "BBBBBB")

    def test_gives_up_after_repeated_collisions(self):
        create_job(job_number="AAAAAA")

        with mock.patch(
            "apps.job.services.job_intake_service.generate_job_number",
            return_value="AAAAAA",
        ):
            with self.assertRaises(JobError):
                self.service.create_job(DRAFT, "office-1", "submit-6")

        self.assertEqual(Job.objects.count(), 1)
        self.assertFalse(self.guard.is_in_flight("create-job:submit-6"))
