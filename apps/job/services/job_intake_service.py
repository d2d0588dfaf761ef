import logging
import secrets
import string
from typing import Any, Dict, Optional

from django.utils import timezone

from apps.job.enums import JobStatus
from apps.job.exceptions import JobError, JobNumberTakenError, JobValidationError
from apps.job.services.interfaces import JobStore, NotificationDispatcher
from apps.job.services.notification_service import notify_after_commit
from apps.job.services.submission_guard import SubmissionGuard
from apps.job.snapshot import JobSnapshot

logger = logging.getLogger(__name__)

JOB_NUMBER_ALPHABET = string.ascii_uppercase + string.digits
JOB_NUMBER_LENGTH = 6
MAX_JOB_NUMBER_ATTEMPTS = 5

DRAFT_FIELDS = {
    "priority",
    "service_type",
    "scheduled_date",
    "estimated_duration",
    "vehicle_id",
    "customer_id",
    "assigned_mechanic_id",
    "vehicle_license_plate",
    "vehicle_brand",
    "vehicle_model",
    "customer_name",
    "customer_phone",
    "problem_description",
    "mileage",
}


def generate_job_number() -> str:
    return "".join(
        secrets.choice(JOB_NUMBER_ALPHABET) for _ in range(JOB_NUMBER_LENGTH)
    )


class JobIntakeService:
    """
    Creates new jobs from the intake wizard.

    A submission key identifies one press of the create button; a second
    request with the same key while the first is still running is rejected
    rather than creating a second job.
    """

    def __init__(
        self,
        job_store: JobStore,
        notifications: NotificationDispatcher,
        guard: Optional[SubmissionGuard] = None,
    ):
        self.job_store = job_store
        self.notifications = notifications
        self._guard = guard or SubmissionGuard()

    def create_job(
        self, draft: Dict[str, Any], actor_id: str, submission_key: str
    ) -> JobSnapshot:
        """
        Args:
            draft: Vehicle, customer and scheduling details for the job.
            actor_id: The staff member creating the job.
            submission_key: Unique per submit action.

        Returns:
            The stored job, status not_started.

        Raises:
            DuplicateSubmissionError: If submission_key is already in flight.
            JobValidationError: If the draft is incomplete or carries fields
                that intake does not set.
        """
        unknown = set(draft) - DRAFT_FIELDS
        if unknown:
            raise JobValidationError(
                f"Fields not accepted on a new job: {', '.join(sorted(unknown))}"
            )
        if not draft.get("vehicle_id"):
            raise JobValidationError("A job needs a vehicle")

        with self._guard.hold(f"create-job:{submission_key}"):
            fields = {**draft, "status": JobStatus.NOT_STARTED}
            if draft.get("assigned_mechanic_id"):
                fields["assigned_at"] = timezone.now()

            snapshot = self._create_with_unique_number(fields, actor_id)

        if snapshot.assigned_mechanic_id:
            notify_after_commit(
                snapshot.id,
                self.notifications.notify_job_assigned,
                snapshot,
                snapshot.assigned_mechanic_id,
            )
        return snapshot

    def _create_with_unique_number(self, fields, actor_id) -> JobSnapshot:
        for attempt in range(1, MAX_JOB_NUMBER_ATTEMPTS + 1):
            job_number = generate_job_number()
            try:
                return self.job_store.create(
                    {**fields, "job_number": job_number}, actor_id
                )
            except JobNumberTakenError:
                logger.warning(
                    "Job number %s taken, retrying (attempt %d)", job_number, attempt
                )
        raise JobError("Could not allocate a unique job number")
