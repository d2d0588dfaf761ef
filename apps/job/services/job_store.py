"""
Django-backed job store

Reads and writes jobs on behalf of the lifecycle services. Every write:
- locks the row (select_for_update) and checks the caller's version
- validates status changes against the transition table
- bumps the version and writes JobEvent audit rows in the same transaction

Subscribers are told about every saved job once the transaction commits,
whoever saved it.
"""

import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Dict, Optional

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models.signals import post_save

from apps.job.enums import JobEventType, JobStatus
from apps.job.exceptions import (
    JobNotFoundError,
    JobNumberTakenError,
    JobValidationError,
    JobVersionConflictError,
)
from apps.job.models import Job, JobEvent
from apps.job.serializers.work_order_serializer import work_order_to_dict
from apps.job.services.status_transition_service import validate_transition
from apps.job.snapshot import JobSnapshot, PartsNeededEntry

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset(
    {
        "status",
        "priority",
        "service_type",
        "assigned_at",
        "completed_at",
        "scheduled_date",
        "estimated_duration",
        "customer_id",
        "assigned_mechanic_id",
        "vehicle_license_plate",
        "vehicle_brand",
        "vehicle_model",
        "customer_name",
        "customer_phone",
        "problem_description",
        "mileage",
        "parts_needed",
        "work_order",
        "work_order_stage",
    }
)

CREATABLE_FIELDS = UPDATABLE_FIELDS | {"job_number", "vehicle_id"}


def _to_model_values(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Translate snapshot-level values into what the model stores."""
    values = {}
    for name, value in fields.items():
        if name == "work_order":
            values["work_order_data"] = (
                work_order_to_dict(value) if value is not None else None
            )
        elif name == "parts_needed":
            values["parts_needed"] = [
                entry.to_dict() if isinstance(entry, PartsNeededEntry) else dict(entry)
                for entry in value or []
            ]
        else:
            values[name] = value
    return values


class DjangoJobStore:
    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers = defaultdict(list)
        post_save.connect(self._on_job_saved, sender=Job)

    def close(self):
        post_save.disconnect(self._on_job_saved, sender=Job)
        with self._lock:
            self._subscribers.clear()

    def get(self, job_id: str) -> JobSnapshot:
        try:
            job = Job.objects.get(pk=job_id)
        except (Job.DoesNotExist, ValidationError, ValueError):
            raise JobNotFoundError(job_id)
        return JobSnapshot.from_job(job)

    def subscribe(
        self, job_id: str, on_change: Callable[[JobSnapshot], None]
    ) -> Callable[[], None]:
        """
        Register a callback for changes to one job.

        Returns:
            A function that removes the subscription. Calling it twice is fine.
        """
        job_id = str(job_id)
        with self._lock:
            self._subscribers[job_id].append(on_change)

        def unsubscribe():
            with self._lock:
                callbacks = self._subscribers.get(job_id, [])
                if on_change in callbacks:
                    callbacks.remove(on_change)
                if not callbacks:
                    self._subscribers.pop(job_id, None)

        return unsubscribe

    def create(self, fields: Dict[str, Any], actor_id: str) -> JobSnapshot:
        """
        Raises:
            JobNumberTakenError: If fields["job_number"] already exists.
            JobValidationError: If the job does not validate.
        """
        unknown = set(fields) - CREATABLE_FIELDS
        if unknown:
            raise JobValidationError(f"Unknown job fields: {sorted(unknown)}")

        job = Job(created_by=actor_id, **_to_model_values(fields))
        with transaction.atomic():
            self._full_clean(job)
            job.save(actor_id=actor_id)

        logger.info("Created job %s (%s)", job.job_number, job.id)
        return JobSnapshot.from_job(job)

    def update(
        self,
        job_id: str,
        fields: Dict[str, Any],
        actor_id: str,
        expected_version: Optional[int] = None,
    ) -> JobSnapshot:
        """
        Apply a partial update to one job.

        Args:
            job_id: Job to update.
            fields: Field values keyed by snapshot name. "work_order" takes a
                WorkOrderDocument, "parts_needed" a list of PartsNeededEntry.
            actor_id: Who is making the change, recorded on audit events.
            expected_version: If given, the write only goes ahead when the
                stored version still matches.

        Returns:
            The snapshot as stored after the write.

        Raises:
            JobNotFoundError: If the job does not exist.
            JobVersionConflictError: If someone else wrote the job first.
            InvalidJobTransitionError: If the status change is not allowed.
            JobValidationError: For unknown fields or invalid values.
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise JobValidationError(f"Unknown job fields: {sorted(unknown)}")

        with transaction.atomic():
            try:
                job = Job.objects.select_for_update().get(pk=job_id)
            except (Job.DoesNotExist, ValidationError, ValueError):
                raise JobNotFoundError(job_id)

            if expected_version is not None and job.version != expected_version:
                logger.warning(
                    "Version conflict on job %s: expected %s, found %s",
                    job.job_number,
                    expected_version,
                    job.version,
                )
                raise JobVersionConflictError(job_id, expected_version, job.version)

            if "status" in fields:
                validate_transition(job.status, fields["status"])

            values = _to_model_values(fields)
            previous = {name: getattr(job, name) for name in values}
            for name, value in values.items():
                setattr(job, name, value)
            job.version += 1

            self._full_clean(job)
            job.save(actor_id=actor_id)
            self._record_events(job, previous, values, actor_id)

        return JobSnapshot.from_job(job)

    @staticmethod
    def _full_clean(job: Job) -> None:
        try:
            job.full_clean()
        except ValidationError as exc:
            errors = exc.message_dict
            if "job_number" in errors and job.job_number:
                raise JobNumberTakenError(job.job_number)
            raise JobValidationError(f"Invalid job: {errors}")

    @staticmethod
    def _record_events(job: Job, previous: Dict[str, Any], values, actor_id):
        """Status changes are recorded by Job.save; this covers the rest."""
        changed = [
            name
            for name, value in values.items()
            if name != "status" and previous[name] != value
        ]

        if "assigned_mechanic_id" in changed:
            JobEvent.objects.create(
                job=job,
                event_type=JobEventType.ASSIGNED,
                description=f"Assigned to mechanic {job.assigned_mechanic_id}",
                actor_id=actor_id,
                field_changed="assigned_mechanic_id",
                old_value=previous["assigned_mechanic_id"] or "",
                new_value=job.assigned_mechanic_id or "",
            )
        if "parts_needed" in changed:
            categories = ", ".join(e["category_id"] for e in job.parts_needed)
            JobEvent.objects.create(
                job=job,
                event_type=JobEventType.PARTS_UPDATED,
                description=f"Parts needed: {categories or 'none'}",
                actor_id=actor_id,
                field_changed="parts_needed",
            )
        if "work_order_data" in changed:
            JobEvent.objects.create(
                job=job,
                event_type=JobEventType.WORK_ORDER_SAVED,
                description=f"Work order saved at stage {job.work_order_stage}",
                actor_id=actor_id,
                field_changed="work_order_data",
            )
        if (
            previous.get("status") != JobStatus.COMPLETED
            and job.status == JobStatus.COMPLETED
        ):
            JobEvent.objects.create(
                job=job,
                event_type=JobEventType.COMPLETED,
                description=f"Job {job.job_number} completed",
                actor_id=actor_id,
            )

        others = [
            name
            for name in changed
            if name
            not in (
                "assigned_mechanic_id",
                "assigned_at",
                "parts_needed",
                "work_order_data",
                "work_order_stage",
                "completed_at",
            )
        ]
        if others:
            JobEvent.objects.create(
                job=job,
                event_type=JobEventType.JOB_UPDATED,
                description=f"Updated {', '.join(others)}",
                actor_id=actor_id,
                field_changed=", ".join(others),
            )

    def _on_job_saved(self, sender, instance, **kwargs):
        job_id = str(instance.pk)
        with self._lock:
            if not self._subscribers.get(job_id):
                return

        snapshot = JobSnapshot.from_job(instance)
        transaction.on_commit(lambda: self._publish(job_id, snapshot))

    def _publish(self, job_id: str, snapshot: JobSnapshot) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(job_id, []))
        for callback in callbacks:
            callback(snapshot)
