import logging
import uuid

from django.core.exceptions import ValidationError
from django.db import models
from simple_history.models import HistoricalRecords  # type: ignore

from apps.job.enums import JobEventType, JobPriority, JobStatus, ServiceType

# We say . rather than apps.job.models to avoid going through init
from .job_event import JobEvent

logger = logging.getLogger(__name__)


class Job(models.Model):
    """
    A unit of repair work on one vehicle.

    Vehicle and customer details are copied onto the job when it is created
    so lists and work orders can be rendered without joining other systems.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    job_number = models.CharField(max_length=12, unique=True)

    status = models.CharField(
        max_length=30, choices=JobStatus.choices, default=JobStatus.NOT_STARTED
    )
    priority = models.CharField(
        max_length=10, choices=JobPriority.choices, default=JobPriority.NORMAL
    )
    service_type = models.CharField(
        max_length=20, choices=ServiceType.choices, null=True, blank=True
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    assigned_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    scheduled_date = models.DateTimeField(null=True, blank=True)
    estimated_duration = models.PositiveIntegerField(
        null=True, blank=True, help_text="Estimated work time in minutes."
    )

    vehicle_id = models.CharField(max_length=100)
    customer_id = models.CharField(max_length=100, null=True, blank=True)
    assigned_mechanic_id = models.CharField(
        max_length=100, null=True, blank=True, db_index=True
    )
    created_by = models.CharField(max_length=100)

    vehicle_license_plate = models.CharField(max_length=20, blank=True, default="")
    vehicle_brand = models.CharField(max_length=50, blank=True, default="")
    vehicle_model = models.CharField(max_length=50, blank=True, default="")
    customer_name = models.CharField(max_length=200, blank=True, default="")
    customer_phone = models.CharField(max_length=30, blank=True, default="")
    problem_description = models.TextField(blank=True, default="")
    mileage = models.PositiveIntegerField(null=True, blank=True)

    # [{"category_id": "brakes", "status": "order"}, ...]
    parts_needed = models.JSONField(default=list, blank=True)
    work_order_data = models.JSONField(null=True, blank=True)
    work_order_stage = models.PositiveSmallIntegerField(null=True, blank=True)

    version = models.PositiveIntegerField(
        default=1, help_text="Bumped on every write. Used to detect lost updates."
    )

    history: HistoricalRecords = HistoricalRecords()

    class Meta:
        verbose_name = "Job"
        verbose_name_plural = "Jobs"
        ordering = ["-created_at"]
        db_table = "job"
        indexes = [
            models.Index(fields=["status", "priority"], name="job_status_priority_idx"),
        ]

    def __str__(self):
        return f"[Job {self.job_number}] {self.vehicle_license_plate} ({self.status})"

    def clean(self):
        if self.status == JobStatus.COMPLETED and self.completed_at is None:
            raise ValidationError(
                {"completed_at": "A completed job must have a completion time."}
            )
        if self.completed_at is not None and self.status != JobStatus.COMPLETED:
            raise ValidationError(
                {"completed_at": "Only completed jobs carry a completion time."}
            )
        if self.work_order_stage is not None and not 1 <= self.work_order_stage <= 6:
            raise ValidationError(
                {"work_order_stage": "Work order stage must be between 1 and 6."}
            )

    def save(self, *args, **kwargs):
        actor_id = kwargs.pop("actor_id", None)

        is_new = self._state.adding
        original_status = None
        if not is_new:
            original_status = (
                Job.objects.filter(pk=self.pk)
                .values_list("status", flat=True)
                .first()
            )

        super().save(*args, **kwargs)

        if actor_id is None:
            return

        if is_new:
            JobEvent.objects.create(
                job=self,
                event_type=JobEventType.JOB_CREATED,
                description=f"Job {self.job_number} created",
                actor_id=actor_id,
            )
        elif original_status is not None and original_status != self.status:
            JobEvent.objects.create(
                job=self,
                event_type=JobEventType.STATUS_CHANGED,
                description=(
                    f"Status changed from {JobStatus(original_status).label} "
                    f"to {JobStatus(self.status).label}"
                ),
                actor_id=actor_id,
                field_changed="status",
                old_value=original_status,
                new_value=self.status,
            )
            logger.debug(
                "Job %s status %s -> %s", self.job_number, original_status, self.status
            )
