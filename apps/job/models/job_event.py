import uuid

from django.db import models
from django.utils import timezone

from apps.job.enums import JobEventType


class JobEvent(models.Model):
    """
    Audit trail entry for a job. Written in the same transaction as the
    change it describes.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    job = models.ForeignKey("Job", on_delete=models.CASCADE, related_name="events")
    timestamp = models.DateTimeField(default=timezone.now)
    event_type = models.CharField(max_length=30, choices=JobEventType.choices)
    description = models.TextField()
    actor_id = models.CharField(max_length=100, blank=True, default="")

    field_changed = models.CharField(max_length=50, blank=True, default="")
    old_value = models.TextField(blank=True, default="")
    new_value = models.TextField(blank=True, default="")

    class Meta:
        db_table = "job_event"
        ordering = ["-timestamp"]

    def __str__(self):
        return f"{self.timestamp:%Y-%m-%d %H:%M}: {self.event_type} - {self.description}"
