import uuid

from django.db import models


class AppError(models.Model):
    """A side-effect failure that was swallowed so the main operation could finish."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    timestamp = models.DateTimeField(auto_now_add=True)
    message = models.TextField()
    data = models.JSONField(blank=True, null=True)
    kind = models.CharField(
        max_length=50,
        blank=True,
        default="",
        help_text="Which side effect failed, e.g. catalog_promotion or notification",
    )
    job_id = models.UUIDField(null=True, blank=True, db_index=True)

    class Meta:
        db_table = "workflow_app_error"
        ordering = ["-timestamp"]
        verbose_name = "Application Error"
        verbose_name_plural = "Application Errors"

    def __str__(self):
        return f"[{self.kind or 'error'}] {self.message[:80]}"
