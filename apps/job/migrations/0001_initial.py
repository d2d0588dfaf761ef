import uuid

import django.db.models.deletion
import django.utils.timezone
import simple_history.models
from django.conf import settings
from django.db import migrations, models

JOB_STATUS_CHOICES = [
    ("not_started", "Not Started"),
    ("in_progress", "In Progress"),
    ("waiting_for_parts", "Waiting for Parts"),
    ("ready_for_pickup", "Ready for Pickup"),
    ("completed", "Completed"),
]
JOB_PRIORITY_CHOICES = [("low", "Low"), ("normal", "Normal"), ("urgent", "Urgent")]
SERVICE_TYPE_CHOICES = [
    ("repair", "Repair"),
    ("maintenance", "Maintenance"),
    ("inspection", "Inspection"),
    ("diagnostic", "Diagnostic"),
]


def job_detail_fields():
    return [
        (
            "status",
            models.CharField(
                choices=JOB_STATUS_CHOICES, default="not_started", max_length=30
            ),
        ),
        (
            "priority",
            models.CharField(
                choices=JOB_PRIORITY_CHOICES, default="normal", max_length=10
            ),
        ),
        (
            "service_type",
            models.CharField(
                blank=True, choices=SERVICE_TYPE_CHOICES, max_length=20, null=True
            ),
        ),
        ("assigned_at", models.DateTimeField(blank=True, null=True)),
        ("completed_at", models.DateTimeField(blank=True, null=True)),
        ("scheduled_date", models.DateTimeField(blank=True, null=True)),
        (
            "estimated_duration",
            models.PositiveIntegerField(
                blank=True, help_text="Estimated work time in minutes.", null=True
            ),
        ),
        ("vehicle_id", models.CharField(max_length=100)),
        ("customer_id", models.CharField(blank=True, max_length=100, null=True)),
        (
            "assigned_mechanic_id",
            models.CharField(blank=True, db_index=True, max_length=100, null=True),
        ),
        ("created_by", models.CharField(max_length=100)),
        (
            "vehicle_license_plate",
            models.CharField(blank=True, default="", max_length=20),
        ),
        ("vehicle_brand", models.CharField(blank=True, default="", max_length=50)),
        ("vehicle_model", models.CharField(blank=True, default="", max_length=50)),
        ("customer_name", models.CharField(blank=True, default="", max_length=200)),
        ("customer_phone", models.CharField(blank=True, default="", max_length=30)),
        ("problem_description", models.TextField(blank=True, default="")),
        ("mileage", models.PositiveIntegerField(blank=True, null=True)),
        ("parts_needed", models.JSONField(blank=True, default=list)),
        ("work_order_data", models.JSONField(blank=True, null=True)),
        ("work_order_stage", models.PositiveSmallIntegerField(blank=True, null=True)),
        (
            "version",
            models.PositiveIntegerField(
                default=1,
                help_text="Bumped on every write. Used to detect lost updates.",
            ),
        ),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Job",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("job_number", models.CharField(max_length=12, unique=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                *job_detail_fields(),
            ],
            options={
                "verbose_name": "Job",
                "verbose_name_plural": "Jobs",
                "db_table": "job",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "priority"], name="job_status_priority_idx"
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="HistoricalJob",
            fields=[
                (
                    "id",
                    models.UUIDField(db_index=True, default=uuid.uuid4, editable=False),
                ),
                ("job_number", models.CharField(db_index=True, max_length=12)),
                ("created_at", models.DateTimeField(blank=True, editable=False)),
                ("updated_at", models.DateTimeField(blank=True, editable=False)),
                *job_detail_fields(),
                ("history_id", models.AutoField(primary_key=True, serialize=False)),
                ("history_date", models.DateTimeField(db_index=True)),
                (
                    "history_change_reason",
                    models.CharField(max_length=100, null=True),
                ),
                (
                    "history_type",
                    models.CharField(
                        choices=[("+", "Created"), ("~", "Changed"), ("-", "Deleted")],
                        max_length=1,
                    ),
                ),
                (
                    "history_user",
                    models.ForeignKey(
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "historical Job",
                "verbose_name_plural": "historical Jobs",
                "ordering": ("-history_date", "-history_id"),
                "get_latest_by": ("history_date", "history_id"),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
        migrations.CreateModel(
            name="JobEvent",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "timestamp",
                    models.DateTimeField(default=django.utils.timezone.now),
                ),
                (
                    "event_type",
                    models.CharField(
                        choices=[
                            ("job_created", "Created"),
                            ("status_changed", "Status Changed"),
                            ("assigned", "Assigned"),
                            ("parts_updated", "Parts Updated"),
                            ("work_order_saved", "Work Order Saved"),
                            ("completed", "Completed"),
                            ("job_updated", "Updated"),
                        ],
                        max_length=30,
                    ),
                ),
                ("description", models.TextField()),
                ("actor_id", models.CharField(blank=True, default="", max_length=100)),
                (
                    "field_changed",
                    models.CharField(blank=True, default="", max_length=50),
                ),
                ("old_value", models.TextField(blank=True, default="")),
                ("new_value", models.TextField(blank=True, default="")),
                (
                    "job",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="events",
                        to="job.job",
                    ),
                ),
            ],
            options={
                "db_table": "job_event",
                "ordering": ["-timestamp"],
            },
        ),
    ]
