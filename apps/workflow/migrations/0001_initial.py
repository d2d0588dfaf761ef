import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="AppError",
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
                ("timestamp", models.DateTimeField(auto_now_add=True)),
                ("message", models.TextField()),
                ("data", models.JSONField(blank=True, null=True)),
                (
                    "kind",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Which side effect failed, e.g. catalog_promotion or notification",
                        max_length=50,
                    ),
                ),
                ("job_id", models.UUIDField(blank=True, db_index=True, null=True)),
            ],
            options={
                "verbose_name": "Application Error",
                "verbose_name_plural": "Application Errors",
                "db_table": "workflow_app_error",
                "ordering": ["-timestamp"],
            },
        ),
    ]
