import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Part",
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
                    "part_number",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        default="",
                        help_text="Internal SKU or manufacturer part number",
                        max_length=100,
                    ),
                ),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                ("category", models.CharField(default="custom", max_length=50)),
                ("stock_quantity", models.IntegerField(default=0)),
                ("min_stock_level", models.IntegerField(default=1)),
                ("max_stock_level", models.IntegerField(default=10)),
                (
                    "unit",
                    models.CharField(
                        choices=[
                            ("piece", "Piece"),
                            ("liter", "Liter"),
                            ("meter", "Meter"),
                            ("kilogram", "Kilogram"),
                            ("set", "Set"),
                        ],
                        default="piece",
                        max_length=20,
                    ),
                ),
                ("location", models.CharField(blank=True, default="", max_length=100)),
                (
                    "cost_price",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("0.00"), max_digits=10
                    ),
                ),
                (
                    "selling_price",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("0.00"), max_digits=10
                    ),
                ),
                (
                    "markup",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("0.00"), max_digits=7
                    ),
                ),
                (
                    "tax_rate",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("20.00"), max_digits=5
                    ),
                ),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                ("notes", models.TextField(blank=True, default="")),
                ("last_restocked", models.DateTimeField(blank=True, null=True)),
                ("last_used", models.DateTimeField(blank=True, null=True)),
                ("total_usage_count", models.PositiveIntegerField(default=0)),
                ("created_by", models.CharField(blank=True, default="", max_length=100)),
                ("updated_by", models.CharField(blank=True, default="", max_length=100)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "catalog_part",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Service",
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
                ("service_code", models.CharField(blank=True, default="", max_length=30)),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                ("category", models.CharField(default="custom", max_length=50)),
                (
                    "pricing_type",
                    models.CharField(
                        choices=[("hourly", "Hourly"), ("fixed", "Fixed Price")],
                        default="hourly",
                        max_length=10,
                    ),
                ),
                (
                    "hourly_rate",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=10, null=True
                    ),
                ),
                (
                    "fixed_price",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=10, null=True
                    ),
                ),
                (
                    "estimated_duration",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Estimated duration in hours",
                        max_digits=6,
                        null=True,
                    ),
                ),
                (
                    "tax_rate",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("20.00"), max_digits=5
                    ),
                ),
                (
                    "skill_level",
                    models.CharField(
                        choices=[
                            ("junior", "Junior"),
                            ("senior", "Senior"),
                            ("specialist", "Specialist"),
                        ],
                        default="junior",
                        max_length=20,
                    ),
                ),
                ("includes_parts", models.BooleanField(default=False)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                ("notes", models.TextField(blank=True, default="")),
                ("times_performed", models.PositiveIntegerField(default=0)),
                ("created_by", models.CharField(blank=True, default="", max_length=100)),
                ("updated_by", models.CharField(blank=True, default="", max_length=100)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "catalog_service",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="StockTransaction",
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
                ("part_name", models.CharField(max_length=200)),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("purchase", "Purchase"),
                            ("usage", "Usage"),
                            ("adjustment", "Adjustment"),
                            ("return", "Return"),
                        ],
                        max_length=20,
                    ),
                ),
                ("quantity", models.IntegerField()),
                ("job_id", models.UUIDField(blank=True, db_index=True, null=True)),
                (
                    "cost_per_unit",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=10, null=True
                    ),
                ),
                (
                    "total_cost",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=12, null=True
                    ),
                ),
                ("reason", models.CharField(blank=True, default="", max_length=255)),
                ("notes", models.TextField(blank=True, default="")),
                ("performed_by", models.CharField(max_length=100)),
                (
                    "performed_at",
                    models.DateTimeField(default=django.utils.timezone.now),
                ),
                (
                    "part",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="stock_transactions",
                        to="catalog.part",
                    ),
                ),
            ],
            options={
                "db_table": "catalog_stock_transaction",
                "ordering": ["-performed_at"],
                "indexes": [
                    models.Index(
                        fields=["part", "performed_at"],
                        name="stock_tx_part_performed_idx",
                    )
                ],
            },
        ),
    ]
