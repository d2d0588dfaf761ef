import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from apps.catalog.enums import PricingType, SkillLevel


class Service(models.Model):
    """
    A priced unit of labour from the shop's price list, e.g. "Front brake pads".

    Hourly services are charged as estimated_duration x hourly_rate, fixed
    services use fixed_price regardless of time spent.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    service_code = models.CharField(max_length=30, blank=True, default="")  # SRV-001
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    category = models.CharField(max_length=50, default="custom")

    pricing_type = models.CharField(
        max_length=10, choices=PricingType.choices, default=PricingType.HOURLY
    )
    hourly_rate = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )
    fixed_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )
    estimated_duration = models.DecimalField(
        max_digits=6,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Estimated duration in hours",
    )
    tax_rate = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("20.00")
    )

    skill_level = models.CharField(
        max_length=20, choices=SkillLevel.choices, default=SkillLevel.JUNIOR
    )
    includes_parts = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True, db_index=True)
    notes = models.TextField(blank=True, default="")

    times_performed = models.PositiveIntegerField(default=0)

    created_by = models.CharField(max_length=100, blank=True, default="")
    updated_by = models.CharField(max_length=100, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "catalog_service"
        ordering = ["name"]

    def __str__(self):
        return f"{self.service_code or '-'} {self.name}"

    def clean(self):
        if self.pricing_type == PricingType.FIXED and self.fixed_price is None:
            raise ValidationError("Fixed price services need a fixed_price")
        if self.hourly_rate is not None and self.hourly_rate < 0:
            raise ValidationError("Hourly rate must be non-negative")
