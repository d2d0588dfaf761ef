import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from apps.catalog.enums import PartUnit


class Part(models.Model):
    """
    A stocked (or orderable) part. stock_quantity is the on-hand count and is
    only moved through StockService so every change leaves a StockTransaction.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    part_number = models.CharField(
        max_length=100,
        blank=True,
        default="",
        db_index=True,
        help_text="Internal SKU or manufacturer part number",
    )
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    category = models.CharField(max_length=50, default="custom")

    stock_quantity = models.IntegerField(default=0)
    min_stock_level = models.IntegerField(default=1)
    max_stock_level = models.IntegerField(default=10)
    unit = models.CharField(max_length=20, choices=PartUnit.choices, default=PartUnit.PIECE)
    location = models.CharField(max_length=100, blank=True, default="")

    cost_price = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    selling_price = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    markup = models.DecimalField(
        max_digits=7, decimal_places=2, default=Decimal("0.00")
    )
    tax_rate = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("20.00")
    )

    is_active = models.BooleanField(default=True, db_index=True)
    notes = models.TextField(blank=True, default="")

    last_restocked = models.DateTimeField(null=True, blank=True)
    last_used = models.DateTimeField(null=True, blank=True)
    total_usage_count = models.PositiveIntegerField(default=0)

    created_by = models.CharField(max_length=100, blank=True, default="")
    updated_by = models.CharField(max_length=100, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "catalog_part"
        ordering = ["name"]

    def __str__(self):
        return f"{self.part_number or '-'} {self.name} ({self.stock_quantity} {self.unit})"

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity <= self.min_stock_level

    @staticmethod
    def calculate_markup(cost_price: Decimal, selling_price: Decimal) -> Decimal:
        """Markup percentage of selling over cost, 0 when there is no cost."""
        if not cost_price:
            return Decimal("0.00")
        return (((selling_price - cost_price) / cost_price) * 100).quantize(
            Decimal("0.01")
        )

    def clean(self):
        if self.cost_price < 0:
            raise ValidationError("Cost price must be non-negative")
        if self.selling_price < 0:
            raise ValidationError("Selling price must be non-negative")
