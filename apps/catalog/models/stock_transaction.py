import uuid

from django.db import models
from django.utils import timezone

from apps.catalog.enums import StockTransactionType

from .part import Part


class StockTransaction(models.Model):
    """
    One movement of a part's stock. quantity is signed: positive for
    additions, negative for usage.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    part = models.ForeignKey(
        Part, on_delete=models.CASCADE, related_name="stock_transactions"
    )
    part_name = models.CharField(max_length=200)  # denormalised for display
    type = models.CharField(max_length=20, choices=StockTransactionType.choices)
    quantity = models.IntegerField()

    job_id = models.UUIDField(null=True, blank=True, db_index=True)
    cost_per_unit = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )
    total_cost = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True
    )

    reason = models.CharField(max_length=255, blank=True, default="")
    notes = models.TextField(blank=True, default="")
    performed_by = models.CharField(max_length=100)
    performed_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "catalog_stock_transaction"
        ordering = ["-performed_at"]
        indexes = [
            models.Index(
                fields=["part", "performed_at"], name="stock_tx_part_performed_idx"
            ),
        ]

    def __str__(self):
        return f"{self.get_type_display()} {self.quantity:+d} x {self.part_name}"
