import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from apps.catalog.enums import StockTransactionType
from apps.catalog.models import Part, StockTransaction

logger = logging.getLogger(__name__)


class StockService:
    """
    Inventory adjuster. Every stock movement goes through adjust_stock so the
    part's on-hand count and its StockTransaction history never disagree.
    """

    @staticmethod
    def adjust_stock(
        part_id,
        delta: int,
        transaction_type: str,
        actor_id: str,
        meta: Optional[Dict[str, Any]] = None,
    ) -> Optional[StockTransaction]:
        """
        Moves a part's stock by ``delta`` (negative for usage).

        Args:
            part_id: Catalog part id
            delta: Signed quantity
            transaction_type: One of StockTransactionType
            actor_id: Who performed the movement
            meta: Optional job_id, reason, cost_per_unit and notes

        Returns:
            The StockTransaction, or None when the part does not exist
        """
        if delta == 0:
            raise ValueError("Stock adjustment must be non-zero")
        if transaction_type not in StockTransactionType.values:
            raise ValueError(f"Unknown stock transaction type '{transaction_type}'")

        meta = meta or {}
        cost_per_unit = meta.get("cost_per_unit")

        with transaction.atomic():
            try:
                part = Part.objects.select_for_update().filter(id=part_id).first()
            except (ValidationError, ValueError):
                # Not a catalog id at all, e.g. a reference from an old import
                part = None
            if part is None:
                logger.warning("Stock adjustment skipped, part %s not found", part_id)
                return None

            part.stock_quantity += delta
            update_fields = ["stock_quantity", "updated_by", "updated_at"]
            part.updated_by = actor_id
            if transaction_type == StockTransactionType.USAGE:
                part.total_usage_count += abs(delta)
                part.last_used = timezone.now()
                update_fields += ["total_usage_count", "last_used"]
            elif transaction_type == StockTransactionType.PURCHASE:
                part.last_restocked = timezone.now()
                update_fields.append("last_restocked")
            part.save(update_fields=update_fields)

            if part.stock_quantity < 0:
                logger.warning(
                    "Part %s (%s) stock went negative: %s",
                    part.id,
                    part.part_number,
                    part.stock_quantity,
                )

            stock_transaction = StockTransaction.objects.create(
                part=part,
                part_name=part.name,
                type=transaction_type,
                quantity=delta,
                job_id=meta.get("job_id"),
                cost_per_unit=cost_per_unit,
                total_cost=(
                    Decimal(abs(delta)) * Decimal(cost_per_unit)
                    if cost_per_unit is not None
                    else None
                ),
                reason=meta.get("reason", ""),
                notes=meta.get("notes", ""),
                performed_by=actor_id,
            )

        logger.info(
            "Stock %s %+d for part %s by %s", transaction_type, delta, part.id, actor_id
        )
        return stock_transaction

    @staticmethod
    def deduct_stock_for_job(
        parts: Iterable[Any], job_id, actor_id: str
    ) -> List[StockTransaction]:
        """
        Records usage for every work-order part that carries a catalog part_id.

        Args:
            parts: Objects with part_id, quantity and unit_price attributes
            job_id: The job the parts were used on
            actor_id: Who completed the job
        """
        transactions = []
        for part in parts:
            stock_transaction = StockService.adjust_stock(
                part.part_id,
                -part.quantity,
                StockTransactionType.USAGE,
                actor_id,
                {
                    "job_id": job_id,
                    "cost_per_unit": part.unit_price,
                    "reason": f"Used in job {job_id}",
                },
            )
            if stock_transaction is not None:
                transactions.append(stock_transaction)
        return transactions

    @staticmethod
    def lookup_part_by_number(part_number: str) -> Optional[Part]:
        part_number = (part_number or "").strip()
        if not part_number:
            return None
        return Part.objects.filter(part_number=part_number, is_active=True).first()
