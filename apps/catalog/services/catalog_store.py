"""
Catalog store

Read access to the active price list plus the "promote a custom line into the
catalog" writes used when a work order is finalized.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List

from django.db import transaction

from apps.catalog.models import Part, Service

logger = logging.getLogger(__name__)

SERVICE_DRAFT_FIELDS = {
    "service_code",
    "name",
    "description",
    "category",
    "pricing_type",
    "hourly_rate",
    "fixed_price",
    "estimated_duration",
    "tax_rate",
    "skill_level",
    "includes_parts",
    "is_active",
    "notes",
}

PART_DRAFT_FIELDS = {
    "part_number",
    "name",
    "description",
    "category",
    "stock_quantity",
    "min_stock_level",
    "max_stock_level",
    "unit",
    "location",
    "cost_price",
    "selling_price",
    "markup",
    "tax_rate",
    "is_active",
    "notes",
}


def _clean_draft(draft: Dict[str, Any], allowed: set, kind: str) -> Dict[str, Any]:
    unknown = set(draft) - allowed
    if unknown:
        raise ValueError(f"Unknown {kind} fields: {', '.join(sorted(unknown))}")
    if not str(draft.get("name", "")).strip():
        raise ValueError(f"A {kind} needs a name")
    return {**draft, "name": draft["name"].strip()}


class DjangoCatalogStore:
    """Catalog collaborator backed by the ``catalog`` tables."""

    def list_active_services(self) -> List[Service]:
        return list(Service.objects.filter(is_active=True).order_by("name"))

    def list_active_parts(self) -> List[Part]:
        return list(Part.objects.filter(is_active=True).order_by("name"))

    def add_service(self, draft: Dict[str, Any], actor_id: str) -> str:
        """
        Creates a catalog service from a draft dict.

        Returns:
            The new service id as a string

        Raises:
            ValueError: If the draft carries unknown fields or no name
            django.core.exceptions.ValidationError: If the model rejects it
        """
        fields = _clean_draft(draft, SERVICE_DRAFT_FIELDS, "service")
        with transaction.atomic():
            service = Service(created_by=actor_id, updated_by=actor_id, **fields)
            service.full_clean()
            service.save()
        logger.info("Service %s (%s) added to catalog by %s", service.id, service.name, actor_id)
        return str(service.id)

    def add_part(self, draft: Dict[str, Any], actor_id: str) -> str:
        """
        Creates a catalog part from a draft dict. Markup is derived from the
        cost and selling price when the draft does not carry one.
        """
        fields = _clean_draft(draft, PART_DRAFT_FIELDS, "part")
        if "markup" not in fields:
            fields["markup"] = Part.calculate_markup(
                Decimal(fields.get("cost_price", 0)),
                Decimal(fields.get("selling_price", 0)),
            )
        with transaction.atomic():
            part = Part(created_by=actor_id, updated_by=actor_id, **fields)
            part.full_clean()
            part.save()
        logger.info("Part %s (%s) added to catalog by %s", part.id, part.name, actor_id)
        return str(part.id)
