"""
Work Order Composer

One editing session on a job's work order. The composer holds the draft
document, applies edits, and on finalize() freezes it and copies any custom
services and parts the mechanic typed in into the catalog so they can be
picked next time.

Nothing here touches the job itself; JobLifecycleService.save_work_order
persists what finalize() returns. Discarding a composer discards its edits.
"""

import logging
import uuid
from dataclasses import fields as dataclass_fields
from dataclasses import replace
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import List, Optional

from django.conf import settings
from django.utils import timezone

from apps.catalog.enums import PartUnit, PricingType
from apps.job.enums import StockAvailability
from apps.job.exceptions import (
    WorkOrderFrozenError,
    WorkOrderItemNotFoundError,
    WorkOrderValidationError,
)
from apps.job.services.interfaces import CatalogStore
from apps.job.snapshot import JobSnapshot
from apps.job.work_order import (
    URGENCY_BY_PRIORITY,
    Finding,
    WorkItem,
    WorkOrderDocument,
    WorkOrderPart,
    WorkOrderTotals,
    infer_stage,
    round2,
    to_decimal,
)
from apps.workflow.services.error_persistence import persist_app_error

logger = logging.getLogger(__name__)

HEADER_FIELDS = {
    "date",
    "department",
    "vehicle_plate",
    "vehicle_make",
    "vehicle_model",
    "mileage",
    "mechanic_name",
    "mechanic_id",
    "return_time",
    "urgency_percent",
}

RETURN_TOMORROW_HOUR = 9

# Largest values the stored JSON can carry (see work_order_serializer)
MAX_DURATION_HOURS = Decimal("9999.9999")
MAX_AMOUNT = Decimal("99999999.99")
MAX_QUANTITY = 9999

TEXT_FIELDS = {"service_name", "part_name", "description"}
OPTIONAL_TEXT_FIELDS = {"service_id", "service_code", "part_id", "part_number"}
FLAG_FIELDS = {"is_immediate", "is_custom", "requires_replacement", "needs_ordering"}
HEADER_TEXT_FIELDS = {
    "department",
    "vehicle_plate",
    "vehicle_make",
    "vehicle_model",
    "mechanic_name",
}


def new_work_order(
    job: JobSnapshot, mechanic_id: Optional[str] = None, mechanic_name: str = ""
) -> WorkOrderDocument:
    """Blank document with the header filled in from the job."""
    return WorkOrderDocument(
        date=timezone.localdate(),
        vehicle_plate=job.vehicle_license_plate,
        vehicle_make=job.vehicle_brand,
        vehicle_model=job.vehicle_model,
        mileage=job.mileage,
        mechanic_name=mechanic_name,
        mechanic_id=mechanic_id,
        urgency_percent=URGENCY_BY_PRIORITY.get(job.priority, 50),
    )


def _new_id() -> str:
    return str(uuid.uuid4())


def _matches(query: str, *values) -> bool:
    return any(query in (value or "").lower() for value in values)


class WorkOrderComposer:
    """
    Editable work order for one job, for the length of one session.

    Catalog additions are de-duplicated by catalog id: adding the same
    service or part twice leaves the document unchanged, returns None and
    leaves a message in ``notices``.
    """

    def __init__(
        self,
        job: JobSnapshot,
        catalog_store: CatalogStore,
        actor_id: str,
        mechanic_name: str = "",
        session_id: Optional[str] = None,
    ):
        self.job_id = job.id
        self.job_number = job.job_number
        self.actor_id = actor_id
        self.session_id = session_id or _new_id()
        # The job version this session's edits are based on
        self.base_version = job.version
        self.catalog_store = catalog_store
        self.notices: List[str] = []

        document = job.work_order or new_work_order(job, actor_id, mechanic_name)
        # A saved document is opened for further editing, not as frozen
        self._document = replace(document, completed_at=None)
        self._frozen = False
        self._discarded = False
        self._before_finalize: Optional[WorkOrderDocument] = None
        self._promoted_ids = set()
        self._services = None
        self._parts = None

    # ------------------------------------------------------------------
    # State

    @property
    def document(self) -> WorkOrderDocument:
        return self._document

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    @property
    def is_discarded(self) -> bool:
        return self._discarded

    def totals(self) -> WorkOrderTotals:
        return self._document.totals()

    def total_labor_hours(self) -> Decimal:
        return self._document.total_labor_hours()

    def stage(self) -> int:
        return infer_stage(self._document)

    def _ensure_editable(self):
        if self._discarded:
            raise WorkOrderFrozenError(
                f"Work order session {self.session_id} was discarded"
            )
        if self._frozen:
            raise WorkOrderFrozenError(
                f"Work order for job {self.job_number} is finalized"
            )

    def _notice(self, message: str):
        logger.info("Job %s work order: %s", self.job_number, message)
        self.notices.append(message)

    # ------------------------------------------------------------------
    # Work items

    def add_service_from_catalog(self, service) -> Optional[WorkItem]:
        self._ensure_editable()
        service_id = str(service.id)
        if any(item.service_id == service_id for item in self._document.work_items):
            self._notice("Service already added")
            return None

        item = WorkItem(
            id=_new_id(),
            service_id=service_id,
            service_name=service.name,
            service_code=service.service_code or None,
            description=service.description or service.name,
            duration_hours=to_decimal(service.estimated_duration) or Decimal("1"),
            price_per_hour=to_decimal(service.hourly_rate),
            fixed_price=(
                to_decimal(service.fixed_price)
                if service.pricing_type == PricingType.FIXED
                else None
            ),
        )
        self._document = replace(
            self._document, work_items=self._document.work_items + (item,)
        )
        return item

    def add_custom_service(self, name: Optional[str] = None) -> WorkItem:
        self._ensure_editable()
        item = WorkItem(
            id=_new_id(),
            service_name=(name or "").strip(),
            is_custom=True,
            duration_hours=Decimal("1"),
        )
        self._document = replace(
            self._document, work_items=self._document.work_items + (item,)
        )
        return item

    def update_work_item(self, item_id: str, **patch) -> WorkItem:
        return self._update_line("work_items", "work item", item_id, patch)

    def remove_work_item(self, item_id: str) -> None:
        self._remove_line("work_items", "work item", item_id)

    # ------------------------------------------------------------------
    # Findings

    def add_finding(self, description: Optional[str] = None) -> Finding:
        self._ensure_editable()
        finding = Finding(
            id=_new_id(),
            description=(description or "").strip(),
            requires_replacement=False,
            stock_status=StockAvailability.IN_STOCK,
        )
        self._document = replace(
            self._document, findings=self._document.findings + (finding,)
        )
        return finding

    def update_finding(self, finding_id: str, **patch) -> Finding:
        return self._update_line("findings", "finding", finding_id, patch)

    def remove_finding(self, finding_id: str) -> None:
        self._remove_line("findings", "finding", finding_id)

    # ------------------------------------------------------------------
    # Parts

    def add_part_from_catalog(self, part) -> Optional[WorkOrderPart]:
        self._ensure_editable()
        part_id = str(part.id)
        if any(line.part_id == part_id for line in self._document.parts):
            self._notice("Part already added")
            return None

        line = WorkOrderPart(
            id=_new_id(),
            part_id=part_id,
            part_name=part.name,
            part_number=part.part_number or None,
            description=part.description or part.name,
            quantity=1,
            unit_price=to_decimal(part.selling_price) or Decimal("0"),
            needs_ordering=part.stock_quantity <= 0,
        )
        self._document = replace(self._document, parts=self._document.parts + (line,))
        return line

    def add_custom_part(self, name: Optional[str] = None) -> WorkOrderPart:
        self._ensure_editable()
        line = WorkOrderPart(
            id=_new_id(),
            part_name=(name or "").strip(),
            quantity=1,
            unit_price=Decimal("0"),
            is_custom=True,
            needs_ordering=True,
        )
        self._document = replace(self._document, parts=self._document.parts + (line,))
        return line

    def update_part(self, line_id: str, **patch) -> WorkOrderPart:
        return self._update_line("parts", "part", line_id, patch)

    def remove_part(self, line_id: str) -> None:
        self._remove_line("parts", "part", line_id)

    # ------------------------------------------------------------------
    # Header and totals

    def set_discount_percent(self, value) -> None:
        self._ensure_editable()
        discount = self._decimal(value, "discount_percent")
        if not Decimal("0") <= discount <= Decimal("100"):
            raise WorkOrderValidationError("Discount must be between 0 and 100 percent")
        self._document = replace(self._document, discount_percent=discount)

    def update_header(self, **fields) -> None:
        self._ensure_editable()
        unknown = set(fields) - HEADER_FIELDS
        if unknown:
            raise WorkOrderValidationError(
                f"Unknown header fields: {', '.join(sorted(unknown))}"
            )
        fields = dict(fields)
        for name in HEADER_TEXT_FIELDS & set(fields):
            if not isinstance(fields[name], str):
                raise WorkOrderValidationError(f"{name} must be text")
        if fields.get("mechanic_id") is not None and not isinstance(
            fields["mechanic_id"], str
        ):
            raise WorkOrderValidationError("mechanic_id must be text")
        if "urgency_percent" in fields:
            urgency = self._whole_number(fields["urgency_percent"], "urgency_percent")
            if not 0 <= urgency <= 100:
                raise WorkOrderValidationError("Urgency must be between 0 and 100")
            fields["urgency_percent"] = urgency
        if fields.get("mileage") is not None:
            mileage = self._whole_number(fields["mileage"], "mileage")
            if mileage < 0:
                raise WorkOrderValidationError("Mileage cannot be negative")
            fields["mileage"] = mileage
        # datetime is a date subclass, so check it first
        if fields.get("date") is not None and (
            isinstance(fields["date"], datetime) or not isinstance(fields["date"], date)
        ):
            raise WorkOrderValidationError("date must be a calendar date")
        if fields.get("return_time") is not None and not isinstance(
            fields["return_time"], datetime
        ):
            raise WorkOrderValidationError("return_time must be a date and time")
        self._document = replace(self._document, **fields)

    def set_return_time_from_now(self, hours: int, now: Optional[datetime] = None):
        now = now or timezone.now()
        self.update_header(return_time=now + timedelta(hours=hours))

    def set_return_time_tomorrow(self, now: Optional[datetime] = None):
        local_now = timezone.localtime(now or timezone.now())
        tomorrow = (local_now + timedelta(days=1)).replace(
            hour=RETURN_TOMORROW_HOUR, minute=0, second=0, microsecond=0
        )
        self.update_header(return_time=tomorrow)

    # ------------------------------------------------------------------
    # Catalog search

    def search_services(self, query: str = "") -> list:
        if self._services is None:
            self._services = list(self.catalog_store.list_active_services())
        query = query.strip().lower()
        if not query:
            return list(self._services)
        return [
            s
            for s in self._services
            if _matches(query, s.name, s.service_code, s.category)
        ]

    def search_parts(self, query: str = "") -> list:
        if self._parts is None:
            self._parts = list(self.catalog_store.list_active_parts())
        query = query.strip().lower()
        if not query:
            return list(self._parts)
        return [
            p for p in self._parts if _matches(query, p.name, p.part_number, p.category)
        ]

    # ------------------------------------------------------------------
    # Finalize

    def finalize(self, now: Optional[datetime] = None) -> WorkOrderDocument:
        """
        Freeze the session and return the document to save.

        Custom services and parts with a name are added to the catalog.
        Failures there are logged and recorded but never stop the save.
        """
        self._ensure_editable()
        self._before_finalize = self._document
        self._document = replace(self._document, completed_at=now or timezone.now())
        self._frozen = True

        self._promote_custom_lines()

        logger.info(
            "Work order for job %s finalized (session %s, stage %s)",
            self.job_number,
            self.session_id,
            self.stage(),
        )
        return self._document

    def reopen(self) -> None:
        """Back to the editable state after a save that did not go through."""
        if not self._frozen or self._discarded:
            return
        self._document = self._before_finalize
        self._before_finalize = None
        self._frozen = False

    def discard(self) -> None:
        """End the session without saving. A discarded session stays closed."""
        self._discarded = True
        self._frozen = True
        self._before_finalize = None
        self.notices.clear()

    def _promote_custom_lines(self):
        work_order_settings = settings.WORK_ORDER
        tax_rate = Decimal(work_order_settings["DEFAULT_TAX_RATE"])

        for item in self._document.work_items:
            if not item.is_custom or not item.service_name.strip():
                continue
            if item.id in self._promoted_ids:
                continue
            draft = {
                "service_code": item.service_code or "",
                "name": item.service_name.strip(),
                "description": item.description or "",
                "category": "custom",
                "pricing_type": (
                    PricingType.FIXED
                    if item.fixed_price is not None
                    else PricingType.HOURLY
                ),
                "hourly_rate": round2(item.price_per_hour or 0),
                "fixed_price": (
                    round2(item.fixed_price) if item.fixed_price is not None else None
                ),
                "estimated_duration": round2(item.duration_hours or 1),
                "tax_rate": tax_rate,
                "skill_level": work_order_settings["PROMOTED_SERVICE_SKILL_LEVEL"],
                "includes_parts": False,
                "is_active": True,
            }
            self._promote(item.id, "service", self.catalog_store.add_service, draft)

        for line in self._document.parts:
            if not line.is_custom or not line.part_name.strip():
                continue
            if line.id in self._promoted_ids:
                continue
            draft = {
                "part_number": line.part_number or "",
                "name": line.part_name.strip(),
                "description": line.description or "",
                "category": "custom",
                "stock_quantity": 0,
                "min_stock_level": work_order_settings["PROMOTED_PART_MIN_STOCK"],
                "max_stock_level": work_order_settings["PROMOTED_PART_MAX_STOCK"],
                "unit": PartUnit.PIECE,
                "cost_price": Decimal("0.00"),
                "selling_price": round2(line.unit_price or 0),
                "markup": Decimal("0.00"),
                "tax_rate": tax_rate,
                "is_active": True,
            }
            self._promote(line.id, "part", self.catalog_store.add_part, draft)

    def _promote(self, line_id, kind, add, draft):
        try:
            catalog_id = add(draft, self.actor_id)
        except Exception as exc:
            logger.exception(
                "Could not add custom %s '%s' to the catalog", kind, draft["name"]
            )
            persist_app_error(
                exc,
                kind="catalog_promotion",
                job_id=self.job_id,
                line_id=line_id,
                item_kind=kind,
                name=draft["name"],
            )
            return
        self._promoted_ids.add(line_id)
        logger.info("Custom %s '%s' added to catalog as %s", kind, draft["name"], catalog_id)

    # ------------------------------------------------------------------
    # Line editing

    def _find_index(self, collection: str, kind: str, line_id: str) -> int:
        for index, line in enumerate(getattr(self._document, collection)):
            if line.id == line_id:
                return index
        raise WorkOrderItemNotFoundError(kind, line_id)

    def _update_line(self, collection: str, kind: str, line_id: str, patch: dict):
        self._ensure_editable()
        lines = list(getattr(self._document, collection))
        index = self._find_index(collection, kind, line_id)
        clean_patch = self._validate_patch(type(lines[index]), kind, patch)
        lines[index] = replace(lines[index], **clean_patch)
        self._document = replace(self._document, **{collection: tuple(lines)})
        return lines[index]

    def _remove_line(self, collection: str, kind: str, line_id: str):
        self._ensure_editable()
        index = self._find_index(collection, kind, line_id)
        lines = list(getattr(self._document, collection))
        del lines[index]
        self._document = replace(self._document, **{collection: tuple(lines)})

    def _validate_patch(self, line_type, kind: str, patch: dict) -> dict:
        """Check a patch completely before anything is changed."""
        if "id" in patch:
            raise WorkOrderValidationError(f"The id of a {kind} cannot be changed")
        allowed = {f.name for f in dataclass_fields(line_type)} - {"id"}
        unknown = set(patch) - allowed
        if unknown:
            raise WorkOrderValidationError(
                f"Unknown {kind} fields: {', '.join(sorted(unknown))}"
            )

        clean = dict(patch)
        for name in TEXT_FIELDS & set(clean):
            if not isinstance(clean[name], str):
                raise WorkOrderValidationError(f"{name} must be text")
        for name in OPTIONAL_TEXT_FIELDS & set(clean):
            if clean[name] is not None and not isinstance(clean[name], str):
                raise WorkOrderValidationError(f"{name} must be text")
        for name in FLAG_FIELDS & set(clean):
            if not isinstance(clean[name], bool):
                raise WorkOrderValidationError(f"{name} must be true or false")

        if "duration_hours" in clean:
            duration = self._decimal(clean["duration_hours"], "duration_hours")
            duration = duration.quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)
            if duration <= 0:
                raise WorkOrderValidationError("Duration must be greater than zero")
            if duration > MAX_DURATION_HOURS:
                raise WorkOrderValidationError(
                    f"Duration cannot exceed {MAX_DURATION_HOURS} hours"
                )
            clean["duration_hours"] = duration
        for name in ("price_per_hour", "fixed_price", "unit_price"):
            if name in clean and clean[name] is not None:
                amount = round2(self._decimal(clean[name], name))
                if amount < 0:
                    raise WorkOrderValidationError(f"{name} cannot be negative")
                if amount > MAX_AMOUNT:
                    raise WorkOrderValidationError(f"{name} cannot exceed {MAX_AMOUNT}")
                clean[name] = amount
        if "unit_price" in clean and clean["unit_price"] is None:
            raise WorkOrderValidationError("unit_price is required")
        if "quantity" in clean:
            clean["quantity"] = self._whole_number(clean["quantity"], "quantity")
            if clean["quantity"] < 1:
                raise WorkOrderValidationError("Quantity must be at least 1")
            if clean["quantity"] > MAX_QUANTITY:
                raise WorkOrderValidationError(
                    f"Quantity cannot exceed {MAX_QUANTITY}"
                )
        if "stock_status" in clean:
            if clean["stock_status"] not in StockAvailability.values:
                raise WorkOrderValidationError(
                    f"Unknown stock status {clean['stock_status']}"
                )
            clean["stock_status"] = StockAvailability(clean["stock_status"])
        return clean

    @staticmethod
    def _decimal(value, name: str) -> Decimal:
        if isinstance(value, bool):
            raise WorkOrderValidationError(f"{name} must be a number")
        try:
            result = to_decimal(value)
        except InvalidOperation:
            raise WorkOrderValidationError(f"{name} must be a number")
        if result is None:
            raise WorkOrderValidationError(f"{name} is required")
        if not result.is_finite():
            raise WorkOrderValidationError(f"{name} must be a number")
        return result

    @classmethod
    def _whole_number(cls, value, name: str) -> int:
        number = cls._decimal(value, name)
        if number != number.to_integral_value():
            raise WorkOrderValidationError(f"{name} must be a whole number")
        return int(number)
