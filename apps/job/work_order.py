"""
Work order document

The staged diagnostic-and-quote document attached to a job: services
(work items), diagnostic findings and parts, plus the header the mechanic
fills in. Everything here is immutable; WorkOrderComposer produces new
instances with dataclasses.replace.

Totals are never stored as input. WorkOrderDocument.totals() recomputes them
from the lines every time it is called, and the JSON form only carries them
so other readers (quotes, invoices) do not have to redo the maths.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Tuple

from apps.job.enums import JobPriority, StockAvailability

TWO_PLACES = Decimal("0.01")
HUNDRED = Decimal("100")

URGENCY_BY_PRIORITY = {
    JobPriority.URGENT: 100,
    JobPriority.NORMAL: 50,
    JobPriority.LOW: 25,
}

# Stage numbers shown to the user as "Stage n/6"
STAGE_HEADER = 1
STAGE_WORK_ITEMS = 2
STAGE_FINDINGS = 3
STAGE_PARTS = 4
STAGE_SAVED = 5
STAGE_JOB_COMPLETED = 6


def round2(value) -> Decimal:
    """Round a money value half-up to two decimal places."""
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def to_decimal(value) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    if isinstance(value, Decimal):
        return value
    # str() first so floats like 0.1 don't drag binary noise along
    return Decimal(str(value))


@dataclass(frozen=True)
class WorkItem:
    """A service line. Fixed price wins over duration x hourly rate."""

    id: str
    service_name: str = ""
    description: str = ""
    duration_hours: Decimal = Decimal("1")
    is_immediate: bool = False
    is_custom: bool = False
    service_id: Optional[str] = None
    service_code: Optional[str] = None
    price_per_hour: Optional[Decimal] = None
    fixed_price: Optional[Decimal] = None

    @property
    def line_total(self) -> Decimal:
        if self.fixed_price is not None:
            return self.fixed_price
        return self.duration_hours * (self.price_per_hour or Decimal("0"))


@dataclass(frozen=True)
class Finding:
    id: str
    description: str = ""
    requires_replacement: bool = False
    # only meaningful when requires_replacement is set
    stock_status: str = StockAvailability.IN_STOCK

    @property
    def needs_order(self) -> bool:
        return (
            self.requires_replacement
            and self.stock_status == StockAvailability.NEEDS_ORDER
        )


@dataclass(frozen=True)
class WorkOrderPart:
    id: str
    part_name: str = ""
    description: str = ""
    quantity: int = 1
    unit_price: Decimal = Decimal("0")
    is_custom: bool = False
    needs_ordering: bool = False
    part_id: Optional[str] = None
    part_number: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class FaultCheck:
    """Mechanic's sign-off on one finding at completion time."""

    finding_id: str
    description: str = ""
    fixed: bool = False
    notes: str = ""
    removed: bool = False


@dataclass(frozen=True)
class PartConfirmation:
    """Quantity actually used for one work-order part line."""

    part_id: str  # the work-order line id, not the catalog id
    confirmed_quantity: int
    removed: bool = False
    part_name: str = ""
    part_number: Optional[str] = None
    original_quantity: Optional[int] = None

    @property
    def is_removed(self) -> bool:
        return self.removed or self.confirmed_quantity <= 0


@dataclass(frozen=True)
class CompletionConfirmation:
    faults_checked: Tuple[FaultCheck, ...] = ()
    parts_confirmed: Tuple[PartConfirmation, ...] = ()
    completion_notes: str = ""
    confirmed_at: Optional[datetime] = None
    confirmed_by: Optional[str] = None

    @property
    def unfixed_faults(self) -> Tuple[FaultCheck, ...]:
        return tuple(f for f in self.faults_checked if not f.fixed and not f.removed)


@dataclass(frozen=True)
class WorkOrderTotals:
    labor_subtotal: Decimal
    parts_subtotal: Decimal
    discount_percent: Decimal
    grand_total: Decimal

    @property
    def subtotal(self) -> Decimal:
        return self.labor_subtotal + self.parts_subtotal

    @property
    def discount_amount(self) -> Decimal:
        return round2(self.subtotal - self.grand_total)

    @classmethod
    def compute(cls, work_items, parts, discount_percent) -> "WorkOrderTotals":
        discount_percent = to_decimal(discount_percent) or Decimal("0")
        labor_subtotal = round2(sum((item.line_total for item in work_items), Decimal("0")))
        parts_subtotal = round2(sum((part.line_total for part in parts), Decimal("0")))
        grand_total = round2(
            (labor_subtotal + parts_subtotal) * (1 - discount_percent / HUNDRED)
        )
        return cls(
            labor_subtotal=labor_subtotal,
            parts_subtotal=parts_subtotal,
            discount_percent=discount_percent,
            grand_total=grand_total,
        )


@dataclass(frozen=True)
class WorkOrderDocument:
    date: Optional[date] = None
    department: str = ""
    vehicle_plate: str = ""
    vehicle_make: str = ""
    vehicle_model: str = ""
    mileage: Optional[int] = None
    mechanic_name: str = ""
    mechanic_id: Optional[str] = None
    return_time: Optional[datetime] = None
    urgency_percent: int = URGENCY_BY_PRIORITY[JobPriority.NORMAL]

    work_items: Tuple[WorkItem, ...] = field(default_factory=tuple)
    findings: Tuple[Finding, ...] = field(default_factory=tuple)
    parts: Tuple[WorkOrderPart, ...] = field(default_factory=tuple)
    discount_percent: Decimal = Decimal("0")

    completed_at: Optional[datetime] = None
    completion_confirmation: Optional[CompletionConfirmation] = None

    def totals(self) -> WorkOrderTotals:
        return WorkOrderTotals.compute(self.work_items, self.parts, self.discount_percent)

    def total_labor_hours(self) -> Decimal:
        return sum((item.duration_hours for item in self.work_items), Decimal("0"))

    def stage(self) -> int:
        return infer_stage(self)

    @property
    def has_parts(self) -> bool:
        return len(self.parts) > 0

    @property
    def is_finalized(self) -> bool:
        return self.completed_at is not None


def infer_stage(document: Optional[WorkOrderDocument]) -> int:
    """
    Derive the documentation stage from content. This is the only place the
    rule lives; the composer, the lifecycle service and reports all call it.

    Returns:
        1 (header only) through 5 (saved). Stage 6 is only ever set when the
        job itself is completed.
    """
    if document is None:
        return STAGE_HEADER

    stage = STAGE_HEADER
    if document.work_items:
        stage = STAGE_WORK_ITEMS
    if document.findings:
        stage = STAGE_FINDINGS
    if document.parts:
        stage = STAGE_PARTS
    if document.completed_at is not None:
        stage = STAGE_SAVED
    return stage
