"""
JSON form of the work order document.

The stored JSON is snake_case and produced only by WorkOrderDocumentSerializer,
so every write goes through the same validation. Derived totals are written
out as read-only fields for other readers and ignored on the way back in.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal

from rest_framework import serializers

from apps.job.enums import StockAvailability, UserRole
from apps.job.exceptions import WorkOrderValidationError
from apps.job.work_order import (
    CompletionConfirmation,
    FaultCheck,
    Finding,
    PartConfirmation,
    WorkItem,
    WorkOrderDocument,
    WorkOrderPart,
)

logger = logging.getLogger(__name__)

PRICE_VISIBLE_ROLES = {UserRole.ADMIN, UserRole.MANAGER, UserRole.OFFICE_STAFF}


def _money_field(**kwargs):
    return serializers.DecimalField(
        max_digits=16, decimal_places=2, rounding=ROUND_HALF_UP, **kwargs
    )


class WorkItemSerializer(serializers.Serializer):
    id = serializers.CharField()
    service_id = serializers.CharField(allow_null=True, required=False, default=None)
    service_name = serializers.CharField(allow_blank=True, required=False, default="")
    service_code = serializers.CharField(
        allow_null=True, allow_blank=True, required=False, default=None
    )
    description = serializers.CharField(allow_blank=True, required=False, default="")
    is_immediate = serializers.BooleanField(required=False, default=False)
    is_custom = serializers.BooleanField(required=False, default=False)
    duration_hours = serializers.DecimalField(max_digits=8, decimal_places=4)
    price_per_hour = _money_field(allow_null=True, required=False, default=None)
    fixed_price = _money_field(allow_null=True, required=False, default=None)
    line_total = _money_field(read_only=True)

    def validate_duration_hours(self, value):
        if value <= 0:
            raise serializers.ValidationError("Duration must be greater than zero.")
        return value


class FindingSerializer(serializers.Serializer):
    id = serializers.CharField()
    description = serializers.CharField(allow_blank=True, required=False, default="")
    requires_replacement = serializers.BooleanField(required=False, default=False)
    stock_status = serializers.ChoiceField(
        choices=StockAvailability.choices,
        required=False,
        default=StockAvailability.IN_STOCK,
    )

    def to_internal_value(self, data):
        # Older documents carried a plain in_stock flag instead of stock_status
        if "stock_status" not in data and "in_stock" in data:
            data = dict(data)
            in_stock = data.pop("in_stock")
            data["stock_status"] = (
                StockAvailability.NEEDS_ORDER
                if in_stock is False
                else StockAvailability.IN_STOCK
            )
        return super().to_internal_value(data)


class WorkOrderPartSerializer(serializers.Serializer):
    id = serializers.CharField()
    part_id = serializers.CharField(allow_null=True, required=False, default=None)
    part_name = serializers.CharField(allow_blank=True, required=False, default="")
    part_number = serializers.CharField(
        allow_null=True, allow_blank=True, required=False, default=None
    )
    description = serializers.CharField(allow_blank=True, required=False, default="")
    quantity = serializers.IntegerField(min_value=1)
    unit_price = _money_field(min_value=0)
    is_custom = serializers.BooleanField(required=False, default=False)
    needs_ordering = serializers.BooleanField(required=False, default=False)
    line_total = _money_field(read_only=True)


class FaultCheckSerializer(serializers.Serializer):
    finding_id = serializers.CharField()
    description = serializers.CharField(allow_blank=True, required=False, default="")
    fixed = serializers.BooleanField(required=False, default=False)
    notes = serializers.CharField(allow_blank=True, required=False, default="")
    removed = serializers.BooleanField(required=False, default=False)


class PartConfirmationSerializer(serializers.Serializer):
    part_id = serializers.CharField()
    confirmed_quantity = serializers.IntegerField(min_value=0)
    removed = serializers.BooleanField(required=False, default=False)
    part_name = serializers.CharField(allow_blank=True, required=False, default="")
    part_number = serializers.CharField(
        allow_null=True, allow_blank=True, required=False, default=None
    )
    original_quantity = serializers.IntegerField(
        allow_null=True, required=False, default=None
    )


class CompletionConfirmationSerializer(serializers.Serializer):
    faults_checked = FaultCheckSerializer(many=True, required=False, default=list)
    parts_confirmed = PartConfirmationSerializer(many=True, required=False, default=list)
    completion_notes = serializers.CharField(
        allow_blank=True, required=False, default=""
    )
    confirmed_at = serializers.DateTimeField(allow_null=True, required=False, default=None)
    confirmed_by = serializers.CharField(allow_null=True, required=False, default=None)


class WorkOrderHeaderMixin(serializers.Serializer):
    date = serializers.DateField(allow_null=True, required=False, default=None)
    department = serializers.CharField(allow_blank=True, required=False, default="")
    vehicle_plate = serializers.CharField(allow_blank=True, required=False, default="")
    vehicle_make = serializers.CharField(allow_blank=True, required=False, default="")
    vehicle_model = serializers.CharField(allow_blank=True, required=False, default="")
    mileage = serializers.IntegerField(
        allow_null=True, min_value=0, required=False, default=None
    )
    mechanic_name = serializers.CharField(allow_blank=True, required=False, default="")
    mechanic_id = serializers.CharField(allow_null=True, required=False, default=None)
    return_time = serializers.DateTimeField(allow_null=True, required=False, default=None)
    urgency_percent = serializers.IntegerField(
        min_value=0, max_value=100, required=False, default=50
    )
    completed_at = serializers.DateTimeField(allow_null=True, required=False, default=None)
    stage = serializers.IntegerField(read_only=True)


class WorkOrderDocumentSerializer(WorkOrderHeaderMixin):
    """
    Full work order, prices included. This is the stored form.
    """

    work_items = WorkItemSerializer(many=True, required=False, default=list)
    findings = FindingSerializer(many=True, required=False, default=list)
    parts = WorkOrderPartSerializer(many=True, required=False, default=list)
    discount_percent = serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=0,
        max_value=100,
        required=False,
        default=Decimal("0"),
    )
    completion_confirmation = CompletionConfirmationSerializer(
        allow_null=True, required=False, default=None
    )

    # Derived, written for readers, never read back
    labor_subtotal = _money_field(source="totals.labor_subtotal", read_only=True)
    parts_subtotal = _money_field(source="totals.parts_subtotal", read_only=True)
    discount_amount = _money_field(source="totals.discount_amount", read_only=True)
    grand_total = _money_field(source="totals.grand_total", read_only=True)

    def create(self, validated_data):
        confirmation_data = validated_data.pop("completion_confirmation", None)
        confirmation = None
        if confirmation_data is not None:
            confirmation = CompletionConfirmation(
                faults_checked=tuple(
                    FaultCheck(**fault)
                    for fault in confirmation_data.pop("faults_checked", [])
                ),
                parts_confirmed=tuple(
                    PartConfirmation(**part)
                    for part in confirmation_data.pop("parts_confirmed", [])
                ),
                **confirmation_data,
            )

        return WorkOrderDocument(
            work_items=tuple(
                WorkItem(**item) for item in validated_data.pop("work_items", [])
            ),
            findings=tuple(
                Finding(**finding) for finding in validated_data.pop("findings", [])
            ),
            parts=tuple(
                WorkOrderPart(**part) for part in validated_data.pop("parts", [])
            ),
            completion_confirmation=confirmation,
            **validated_data,
        )


class TechnicianWorkItemSerializer(serializers.Serializer):
    id = serializers.CharField()
    service_name = serializers.CharField()
    service_code = serializers.CharField(allow_null=True)
    description = serializers.CharField()
    is_immediate = serializers.BooleanField()
    is_custom = serializers.BooleanField()
    duration_hours = serializers.DecimalField(max_digits=8, decimal_places=2)


class TechnicianFindingSerializer(serializers.Serializer):
    id = serializers.CharField()
    description = serializers.CharField()
    requires_replacement = serializers.BooleanField()
    stock_badge = serializers.SerializerMethodField()

    def get_stock_badge(self, obj):
        if not obj.requires_replacement:
            return None
        return str(obj.stock_status)


class TechnicianPartSerializer(serializers.Serializer):
    id = serializers.CharField()
    part_name = serializers.CharField()
    part_number = serializers.CharField(allow_null=True)
    description = serializers.CharField()
    quantity = serializers.IntegerField()
    is_custom = serializers.BooleanField()
    stock_badge = serializers.SerializerMethodField()

    def get_stock_badge(self, obj):
        if obj.needs_ordering:
            return str(StockAvailability.NEEDS_ORDER)
        return str(StockAvailability.IN_STOCK)


class TechnicianWorkOrderSerializer(WorkOrderHeaderMixin):
    """
    What a mechanic sees: hours, quantities and stock, no money.
    """

    work_items = TechnicianWorkItemSerializer(many=True, read_only=True)
    findings = TechnicianFindingSerializer(many=True, read_only=True)
    parts = TechnicianPartSerializer(many=True, read_only=True)
    total_labor_hours = serializers.DecimalField(
        max_digits=12, decimal_places=2, read_only=True
    )


def work_order_to_dict(document: WorkOrderDocument) -> dict:
    """Serialise a document for storage in Job.work_order_data."""
    return dict(WorkOrderDocumentSerializer(document).data)


def work_order_from_dict(data: dict) -> WorkOrderDocument:
    """
    Parse stored work order JSON.

    Raises:
        WorkOrderValidationError: If the JSON does not describe a valid document.
    """
    serializer = WorkOrderDocumentSerializer(data=data)
    if not serializer.is_valid():
        logger.warning("Rejected work order data: %s", serializer.errors)
        raise WorkOrderValidationError(f"Invalid work order: {serializer.errors}")
    return serializer.save()


def render_work_order(document: WorkOrderDocument, role: str) -> dict:
    """
    Role-sensitive view of a work order. Only office roles see prices; any
    other role gets the technician view.
    """
    if role in PRICE_VISIBLE_ROLES:
        return dict(WorkOrderDocumentSerializer(document).data)
    return dict(TechnicianWorkOrderSerializer(document).data)
