from datetime import datetime
from datetime import timezone as dt_timezone
from decimal import Decimal
from types import SimpleNamespace

from django.test import TestCase
from django.utils import timezone

from apps.catalog.enums import PricingType
from apps.job.enums import JobPriority, StockAvailability
from apps.job.exceptions import (
    WorkOrderFrozenError,
    WorkOrderItemNotFoundError,
    WorkOrderValidationError,
)
from apps.job.services.work_order_composer import WorkOrderComposer
from apps.job.tests.utils import FakeCatalogStore, make_snapshot
from apps.job.work_order import round2
from apps.workflow.models import AppError


def catalog_service(**overrides):
    values = {
        "id": "svc-1",
        "name": "Brake inspection",
        "service_code": "SRV-001",
        "description": "Inspect pads and discs",
        "category": "brakes",
        "estimated_duration": Decimal("1.5"),
        "hourly_rate": Decimal("80.00"),
        "pricing_type": PricingType.HOURLY,
        "fixed_price": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def catalog_part(**overrides):
    values = {
        "id": "part-1",
        "name": "Brake pad set",
        "part_number": "BP-100",
        "description": "",
        "category": "brakes",
        "selling_price": Decimal("12.50"),
        "stock_quantity": 4,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class WorkOrderComposerTests(TestCase):
    def setUp(self):
        self.catalog = FakeCatalogStore(
            services=[
                catalog_service(),
                catalog_service(
                    id="svc-2",
                    name="Oil change",
                    service_code="SRV-002",
                    category="fluids",
                    pricing_type=PricingType.FIXED,
                    fixed_price=Decimal("49.99"),
                ),
            ],
            parts=[
                catalog_part(),
                catalog_part(
                    id="part-2",
                    name="Oil filter",
                    part_number="OF-200",
                    category="fluids",
                    stock_quantity=0,
                ),
            ],
        )
        self.job = make_snapshot(priority=JobPriority.URGENT)
        self.composer = WorkOrderComposer(
            self.job, self.catalog, actor_id="mech-1", mechanic_name="Sam Reed"
        )

    def test_new_document_header_comes_from_job(self):
        document = self.composer.document
        self.assertEqual(document.vehicle_plate, "KX-123-P")
        self.assertEqual(document.vehicle_make, "Volvo")
        self.assertEqual(document.mileage, 120000)
        self.assertEqual(document.mechanic_name, "Sam Reed")
        self.assertEqual(document.mechanic_id, "mech-1")
        self.assertEqual(document.urgency_percent, 100)
        self.assertEqual(self.composer.stage(), 1)

    def test_catalog_service_prefills_line(self):
        hourly = self.composer.add_service_from_catalog(self.catalog.services[0])
        fixed = self.composer.add_service_from_catalog(self.catalog.services[1])

        self.assertEqual(hourly.service_code, "SRV-001")
        self.assertEqual(hourly.duration_hours, Decimal("1.5"))
        self.assertEqual(hourly.price_per_hour, Decimal("80.00"))
        self.assertIsNone(hourly.fixed_price)
        self.assertEqual(fixed.fixed_price, Decimal("49.99"))
        self.assertEqual(fixed.description, "Inspect pads and discs")

    def test_duplicate_catalog_add_is_a_no_op(self):
        self.composer.add_service_from_catalog(self.catalog.services[0])
        self.composer.add_part_from_catalog(self.catalog.parts[0])
        before = self.composer.document

        self.assertIsNone(self.composer.add_service_from_catalog(self.catalog.services[0]))
        self.assertIsNone(self.composer.add_part_from_catalog(self.catalog.parts[0]))

        self.assertEqual(self.composer.document, before)
        self.assertEqual(
            self.composer.notices, ["Service already added", "Part already added"]
        )

    def test_catalog_part_needs_ordering_when_out_of_stock(self):
        in_stock = self.composer.add_part_from_catalog(self.catalog.parts[0])
        out_of_stock = self.composer.add_part_from_catalog(self.catalog.parts[1])
        self.assertFalse(in_stock.needs_ordering)
        self.assertTrue(out_of_stock.needs_ordering)
        self.assertEqual(in_stock.unit_price, Decimal("12.50"))
        self.assertEqual(in_stock.quantity, 1)

    def test_custom_lines(self):
        service = self.composer.add_custom_service("Wheel alignment")
        part = self.composer.add_custom_part()
        finding = self.composer.add_finding("Oil leak detected")

        self.assertTrue(service.is_custom)
        self.assertEqual(service.duration_hours, Decimal("1"))
        self.assertTrue(part.needs_ordering)
        self.assertEqual(part.unit_price, Decimal("0"))
        self.assertFalse(finding.requires_replacement)
        self.assertEqual(finding.stock_status, StockAvailability.IN_STOCK)

    def test_stage_follows_content(self):
        self.composer.add_service_from_catalog(self.catalog.services[0])
        self.assertEqual(self.composer.stage(), 2)
        self.composer.add_finding("Pads worn")
        self.assertEqual(self.composer.stage(), 3)
        self.composer.add_part_from_catalog(self.catalog.parts[0])
        self.assertEqual(self.composer.stage(), 4)
        self.composer.finalize()
        self.assertEqual(self.composer.stage(), 5)

    def test_totals_stay_consistent_through_edits(self):
        hourly = self.composer.add_service_from_catalog(self.catalog.services[0])
        fixed = self.composer.add_service_from_catalog(self.catalog.services[1])
        pads = self.composer.add_part_from_catalog(self.catalog.parts[0])
        self.composer.add_custom_part("Gasket")
        self.composer.update_part(pads.id, quantity=3)
        self.composer.set_discount_percent("10")

        def check():
            document = self.composer.document
            totals = self.composer.totals()
            labor = round2(sum((i.line_total for i in document.work_items), Decimal("0")))
            parts = round2(sum((p.line_total for p in document.parts), Decimal("0")))
            self.assertEqual(totals.labor_subtotal, labor)
            self.assertEqual(totals.parts_subtotal, parts)
            self.assertEqual(
                totals.grand_total,
                round2((labor + parts) * (1 - document.discount_percent / 100)),
            )

        check()
        self.assertEqual(self.composer.totals().grand_total, Decimal("186.74"))

        self.composer.remove_work_item(fixed.id)
        check()
        self.assertEqual(self.composer.totals().grand_total, Decimal("141.75"))

        self.composer.update_work_item(hourly.id, duration_hours="2.25")
        check()
        self.assertEqual(self.composer.total_labor_hours(), Decimal("2.25"))

    def test_invalid_patches_change_nothing(self):
        item = self.composer.add_custom_service("Alignment")
        part = self.composer.add_custom_part("Gasket")
        finding = self.composer.add_finding("Noise")
        before = self.composer.document

        with self.assertRaises(WorkOrderValidationError):
            self.composer.update_work_item(item.id, duration_hours=0)
        with self.assertRaises(WorkOrderValidationError):
            self.composer.update_part(part.id, quantity=0)
        with self.assertRaises(WorkOrderValidationError):
            self.composer.update_part(part.id, unit_price="-1", quantity=2)
        with self.assertRaises(WorkOrderValidationError):
            self.composer.update_part(part.id, id="other")
        with self.assertRaises(WorkOrderValidationError):
            self.composer.update_finding(finding.id, colour="red")
        with self.assertRaises(WorkOrderValidationError):
            self.composer.update_finding(finding.id, stock_status="lost")
        with self.assertRaises(WorkOrderValidationError):
            self.composer.set_discount_percent(101)

        self.assertEqual(self.composer.document, before)

    def test_patch_values_are_type_checked(self):
        item = self.composer.add_custom_service("Alignment")
        part = self.composer.add_custom_part("Gasket")
        before = self.composer.document

        bad_patches = [
            (self.composer.update_work_item, item.id, {"service_name": None}),
            (self.composer.update_work_item, item.id, {"is_custom": "yes"}),
            (
                self.composer.update_work_item,
                item.id,
                {"duration_hours": Decimal("100000")},
            ),
            (self.composer.update_work_item, item.id, {"duration_hours": "lots"}),
            (self.composer.update_part, part.id, {"part_name": None}),
            (self.composer.update_part, part.id, {"quantity": 1.7}),
            (self.composer.update_part, part.id, {"quantity": True}),
            (self.composer.update_part, part.id, {"quantity": 10000}),
            (self.composer.update_part, part.id, {"unit_price": "100000000"}),
            (self.composer.update_part, part.id, {"unit_price": None}),
        ]
        for update, line_id, patch in bad_patches:
            with self.subTest(patch=patch):
                with self.assertRaises(WorkOrderValidationError):
                    update(line_id, **patch)

        self.assertEqual(self.composer.document, before)

        updated = self.composer.update_part(part.id, quantity="3")
        self.assertEqual(updated.quantity, 3)

    def test_header_values_are_type_checked(self):
        before = self.composer.document

        for fields in (
            {"mileage": "x"},
            {"mileage": -1},
            {"urgency_percent": 101},
            {"date": "2026-01-01"},
            {"return_time": "tomorrow"},
            {"department": None},
        ):
            with self.subTest(fields=fields):
                with self.assertRaises(WorkOrderValidationError):
                    self.composer.update_header(**fields)

        self.assertEqual(self.composer.document, before)

    def test_unknown_ids(self):
        with self.assertRaises(WorkOrderItemNotFoundError):
            self.composer.update_work_item("nope", service_name="x")
        with self.assertRaises(WorkOrderItemNotFoundError):
            self.composer.remove_part("nope")

    def test_finding_update(self):
        finding = self.composer.add_finding("Pads worn")
        updated = self.composer.update_finding(
            finding.id, requires_replacement=True, stock_status="needs_order"
        )
        self.assertTrue(updated.needs_order)
        self.assertEqual(self.composer.document.findings[0], updated)

    def test_header_and_return_time(self):
        self.composer.update_header(department="Heavy vehicles", mileage=120500)
        self.assertEqual(self.composer.document.department, "Heavy vehicles")

        with self.assertRaises(WorkOrderValidationError):
            self.composer.update_header(colour="red")

        now = datetime(2026, 3, 10, 15, 30, tzinfo=dt_timezone.utc)
        self.composer.set_return_time_from_now(2, now=now)
        self.assertEqual(
            self.composer.document.return_time,
            datetime(2026, 3, 10, 17, 30, tzinfo=dt_timezone.utc),
        )

        self.composer.set_return_time_tomorrow(now=now)
        return_time = timezone.localtime(self.composer.document.return_time)
        self.assertEqual(return_time.date(), timezone.localtime(now).date().replace(day=11))
        self.assertEqual((return_time.hour, return_time.minute), (9, 0))

    def test_search(self):
        self.assertEqual(
            [s.name for s in self.composer.search_services("srv-002")], ["Oil change"]
        )
        self.assertEqual(
            [p.name for p in self.composer.search_parts("BRAKES")], ["Brake pad set"]
        )
        self.assertEqual(len(self.composer.search_parts("")), 2)

    def test_finalize_freezes_and_reopen_restores(self):
        self.composer.add_finding("Pads worn")
        document = self.composer.finalize()

        self.assertIsNotNone(document.completed_at)
        self.assertTrue(self.composer.is_frozen)
        with self.assertRaises(WorkOrderFrozenError):
            self.composer.add_finding("Another")
        with self.assertRaises(WorkOrderFrozenError):
            self.composer.finalize()

        self.composer.reopen()
        self.assertFalse(self.composer.is_frozen)
        self.assertIsNone(self.composer.document.completed_at)
        self.composer.add_finding("Another")

    def test_discarded_session_stays_closed(self):
        self.composer.add_finding("Pads worn")
        self.composer.discard()

        self.assertTrue(self.composer.is_discarded)
        with self.assertRaises(WorkOrderFrozenError):
            self.composer.add_finding("Another")
        self.composer.reopen()
        self.assertTrue(self.composer.is_frozen)
        with self.assertRaises(WorkOrderFrozenError):
            self.composer.finalize()

    def test_finalize_promotes_named_custom_lines_once(self):
        self.composer.add_custom_service("Wheel alignment")
        self.composer.add_custom_service("   ")
        part = self.composer.add_custom_part("Gasket")
        self.composer.update_part(part.id, unit_price="4.5", part_number="G-1")
        self.composer.add_service_from_catalog(self.catalog.services[0])

        self.composer.finalize()
        self.composer.reopen()
        self.composer.finalize()

        self.assertEqual([d["name"] for d in self.catalog.added_services], ["Wheel alignment"])
        self.assertEqual(len(self.catalog.added_parts), 1)
        draft = self.catalog.added_parts[0]
        self.assertEqual(draft["selling_price"], Decimal("4.50"))
        self.assertEqual(draft["part_number"], "G-1")
        self.assertEqual(draft["category"], "custom")
        self.assertEqual(draft["stock_quantity"], 0)
        self.assertEqual(draft["min_stock_level"], 1)
        self.assertEqual(draft["max_stock_level"], 10)
        self.assertEqual(self.catalog.added_services[0]["skill_level"], "junior")
        self.assertEqual(self.catalog.added_services[0]["tax_rate"], Decimal("20"))
        self.assertEqual(
            self.catalog.added_services[0]["pricing_type"], PricingType.HOURLY
        )

    def test_custom_service_with_fixed_price_is_promoted_as_fixed(self):
        item = self.composer.add_custom_service("Headlight adjustment")
        self.composer.update_work_item(item.id, fixed_price="120")

        self.composer.finalize()

        draft = self.catalog.added_services[0]
        self.assertEqual(draft["pricing_type"], PricingType.FIXED)
        self.assertEqual(draft["fixed_price"], Decimal("120.00"))

    def test_promotion_failure_does_not_stop_finalize(self):
        catalog = FakeCatalogStore(fail=True)
        composer = WorkOrderComposer(self.job, catalog, actor_id="mech-1")
        composer.add_custom_part("Gasket")

        with self.assertLogs("apps.job.services.work_order_composer", level="ERROR"):
            document = composer.finalize()

        self.assertIsNotNone(document.completed_at)
        error = AppError.objects.get()
        self.assertEqual(error.kind, "catalog_promotion")
        self.assertEqual(str(error.job_id), self.job.id)

    def test_saved_document_opens_for_editing(self):
        self.composer.add_finding("Pads worn")
        saved = self.composer.finalize()
        job = make_snapshot(work_order=saved)

        composer = WorkOrderComposer(job, self.catalog, actor_id="mech-1")
        self.assertIsNone(composer.document.completed_at)
        self.assertEqual(len(composer.document.findings), 1)
