import uuid
from decimal import Decimal

from django.utils import timezone

from apps.job.enums import JobPriority, JobStatus
from apps.job.models import Job
from apps.job.snapshot import JobSnapshot


class FakeCatalogStore:
    """Records promotions instead of writing catalog rows."""

    def __init__(self, services=None, parts=None, fail=False):
        self.services = list(services or [])
        self.parts = list(parts or [])
        self.fail = fail
        self.added_services = []
        self.added_parts = []

    def list_active_services(self):
        return self.services

    def list_active_parts(self):
        return self.parts

    def add_service(self, draft, actor_id):
        if self.fail:
            raise ValueError("catalog unavailable")
        self.added_services.append(draft)
        return str(uuid.uuid4())

    def add_part(self, draft, actor_id):
        if self.fail:
            raise ValueError("catalog unavailable")
        self.added_parts.append(draft)
        return str(uuid.uuid4())


def make_snapshot(**overrides) -> JobSnapshot:
    now = timezone.now()
    values = {
        "id": str(uuid.uuid4()),
        "job_number": "AB12CD",
        "status": JobStatus.IN_PROGRESS,
        "priority": JobPriority.NORMAL,
        "created_at": now,
        "updated_at": now,
        "vehicle_id": "vehicle-1",
        "created_by": "office-1",
        "vehicle_license_plate": "KX-123-P",
        "vehicle_brand": "Volvo",
        "vehicle_model": "FH16",
        "mileage": 120000,
    }
    values.update(overrides)
    return JobSnapshot(**values)


def create_job(**overrides) -> Job:
    values = {
        "job_number": uuid.uuid4().hex[:6].upper(),
        "status": JobStatus.IN_PROGRESS,
        "priority": JobPriority.NORMAL,
        "vehicle_id": "vehicle-1",
        "created_by": "office-1",
        "vehicle_license_plate": "KX-123-P",
        "vehicle_brand": "Volvo",
        "vehicle_model": "FH16",
        "customer_name": "Hauliers Ltd",
        "problem_description": "Brakes squeal under load",
        "mileage": 120000,
    }
    values.update(overrides)
    if values["status"] == JobStatus.COMPLETED and "completed_at" not in values:
        values["completed_at"] = timezone.now()
    return Job.objects.create(**values)


def money(value) -> Decimal:
    return Decimal(value)
