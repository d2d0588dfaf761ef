"""
Read-only views of a job as handed out by the job store.

The lifecycle services never touch ORM rows; they work on these snapshots and
ask the store for changes. Snapshots are rebuilt after every write.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from apps.job.enums import PartsOrderStatus
from apps.job.work_order import WorkOrderDocument


@dataclass(frozen=True)
class PartsNeededEntry:
    category_id: str
    status: str = PartsOrderStatus.ORDER

    def to_dict(self) -> dict:
        return {"category_id": self.category_id, "status": str(self.status)}

    @classmethod
    def from_dict(cls, data: dict) -> "PartsNeededEntry":
        return cls(
            category_id=data["category_id"],
            status=data.get("status") or PartsOrderStatus.ORDER,
        )


def merge_parts_needed(
    existing: Iterable[PartsNeededEntry], incoming: Iterable[PartsNeededEntry]
) -> Tuple[List[PartsNeededEntry], List[PartsNeededEntry]]:
    """
    Union two parts-needed lists by category_id.

    Existing entries keep their status and position; new categories are
    appended in the order given.

    Returns:
        (merged list, entries that were actually added)
    """
    merged = list(existing)
    seen = {entry.category_id for entry in merged}
    added = []
    for entry in incoming:
        if entry.category_id in seen:
            continue
        seen.add(entry.category_id)
        merged.append(entry)
        added.append(entry)
    return merged, added


@dataclass(frozen=True)
class JobSnapshot:
    id: str
    job_number: str
    status: str
    priority: str
    created_at: datetime
    updated_at: datetime
    vehicle_id: str
    created_by: str
    version: int = 1

    service_type: Optional[str] = None
    customer_id: Optional[str] = None
    assigned_mechanic_id: Optional[str] = None
    assigned_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    scheduled_date: Optional[datetime] = None
    estimated_duration: Optional[int] = None  # minutes

    vehicle_license_plate: str = ""
    vehicle_brand: str = ""
    vehicle_model: str = ""
    customer_name: str = ""
    customer_phone: str = ""
    problem_description: str = ""
    mileage: Optional[int] = None

    parts_needed: Tuple[PartsNeededEntry, ...] = field(default_factory=tuple)
    work_order: Optional[WorkOrderDocument] = None
    work_order_stage: Optional[int] = None

    @property
    def category_ids(self) -> List[str]:
        return [entry.category_id for entry in self.parts_needed]

    @classmethod
    def from_job(cls, job) -> "JobSnapshot":
        """Build a snapshot from a Job model instance."""
        # Local import, the serializer module imports this one's neighbours
        from apps.job.serializers.work_order_serializer import work_order_from_dict

        work_order = None
        if job.work_order_data:
            work_order = work_order_from_dict(job.work_order_data)

        return cls(
            id=str(job.id),
            job_number=job.job_number,
            status=job.status,
            priority=job.priority,
            created_at=job.created_at,
            updated_at=job.updated_at,
            vehicle_id=job.vehicle_id,
            created_by=job.created_by,
            version=job.version,
            service_type=job.service_type,
            customer_id=job.customer_id,
            assigned_mechanic_id=job.assigned_mechanic_id,
            assigned_at=job.assigned_at,
            completed_at=job.completed_at,
            scheduled_date=job.scheduled_date,
            estimated_duration=job.estimated_duration,
            vehicle_license_plate=job.vehicle_license_plate,
            vehicle_brand=job.vehicle_brand,
            vehicle_model=job.vehicle_model,
            customer_name=job.customer_name,
            customer_phone=job.customer_phone,
            problem_description=job.problem_description,
            mileage=job.mileage,
            parts_needed=tuple(
                PartsNeededEntry.from_dict(entry) for entry in job.parts_needed or []
            ),
            work_order=work_order,
            work_order_stage=job.work_order_stage,
        )
