"""
Collaborators the lifecycle services depend on.

The services only talk to these protocols, so tests and other front ends can
hand in their own implementations. The Django-backed ones live in
apps.job.services.job_store, apps.catalog.services and
apps.job.services.notification_service.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol

from apps.job.snapshot import JobSnapshot

Unsubscribe = Callable[[], None]


class JobStore(Protocol):
    def get(self, job_id: str) -> JobSnapshot: ...

    def subscribe(
        self, job_id: str, on_change: Callable[[JobSnapshot], None]
    ) -> Unsubscribe: ...

    def update(
        self,
        job_id: str,
        fields: Dict[str, Any],
        actor_id: str,
        expected_version: Optional[int] = None,
    ) -> JobSnapshot: ...

    def create(self, fields: Dict[str, Any], actor_id: str) -> JobSnapshot: ...


class CatalogStore(Protocol):
    def list_active_services(self) -> List[Any]: ...

    def list_active_parts(self) -> List[Any]: ...

    def add_service(self, draft: Dict[str, Any], actor_id: str) -> str: ...

    def add_part(self, draft: Dict[str, Any], actor_id: str) -> str: ...


class InventoryAdjuster(Protocol):
    def adjust_stock(
        self,
        part_id: str,
        delta: int,
        transaction_type: str,
        actor_id: str,
        meta: Optional[Dict[str, Any]] = None,
    ) -> Any: ...

    def deduct_stock_for_job(
        self, parts: Iterable[Any], job_id: str, actor_id: str
    ) -> Any: ...

    def lookup_part_by_number(self, part_number: str) -> Any: ...


class NotificationDispatcher(Protocol):
    def notify_job_assigned(self, job: JobSnapshot, mechanic_id: str) -> None: ...

    def notify_job_completed(self, job: JobSnapshot) -> None: ...

    def notify_parts_needed(
        self, job: JobSnapshot, category_ids: List[str]
    ) -> None: ...
