"""
Job notifications

Delivery (push, email, SMS) is handled elsewhere; this dispatcher records
what would be sent so the lifecycle has a working default.
"""

import logging
from typing import Callable, List

from django.db import transaction

from apps.job.snapshot import JobSnapshot
from apps.workflow.services.error_persistence import persist_app_error

logger = logging.getLogger(__name__)


class LoggingNotificationDispatcher:
    def notify_job_assigned(self, job: JobSnapshot, mechanic_id: str) -> None:
        logger.info(
            "Notify mechanic %s: job %s (%s) assigned",
            mechanic_id,
            job.job_number,
            job.vehicle_license_plate,
        )

    def notify_job_completed(self, job: JobSnapshot) -> None:
        logger.info(
            "Notify customer %s: job %s completed",
            job.customer_id or job.customer_name,
            job.job_number,
        )

    def notify_parts_needed(self, job: JobSnapshot, category_ids: List[str]) -> None:
        logger.info(
            "Notify parts desk: job %s needs %s",
            job.job_number,
            ", ".join(category_ids),
        )


def notify_after_commit(job_id, send: Callable, *args) -> None:
    """
    Queue a notification for when the current transaction commits.

    Notifications are best-effort: a failing dispatcher is logged and
    recorded, never raised to the caller.
    """

    def deliver():
        try:
            send(*args)
        except Exception as exc:
            logger.exception(
                "Notification %s failed for job %s",
                getattr(send, "__name__", send),
                job_id,
            )
            persist_app_error(exc, kind="notification", job_id=job_id)

    transaction.on_commit(deliver)
