"""
Job Lifecycle Service

Coordinates everything that happens to one job while someone has it open:
status changes, parts-needed bookkeeping, completion (with stock
reconciliation) and saving the work order.

The service never edits its own copy of the job. Every change goes through
the job store, and current_job is refreshed by the store's change
subscription only, so two people working on the same job see the same state.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from django.conf import settings
from django.utils import timezone

from apps.catalog.enums import StockTransactionType
from apps.job.enums import JobStatus
from apps.job.exceptions import (
    InvalidJobTransitionError,
    JobValidationError,
    MissingCompletionConfirmationError,
    MissingPartsNeededError,
)
from apps.job.services.interfaces import (
    CatalogStore,
    InventoryAdjuster,
    JobStore,
    NotificationDispatcher,
)
from apps.job.services.job_health_service import (
    JobHealthIndicator,
    calculate_job_health,
)
from apps.job.services.notification_service import notify_after_commit
from apps.job.services.status_transition_service import (
    get_transition_error_message,
    is_valid_transition,
    validate_transition,
)
from apps.job.services.submission_guard import SubmissionGuard
from apps.job.services.work_order_composer import WorkOrderComposer, new_work_order
from apps.job.snapshot import JobSnapshot, PartsNeededEntry, merge_parts_needed
from apps.job.work_order import (
    STAGE_JOB_COMPLETED,
    CompletionConfirmation,
    WorkOrderPart,
    infer_stage,
)
from apps.workflow.services.error_persistence import persist_app_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionResult:
    job: JobSnapshot
    deducted: Tuple[WorkOrderPart, ...]
    skipped: Tuple[WorkOrderPart, ...]


def _as_entry(entry) -> PartsNeededEntry:
    if isinstance(entry, PartsNeededEntry):
        return entry
    return PartsNeededEntry.from_dict(entry)


class JobLifecycleService:
    """
    Lifecycle operations for one job on behalf of one user.

    Args:
        job_id: The job being worked on.
        job_store: JobStore implementation.
        catalog_store: CatalogStore, used by work order sessions.
        inventory: InventoryAdjuster, used when a job is completed.
        notifications: NotificationDispatcher.
        actor_id: The user making the changes.
        mechanic_name: Shown on new work orders.
    """

    def __init__(
        self,
        job_id: str,
        job_store: JobStore,
        catalog_store: CatalogStore,
        inventory: InventoryAdjuster,
        notifications: NotificationDispatcher,
        actor_id: str,
        mechanic_name: str = "",
    ):
        self.job_id = str(job_id)
        self.job_store = job_store
        self.catalog_store = catalog_store
        self.inventory = inventory
        self.notifications = notifications
        self.actor_id = actor_id
        self.mechanic_name = mechanic_name

        self._guard = SubmissionGuard()
        self.current_job: JobSnapshot = job_store.get(self.job_id)
        self._unsubscribe = job_store.subscribe(self.job_id, self._on_job_changed)

    def _on_job_changed(self, snapshot: JobSnapshot) -> None:
        self.current_job = snapshot

    def close(self) -> None:
        """Stop listening for changes. Safe to call more than once."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _update(self, fields: dict, expected_version: Optional[int] = None) -> JobSnapshot:
        if expected_version is None:
            expected_version = self.current_job.version
        return self.job_store.update(
            self.job_id,
            fields,
            self.actor_id,
            expected_version=expected_version,
        )

    # ------------------------------------------------------------------
    # Status

    def apply_status_change(
        self,
        new_status: str,
        parts_needed: Optional[Iterable] = None,
        completion: Optional[CompletionConfirmation] = None,
    ):
        """
        Move the job to new_status.

        Moving to waiting_for_parts needs the part categories that are
        missing, and completing needs the mechanic's confirmation; both are
        handed on to record_parts_needed and complete_job.

        Returns:
            The stored JobSnapshot, or a CompletionResult when completing.

        Raises:
            InvalidJobTransitionError: If the status change is not allowed.
            MissingPartsNeededError: waiting_for_parts without categories.
            MissingCompletionConfirmationError: completed without confirmation.
        """
        job = self.current_job
        validate_transition(job.status, new_status)

        if new_status == JobStatus.WAITING_FOR_PARTS:
            if not parts_needed:
                raise MissingPartsNeededError(
                    "Select at least one part category before waiting for parts"
                )
            return self.record_parts_needed(parts_needed)

        if new_status == job.status:
            return job

        if new_status == JobStatus.COMPLETED:
            if completion is None:
                raise MissingCompletionConfirmationError(
                    "Confirm the work done before completing the job"
                )
            return self.complete_job(completion)

        logger.info(
            "Job %s status %s -> %s by %s",
            job.job_number,
            job.status,
            new_status,
            self.actor_id,
        )
        return self._update({"status": new_status})

    def record_parts_needed(self, entries: Iterable) -> JobSnapshot:
        """
        Add part categories to the job and put it in waiting_for_parts.

        Categories already recorded keep their status. The parts desk is only
        notified when at least one new category was added.
        """
        job = self.current_job
        incoming = [_as_entry(entry) for entry in entries]
        if not incoming:
            raise MissingPartsNeededError("No part categories given")
        if any(not entry.category_id for entry in incoming):
            raise JobValidationError("Part categories need an id")

        validate_transition(job.status, JobStatus.WAITING_FOR_PARTS)

        merged, added = merge_parts_needed(job.parts_needed, incoming)
        if not added and job.status == JobStatus.WAITING_FOR_PARTS:
            return job

        snapshot = self._update(
            {"status": JobStatus.WAITING_FOR_PARTS, "parts_needed": merged}
        )
        if added:
            notify_after_commit(
                self.job_id,
                self.notifications.notify_parts_needed,
                snapshot,
                [entry.category_id for entry in added],
            )
        return snapshot

    # ------------------------------------------------------------------
    # Completion

    def complete_job(
        self, confirmation: CompletionConfirmation, now: Optional[datetime] = None
    ) -> CompletionResult:
        """
        Complete the job using the mechanic's confirmation.

        Confirmed quantities replace the work order's quantities; parts and
        findings marked removed (or confirmed at quantity 0) are struck from
        the work order. Stock is then deducted for every remaining part that
        can be matched to the catalog. Parts that cannot be matched are
        reported in the result, not raised.

        Raises:
            InvalidJobTransitionError: If the job cannot be completed from its
                current status.
            MissingCompletionConfirmationError: If confirmation is None.
        """
        job = self.current_job
        if job.status == JobStatus.COMPLETED or not is_valid_transition(
            job.status, JobStatus.COMPLETED
        ):
            raise InvalidJobTransitionError(
                job.status,
                JobStatus.COMPLETED,
                get_transition_error_message(job.status, JobStatus.COMPLETED),
            )
        if confirmation is None:
            raise MissingCompletionConfirmationError(
                "Confirm the work done before completing the job"
            )

        now = now or timezone.now()
        document = job.work_order or new_work_order(
            job, self.actor_id, self.mechanic_name
        )

        confirmed = {c.part_id: c for c in confirmation.parts_confirmed}
        parts = []
        for line in document.parts:
            confirmation_line = confirmed.get(line.id)
            if confirmation_line is None:
                parts.append(line)
            elif not confirmation_line.is_removed:
                parts.append(
                    replace(line, quantity=confirmation_line.confirmed_quantity)
                )

        removed_findings = {f.finding_id for f in confirmation.faults_checked if f.removed}
        findings = tuple(f for f in document.findings if f.id not in removed_findings)

        if confirmation.unfixed_faults:
            logger.warning(
                "Job %s completed with %d unfixed fault(s): %s",
                job.job_number,
                len(confirmation.unfixed_faults),
                "; ".join(f.description for f in confirmation.unfixed_faults),
            )

        confirmation = replace(
            confirmation,
            confirmed_at=confirmation.confirmed_at or now,
            confirmed_by=confirmation.confirmed_by or self.actor_id,
        )
        document = replace(
            document,
            parts=tuple(parts),
            findings=findings,
            completion_confirmation=confirmation,
            completed_at=now,
        )

        snapshot = self._update(
            {
                "status": JobStatus.COMPLETED,
                "completed_at": now,
                "work_order": document,
                "work_order_stage": STAGE_JOB_COMPLETED,
            }
        )
        logger.info("Job %s completed by %s", job.job_number, self.actor_id)

        deducted, skipped = self._deduct_stock(document.parts)
        notify_after_commit(
            self.job_id, self.notifications.notify_job_completed, snapshot
        )
        return CompletionResult(
            job=snapshot, deducted=tuple(deducted), skipped=tuple(skipped)
        )

    def _deduct_stock(
        self, parts: Iterable[WorkOrderPart]
    ) -> Tuple[List[WorkOrderPart], List[WorkOrderPart]]:
        deducted: List[WorkOrderPart] = []
        skipped: List[WorkOrderPart] = []

        catalog_lines = [line for line in parts if line.part_id]
        other_lines = [line for line in parts if not line.part_id]

        # One line at a time so a bad reference only skips its own line
        for line in catalog_lines:
            try:
                transactions = self.inventory.deduct_stock_for_job(
                    [line], self.job_id, self.actor_id
                )
            except Exception as exc:
                logger.exception(
                    "Stock deduction failed for part %s on job %s",
                    line.part_id,
                    self.job_id,
                )
                persist_app_error(
                    exc,
                    kind="stock_deduction",
                    job_id=self.job_id,
                    part_id=line.part_id,
                )
                transactions = []
            (deducted if transactions else skipped).append(line)

        # Lines typed in by hand may still match a catalog part by number
        for line in other_lines:
            part_number = (line.part_number or "").strip()
            if not part_number:
                logger.info(
                    "No catalog match for part '%s' on job %s, stock not deducted",
                    line.part_name,
                    self.job_id,
                )
                skipped.append(line)
                continue
            try:
                catalog_part = self.inventory.lookup_part_by_number(part_number)
                stock_transaction = None
                if catalog_part is not None:
                    stock_transaction = self.inventory.adjust_stock(
                        catalog_part.id,
                        -line.quantity,
                        StockTransactionType.USAGE,
                        self.actor_id,
                        {
                            "job_id": self.job_id,
                            "cost_per_unit": line.unit_price,
                            "reason": f"Used in job {self.current_job.job_number}",
                            "notes": f"Part: {line.part_name} ({part_number})",
                        },
                    )
            except Exception as exc:
                logger.exception(
                    "Stock deduction failed for part %s on job %s",
                    part_number,
                    self.job_id,
                )
                persist_app_error(
                    exc,
                    kind="stock_deduction",
                    job_id=self.job_id,
                    part_number=part_number,
                )
                stock_transaction = None

            if stock_transaction is None:
                logger.warning(
                    "Part number %s not found in catalog, skipped for job %s",
                    part_number,
                    self.job_id,
                )
                skipped.append(line)
            else:
                deducted.append(line)

        return deducted, skipped

    # ------------------------------------------------------------------
    # Work order

    def open_work_order(self) -> WorkOrderComposer:
        return WorkOrderComposer(
            self.current_job,
            self.catalog_store,
            self.actor_id,
            mechanic_name=self.mechanic_name,
        )

    def discard_work_order(self, composer: WorkOrderComposer) -> None:
        """
        Drop a session's edits. Nothing was saved, so nothing is undone; the
        session is closed and cannot be saved afterwards.
        """
        logger.info(
            "Work order session %s for job %s discarded",
            composer.session_id,
            composer.job_number,
        )
        composer.discard()

    def save_work_order(
        self, composer: WorkOrderComposer, now: Optional[datetime] = None
    ) -> JobSnapshot:
        """
        Finalize the composer's document and store it on the job.

        The job's status follows the parts list: a job in progress that now
        has parts goes to waiting_for_parts, and a job waiting for parts whose
        parts were all removed goes back to in_progress.

        The write is checked against the job version the session was opened
        at, so a session opened before someone else changed the job cannot
        overwrite their work.

        Raises:
            DuplicateSubmissionError: If this session is already being saved.
            JobValidationError: If the session was discarded or the job is
                already completed. Completed work orders only change through
                completion.
            JobVersionConflictError: If the job changed since the session was
                opened. The composer is editable again; open a new session on
                the current job to redo the edits.
        """
        key = f"work-order:{composer.session_id}"
        with self._guard.hold(key):
            if composer.is_discarded:
                raise JobValidationError(
                    f"Work order session {composer.session_id} was discarded"
                )
            job = self.current_job
            if job.status == JobStatus.COMPLETED:
                raise JobValidationError(
                    f"Job {job.job_number} is complete, its work order can no "
                    f"longer be changed"
                )

            document = composer.finalize(now)
            try:
                fields = {
                    "work_order": document,
                    "work_order_stage": self._stage_to_store(
                        job, infer_stage(document)
                    ),
                }
                new_status = self._status_for_parts(job.status, document.has_parts)
                if new_status is not None:
                    validate_transition(job.status, new_status)
                    fields["status"] = new_status
                snapshot = self._update(fields, expected_version=composer.base_version)
            except Exception:
                logger.warning(
                    "Work order save for job %s failed, session %s reopened",
                    job.job_number,
                    composer.session_id,
                    exc_info=True,
                )
                composer.reopen()
                raise

        if new_status == JobStatus.WAITING_FOR_PARTS:
            notify_after_commit(
                self.job_id,
                self.notifications.notify_parts_needed,
                snapshot,
                list(snapshot.category_ids),
            )
        return snapshot

    @staticmethod
    def _stage_to_store(job: JobSnapshot, inferred: int) -> int:
        if settings.WORK_ORDER["STAGE_REGRESSION"] == "clamp":
            return max(job.work_order_stage or 0, inferred)
        return inferred

    @staticmethod
    def _status_for_parts(status: str, has_parts: bool) -> Optional[str]:
        if (
            has_parts
            and status != JobStatus.WAITING_FOR_PARTS
            and is_valid_transition(status, JobStatus.WAITING_FOR_PARTS)
        ):
            return JobStatus.WAITING_FOR_PARTS
        if not has_parts and status == JobStatus.WAITING_FOR_PARTS:
            return JobStatus.IN_PROGRESS
        return None

    # ------------------------------------------------------------------
    # Assignment and health

    def assign_mechanic(
        self, mechanic_id: str, claim: bool = False, now: Optional[datetime] = None
    ) -> JobSnapshot:
        """
        Assign the job to a mechanic. Claiming (a mechanic taking the job
        themselves) also starts it.
        """
        if not mechanic_id:
            raise JobValidationError("A mechanic id is required")

        job = self.current_job
        fields = {
            "assigned_mechanic_id": mechanic_id,
            "assigned_at": now or timezone.now(),
        }
        if claim and job.status != JobStatus.IN_PROGRESS:
            validate_transition(job.status, JobStatus.IN_PROGRESS)
            fields["status"] = JobStatus.IN_PROGRESS

        snapshot = self._update(fields)
        logger.info("Job %s assigned to %s", job.job_number, mechanic_id)
        notify_after_commit(
            self.job_id, self.notifications.notify_job_assigned, snapshot, mechanic_id
        )
        return snapshot

    def health(self, now: Optional[datetime] = None) -> JobHealthIndicator:
        return calculate_job_health(self.current_job, now)
