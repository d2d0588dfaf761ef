"""
Job status transitions

One table decides which status changes are allowed. Everything that changes
a job's status (the lifecycle service, intake, admin actions) validates
through validate_transition before writing.

Lifecycle:
1. not_started -> in_progress (mechanic starts work)
2. in_progress <-> waiting_for_parts (parts needed / parts arrived)
3. in_progress / waiting_for_parts -> ready_for_pickup
4. ready_for_pickup -> completed (customer picked up the vehicle)

Jobs can also be completed straight from in_progress or waiting_for_parts.
"""

from typing import Dict, FrozenSet, List

from apps.job.enums import JobStatus
from apps.job.exceptions import InvalidJobTransitionError

ALLOWED_TRANSITIONS: Dict[str, List[str]] = {
    JobStatus.NOT_STARTED: [JobStatus.IN_PROGRESS],
    JobStatus.IN_PROGRESS: [
        JobStatus.WAITING_FOR_PARTS,
        JobStatus.READY_FOR_PICKUP,
        JobStatus.COMPLETED,
    ],
    JobStatus.WAITING_FOR_PARTS: [
        JobStatus.IN_PROGRESS,
        JobStatus.READY_FOR_PICKUP,
        JobStatus.COMPLETED,
    ],
    JobStatus.READY_FOR_PICKUP: [JobStatus.COMPLETED],
    JobStatus.COMPLETED: [],
}

TERMINAL_STATUSES: FrozenSet[str] = frozenset(
    status for status, allowed in ALLOWED_TRANSITIONS.items() if not allowed
)


def is_valid_transition(current_status: str, new_status: str) -> bool:
    """Staying in the same status is always allowed."""
    if current_status == new_status:
        return True
    return new_status in ALLOWED_TRANSITIONS.get(current_status, [])


def get_allowed_next_statuses(status: str) -> List[JobStatus]:
    return [JobStatus(s) for s in ALLOWED_TRANSITIONS.get(status, [])]


def is_terminal_status(status: str) -> bool:
    return status in TERMINAL_STATUSES


def get_transition_error_message(current_status: str, new_status: str) -> str:
    """Human-readable reason why a transition is not allowed."""
    if current_status == new_status:
        return "Job is already in this status"

    if is_terminal_status(current_status):
        return f"Cannot change status from '{current_status}'. This job is complete."

    allowed = ", ".join(f"'{s}'" for s in ALLOWED_TRANSITIONS.get(current_status, []))
    return (
        f"Invalid status transition from '{current_status}' to '{new_status}'. "
        f"Allowed next statuses: {allowed}"
    )


def validate_transition(current_status: str, new_status: str) -> None:
    """
    Raises:
        InvalidJobTransitionError: If the table does not allow the change.
    """
    if not is_valid_transition(current_status, new_status):
        raise InvalidJobTransitionError(
            current_status,
            new_status,
            get_transition_error_message(current_status, new_status),
        )
