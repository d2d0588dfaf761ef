class JobError(Exception):
    """Base class for errors raised by the job lifecycle services."""

    retryable = False


class JobValidationError(JobError):
    """A request was rejected before anything was changed."""


class InvalidJobTransitionError(JobValidationError):
    """Exception raised when a status change is not in the transition table.

    Args:
        current_status: The job's status at the time of the request.
        proposed_status: The status the caller asked for.
        message: Human readable reason, suitable for showing to the user.
    """

    def __init__(self, current_status, proposed_status, message):
        self.current_status = current_status
        self.proposed_status = proposed_status
        super().__init__(message)


class MissingPartsNeededError(JobValidationError):
    """Moving a job to waiting_for_parts needs at least one part category."""


class MissingCompletionConfirmationError(JobValidationError):
    """Completing a job needs the mechanic's completion confirmation."""


class WorkOrderValidationError(JobValidationError):
    """A work-order edit carried an invalid value."""


class WorkOrderItemNotFoundError(JobValidationError):
    def __init__(self, kind, item_id):
        self.kind = kind
        self.item_id = item_id
        super().__init__(f"No {kind} with id {item_id} on this work order")


class WorkOrderFrozenError(JobError):
    """The work order was finalized and can no longer be edited."""


class JobNotFoundError(JobError):
    def __init__(self, job_id):
        self.job_id = job_id
        super().__init__(f"Job {job_id} not found")


class JobVersionConflictError(JobError):
    """Exception raised when another client saved the job first.

    Args:
        job_id: The job that was being written.
        expected_version: The version the caller based its change on.
        actual_version: The version currently stored.
    """

    retryable = True

    def __init__(self, job_id, expected_version, actual_version):
        self.job_id = job_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Job {job_id} was updated by someone else "
            f"(expected version {expected_version}, found {actual_version}). "
            f"Please try again."
        )


class DuplicateSubmissionError(JobError):
    """A second submission arrived while the first one was still in flight."""

    def __init__(self, key):
        self.key = key
        super().__init__(f"Submission {key} is already in progress")


class JobNumberTakenError(JobValidationError):
    def __init__(self, job_number):
        self.job_number = job_number
        super().__init__(f"Job number {job_number} is already in use")
