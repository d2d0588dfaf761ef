from django.test import SimpleTestCase

from apps.job.enums import JobStatus
from apps.job.exceptions import InvalidJobTransitionError
from apps.job.services.status_transition_service import (
    ALLOWED_TRANSITIONS,
    get_allowed_next_statuses,
    get_transition_error_message,
    is_terminal_status,
    is_valid_transition,
    validate_transition,
)


class TransitionTableTests(SimpleTestCase):
    def test_every_pair_matches_the_table(self):
        for current in JobStatus.values:
            for proposed in JobStatus.values:
                expected = current == proposed or proposed in ALLOWED_TRANSITIONS[current]
                self.assertEqual(
                    is_valid_transition(current, proposed),
                    expected,
                    f"{current} -> {proposed}",
                )

    def test_lifecycle_edges(self):
        self.assertTrue(is_valid_transition("not_started", "in_progress"))
        self.assertTrue(is_valid_transition("waiting_for_parts", "in_progress"))
        self.assertTrue(is_valid_transition("in_progress", "completed"))
        self.assertFalse(is_valid_transition("not_started", "completed"))
        self.assertFalse(is_valid_transition("ready_for_pickup", "in_progress"))

    def test_unknown_status_only_allows_itself(self):
        self.assertFalse(is_valid_transition("archived", "in_progress"))
        self.assertTrue(is_valid_transition("archived", "archived"))
        self.assertEqual(get_allowed_next_statuses("archived"), [])

    def test_allowed_next_statuses(self):
        self.assertEqual(
            get_allowed_next_statuses(JobStatus.IN_PROGRESS),
            [
                JobStatus.WAITING_FOR_PARTS,
                JobStatus.READY_FOR_PICKUP,
                JobStatus.COMPLETED,
            ],
        )

    def test_only_completed_is_terminal(self):
        terminal = [s for s in JobStatus.values if is_terminal_status(s)]
        self.assertEqual(terminal, [JobStatus.COMPLETED])


class TransitionMessageTests(SimpleTestCase):
    def test_same_status(self):
        self.assertEqual(
            get_transition_error_message("in_progress", "in_progress"),
            "Job is already in this status",
        )

    def test_terminal(self):
        self.assertEqual(
            get_transition_error_message("completed", "in_progress"),
            "Cannot change status from 'completed'. This job is complete.",
        )

    def test_edge_not_permitted_lists_allowed(self):
        self.assertEqual(
            get_transition_error_message("not_started", "completed"),
            "Invalid status transition from 'not_started' to 'completed'. "
            "Allowed next statuses: 'in_progress'",
        )

    def test_validate_transition_raises_with_message(self):
        with self.assertRaises(InvalidJobTransitionError) as ctx:
            validate_transition("completed", "in_progress")
        self.assertEqual(ctx.exception.current_status, "completed")
        self.assertEqual(ctx.exception.proposed_status, "in_progress")
        self.assertIn("This job is complete", str(ctx.exception))

    def test_validate_transition_accepts_valid(self):
        validate_transition("in_progress", "ready_for_pickup")
        validate_transition("completed", "completed")
