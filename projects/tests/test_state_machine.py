from django.test import SimpleTestCase

from projects import state_machine
from projects.exceptions import InvalidTransition
from projects.models import Project
from projects.state_machine import Transition

Status = Project.Status


class TransitionTableTests(SimpleTestCase):
    def test_happy_path(self):
        steps = [
            (Status.BRIEFING, Transition.ASSIGN_EDITOR, Status.PENDING_ACCEPTANCE),
            (Status.PENDING_ACCEPTANCE, Transition.ACCEPT, Status.IN_EDIT),
            (Status.IN_EDIT, Transition.SUBMIT_EDIT, Status.REVIEW),
            (Status.REVIEW, Transition.REQUEST_CHANGES, Status.CHANGES_REQUESTED),
            (Status.CHANGES_REQUESTED, Transition.SUBMIT_EDIT, Status.REVIEW),
            (Status.REVIEW, Transition.APPROVE, Status.APPROVED),
            (Status.APPROVED, Transition.COMPLETE, Status.COMPLETED),
        ]
        for current, transition, expected in steps:
            with self.subTest(current=current, transition=transition):
                self.assertEqual(state_machine.next_status(current, transition), expected)

    def test_reject_returns_to_briefing(self):
        self.assertEqual(
            state_machine.next_status(Status.PENDING_ACCEPTANCE, Transition.REJECT),
            Status.BRIEFING,
        )

    def test_submit_edit_is_allowed_from_every_status(self):
        for current in Status.values:
            with self.subTest(current=current):
                self.assertEqual(state_machine.next_status(current, Transition.SUBMIT_EDIT), Status.REVIEW)

    def test_approve_outside_review_is_rejected(self):
        for current in Status.values:
            if current == Status.REVIEW:
                continue
            with self.subTest(current=current):
                with self.assertRaises(InvalidTransition) as ctx:
                    state_machine.next_status(current, Transition.APPROVE)
                self.assertEqual(ctx.exception.current_status, current)
                self.assertEqual(ctx.exception.transition, "approve")

    def test_complete_requires_approved(self):
        self.assertFalse(state_machine.can_transition(Status.REVIEW, Transition.COMPLETE))
        self.assertTrue(state_machine.can_transition(Status.APPROVED, Transition.COMPLETE))

    def test_unknown_status_cannot_transition(self):
        self.assertFalse(state_machine.can_transition("archived", Transition.SUBMIT_EDIT))
        with self.assertRaises(InvalidTransition):
            state_machine.next_status("archived", Transition.SUBMIT_EDIT)

    def test_every_target_is_a_known_status(self):
        for transition in Transition:
            self.assertIn(state_machine.target_status(transition), Status.values)


class StatusQueryTests(SimpleTestCase):
    def test_allowed_transitions_from_review(self):
        self.assertEqual(
            state_machine.get_allowed_transitions(Status.REVIEW),
            ["submit_edit", "approve", "request_changes"],
        )

    def test_allowed_transitions_from_briefing(self):
        self.assertEqual(
            state_machine.get_allowed_transitions(Status.BRIEFING),
            ["assign_editor", "submit_edit"],
        )

    def test_completed_is_terminal(self):
        self.assertTrue(state_machine.is_terminal_status(Status.COMPLETED))
        self.assertFalse(state_machine.is_terminal_status(Status.APPROVED))

    def test_raw_uploads_blocked_after_approval(self):
        self.assertTrue(state_machine.can_upload_raw(Status.CHANGES_REQUESTED))
        self.assertFalse(state_machine.can_upload_raw(Status.APPROVED))
        self.assertFalse(state_machine.can_upload_raw(Status.COMPLETED))

    def test_rating_window(self):
        self.assertTrue(state_machine.can_rate(Status.APPROVED))
        self.assertTrue(state_machine.can_rate(Status.COMPLETED))
        self.assertFalse(state_machine.can_rate(Status.REVIEW))
