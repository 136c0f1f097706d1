# projects/state_machine.py
"""
Project State Machine.

briefing → pending_acceptance → in_edit → review ⇄ changes_requested
                 └→ briefing (editor rejects)     └→ approved → completed

Edited uploads force `review` from any status. Raw uploads never move the
status and are refused once the project is approved or completed.

Any transition not in VALID_TRANSITIONS is rejected with InvalidTransition.
"""
from typing import Dict, FrozenSet, List, Tuple
import logging

from django.db import models

from .exceptions import InvalidTransition
from .models import Project

logger = logging.getLogger("vcollab.projects")

Status = Project.Status


class Transition(models.TextChoices):
    ASSIGN_EDITOR = "assign_editor", "Assign editor"
    ACCEPT = "accept", "Accept assignment"
    REJECT = "reject", "Reject assignment"
    SUBMIT_EDIT = "submit_edit", "Upload edited version"
    APPROVE = "approve", "Approve"
    REQUEST_CHANGES = "request_changes", "Request changes"
    COMPLETE = "complete", "Complete"


ALL_STATUSES: FrozenSet[str] = frozenset(Status.values)

# transition -> (allowed source statuses, target status)
VALID_TRANSITIONS: Dict[Transition, Tuple[FrozenSet[str], str]] = {
    Transition.ASSIGN_EDITOR: (frozenset({Status.BRIEFING.value}), Status.PENDING_ACCEPTANCE.value),
    Transition.ACCEPT: (frozenset({Status.PENDING_ACCEPTANCE.value}), Status.IN_EDIT.value),
    Transition.REJECT: (frozenset({Status.PENDING_ACCEPTANCE.value}), Status.BRIEFING.value),
    Transition.SUBMIT_EDIT: (ALL_STATUSES, Status.REVIEW.value),
    Transition.APPROVE: (frozenset({Status.REVIEW.value}), Status.APPROVED.value),
    Transition.REQUEST_CHANGES: (frozenset({Status.REVIEW.value}), Status.CHANGES_REQUESTED.value),
    Transition.COMPLETE: (frozenset({Status.APPROVED.value}), Status.COMPLETED.value),
}

# Raw uploads do not move the status; they are only refused here
RAW_UPLOAD_BLOCKED: FrozenSet[str] = frozenset({Status.APPROVED.value, Status.COMPLETED.value})

RATEABLE_STATUSES: FrozenSet[str] = frozenset({Status.APPROVED.value, Status.COMPLETED.value})


def source_statuses(transition: Transition) -> FrozenSet[str]:
    return VALID_TRANSITIONS[Transition(transition)][0]


def target_status(transition: Transition) -> str:
    return VALID_TRANSITIONS[Transition(transition)][1]


def can_transition(status: str, transition: Transition) -> bool:
    """
    Check whether `transition` may be applied to a project in `status`.
    """
    status = str(status)
    if status not in ALL_STATUSES:
        return False
    return status in source_statuses(transition)


def next_status(status: str, transition: Transition) -> str:
    """
    Return the status a project in `status` moves to under `transition`.

    Raises InvalidTransition when the table does not allow it.
    """
    transition = Transition(transition)
    if not can_transition(status, transition):
        raise InvalidTransition(status, transition.value)
    return target_status(transition)


def get_allowed_transitions(status: str) -> List[str]:
    """
    Transitions currently available from `status`, in table order.
    """
    return [t.value for t in VALID_TRANSITIONS if can_transition(status, t)]


def is_terminal_status(status: str) -> bool:
    """
    A status is terminal when only the forced edited-upload path leaves it.
    """
    return all(t == Transition.SUBMIT_EDIT.value for t in get_allowed_transitions(status))


def can_upload_raw(status: str) -> bool:
    status = str(status)
    return status in ALL_STATUSES and status not in RAW_UPLOAD_BLOCKED


def can_rate(status: str) -> bool:
    return str(status) in RATEABLE_STATUSES
