# projects/activity_actions.py
"""
Activity actions for ActivityLogEntry.

All project activity logging should use these constants so feeds can
filter and render them consistently.
"""

# Project lifecycle
PROJECT_CREATED = "project_created"
EDITOR_ASSIGNED = "editor_assigned"
ASSIGNMENT_ACCEPTED = "assignment_accepted"
ASSIGNMENT_REJECTED = "assignment_rejected"
STATUS_CHANGED = "status_changed"
PROJECT_RATED = "project_rated"

# Files
VERSION_UPLOADED = "version_uploaded"
VERSION_DELETED = "version_deleted"
VOICE_BRIEF_UPLOADED = "voice_brief_uploaded"

# Chat
MESSAGE_SENT = "message_sent"

ACTION_CATEGORIES = {
    "project": [
        PROJECT_CREATED, EDITOR_ASSIGNED, ASSIGNMENT_ACCEPTED,
        ASSIGNMENT_REJECTED, STATUS_CHANGED, PROJECT_RATED,
    ],
    "files": [
        VERSION_UPLOADED, VERSION_DELETED, VOICE_BRIEF_UPLOADED,
    ],
    "chat": [
        MESSAGE_SENT,
    ],
}


def get_all_actions() -> list:
    """Get all project activity actions."""
    return [action for actions in ACTION_CATEGORIES.values() for action in actions]


def is_valid_action(action: str) -> bool:
    return action in get_all_actions()
