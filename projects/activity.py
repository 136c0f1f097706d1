import logging

from .activity_actions import is_valid_action
from .models import ActivityLogEntry

logger = logging.getLogger("vcollab.projects")


class ActivityService:
    @staticmethod
    def log_activity(project, actor, action, details=None):
        """
        Append an ActivityLogEntry for `project`.

        Callers run inside the same transaction as the mutation being
        recorded, so a rolled-back mutation leaves no activity behind.
        """
        if details is None:
            details = {}

        if not is_valid_action(action):
            raise ValueError(f"Unknown activity action: {action}")

        entry = ActivityLogEntry.objects.create(
            project_id=getattr(project, "pk", project),
            user=actor if getattr(actor, "pk", None) else None,
            action=action,
            details=details,
        )
        logger.debug(f"Activity logged: {action} for project {entry.project_id}")
        return entry

    @staticmethod
    def feed_for_user(user, limit=50):
        """
        Latest activity across every project `user` creates or edits.
        """
        from django.db.models import Q

        return (
            ActivityLogEntry.objects
            .filter(Q(project__creator=user) | Q(project__editor=user))
            .select_related("project", "user")
            .order_by("-created_at", "-id")[:limit]
        )
