# projects/chat.py
"""
Project chat: messages between a project's creator and editor.

Sending bumps the *other* side's unread counter by exactly one; reading
resets the reader's counter to zero.
"""
import logging

from django.db import transaction
from django.db.models import OuterRef, Subquery
from django.utils import timezone

from . import activity_actions as actions
from .activity import ActivityService
from .exceptions import NotAllowed
from .models import Message, Project
from .realtime import channel, messages_topic
from .sanitizers import MAX_MESSAGE_LENGTH, require_text
from .services import (
    ROLE_CREATOR,
    ROLE_EDITOR,
    UNREAD_FIELDS,
    get_project,
    increment_unread,
    projects_for_user,
    reset_unread,
)

logger = logging.getLogger("vcollab.projects")

RECIPIENT_ROLE = {
    ROLE_CREATOR: ROLE_EDITOR,
    ROLE_EDITOR: ROLE_CREATOR,
}


def serialize_message_event(message: Message) -> dict:
    return {
        "type": "INSERT",
        "table": "messages",
        "record": {
            "id": message.pk,
            "project_id": message.project_id,
            "sender_id": message.sender_id,
            "content": message.content,
            "created_at": message.created_at.isoformat(),
        },
    }


def send_message(project_id, sender, content) -> Message:
    content = require_text(content, "content", max_length=MAX_MESSAGE_LENGTH)
    project = get_project(project_id)

    sender_role = project.role_of(sender)
    if sender_role is None:
        raise NotAllowed("Only the project's creator and editor can post messages")

    now = timezone.now()

    with transaction.atomic():
        message = Message.objects.create(project=project, sender=sender, content=content)

        increment_unread(project.pk, RECIPIENT_ROLE[sender_role])
        Project.objects.filter(pk=project.pk).update(last_activity_at=now)
        ActivityService.log_activity(project, sender, actions.MESSAGE_SENT, {"message_id": message.pk})

        transaction.on_commit(lambda: channel.publish(messages_topic(project.pk), serialize_message_event(message)))

    logger.info(f"Message sent: project={project.pk}, sender={sender.pk}, role={sender_role}")
    return message


def list_messages(project_id, viewer=None):
    """
    Messages for a project, oldest first. When `viewer` is a participant
    their unread counter is reset.
    """
    project = get_project(project_id)
    if viewer is not None:
        role = project.role_of(viewer)
        if role is None:
            raise NotAllowed("Only the project's creator and editor can read messages")
        reset_unread(project.pk, role)

    return Message.objects.filter(project=project).select_related("sender").order_by("created_at", "id")


def threads_for_user(user):
    """
    One row per project the user takes part in, with their unread count and
    the latest message, most recently active first.
    """
    latest = Message.objects.filter(project=OuterRef("pk")).order_by("-created_at", "-id")

    projects = projects_for_user(user).annotate(
        last_message_content=Subquery(latest.values("content")[:1]),
        last_message_at=Subquery(latest.values("created_at")[:1]),
        last_message_sender_id=Subquery(latest.values("sender_id")[:1]),
    )

    threads = []
    for project in projects:
        role = project.role_of(user)
        threads.append({
            "project_id": project.pk,
            "title": project.title,
            "platform": project.platform,
            "status": project.status,
            "role": role,
            "unread": getattr(project, UNREAD_FIELDS[role]),
            "last_activity_at": project.last_activity_at,
            "last_message": {
                "content": project.last_message_content,
                "created_at": project.last_message_at,
                "sender_id": project.last_message_sender_id,
            } if project.last_message_content is not None else None,
        })
    return threads
