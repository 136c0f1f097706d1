# projects/comments.py
"""
Timestamped comments on a project version.

- Any project participant can comment.
- Only the author can edit or delete a comment.
- The project's creator or the comment's author can resolve / reopen it.
"""
import logging

from django.db import transaction

from .exceptions import NotAllowed, NotFound
from .models import VideoComment
from .realtime import channel, comments_topic
from .sanitizers import MAX_COMMENT_LENGTH, require_text, validate_timestamp
from .services import get_version

logger = logging.getLogger("vcollab.projects")


def get_comment(comment_id) -> VideoComment:
    try:
        return VideoComment.objects.select_related("project", "version").get(pk=comment_id)
    except (VideoComment.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"Comment {comment_id} not found")


def serialize_comment_event(comment: VideoComment, event_type: str = "INSERT") -> dict:
    return {
        "type": event_type,
        "table": "video_comments",
        "record": {
            "id": comment.pk,
            "project_id": comment.project_id,
            "version_id": comment.version_id,
            "user_id": comment.author_id,
            "timestamp_seconds": comment.timestamp_seconds,
            "content": comment.content,
            "is_resolved": comment.is_resolved,
        },
    }


def _publish(comment, event_type):
    event = serialize_comment_event(comment, event_type)
    transaction.on_commit(lambda: channel.publish(comments_topic(comment.version_id), event))


def list_comments(version_id, viewer=None, include_resolved: bool = True):
    version = get_version(version_id)
    if viewer is not None and not version.project.is_participant(viewer):
        raise NotAllowed("Only project participants can view comments")

    qs = VideoComment.objects.filter(version=version).select_related("author")
    if not include_resolved:
        qs = qs.filter(is_resolved=False)
    return qs.order_by("timestamp_seconds", "created_at")


def add_video_comment(version_id, author, timestamp_seconds, content) -> VideoComment:
    content = require_text(content, "content", max_length=MAX_COMMENT_LENGTH)
    seconds = validate_timestamp(timestamp_seconds)

    version = get_version(version_id)
    if not version.project.is_participant(author):
        raise NotAllowed("Only project participants can comment")

    with transaction.atomic():
        comment = VideoComment.objects.create(
            project=version.project,
            version=version,
            author=author,
            timestamp_seconds=seconds,
            content=content,
        )
        _publish(comment, "INSERT")

    logger.info(f"Video comment added: version={version.pk}, author={author.pk}, at={seconds:.2f}s")
    return comment


def update_video_comment(comment_id, actor, content) -> VideoComment:
    content = require_text(content, "content", max_length=MAX_COMMENT_LENGTH)
    comment = get_comment(comment_id)
    if comment.author_id != actor.pk:
        raise NotAllowed("Only the author can edit this comment")

    with transaction.atomic():
        comment.content = content
        comment.save(update_fields=["content", "updated_at"])
        _publish(comment, "UPDATE")
    return comment


def delete_video_comment(comment_id, actor) -> None:
    comment = get_comment(comment_id)
    if comment.author_id != actor.pk:
        raise NotAllowed("Only the author can delete this comment")

    with transaction.atomic():
        _publish(comment, "DELETE")
        comment.delete()

    logger.info(f"Video comment deleted: comment={comment_id}, actor={actor.pk}")


def resolve_video_comment(comment_id, actor, resolved: bool = True) -> VideoComment:
    comment = get_comment(comment_id)
    if actor.pk not in (comment.author_id, comment.project.creator_id):
        raise NotAllowed("Only the project's creator or the comment's author can resolve it")

    with transaction.atomic():
        comment.is_resolved = bool(resolved)
        comment.save(update_fields=["is_resolved", "updated_at"])
        _publish(comment, "UPDATE")
    return comment
