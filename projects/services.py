# projects/services.py
"""
Project lifecycle operations.

Every status change goes through `_apply_transition`, which locks the
project row, validates the move against projects.state_machine and writes it
as a conditional UPDATE (status must still be the one we validated against).
Counters are only ever changed with F() expressions so concurrent writers
never lose an increment.
"""
import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from . import activity_actions as actions
from . import state_machine
from .activity import ActivityService
from .exceptions import (
    DuplicateRating,
    InvalidTransition,
    NotAllowed,
    NotFound,
    StorageError,
    ValidationError,
)
from .models import Project, ProjectVersion
from .sanitizers import (
    MAX_DESCRIPTION_LENGTH,
    MAX_FEEDBACK_LENGTH,
    require_text,
    sanitize_text,
    sanitize_title,
    validate_choice,
    validate_deadline,
    validate_rating,
)
from .state_machine import Transition
from .storage import get_object_store, version_path
from .versioning import EDITED, RAW, VERSION_TYPES, next_version_number

logger = logging.getLogger("vcollab.projects")

User = get_user_model()

ROLE_CREATOR = "creator"
ROLE_EDITOR = "editor"

UNREAD_FIELDS = {
    ROLE_CREATOR: "unread_creator_messages",
    ROLE_EDITOR: "unread_editor_messages",
}


# ---- Lookups ---------------------------------------------------------


def get_project(project_id, for_update: bool = False) -> Project:
    qs = Project.objects.all()
    if for_update:
        qs = qs.select_for_update()
    try:
        return qs.get(pk=project_id)
    except (Project.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"Project {project_id} not found")


def get_version(version_id) -> ProjectVersion:
    try:
        return ProjectVersion.objects.select_related("project").get(pk=version_id)
    except (ProjectVersion.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"Version {version_id} not found")


def projects_for_user(user):
    """
    Projects where `user` is the creator or the assigned editor, most
    recently active first.
    """
    return (
        Project.objects
        .filter(Q(creator=user) | Q(editor=user))
        .select_related("creator", "editor")
        .order_by("-last_activity_at")
    )


def list_versions(project_id):
    return (
        ProjectVersion.objects
        .filter(project_id=project_id)
        .select_related("uploaded_by")
        .order_by("-created_at", "-id")
    )


def _resolve_editor(editor):
    if isinstance(editor, User):
        user = editor
    else:
        try:
            user = User.objects.get(pk=editor)
        except (User.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"User {editor} not found")

    if user.role != User.ROLE_EDITOR:
        raise ValidationError(f"User {user.pk} is not an editor", field="editor_id")
    return user


def _actor_id(actor):
    return getattr(actor, "id", None) or "unknown"


# ---- Transitions -----------------------------------------------------


def _apply_transition(project_id, transition: Transition, actor=None, extra=None, action=None, details=None):
    """
    Move a project along `transition`, writing `extra` fields in the same
    conditional UPDATE. Raises NotFound / InvalidTransition before any write.
    """
    now = timezone.now()

    with transaction.atomic():
        project = get_project(project_id, for_update=True)
        old_status = project.status

        try:
            new_status = state_machine.next_status(old_status, transition)
        except InvalidTransition:
            logger.warning(
                f"Invalid state transition attempted: project={project.pk}, "
                f"from={old_status}, transition={transition.value}, actor={_actor_id(actor)}"
            )
            raise

        changes = {"status": new_status, "last_activity_at": now, "updated_at": now}
        changes.update(extra or {})

        updated = Project.objects.filter(pk=project.pk, status=old_status).update(**changes)
        if not updated:
            project.refresh_from_db(fields=["status"])
            raise InvalidTransition(project.status, transition.value)

        project.refresh_from_db()

        log_details = {"old_status": old_status, "new_status": new_status}
        log_details.update(details or {})
        ActivityService.log_activity(project, actor, action or actions.STATUS_CHANGED, log_details)

    logger.info(
        f"Project state transition: project={project.pk}, "
        f"from={old_status}, to={new_status}, actor={_actor_id(actor)}"
    )
    return project


def create_project(creator, title, platform, description=None, editor=None, deadline=None, priority=None) -> Project:
    """
    Create a project owned by `creator`.

    Without an editor the project starts in `briefing`. With an editor it
    starts directly in `in_edit`, skipping `pending_acceptance`.
    """
    title = require_text(sanitize_title(title), "title", max_length=255)
    platform = validate_choice(platform, Project.Platform.values, "platform")
    priority = validate_choice(priority, Project.Priority.values, "priority", default=Project.Priority.NORMAL.value)
    deadline = validate_deadline(deadline)
    description = sanitize_text(description, max_length=MAX_DESCRIPTION_LENGTH) or None

    editor_user = _resolve_editor(editor) if editor else None
    if editor_user is not None and editor_user.pk == creator.pk:
        raise ValidationError("A creator cannot edit their own project", field="editor_id")

    status = Project.Status.IN_EDIT if editor_user else Project.Status.BRIEFING

    with transaction.atomic():
        project = Project.objects.create(
            creator=creator,
            editor=editor_user,
            title=title,
            description=description,
            platform=platform,
            priority=priority,
            deadline=deadline,
            status=status,
        )
        ActivityService.log_activity(project, creator, actions.PROJECT_CREATED, {"title": title})
        if editor_user:
            ActivityService.log_activity(
                project, creator, actions.EDITOR_ASSIGNED,
                {"editor_id": editor_user.pk, "new_status": status},
            )

    logger.info(f"Project created: project={project.pk}, creator={creator.pk}, status={status}")
    return project


def assign_editor(project_id, editor, actor=None) -> Project:
    editor_user = _resolve_editor(editor)
    project = get_project(project_id)
    if editor_user.pk == project.creator_id:
        raise ValidationError("A creator cannot edit their own project", field="editor_id")

    return _apply_transition(
        project_id,
        Transition.ASSIGN_EDITOR,
        actor=actor,
        extra={"editor": editor_user},
        action=actions.EDITOR_ASSIGNED,
        details={"editor_id": editor_user.pk},
    )


def accept_assignment(project_id, actor=None) -> Project:
    return _apply_transition(
        project_id, Transition.ACCEPT, actor=actor, action=actions.ASSIGNMENT_ACCEPTED,
    )


def reject_assignment(project_id, actor=None) -> Project:
    project = get_project(project_id)
    return _apply_transition(
        project_id,
        Transition.REJECT,
        actor=actor,
        extra={"editor": None},
        action=actions.ASSIGNMENT_REJECTED,
        details={"editor_id": project.editor_id},
    )


def approve_project(project_id, actor=None) -> Project:
    return _apply_transition(project_id, Transition.APPROVE, actor=actor)


def request_changes(project_id, actor=None) -> Project:
    # The editor is notified through their unread counter
    return _apply_transition(
        project_id,
        Transition.REQUEST_CHANGES,
        actor=actor,
        extra={"unread_editor_messages": F("unread_editor_messages") + 1},
    )


def complete_project(project_id, actor=None) -> Project:
    return _apply_transition(project_id, Transition.COMPLETE, actor=actor)


# ---- Versions --------------------------------------------------------


def read_upload(file):
    """
    Accept a Django UploadedFile / file-like object or raw bytes.

    Returns (filename, content, content_type).
    """
    if file is None:
        raise ValidationError("A file is required", field="file")

    if isinstance(file, (bytes, bytearray)):
        name, content, content_type = "upload", bytes(file), None
    else:
        name = getattr(file, "name", None) or "upload"
        content_type = getattr(file, "content_type", None)
        if hasattr(file, "seek"):
            file.seek(0)
        content = file.read()

    if not content:
        raise ValidationError("The uploaded file is empty", field="file")

    return name.rsplit("/", 1)[-1], content, content_type


def _check_upload_allowed(project, version_type):
    if version_type == RAW and not state_machine.can_upload_raw(project.status):
        raise InvalidTransition(project.status, "upload_raw")
    if version_type == EDITED and project.editor_id is None:
        raise InvalidTransition(
            project.status,
            Transition.SUBMIT_EDIT.value,
            detail="An editor must be assigned before edited versions can be uploaded",
        )


def upload_version(project_id, uploader, file, version_type, comment=None) -> ProjectVersion:
    """
    Store a new raw or edited file on a project.

    raw:    numbered 0, 1, 2, ... ; status unchanged
    edited: numbered 1, 2, 3, ... ; status forced to `review` and the
            creator's unread counter bumped by one
    """
    version_type = validate_choice(version_type, VERSION_TYPES, "type")
    filename, content, content_type = read_upload(file)
    comment = sanitize_text(comment, max_length=MAX_FEEDBACK_LENGTH) or None

    # Fail fast before touching the object store
    _check_upload_allowed(get_project(project_id), version_type)

    store = get_object_store()
    now = timezone.now()

    with transaction.atomic():
        project = get_project(project_id, for_update=True)
        _check_upload_allowed(project, version_type)
        old_status = project.status

        number = next_version_number(project.versions.all(), version_type)
        path = version_path(project.pk, version_type, number, filename)

        try:
            ref = store.upload(path, content, content_type=content_type)
        except StorageError as e:
            raise StorageError(e.operation, project_id=project.pk, cause=e.cause) from e

        try:
            file_url = store.get_url(ref)

            version = ProjectVersion.objects.create(
                project=project,
                uploaded_by=uploader,
                version_number=number,
                type=version_type,
                file_url=file_url,
                storage_path=ref,
                file_name=filename,
                comment=comment,
            )

            if version_type == EDITED:
                new_status = state_machine.next_status(old_status, Transition.SUBMIT_EDIT)
                Project.objects.filter(pk=project.pk).update(
                    status=new_status,
                    unread_creator_messages=F("unread_creator_messages") + 1,
                    last_activity_at=now,
                    updated_at=now,
                )
            else:
                new_status = old_status
                Project.objects.filter(pk=project.pk).update(last_activity_at=now, updated_at=now)

            ActivityService.log_activity(
                project, uploader, actions.VERSION_UPLOADED,
                {"version_number": number, "type": version_type},
            )
            if new_status != old_status:
                ActivityService.log_activity(
                    project, uploader, actions.STATUS_CHANGED,
                    {"old_status": old_status, "new_status": new_status},
                )
        except Exception:
            _discard_object(store, ref, project.pk)
            raise

    logger.info(
        f"Version uploaded: project={project.pk}, type={version_type}, "
        f"v{number}, status {old_status} -> {new_status}, actor={_actor_id(uploader)}"
    )
    return version


def _discard_object(store, ref, project_id):
    """
    Best-effort removal of an object whose database row is gone (or was
    never written). Failures are logged, never raised.
    """
    if not ref:
        return
    try:
        store.delete(ref)
    except StorageError as e:
        logger.warning(f"Orphaned object left in storage: project={project_id}, ref={ref}: {e}")


def delete_version(version_id, actor=None) -> None:
    """
    Delete a version row, then try to remove its file. Only the database
    delete must succeed.
    """
    version = get_version(version_id)
    project = version.project
    ref = version.storage_path

    with transaction.atomic():
        version.delete()
        ActivityService.log_activity(
            project, actor, actions.VERSION_DELETED,
            {"version_number": version.version_number, "type": version.kind},
        )

    logger.info(f"Version deleted: project={project.pk}, version={version_id}, actor={_actor_id(actor)}")
    _discard_object(get_object_store(), ref, project.pk)


# ---- Rating ----------------------------------------------------------


def rate_project(project_id, rating, feedback=None, actor=None) -> Project:
    """
    Record the creator's one-time rating (1-5) and optional feedback.
    Only allowed once the project is approved or completed.
    """
    rating = validate_rating(rating)
    feedback = sanitize_text(feedback, max_length=MAX_FEEDBACK_LENGTH) or None

    project = get_project(project_id)
    if actor is not None and actor.pk != project.creator_id:
        raise NotAllowed("Only the project's creator can rate it")

    now = timezone.now()
    with transaction.atomic():
        updated = Project.objects.filter(
            pk=project.pk,
            creator_rating__isnull=True,
            status__in=state_machine.RATEABLE_STATUSES,
        ).update(
            creator_rating=rating,
            creator_feedback=feedback,
            rated_at=now,
            updated_at=now,
        )

        project.refresh_from_db()
        if not updated:
            if project.creator_rating is not None:
                logger.warning(f"Duplicate rating attempted: project={project.pk}, actor={_actor_id(actor)}")
                raise DuplicateRating()
            raise InvalidTransition(project.status, "rate")

        ActivityService.log_activity(
            project, actor or project.creator, actions.PROJECT_RATED,
            {"rating": rating, "has_feedback": bool(feedback)},
        )

    logger.info(f"Project rated: project={project.pk}, rating={rating}")
    return project


def editor_rating_stats(editor) -> dict:
    from django.db.models import Avg, Count

    stats = (
        Project.objects
        .filter(editor=editor, creator_rating__isnull=False)
        .aggregate(avg=Avg("creator_rating"), total=Count("id"))
    )
    avg = stats["avg"]
    return {
        "average": round(avg, 1) if avg is not None else None,
        "total": stats["total"],
    }


# ---- Unread counters -------------------------------------------------


def _unread_field(role) -> str:
    try:
        return UNREAD_FIELDS[role]
    except KeyError:
        raise ValidationError(f"Unknown role: {role}", field="role")


def increment_unread(project_id, recipient_role) -> None:
    """
    Atomically add one to the recipient role's unread counter.
    """
    field = _unread_field(recipient_role)
    updated = Project.objects.filter(pk=project_id).update(**{field: F(field) + 1})
    if not updated:
        raise NotFound(f"Project {project_id} not found")


def reset_unread(project_id, role) -> None:
    field = _unread_field(role)
    updated = Project.objects.filter(pk=project_id).update(**{field: 0})
    if not updated:
        raise NotFound(f"Project {project_id} not found")
