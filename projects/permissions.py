from rest_framework.permissions import BasePermission

from .models import Project, ProjectVersion, VideoComment
from .versioning import EDITED, RAW


# ---- Helper functions -------------------------------------------------


def resolve_project(obj):
    """
    Walk from a version / comment / message back to its project.
    """
    if isinstance(obj, Project):
        return obj
    if isinstance(obj, (ProjectVersion, VideoComment)):
        return obj.project
    return getattr(obj, "project", None)


def is_project_creator(user, project) -> bool:
    if not user or not user.is_authenticated or project is None:
        return False
    return project.creator_id == user.id


def is_project_editor(user, project) -> bool:
    if not user or not user.is_authenticated or project is None:
        return False
    return project.editor_id is not None and project.editor_id == user.id


def can_upload_version(user, project, version_type) -> bool:
    """
    Raw footage comes from the creator; edited cuts come from the editor
    once they have accepted the assignment.
    """
    if version_type == RAW:
        return is_project_creator(user, project)
    if version_type == EDITED:
        return (
            is_project_editor(user, project)
            and project.status != Project.Status.PENDING_ACCEPTANCE
        )
    return False


def can_delete_version(user, version) -> bool:
    """
    The uploader or the project's creator.
    """
    if not user or not user.is_authenticated:
        return False
    if version.uploaded_by_id is not None and version.uploaded_by_id == user.id:
        return True
    return is_project_creator(user, version.project)


# ---- Permission classes -----------------------------------------------


class IsProjectParticipant(BasePermission):
    """
    Creator or assigned editor of the project. Everyone else gets 403, even
    for reads.
    """
    message = "Only the project's creator and editor can access it."

    def has_object_permission(self, request, view, obj):
        project = resolve_project(obj)
        return is_project_creator(request.user, project) or is_project_editor(request.user, project)


class IsProjectCreator(BasePermission):
    """
    Review actions (assign, approve, request changes, complete, rate,
    voice brief) belong to the creator.
    """
    message = "Only the project's creator can do this."

    def has_object_permission(self, request, view, obj):
        return is_project_creator(request.user, resolve_project(obj))


class IsProjectEditor(BasePermission):
    """
    Accepting or rejecting an assignment belongs to the assigned editor.
    """
    message = "Only the project's assigned editor can do this."

    def has_object_permission(self, request, view, obj):
        return is_project_editor(request.user, resolve_project(obj))


class IsCreatorAccount(BasePermission):
    """
    Only accounts onboarded as creators can start projects.
    """
    message = "Only creator accounts can create projects."

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.is_creator)
