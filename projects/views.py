from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from . import services, chat, comments
from .activity import ActivityService
from .models import ActivityLogEntry
from .exceptions import NotAllowed
from .permissions import (
    IsCreatorAccount,
    IsProjectCreator,
    IsProjectEditor,
    IsProjectParticipant,
    can_delete_version,
    can_upload_version,
)
from .sanitizers import validate_choice
from .serializers import (
    ActivityLogEntrySerializer,
    AssignEditorSerializer,
    MessageSerializer,
    ProjectCreateSerializer,
    ProjectSerializer,
    ProjectVersionSerializer,
    RatingSerializer,
    ThreadSerializer,
    VideoCommentSerializer,
)
from .throttles import VersionUploadThrottle, VoiceBriefThrottle
from .versioning import RAW, VERSION_TYPES, type_filter
from .voice_brief import attach_voice_brief


def _limit_param(request, default=50, maximum=100):
    try:
        limit = int(request.query_params.get("limit", default))
    except (TypeError, ValueError):
        limit = default
    return max(1, min(limit, maximum))


class ProjectViewSet(viewsets.GenericViewSet):
    """
    Projects the requesting user creates or edits.

    Lifecycle actions delegate to projects.services; domain errors are turned
    into responses by core.exceptions.custom_exception_handler.
    """
    serializer_class = ProjectSerializer
    permission_classes = [IsAuthenticated, IsProjectParticipant]
    lookup_value_regex = r"\d+"
    throttle_scope = None

    def get_queryset(self):
        return services.projects_for_user(self.request.user)

    def get_permissions(self):
        if self.action == "create":
            return [IsAuthenticated(), IsCreatorAccount()]
        return super().get_permissions()

    def _project_response(self, project, status_code=status.HTTP_200_OK):
        serializer = ProjectSerializer(project, context=self.get_serializer_context())
        return Response(serializer.data, status=status_code)

    def list(self, request):
        """
        GET /api/projects/?status=review
        """
        qs = self.get_queryset()
        status_param = request.query_params.get("status")
        if status_param:
            qs = qs.filter(status=status_param)
        serializer = self.get_serializer(qs, many=True)
        return Response(serializer.data)

    def create(self, request):
        """
        POST /api/projects/
        Body: {title, platform, description?, editor_id?, deadline?, priority?}
        """
        serializer = ProjectCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        project = services.create_project(
            creator=request.user,
            title=data.get("title"),
            platform=data.get("platform"),
            description=data.get("description"),
            editor=data.get("editor_id"),
            deadline=data.get("deadline"),
            priority=data.get("priority"),
        )
        return self._project_response(project, status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        return self._project_response(self.get_object())

    # ---- Lifecycle ----------------------------------------------------

    @action(detail=True, methods=["post"], permission_classes=[IsAuthenticated, IsProjectCreator])
    def assign(self, request, pk=None):
        """
        POST /api/projects/{pk}/assign/
        Body: {"editor_id": 7}
        """
        project = self.get_object()
        serializer = AssignEditorSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        project = services.assign_editor(project.pk, serializer.validated_data["editor_id"], actor=request.user)
        return self._project_response(project)

    @action(detail=True, methods=["post"], permission_classes=[IsAuthenticated, IsProjectEditor])
    def accept(self, request, pk=None):
        project = self.get_object()
        return self._project_response(services.accept_assignment(project.pk, actor=request.user))

    @action(detail=True, methods=["post"], permission_classes=[IsAuthenticated, IsProjectEditor])
    def reject(self, request, pk=None):
        project = self.get_object()
        project = services.reject_assignment(project.pk, actor=request.user)
        # The editor is no longer a participant, so no project body for them
        return Response({"id": project.pk, "status": project.status})

    @action(detail=True, methods=["post"], permission_classes=[IsAuthenticated, IsProjectCreator])
    def approve(self, request, pk=None):
        project = self.get_object()
        return self._project_response(services.approve_project(project.pk, actor=request.user))

    @action(
        detail=True,
        methods=["post"],
        url_path="request-changes",
        permission_classes=[IsAuthenticated, IsProjectCreator],
    )
    def request_changes(self, request, pk=None):
        project = self.get_object()
        return self._project_response(services.request_changes(project.pk, actor=request.user))

    @action(detail=True, methods=["post"], permission_classes=[IsAuthenticated, IsProjectCreator])
    def complete(self, request, pk=None):
        project = self.get_object()
        return self._project_response(services.complete_project(project.pk, actor=request.user))

    @action(detail=True, methods=["post"], permission_classes=[IsAuthenticated, IsProjectCreator])
    def rate(self, request, pk=None):
        """
        POST /api/projects/{pk}/rate/
        Body: {"rating": 1-5, "feedback": "..."}
        """
        project = self.get_object()
        serializer = RatingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        project = services.rate_project(
            project.pk,
            serializer.validated_data["rating"],
            feedback=serializer.validated_data.get("feedback"),
            actor=request.user,
        )
        return self._project_response(project)

    @action(detail=True, methods=["post"], url_path="mark-read")
    def mark_read(self, request, pk=None):
        project = self.get_object()
        services.reset_unread(project.pk, project.role_of(request.user))
        project.refresh_from_db()
        return self._project_response(project)

    # ---- Files --------------------------------------------------------

    @action(
        detail=True,
        methods=["get", "post"],
        throttle_classes=[VersionUploadThrottle],
        throttle_scope="version-upload",
    )
    def versions(self, request, pk=None):
        """
        GET  /api/projects/{pk}/versions/
        POST /api/projects/{pk}/versions/  (multipart: file, type=raw|edited, comment?)
        """
        project = self.get_object()

        if request.method == "GET":
            qs = services.list_versions(project.pk)
            version_type = request.query_params.get("type")
            if version_type in VERSION_TYPES:
                qs = qs.filter(type_filter(version_type))
            return Response(ProjectVersionSerializer(qs, many=True).data)

        version_type = validate_choice(request.data.get("type"), VERSION_TYPES, "type")
        if not can_upload_version(request.user, project, version_type):
            if version_type == RAW:
                raise NotAllowed("Only the project's creator can upload raw footage.")
            raise NotAllowed("Only the assigned editor can upload edited versions, after accepting the project.")

        version = services.upload_version(
            project.pk,
            request.user,
            request.FILES.get("file"),
            version_type,
            comment=request.data.get("comment"),
        )
        return Response(ProjectVersionSerializer(version).data, status=status.HTTP_201_CREATED)

    @action(
        detail=True,
        methods=["post"],
        url_path="voice-brief",
        permission_classes=[IsAuthenticated, IsProjectCreator],
        throttle_classes=[VoiceBriefThrottle],
        throttle_scope="voice-brief",
    )
    def voice_brief(self, request, pk=None):
        """
        POST /api/projects/{pk}/voice-brief/  (multipart: file)
        Transcription runs in the background; poll the project for the
        transcript.
        """
        project = self.get_object()
        project = attach_voice_brief(project.pk, request.user, request.FILES.get("file"))
        return self._project_response(project, status.HTTP_202_ACCEPTED)

    # ---- Chat ---------------------------------------------------------

    @action(detail=True, methods=["get", "post"])
    def messages(self, request, pk=None):
        """
        GET  /api/projects/{pk}/messages/   (resets the viewer's unread count)
        POST /api/projects/{pk}/messages/   Body: {"content": "..."}
        """
        project = self.get_object()

        if request.method == "GET":
            qs = chat.list_messages(project.pk, viewer=request.user)
            return Response(MessageSerializer(qs, many=True).data)

        message = chat.send_message(project.pk, request.user, request.data.get("content"))
        return Response(MessageSerializer(message).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["get"])
    def threads(self, request):
        """
        GET /api/projects/threads/
        """
        threads = chat.threads_for_user(request.user)
        return Response(ThreadSerializer(threads, many=True).data)

    # ---- Activity -----------------------------------------------------

    @action(detail=True, methods=["get"], url_path="activity", url_name="timeline")
    def project_activity(self, request, pk=None):
        project = self.get_object()
        entries = (
            ActivityLogEntry.objects
            .filter(project=project)
            .select_related("project", "user")[:_limit_param(request)]
        )
        return Response(ActivityLogEntrySerializer(entries, many=True).data)

    @action(detail=False, methods=["get"])
    def activity(self, request):
        """
        GET /api/projects/activity/?limit=50
        Latest activity across every project the user takes part in.
        """
        entries = ActivityService.feed_for_user(request.user, limit=_limit_param(request))
        return Response(ActivityLogEntrySerializer(entries, many=True).data)


class VersionDetailView(APIView):
    """
    DELETE /api/projects/versions/<version_id>/
    """
    permission_classes = [IsAuthenticated, IsProjectParticipant]

    def delete(self, request, version_id):
        version = services.get_version(version_id)
        self.check_object_permissions(request, version)
        if not can_delete_version(request.user, version):
            raise NotAllowed("Only the uploader or the project's creator can delete a version.")

        services.delete_version(version.pk, actor=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)


class VersionCommentListCreateView(APIView):
    """
    GET  /api/projects/versions/<version_id>/comments/?include_resolved=0
    POST /api/projects/versions/<version_id>/comments/
         Body: {"timestamp_seconds": 12.5, "content": "..."}
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, version_id):
        include_resolved = request.query_params.get("include_resolved", "1").lower() not in ("0", "false", "no")
        qs = comments.list_comments(version_id, viewer=request.user, include_resolved=include_resolved)
        return Response(VideoCommentSerializer(qs, many=True).data)

    def post(self, request, version_id):
        comment = comments.add_video_comment(
            version_id,
            request.user,
            request.data.get("timestamp_seconds"),
            request.data.get("content"),
        )
        return Response(VideoCommentSerializer(comment).data, status=status.HTTP_201_CREATED)


class CommentDetailView(APIView):
    """
    PATCH  /api/projects/comments/<comment_id>/   Body: {"content": "..."}
    DELETE /api/projects/comments/<comment_id>/
    """
    permission_classes = [IsAuthenticated]

    def patch(self, request, comment_id):
        comment = comments.update_video_comment(comment_id, request.user, request.data.get("content"))
        return Response(VideoCommentSerializer(comment).data)

    def delete(self, request, comment_id):
        comments.delete_video_comment(comment_id, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)


class CommentResolveView(APIView):
    """
    POST /api/projects/comments/<comment_id>/resolve/
    Body: {"resolved": true|false}; without a body the flag is toggled.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, comment_id):
        resolved = request.data.get("resolved")
        if resolved is None:
            resolved = not comments.get_comment(comment_id).is_resolved
        elif isinstance(resolved, str):
            resolved = resolved.lower() in ("1", "true", "yes")

        comment = comments.resolve_video_comment(comment_id, request.user, resolved=resolved)
        return Response(VideoCommentSerializer(comment).data)
