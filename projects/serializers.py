from rest_framework import serializers

from users.serializers import UserSummarySerializer
from .models import Project, ProjectVersion, Message, VideoComment, ActivityLogEntry
from .services import UNREAD_FIELDS
from .state_machine import get_allowed_transitions


class ProjectSerializer(serializers.ModelSerializer):
    creator = UserSummarySerializer(read_only=True)
    editor = UserSummarySerializer(read_only=True)
    allowed_transitions = serializers.SerializerMethodField()
    my_role = serializers.SerializerMethodField()
    my_unread = serializers.SerializerMethodField()

    class Meta:
        model = Project
        fields = [
            'id',
            'title',
            'description',
            'platform',
            'status',
            'priority',
            'deadline',
            'creator',
            'editor',
            'unread_creator_messages',
            'unread_editor_messages',
            'creator_rating',
            'creator_feedback',
            'rated_at',
            'voice_brief_url',
            'voice_transcript',
            'brief_language',
            'parsed_instructions',
            'allowed_transitions',
            'my_role',
            'my_unread',
            'last_activity_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def _viewer(self):
        request = self.context.get('request')
        return getattr(request, 'user', None)

    def get_allowed_transitions(self, obj):
        return get_allowed_transitions(obj.status)

    def get_my_role(self, obj):
        return obj.role_of(self._viewer())

    def get_my_unread(self, obj):
        role = obj.role_of(self._viewer())
        if role is None:
            return None
        return getattr(obj, UNREAD_FIELDS[role])


class ProjectCreateSerializer(serializers.Serializer):
    """
    Request shape only. Values are cleaned and validated by
    projects.services.create_project.
    """
    title = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    platform = serializers.CharField(required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    editor_id = serializers.IntegerField(required=False, allow_null=True)
    deadline = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    priority = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class AssignEditorSerializer(serializers.Serializer):
    editor_id = serializers.IntegerField()


class RatingSerializer(serializers.Serializer):
    rating = serializers.JSONField()
    feedback = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class ProjectVersionSerializer(serializers.ModelSerializer):
    uploaded_by = UserSummarySerializer(read_only=True)
    type = serializers.CharField(source='kind', read_only=True)

    class Meta:
        model = ProjectVersion
        fields = [
            'id',
            'project',
            'uploaded_by',
            'version_number',
            'type',
            'file_url',
            'file_name',
            'comment',
            'created_at',
        ]
        read_only_fields = fields


class MessageSerializer(serializers.ModelSerializer):
    sender = UserSummarySerializer(read_only=True)

    class Meta:
        model = Message
        fields = ['id', 'project', 'sender', 'content', 'created_at']
        read_only_fields = fields


class VideoCommentSerializer(serializers.ModelSerializer):
    author = UserSummarySerializer(read_only=True)

    class Meta:
        model = VideoComment
        fields = [
            'id',
            'project',
            'version',
            'author',
            'timestamp_seconds',
            'content',
            'is_resolved',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class ActivityLogEntrySerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)
    project_title = serializers.CharField(source='project.title', read_only=True)

    class Meta:
        model = ActivityLogEntry
        fields = ['id', 'project', 'project_title', 'user', 'action', 'details', 'created_at']
        read_only_fields = fields


class ThreadSerializer(serializers.Serializer):
    project_id = serializers.IntegerField()
    title = serializers.CharField()
    platform = serializers.CharField()
    status = serializers.CharField()
    role = serializers.CharField()
    unread = serializers.IntegerField()
    last_activity_at = serializers.DateTimeField()
    last_message = serializers.DictField(allow_null=True)
