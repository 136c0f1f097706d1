from django.contrib import admin
from .models import Project, ProjectVersion, Message, VideoComment, ActivityLogEntry

@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ('title', 'status', 'platform', 'creator', 'editor', 'creator_rating', 'last_activity_at')
    list_filter = ('status', 'platform', 'priority')
    search_fields = ('title', 'description', 'creator__username', 'editor__username')
    date_hierarchy = 'created_at'
    # Lifecycle fields only change through projects.services
    readonly_fields = (
        'status', 'unread_creator_messages', 'unread_editor_messages',
        'creator_rating', 'creator_feedback', 'rated_at', 'last_activity_at',
    )

@admin.register(ProjectVersion)
class ProjectVersionAdmin(admin.ModelAdmin):
    list_display = ('project', 'type', 'version_number', 'uploaded_by', 'file_name', 'created_at')
    list_filter = ('type', 'created_at')
    search_fields = ('project__title', 'file_name', 'uploaded_by__username')

@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ('project', 'sender', 'created_at')
    search_fields = ('content', 'sender__username', 'project__title')
    list_filter = ('created_at',)

@admin.register(VideoComment)
class VideoCommentAdmin(admin.ModelAdmin):
    list_display = ('version', 'author', 'timestamp_seconds', 'is_resolved', 'created_at')
    list_filter = ('is_resolved',)
    search_fields = ('content', 'author__username')

@admin.register(ActivityLogEntry)
class ActivityLogEntryAdmin(admin.ModelAdmin):
    list_display = ('action', 'project', 'user', 'created_at')
    list_filter = ('action', 'created_at')
    search_fields = ('project__title', 'user__username')
