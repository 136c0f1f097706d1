from django.db import models
from django.conf import settings
from django.utils import timezone


class Project(models.Model):
    """
    A piece of commissioned editing work between one creator and (at most)
    one editor. Status, unread counters and version numbering are owned by
    projects.state_machine / projects.services; do not write them directly.
    """

    class Status(models.TextChoices):
        BRIEFING = "briefing", "Briefing"
        PENDING_ACCEPTANCE = "pending_acceptance", "Pending Acceptance"
        IN_EDIT = "in_edit", "In Edit"
        REVIEW = "review", "Review"
        CHANGES_REQUESTED = "changes_requested", "Changes Requested"
        APPROVED = "approved", "Approved"
        COMPLETED = "completed", "Completed"

    class Platform(models.TextChoices):
        INSTAGRAM = "instagram", "Instagram"
        YOUTUBE = "youtube", "YouTube"
        TIKTOK = "tiktok", "TikTok"
        OTHER = "other", "Other"

    class Priority(models.TextChoices):
        LOW = "low", "Low"
        NORMAL = "normal", "Normal"
        HIGH = "high", "High"
        URGENT = "urgent", "Urgent"

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    platform = models.CharField(max_length=32, choices=Platform.choices, default=Platform.OTHER)
    status = models.CharField(
        max_length=32,
        choices=Status.choices,
        default=Status.BRIEFING,
        db_index=True,
    )
    priority = models.CharField(max_length=16, choices=Priority.choices, default=Priority.NORMAL)
    deadline = models.DateField(null=True, blank=True)

    creator = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="created_projects",
    )
    editor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="edited_projects",
    )

    unread_creator_messages = models.PositiveIntegerField(default=0)
    unread_editor_messages = models.PositiveIntegerField(default=0)

    # Write-once
    creator_rating = models.PositiveSmallIntegerField(null=True, blank=True)
    creator_feedback = models.TextField(blank=True, null=True)
    rated_at = models.DateTimeField(null=True, blank=True)

    # Filled by the transcription task
    voice_brief_url = models.CharField(max_length=2048, blank=True, null=True)
    voice_brief_path = models.CharField(max_length=1024, blank=True, null=True)
    voice_transcript = models.TextField(blank=True, null=True)
    brief_language = models.CharField(max_length=64, blank=True, null=True)
    parsed_instructions = models.JSONField(null=True, blank=True)

    last_activity_at = models.DateTimeField(default=timezone.now, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-last_activity_at"]
        indexes = [
            models.Index(fields=["creator", "-last_activity_at"], name="project_creator_activity_idx"),
            models.Index(fields=["editor", "-last_activity_at"], name="project_editor_activity_idx"),
        ]

    def __str__(self):
        return f"{self.title} ({self.status})"

    def role_of(self, user):
        """
        Return "creator" / "editor" for a project participant, None otherwise.
        """
        if user is None:
            return None
        if user.pk == self.creator_id:
            return "creator"
        if self.editor_id is not None and user.pk == self.editor_id:
            return "editor"
        return None

    def is_participant(self, user) -> bool:
        return self.role_of(user) is not None


class ProjectVersion(models.Model):
    """
    One uploaded file on a project. Raw and edited files have independent
    version sequences (raw from 0, edited from 1).
    """

    class Type(models.TextChoices):
        RAW = "raw", "Raw"
        EDITED = "edited", "Edited"

    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="versions")
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="uploaded_versions",
    )
    version_number = models.PositiveIntegerField()

    # Null on rows written before raw/edited tagging existed
    type = models.CharField(max_length=16, choices=Type.choices, null=True, blank=True)

    file_url = models.CharField(max_length=2048)
    storage_path = models.CharField(max_length=1024, blank=True, default="")
    file_name = models.CharField(max_length=255, blank=True, default="")
    comment = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["project", "type", "version_number"], name="version_project_type_idx"),
        ]

    def __str__(self):
        return f"{self.project_id} {self.kind} v{self.version_number}"

    @property
    def kind(self) -> str:
        from .versioning import normalize_version_type

        return normalize_version_type(self.type, self.version_number)


class Message(models.Model):
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="messages")
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_messages",
    )
    content = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["project", "created_at"], name="message_project_created_idx"),
        ]

    def __str__(self):
        return f"{self.sender} -> project {self.project_id}"


class VideoComment(models.Model):
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="video_comments")
    version = models.ForeignKey(ProjectVersion, on_delete=models.CASCADE, related_name="comments")
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="video_comments",
    )
    timestamp_seconds = models.FloatField(default=0)
    content = models.TextField()
    is_resolved = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["timestamp_seconds", "created_at"]

    def __str__(self):
        return f"{self.author} @ {self.timestamp_seconds:.1f}s on version {self.version_id}"


class ActivityLogEntry(models.Model):
    """
    Append-only record of notable project events. Source for activity feeds.
    """
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="activity")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="project_activity",
    )
    action = models.CharField(max_length=64, db_index=True)
    details = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name_plural = "Activity log entries"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["project", "-created_at"], name="activity_project_created_idx"),
        ]

    def __str__(self):
        return f"{self.action} on project {self.project_id}"
