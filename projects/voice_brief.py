# projects/voice_brief.py
"""
Voice briefs: the creator records spoken instructions, the audio is stored
and a background task transcribes it.

Transcription is fire-and-forget. Neither a broker outage nor a model
failure can fail the upload; the brief just stays without a transcript.
"""
import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from . import activity_actions as actions
from .activity import ActivityService
from .exceptions import NotAllowed, StorageError
from .models import Project
from .services import read_upload, get_project
from .storage import get_object_store, voice_brief_path

logger = logging.getLogger("vcollab.projects")


def _dispatch_transcription(project_id):
    from .tasks import transcribe_voice_brief_task

    try:
        transcribe_voice_brief_task.delay(project_id)
    except Exception as e:
        logger.warning(f"Could not queue transcription for project {project_id}: {e}")


def attach_voice_brief(project_id, uploader, file) -> Project:
    filename, content, content_type = read_upload(file)
    project = get_project(project_id)
    if uploader is not None and uploader.pk != project.creator_id:
        raise NotAllowed("Only the project's creator can record a voice brief")

    store = get_object_store(settings.VOICE_BRIEFS_BUCKET)
    path = voice_brief_path(project.pk, filename)

    try:
        ref = store.upload(path, content, content_type=content_type or "audio/webm")
        url = store.get_url(ref)
    except StorageError as e:
        raise StorageError(e.operation, project_id=project.pk, cause=e.cause) from e

    now = timezone.now()
    with transaction.atomic():
        # A new brief replaces the previous transcript
        Project.objects.filter(pk=project.pk).update(
            voice_brief_url=url,
            voice_brief_path=ref,
            voice_transcript=None,
            brief_language=None,
            parsed_instructions=None,
            last_activity_at=now,
            updated_at=now,
        )
        ActivityService.log_activity(project, uploader, actions.VOICE_BRIEF_UPLOADED, {"path": ref})
        transaction.on_commit(lambda: _dispatch_transcription(project.pk))

    logger.info(f"Voice brief stored: project={project.pk}, ref={ref}")
    project.refresh_from_db()
    return project


def store_transcription(project_id, result) -> Project:
    """
    Save a TranscriptionResult onto the project.
    """
    updated = Project.objects.filter(pk=project_id).update(
        voice_transcript=result.transcript,
        brief_language=result.language,
        parsed_instructions=result.parsed_instructions,
        updated_at=timezone.now(),
    )
    if not updated:
        logger.warning(f"Transcription finished for missing project {project_id}")
        return None
    return get_project(project_id)
