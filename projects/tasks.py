# projects/tasks.py
import logging

from celery import shared_task

from .models import Project
from .transcription import GeminiTranscriber
from .voice_brief import store_transcription

logger = logging.getLogger("vcollab.transcription")


@shared_task
def transcribe_voice_brief_task(project_id: int):
    """
    Transcribe the project's current voice brief and store the result.

    Failures are logged and swallowed: a brief without a transcript is the
    only visible outcome.
    """
    try:
        project = Project.objects.only("id", "voice_brief_url").get(id=project_id)
    except Project.DoesNotExist:
        return "project_not_found"

    audio_url = project.voice_brief_url
    if not audio_url:
        return "no_voice_brief"

    try:
        result = GeminiTranscriber().transcribe(audio_url)
    except Exception as e:
        logger.error(f"Transcription failed for project {project_id}: {e}")
        return "failed"

    # A newer brief may have replaced this one while we were transcribing
    current = Project.objects.filter(id=project_id).values_list("voice_brief_url", flat=True).first()
    if current != audio_url:
        logger.info(f"Voice brief for project {project_id} changed during transcription, discarding result")
        return "stale"

    store_transcription(project_id, result)
    logger.info(f"Transcription stored for project {project_id} (language={result.language})")
    return "transcribed"
