import json
from unittest import mock

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import SimpleTestCase, override_settings

from projects import tasks
from projects import activity_actions as actions
from projects.exceptions import NotAllowed, StorageError
from projects.models import ActivityLogEntry, Project
from projects.storage import DjangoFileObjectStore
from projects.transcription import (
    GeminiTranscriber,
    TranscriptionError,
    TranscriptionResult,
    parse_model_response,
)
from projects.voice_brief import attach_voice_brief, store_transcription

from .base import ProjectTestCase

MODEL_JSON = {
    "transcript": "Make the intro punchy and add captions",
    "language": "english",
    "summary": "Fast paced reel with captions.",
    "instructions": [
        {
            "instruction": "Cut the intro to 3 seconds",
            "timestamp_start": "00:00",
            "timestamp_end": "00:03",
            "priority": "high",
            "original_text": "Make the intro punchy",
        }
    ],
    "general_notes": ["Upbeat music"],
    "unclear_parts": [],
}


def audio(name="brief.webm"):
    return SimpleUploadedFile(name, b"OggS fake audio", content_type="audio/webm")


def fake_response(status_code=200, payload=None, content=b"", headers=None, text=""):
    response = mock.Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.content = content
    response.headers = headers or {}
    response.text = text
    response.json.return_value = payload
    return response


class ParseModelResponseTests(SimpleTestCase):
    def test_plain_json(self):
        result = parse_model_response(json.dumps(MODEL_JSON))

        self.assertEqual(result.transcript, MODEL_JSON["transcript"])
        self.assertEqual(result.language, "english")
        self.assertEqual(result.parsed_instructions["summary"], "Fast paced reel with captions.")
        self.assertEqual(len(result.parsed_instructions["instructions"]), 1)
        self.assertEqual(result.parsed_instructions["general_notes"], ["Upbeat music"])

    def test_json_inside_markdown_fence(self):
        text = "```json\n" + json.dumps(MODEL_JSON) + "\n```"
        result = parse_model_response(text)
        self.assertEqual(result.language, "english")

    def test_garbage_falls_back_to_raw_text(self):
        result = parse_model_response("Sorry, the audio was mostly silence.")

        self.assertEqual(result.transcript, "Sorry, the audio was mostly silence.")
        self.assertEqual(result.language, "unknown")
        self.assertEqual(
            result.parsed_instructions,
            {
                "summary": "Could not parse instructions automatically",
                "instructions": [],
                "general_notes": ["Sorry, the audio was mostly silence."],
                "unclear_parts": ["Full transcript needs manual review"],
            },
        )

    def test_broken_json_falls_back(self):
        result = parse_model_response('{"transcript": "cut it", ')
        self.assertEqual(result.language, "unknown")
        self.assertEqual(result.transcript, '{"transcript": "cut it", ')


@override_settings(GEMINI_API_KEY="test-key", GEMINI_MODEL="gemini-test", SITE_URL="http://testserver")
class GeminiTranscriberTests(SimpleTestCase):
    def test_transcribe(self):
        session = mock.Mock()
        session.get.return_value = fake_response(
            content=b"audio-bytes",
            headers={"content-type": "audio/webm; codecs=opus"},
        )
        session.post.return_value = fake_response(
            payload={"candidates": [{"content": {"parts": [{"text": json.dumps(MODEL_JSON)}]}}]},
        )

        result = GeminiTranscriber(session=session).transcribe("/media/voice-briefs/brief.webm")

        session.get.assert_called_once_with("http://testserver/media/voice-briefs/brief.webm", timeout=mock.ANY)
        url = session.post.call_args.args[0]
        kwargs = session.post.call_args.kwargs
        self.assertIn("gemini-test:generateContent", url)
        self.assertEqual(kwargs["params"], {"key": "test-key"})
        inline = kwargs["json"]["contents"][0]["parts"][1]["inline_data"]
        self.assertEqual(inline["mime_type"], "audio/webm")
        self.assertEqual(result.transcript, MODEL_JSON["transcript"])

    def test_missing_api_key(self):
        with self.assertRaises(TranscriptionError):
            GeminiTranscriber(api_key="", session=mock.Mock()).transcribe("https://example.com/a.webm")

    def test_download_failure(self):
        session = mock.Mock()
        session.get.return_value = fake_response(status_code=404)

        with self.assertRaises(TranscriptionError):
            GeminiTranscriber(session=session).transcribe("https://example.com/a.webm")
        session.post.assert_not_called()

    def test_api_error(self):
        session = mock.Mock()
        session.get.return_value = fake_response(content=b"x", headers={"content-type": "audio/mpeg"})
        session.post.return_value = fake_response(status_code=429, text="quota exceeded")

        with self.assertRaises(TranscriptionError):
            GeminiTranscriber(session=session).transcribe("https://example.com/a.mp3")

    def test_empty_candidates_fall_back(self):
        session = mock.Mock()
        session.get.return_value = fake_response(content=b"x", headers={"content-type": "audio/mpeg"})
        session.post.return_value = fake_response(payload={"candidates": []})

        result = GeminiTranscriber(session=session).transcribe("https://example.com/a.mp3")
        self.assertEqual(result.language, "unknown")


class AttachVoiceBriefTests(ProjectTestCase):
    def test_upload_stores_brief_and_queues_transcription(self):
        project = self.new_project()
        project.voice_transcript = "old transcript"
        project.save(update_fields=["voice_transcript"])

        with mock.patch.object(tasks.transcribe_voice_brief_task, "delay") as delay:
            with self.captureOnCommitCallbacks(execute=True):
                project = attach_voice_brief(project.pk, self.creator, audio())

        delay.assert_called_once_with(project.pk)
        self.assertTrue(project.voice_brief_path.startswith(f"voice-briefs/projects/{project.pk}/"))
        self.assertTrue(project.voice_brief_url)
        self.assertIsNone(project.voice_transcript)
        self.assertTrue(
            ActivityLogEntry.objects.filter(project=project, action=actions.VOICE_BRIEF_UPLOADED).exists()
        )

    def test_broker_outage_does_not_fail_upload(self):
        project = self.new_project()

        with mock.patch.object(tasks.transcribe_voice_brief_task, "delay", side_effect=ConnectionError("no broker")):
            with self.assertLogs("vcollab.projects", level="WARNING"):
                with self.captureOnCommitCallbacks(execute=True):
                    project = attach_voice_brief(project.pk, self.creator, audio())

        self.assertTrue(project.voice_brief_url)

    def test_storage_failure_names_the_project(self):
        project = self.new_project()

        failure = StorageError("upload", cause=OSError("bucket missing"))
        with mock.patch.object(DjangoFileObjectStore, "upload", side_effect=failure):
            with self.assertRaises(StorageError) as ctx:
                attach_voice_brief(project.pk, self.creator, audio())

        self.assertEqual(ctx.exception.detail, f"upload failed for project {project.pk}: bucket missing")
        project.refresh_from_db()
        self.assertIsNone(project.voice_brief_url)

    def test_only_creator(self):
        project = self.project_in_edit()
        with self.assertRaises(NotAllowed):
            attach_voice_brief(project.pk, self.editor, audio())

    def test_store_transcription(self):
        project = self.new_project()
        result = TranscriptionResult(transcript="hello", language="hindi", parsed_instructions={"summary": "s"})

        project = store_transcription(project.pk, result)

        self.assertEqual(project.voice_transcript, "hello")
        self.assertEqual(project.brief_language, "hindi")
        self.assertEqual(project.parsed_instructions, {"summary": "s"})
        self.assertIsNone(store_transcription(999999, result))


class TranscriptionTaskTests(ProjectTestCase):
    def brief_project(self, url="/media/voice-briefs/brief.webm"):
        project = self.new_project()
        Project.objects.filter(pk=project.pk).update(voice_brief_url=url)
        return project

    def test_missing_project(self):
        self.assertEqual(tasks.transcribe_voice_brief_task(123456), "project_not_found")

    def test_no_brief(self):
        project = self.new_project()
        self.assertEqual(tasks.transcribe_voice_brief_task(project.pk), "no_voice_brief")

    def test_success_stores_result(self):
        project = self.brief_project()
        result = TranscriptionResult(transcript="add captions", language="english", parsed_instructions={})

        with mock.patch.object(tasks.GeminiTranscriber, "transcribe", return_value=result):
            outcome = tasks.transcribe_voice_brief_task(project.pk)

        self.assertEqual(outcome, "transcribed")
        project.refresh_from_db()
        self.assertEqual(project.voice_transcript, "add captions")

    def test_failure_is_swallowed(self):
        project = self.brief_project()

        with mock.patch.object(tasks.GeminiTranscriber, "transcribe", side_effect=TranscriptionError("boom")):
            with self.assertLogs("vcollab.transcription", level="ERROR"):
                outcome = tasks.transcribe_voice_brief_task(project.pk)

        self.assertEqual(outcome, "failed")
        project.refresh_from_db()
        self.assertIsNone(project.voice_transcript)

    def test_replaced_brief_discards_result(self):
        project = self.brief_project()
        result = TranscriptionResult(transcript="stale", language="english", parsed_instructions={})

        def replace_then_return(url):
            Project.objects.filter(pk=project.pk).update(voice_brief_url="/media/voice-briefs/new.webm")
            return result

        with mock.patch.object(tasks.GeminiTranscriber, "transcribe", side_effect=replace_then_return):
            outcome = tasks.transcribe_voice_brief_task(project.pk)

        self.assertEqual(outcome, "stale")
        project.refresh_from_db()
        self.assertIsNone(project.voice_transcript)
