# projects/transcription.py
"""
Voice brief transcription through the Gemini generateContent API.

One call both transcribes the audio and extracts structured editing
instructions. The model is asked for bare JSON; when it wraps or garbles
it, the raw text is kept as the transcript with a fallback structure.
"""
import base64
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Optional

import requests
from django.conf import settings

logger = logging.getLogger("vcollab.transcription")

GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

BRIEF_PROMPT = """You are an expert video editing consultant. Listen to this voice brief recording and:
1. Transcribe it accurately (it may be in Telugu, Hindi, English, or mixed).
2. Extract structured editing instructions from the transcript.

Respond ONLY with a valid JSON object in exactly this format (no markdown, no extra text):
{
    "transcript": "The full verbatim transcript of the audio.",
    "language": "detected language (e.g. english, hindi, telugu, mixed)",
    "summary": "A brief 1-2 sentence overview of the editing style and goals.",
    "instructions": [
        {
            "instruction": "Clear, actionable task for the editor.",
            "timestamp_start": "MM:SS if mentioned, otherwise empty string",
            "timestamp_end": "MM:SS if mentioned, otherwise empty string",
            "priority": "low | normal | high",
            "original_text": "The specific phrase from the transcript that led to this instruction."
        }
    ],
    "general_notes": ["Overall notes about music, color grading, or flow."],
    "unclear_parts": ["Parts of the audio that were ambiguous or need clarification."]
}"""

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class TranscriptionError(Exception):
    pass


@dataclass
class TranscriptionResult:
    transcript: str
    language: str = "unknown"
    parsed_instructions: Optional[dict] = field(default=None)


def parse_model_response(text: str) -> TranscriptionResult:
    """
    Turn the model's reply into a TranscriptionResult.

    The JSON object is located even inside markdown fences; anything that is
    not parseable falls back to "raw text as transcript, needs review".
    """
    text = text or ""
    parsed = None

    match = _JSON_OBJECT.search(text)
    if match:
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError:
            parsed = None

    if not isinstance(parsed, dict):
        logger.warning("Could not parse transcription response as JSON, storing raw text")
        return TranscriptionResult(
            transcript=text,
            language="unknown",
            parsed_instructions={
                "summary": "Could not parse instructions automatically",
                "instructions": [],
                "general_notes": [text] if text else [],
                "unclear_parts": ["Full transcript needs manual review"],
            },
        )

    return TranscriptionResult(
        transcript=parsed.get("transcript") or text,
        language=parsed.get("language") or "unknown",
        parsed_instructions={
            "summary": parsed.get("summary"),
            "instructions": parsed.get("instructions") or [],
            "general_notes": parsed.get("general_notes") or [],
            "unclear_parts": parsed.get("unclear_parts") or [],
        },
    )


class GeminiTranscriber:
    def __init__(self, api_key=None, model=None, timeout=None, session=None):
        self.api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self.model = model or settings.GEMINI_MODEL
        self.timeout = timeout or settings.TRANSCRIPTION_TIMEOUT
        self.session = session or requests.Session()

    def _download(self, audio_url):
        if audio_url.startswith("/"):
            # Local media storage hands out site-relative URLs
            audio_url = settings.SITE_URL.rstrip("/") + audio_url

        response = self.session.get(audio_url, timeout=self.timeout)
        if not response.ok:
            raise TranscriptionError(f"Failed to download audio: HTTP {response.status_code}")

        mime_type = response.headers.get("content-type") or "audio/webm"
        # Drop parameters such as "; codecs=opus"
        return response.content, mime_type.split(";")[0].strip()

    def transcribe(self, audio_url: str) -> TranscriptionResult:
        if not self.api_key:
            raise TranscriptionError("GEMINI_API_KEY not configured")

        audio, mime_type = self._download(audio_url)
        logger.info(f"Audio downloaded: size={len(audio)} mime={mime_type}")

        body = {
            "contents": [{
                "parts": [
                    {"text": BRIEF_PROMPT},
                    {"inline_data": {"mime_type": mime_type, "data": base64.b64encode(audio).decode("ascii")}},
                ],
            }],
            "generationConfig": {
                "temperature": 0.3,
                "maxOutputTokens": 2048,
            },
        }

        response = self.session.post(
            GEMINI_ENDPOINT.format(model=self.model),
            params={"key": self.api_key},
            json=body,
            timeout=self.timeout,
        )
        if not response.ok:
            raise TranscriptionError(f"Gemini API error: HTTP {response.status_code} {response.text[:500]}")

        data = response.json()
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            text = ""

        return parse_model_response(text)
