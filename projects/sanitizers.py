# projects/sanitizers.py
"""
Input sanitization and validation for project data.

All user-generated text (titles, briefs, chat, comments, feedback) passes
through these functions before being stored.
"""
import math
import re
from datetime import date
from typing import Optional

import bleach

from .exceptions import ValidationError

MAX_TITLE_LENGTH = 255
MAX_DESCRIPTION_LENGTH = 10000
MAX_MESSAGE_LENGTH = 5000
MAX_COMMENT_LENGTH = 2000
MAX_FEEDBACK_LENGTH = 2000


def sanitize_text(text: Optional[str], max_length: Optional[int] = None, strip: bool = True) -> str:
    """
    Sanitize plain text input.

    - Strips leading/trailing whitespace
    - Removes control characters
    - Removes HTML markup
    - Enforces maximum length
    - Returns empty string for None input
    """
    if text is None:
        return ""

    text = str(text)
    if strip:
        text = text.strip()

    # Remove control characters except newlines and tabs
    text = re.sub(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]', '', text)

    text = bleach.clean(text, tags=[], attributes={}, strip=True)

    if max_length and len(text) > max_length:
        text = text[:max_length]

    return text


def sanitize_title(title: Optional[str]) -> str:
    """
    Sanitize project titles.

    - Max 255 characters
    - Single line (no newlines)
    """
    text = sanitize_text(title, max_length=MAX_TITLE_LENGTH)
    text = re.sub(r'[\r\n]+', ' ', text)
    text = re.sub(r'\s+', ' ', text)
    return text


def require_text(value: Optional[str], field: str, max_length: int) -> str:
    text = sanitize_text(value, max_length=max_length)
    if not text:
        raise ValidationError(f"{field.capitalize()} is required", field=field)
    return text


def validate_choice(value, choices, field: str, default=None) -> str:
    if value in (None, ""):
        if default is not None:
            return default
        raise ValidationError(f"{field.capitalize()} is required", field=field)

    value = str(value).strip().lower()
    if value not in choices:
        raise ValidationError(
            f"Invalid {field}: '{value}'. Expected one of: {', '.join(choices)}",
            field=field,
        )
    return value


def validate_rating(value) -> int:
    """
    Ratings are whole stars from 1 to 5.
    """
    if isinstance(value, bool):
        raise ValidationError("Rating must be an integer between 1 and 5", field="rating")
    try:
        rating = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Rating must be an integer between 1 and 5", field="rating")

    if str(value).strip() not in (str(rating), f"{rating}.0") or not 1 <= rating <= 5:
        raise ValidationError("Rating must be an integer between 1 and 5", field="rating")

    return rating


def validate_deadline(value) -> Optional[date]:
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError("Deadline must be an ISO date (YYYY-MM-DD)", field="deadline")


def validate_timestamp(value) -> float:
    """
    Video comment position in seconds; must be a non-negative number.
    """
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Timestamp must be a number of seconds", field="timestamp_seconds")

    if not math.isfinite(seconds):
        raise ValidationError("Timestamp must be a number of seconds", field="timestamp_seconds")
    if seconds < 0:
        raise ValidationError("Timestamp cannot be negative", field="timestamp_seconds")

    return seconds
