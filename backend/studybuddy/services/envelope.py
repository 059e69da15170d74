"""
StudyBuddy Backend — Response Envelope Builder
================================================

What:  Wraps the model's text with the resolved mode and a completion timestamp.
How:   No truncation, trimming or reformatting; the text goes out exactly as
       the provider returned it.
"""

from datetime import datetime, timezone
from typing import Optional

from studybuddy.schemas.assistant import AssistResponse, Mode


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """ISO 8601 UTC with millisecond precision, e.g. 2024-01-15T12:00:00.000Z."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_envelope(text: str, mode: Mode, now: Optional[datetime] = None) -> AssistResponse:
    return AssistResponse(response=text, mode=mode, timestamp=utc_timestamp(now))
