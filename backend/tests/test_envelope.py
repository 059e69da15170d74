from datetime import datetime, timedelta, timezone

from studybuddy.schemas.assistant import Mode
from studybuddy.services.envelope import build_envelope, utc_timestamp


def test_fixed_clock_formatting():
    now = datetime(2024, 1, 15, 12, 0, 0, 123456, tzinfo=timezone.utc)
    assert utc_timestamp(now) == "2024-01-15T12:00:00.123Z"


def test_non_utc_clock_is_converted():
    now = datetime(2024, 1, 15, 14, 0, 0, tzinfo=timezone(timedelta(hours=2)))
    assert utc_timestamp(now) == "2024-01-15T12:00:00.000Z"


def test_envelope_fields():
    now = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
    envelope = build_envelope("answer", Mode.AUTO, now=now)
    assert envelope.model_dump(mode="json") == {
        "response": "answer",
        "mode": "AUTO_MODE",
        "timestamp": "2024-01-15T12:00:00.000Z",
    }
