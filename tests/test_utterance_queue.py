from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from voicehooks.core.errors import INVALID_TIMESTAMP, TEXT_REQUIRED, ValidationError
from voicehooks.core.utterances import UtteranceQueue, UtteranceStatus, isoformat, parse_timestamp


def test_add_trims_text_and_starts_pending() -> None:
    q = UtteranceQueue()
    u = q.add("  hello  ")
    assert u.text == "hello"
    assert u.status is UtteranceStatus.PENDING
    assert len(q) == 1


@pytest.mark.parametrize("text", ["", "   ", None])
def test_add_rejects_empty_text(text) -> None:
    q = UtteranceQueue()
    with pytest.raises(ValidationError) as exc:
        q.add(text)
    assert exc.value.code == TEXT_REQUIRED
    assert len(q) == 0


def test_get_recent_is_newest_first_and_limited() -> None:
    q = UtteranceQueue()
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for i in range(5):
        q.add(f"u{i}", base + timedelta(seconds=i))
    recent = q.get_recent(3)
    assert [u.text for u in recent] == ["u4", "u3", "u2"]


def test_status_lifecycle_only_moves_forward() -> None:
    q = UtteranceQueue()
    u = q.add("hi")

    # responded n'est atteignable que depuis delivered
    q.mark_responded(u.id)
    assert u.status is UtteranceStatus.PENDING

    q.mark_delivered(u.id)
    q.mark_delivered(u.id)
    assert u.status is UtteranceStatus.DELIVERED

    q.mark_responded(u.id)
    assert u.status is UtteranceStatus.RESPONDED
    assert q.counts() == {"total": 1, "pending": 0, "delivered": 0, "responded": 1}


def test_unknown_ids_are_ignored() -> None:
    q = UtteranceQueue()
    q.add("hi")
    q.mark_delivered("nope")
    q.mark_responded("nope")
    assert q.counts()["pending"] == 1


def test_clear_returns_count() -> None:
    q = UtteranceQueue()
    q.add("a")
    q.add("b")
    assert q.clear() == 2
    assert len(q) == 0


def test_parse_timestamp_formats() -> None:
    assert parse_timestamp(None) is None
    ts = parse_timestamp("2024-05-01T10:00:00Z")
    assert ts == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
    assert isoformat(ts) == "2024-05-01T10:00:00Z"
    assert parse_timestamp(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)
    with pytest.raises(ValidationError) as exc:
        parse_timestamp("yesterday")
    assert exc.value.code == INVALID_TIMESTAMP


@pytest.mark.parametrize("value", [1e20, -1e20, float("nan"), True])
def test_parse_timestamp_rejects_unusable_numbers(value) -> None:
    with pytest.raises(ValidationError) as exc:
        parse_timestamp(value)
    assert exc.value.code == INVALID_TIMESTAMP
