from __future__ import annotations

from datetime import datetime, timedelta, timezone

from voicehooks.core.sessions import (
    SessionData,
    SessionRegistry,
    compute_session_id,
    extract_project_name,
    extract_project_path,
    simple_hash,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def test_simple_hash_is_stable_base36() -> None:
    assert simple_hash("") == "session_0"
    assert simple_hash("a") == "session_2p"
    assert simple_hash("ab") == "session_2e9"
    assert simple_hash("x" * 50) == simple_hash("x" * 50)


def test_project_path_precedence() -> None:
    transcript = "/home/dev/proj/.claude/projects/abc.jsonl"
    assert extract_project_path(SessionData(project_path="/explicit", transcript_path=transcript)) == "/explicit"
    assert extract_project_path(SessionData(transcript_path=transcript, working_directory="/wd")) == "/home/dev/proj"
    assert extract_project_path(SessionData(transcript_path="/tmp/t.jsonl", working_directory="/wd")) == "/wd"
    assert extract_project_path(SessionData()) is None
    assert extract_project_name("/home/dev/proj/") == "proj"
    assert extract_project_name(None) is None


def test_session_id_explicit_then_hash() -> None:
    assert compute_session_id(SessionData(session_id="abc")) == "abc"
    a = compute_session_id(SessionData(working_directory="/w", user_agent="ua"))
    b = compute_session_id(SessionData(working_directory="/w", user_agent="ua"))
    assert a == b and a.startswith("session_")
    assert a != compute_session_id(SessionData(working_directory="/other", user_agent="ua"))


def test_sessions_without_hints_get_distinct_ids() -> None:
    registry = SessionRegistry()
    first = registry.register_session(SessionData())
    second = registry.register_session(SessionData())
    assert first != second
    assert len(registry.sessions) == 2


def test_first_session_becomes_active_and_refresh_is_quiet() -> None:
    registry = SessionRegistry()
    changes = []
    registry.set_change_callback(lambda: changes.append(1))

    s1 = registry.register_session(SessionData(session_id="s1", working_directory="/a"))
    s2 = registry.register_session(SessionData(session_id="s2", working_directory="/b"))
    assert registry.active_session_id == s1
    assert len(changes) == 2

    registry.register_session(SessionData(session_id="s2", project_path="/b/renamed"))
    assert len(changes) == 2
    assert registry.get_session(s2).project_name == "renamed"


def test_set_active_rejects_unknown_and_inactive() -> None:
    registry = SessionRegistry()
    registry.register_session(SessionData(session_id="s1"))
    registry.register_session(SessionData(session_id="s2"))
    assert registry.set_active_session("missing") is False
    registry.mark_session_inactive("s2")
    assert registry.set_active_session("s2") is False
    assert registry.active_session_id == "s1"


def test_deactivating_active_elects_most_recent_active() -> None:
    clock = FakeClock()
    registry = SessionRegistry(clock=clock)
    registry.register_session(SessionData(session_id="s1"))
    clock.advance(seconds=1)
    registry.register_session(SessionData(session_id="s2"))
    clock.advance(seconds=1)
    registry.register_session(SessionData(session_id="s3"))

    registry.mark_session_inactive("s1")
    assert registry.active_session_id == "s3"
    registry.mark_session_inactive("s3")
    registry.mark_session_inactive("s2")
    assert registry.active_session_id is None
    assert registry.get_active_session() is None


def test_refresh_reactivates_session() -> None:
    registry = SessionRegistry()
    registry.register_session(SessionData(session_id="s1"))
    registry.mark_session_inactive("s1")
    registry.register_session(SessionData(session_id="s1"))
    assert registry.get_session("s1").is_active is True


def test_cleanup_removes_only_stale_inactive_sessions() -> None:
    clock = FakeClock()
    registry = SessionRegistry(inactive_timeout=timedelta(minutes=30), clock=clock)
    registry.register_session(SessionData(session_id="old"))
    registry.register_session(SessionData(session_id="live"))
    registry.register_session(SessionData(session_id="recent"))
    registry.mark_session_inactive("old")

    clock.advance(minutes=20)
    registry.mark_session_inactive("recent")
    clock.advance(minutes=15)

    removed = registry.cleanup_inactive_sessions()
    assert removed == ["old"]
    assert set(registry.sessions) == {"live", "recent"}
    assert registry.active_session_id == "live"


def test_summary_and_sorting() -> None:
    clock = FakeClock()
    registry = SessionRegistry(clock=clock)
    registry.register_session(SessionData(session_id="s1"))
    clock.advance(seconds=5)
    registry.register_session(SessionData(session_id="s2"))
    assert [s.id for s in registry.get_all_sessions()] == ["s2", "s1"]
    assert registry.get_session_summary() == "Sessions: 2 total, 2 active. Active session: s1"


def test_failing_callback_does_not_break_mutation() -> None:
    registry = SessionRegistry()

    def _boom() -> None:
        raise RuntimeError("ui down")

    registry.set_change_callback(_boom)
    assert registry.register_session(SessionData(session_id="s1")) == "s1"
    assert registry.remove_session("s1") is True
    assert registry.remove_session("s1") is False
