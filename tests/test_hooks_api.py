from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from voicehooks.core.config import Settings
from voicehooks.main import create_app


def _app(**overrides):
    params = dict(
        play_notification_sound=False,
        wait_timeout_seconds=0.2,
        wait_poll_interval_seconds=0.01,
        disable_ui=True,
    )
    params.update(overrides)
    return create_app(Settings(**params))


HOOK_BODY = {
    "session_id": "abc-123",
    "cwd": "/home/dev/alpha",
    "transcript_path": "/home/dev/alpha/.claude/projects/abc.jsonl",
    "hook_event_name": "PreToolUse",
}


@pytest.mark.asyncio
async def test_pre_tool_registers_session_and_approves() -> None:
    transport = ASGITransport(app=_app())
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        res = await ac.post("/api/hooks/pre-tool", json=HOOK_BODY)
        assert res.status_code == 200
        assert res.json() == {"decision": "approve"}

        sessions = (await ac.get("/api/sessions")).json()
        assert sessions["activeSessionId"] == "abc-123"
        session = sessions["sessions"][0]
        assert session["projectPath"] == "/home/dev/alpha"
        assert session["projectName"] == "alpha"


@pytest.mark.asyncio
async def test_hooks_accept_empty_body() -> None:
    transport = ASGITransport(app=_app())
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        for path in ("pre-tool", "post-tool", "pre-wait", "stop"):
            res = await ac.post(f"/api/hooks/{path}")
            assert res.status_code == 200
            assert res.json()["decision"] == "approve"


@pytest.mark.asyncio
async def test_stop_hook_blocks_with_voice_input() -> None:
    transport = ASGITransport(app=_app())
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        await ac.post("/api/voice-input-state", json={"active": True})
        await ac.post("/api/potential-utterances", json={"text": "hello"})

        res = await ac.post("/api/hooks/pre-tool", json=HOOK_BODY)
        assert res.json()["decision"] == "approve"

        res = await ac.post("/api/hooks/stop", json=HOOK_BODY)
        data = res.json()
        assert data["decision"] == "block"
        assert '"hello"' in data["reason"]


@pytest.mark.asyncio
async def test_speak_flow_unblocks_tools() -> None:
    transport = ASGITransport(app=_app())
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        await ac.post("/api/voice-input-state", json={"active": True})
        await ac.post("/api/voice-preferences", json={"voiceResponsesEnabled": True})
        await ac.post("/api/potential-utterances", json={"text": "hello"})
        await ac.post("/api/dequeue-utterances")

        assert (await ac.post("/api/hooks/pre-tool", json=HOOK_BODY)).json()["decision"] == "block"
        assert (await ac.post("/api/hooks/pre-speak", json={**HOOK_BODY, "text": "hi"})).json() == {
            "decision": "approve"
        }

        res = await ac.post("/api/speak", json={"text": "Hi!"})
        assert res.json()["respondedCount"] == 1
        assert (await ac.post("/api/hooks/pre-tool", json=HOOK_BODY)).json()["decision"] == "approve"


@pytest.mark.asyncio
async def test_pre_speak_publishes_feed_event() -> None:
    app = _app()
    client = app.state.services.feed.connect()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        await ac.post("/api/hooks/pre-speak", json={**HOOK_BODY, "text": "All done"})

    event = client.queue.get_nowait()
    assert event["type"] == "speak"
    assert event["sessionId"] == "abc-123"
    assert event["text"] == "All done"
    assert event["meta"]["tool"] == "speak"
    assert "text" in event["meta"]["bodyKeys"]


@pytest.mark.asyncio
async def test_speak_rejected_when_responses_disabled() -> None:
    transport = ASGITransport(app=_app())
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        res = await ac.post("/api/speak", json={"text": "hello"})
        assert res.status_code == 400
        data = res.json()
        assert data["error"] == "Voice responses are disabled"
        assert data["code"] == "VH_4004"

        res = await ac.post("/api/speak", json={"text": ""})
        assert res.status_code == 400
        assert res.json()["code"] == "VH_4001"
