from __future__ import annotations

from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from voicehooks.core.config import Settings
from voicehooks.core.services import build_services
from voicehooks.core.sessions import SessionData
from voicehooks.main import create_app


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("VOICE_HOOKS_AUTO_DELIVER_VOICE_INPUT", "false")
    monkeypatch.setenv("VOICE_HOOKS_INSTANCE_ROLE", "secondary")
    s = Settings()
    assert s.auto_deliver_voice_input is False
    assert s.is_primary is False


def test_self_url_defaults_to_port():
    assert Settings(port=5999).self_url == "http://127.0.0.1:5999"
    assert Settings(instance_url="http://box:1").self_url == "http://box:1"


@pytest.mark.asyncio
async def test_system_and_metrics_routes():
    app = create_app(Settings(play_notification_sound=False, disable_ui=True, enable_metrics=True))
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        system = (await ac.get("/api/system")).json()
        assert system["instance"]["role"] == "primary"
        assert system["sessions"]["total"] == 0
        assert system["voice"]["activeClients"] == 0

        res = await ac.get("/metrics")
        assert res.status_code == 200
        assert "voicehooks_http_requests_total" in res.text


@pytest.mark.asyncio
async def test_metrics_hidden_when_disabled():
    app = create_app(Settings(play_notification_sound=False, disable_ui=True, enable_metrics=False))
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        assert (await ac.get("/metrics")).status_code == 404


@pytest.mark.asyncio
async def test_session_sweep_job_removes_stale_sessions():
    svc = build_services(Settings(play_notification_sound=False))
    svc.registry.register_session(SessionData(session_id="s1"))
    svc.registry.mark_session_inactive("s1")
    svc.registry.inactive_timeout = timedelta(seconds=-1)
    await svc.sweep_sessions()
    assert svc.registry.sessions == {}
