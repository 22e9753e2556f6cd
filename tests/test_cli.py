from __future__ import annotations

import json

import httpx
from typer.testing import CliRunner

from voicehooks import cli as cli_module
from voicehooks.core.client import VoiceHooksClient


runner = CliRunner()


def test_cli_help():
    result = runner.invoke(cli_module.cli, ["--help"])
    assert result.exit_code == 0
    assert "serve" in result.output and "config" in result.output


def test_cli_config_print(monkeypatch):
    monkeypatch.setenv("VOICE_HOOKS_PORT", "6222")
    result = runner.invoke(cli_module.cli, ["config", "print"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["port"] == 6222
    assert data["auto_deliver_voice_input"] is True


def test_cli_status_unreachable(monkeypatch):
    def _fail(self):
        raise httpx.ConnectError("refused")

    monkeypatch.setattr(VoiceHooksClient, "version", _fail)
    result = runner.invoke(cli_module.cli, ["status", "--url", "http://127.0.0.1:1"])
    assert result.exit_code == 1
    assert "injoignable" in result.output


def test_cli_status_prints_payload(monkeypatch):
    monkeypatch.setattr(VoiceHooksClient, "version", lambda self: {"role": "primary"})
    monkeypatch.setattr(VoiceHooksClient, "sessions", lambda self: {"sessions": []})
    result = runner.invoke(cli_module.cli, ["status"])
    assert result.exit_code == 0
    assert json.loads(result.output) == {"version": {"role": "primary"}, "sessions": {"sessions": []}}
