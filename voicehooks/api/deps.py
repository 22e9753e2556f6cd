from __future__ import annotations

from typing import Any, Optional

from fastapi import Request
from pydantic import BaseModel, ConfigDict

from voicehooks.core.services import Services
from voicehooks.core.sessions import SessionData


def get_services(request: Request) -> Services:
    return request.app.state.services


class SessionHints(BaseModel):
    """Champs d'identification envoyés par les hooks (le reste du corps est ignoré)."""

    model_config = ConfigDict(extra="allow")

    session_id: Optional[str] = None
    cwd: Optional[str] = None
    transcript_path: Optional[str] = None
    project_path: Optional[str] = None

    def has_hints(self) -> bool:
        return bool(self.session_id or self.cwd or self.transcript_path)


def _header(request: Request, *names: str) -> Optional[str]:
    for name in names:
        value = request.headers.get(name)
        if value:
            return value
    return None


def session_data_from_request(request: Request, hints: Optional[SessionHints]) -> SessionData:
    hints = hints or SessionHints()
    return SessionData(
        session_id=hints.session_id or _header(request, "x-claude-session-id"),
        project_path=hints.project_path or _header(request, "x-claude-project-path"),
        working_directory=hints.cwd or _header(request, "x-working-directory", "x-claude-working-directory"),
        transcript_path=hints.transcript_path,
        user_agent=_header(request, "user-agent"),
        client_version=_header(request, "x-claude-version", "x-client-version"),
    )


def register_session_from_request(services: Services, request: Request, hints: Optional[SessionHints]) -> str:
    return services.registry.register_session(session_data_from_request(request, hints))


def extra_text(hints: Optional[SessionHints]) -> str:
    """Texte du hook pre-speak (``text`` ou ``message``)."""
    if hints is None:
        return ""
    extra: dict[str, Any] = hints.model_extra or {}
    value = extra.get("text") or extra.get("message") or ""
    return value if isinstance(value, str) else str(value)
