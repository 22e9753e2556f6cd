"""Registre des sessions de l'assistant.

Chaque session (contexte de travail: projet / répertoire) possède sa propre
file d'utterances. Une seule session est "active" à un instant donné; c'est
elle qui reçoit la voix quand la requête ne permet pas d'identifier sa cible.
"""

from __future__ import annotations

import itertools
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from voicehooks.core.logger import get_logger
from voicehooks.core.utterances import UtteranceQueue, isoformat


logger = get_logger("sessions")

# Sous-répertoire de configuration de l'assistant dans les chemins de transcript
ASSISTANT_CONFIG_DIR = ".claude"

DEFAULT_INACTIVE_TIMEOUT = timedelta(minutes=30)

_anonymous_counter = itertools.count()


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SessionData:
    """Indices d'identification fournis par l'appelant (corps du hook + en-têtes)."""

    session_id: Optional[str] = None
    project_path: Optional[str] = None
    working_directory: Optional[str] = None
    transcript_path: Optional[str] = None
    user_agent: Optional[str] = None
    client_version: Optional[str] = None


@dataclass
class SessionMetadata:
    working_directory: Optional[str] = None
    user_agent: Optional[str] = None
    client_version: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "workingDirectory": self.working_directory,
            "userAgent": self.user_agent,
            "clientVersion": self.client_version,
        }


@dataclass
class Session:
    id: str
    utterance_queue: UtteranceQueue
    project_path: Optional[str] = None
    project_name: Optional[str] = None
    last_activity: datetime = field(default_factory=_now)
    is_active: bool = True
    metadata: SessionMetadata = field(default_factory=SessionMetadata)

    def to_dict(self) -> dict:
        counts = self.utterance_queue.counts()
        return {
            "id": self.id,
            "projectPath": self.project_path,
            "projectName": self.project_name,
            "isActive": self.is_active,
            "lastActivity": isoformat(self.last_activity),
            "pendingUtterances": counts["pending"],
            "totalUtterances": counts["total"],
            "metadata": self.metadata.to_dict(),
        }


def simple_hash(value: str) -> str:
    """Hash glissant 32 bits (h * 31 + c), rendu en base 36."""
    h = 0
    for ch in value:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return f"session_{_to_base36(abs(h))}"


def _to_base36(n: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if n == 0:
        return "0"
    out = []
    while n:
        n, rem = divmod(n, 36)
        out.append(digits[rem])
    return "".join(reversed(out))


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def extract_project_path(data: SessionData) -> Optional[str]:
    explicit = _clean(data.project_path)
    if explicit:
        return explicit
    transcript = _clean(data.transcript_path)
    if transcript:
        normalized = transcript.replace("\\", "/")
        marker = f"/{ASSISTANT_CONFIG_DIR}/"
        if marker in normalized:
            base = normalized.split(marker, 1)[0]
            if base:
                return base
        elif normalized.endswith(f"/{ASSISTANT_CONFIG_DIR}"):
            base = normalized[: -len(ASSISTANT_CONFIG_DIR) - 1]
            if base:
                return base
    return _clean(data.working_directory)


def extract_project_name(project_path: Optional[str]) -> Optional[str]:
    if not project_path:
        return None
    parts = [p for p in project_path.replace("\\", "/").split("/") if p]
    return parts[-1] if parts else None


def compute_session_id(data: SessionData) -> str:
    explicit = _clean(data.session_id)
    if explicit:
        return explicit
    project_path = extract_project_path(data)
    working_dir = _clean(data.working_directory)
    user_agent = _clean(data.user_agent)
    if project_path or working_dir or user_agent:
        key = f"{project_path or 'unknown'}:{working_dir or 'unknown'}:{user_agent or 'unknown'}"
        return simple_hash(key)
    # Aucun indice: identifiant unique pour ne pas fusionner deux contextes anonymes
    return f"session_{_to_base36(time.time_ns())}_{next(_anonymous_counter)}"


class SessionRegistry:
    """Associe un identifiant de session à sa file et à ses métadonnées."""

    def __init__(
        self,
        inactive_timeout: timedelta = DEFAULT_INACTIVE_TIMEOUT,
        clock: Callable[[], datetime] = _now,
    ) -> None:
        self.sessions: Dict[str, Session] = {}
        self.active_session_id: Optional[str] = None
        self.inactive_timeout = inactive_timeout
        self._clock = clock
        self._change_callback: Optional[Callable[[], None]] = None

    def set_change_callback(self, callback: Optional[Callable[[], None]]) -> None:
        self._change_callback = callback

    def _notify_change(self) -> None:
        if self._change_callback is None:
            return
        try:
            self._change_callback()
        except Exception:
            logger.warning("Session change callback failed", exc_info=True)

    def register_session(self, data: SessionData) -> str:
        session_id = compute_session_id(data)
        project_path = extract_project_path(data)
        session = self.sessions.get(session_id)

        if session is None:
            session = Session(
                id=session_id,
                utterance_queue=UtteranceQueue(name=session_id),
                project_path=project_path,
                project_name=extract_project_name(project_path),
                last_activity=self._clock(),
                metadata=SessionMetadata(
                    working_directory=_clean(data.working_directory),
                    user_agent=_clean(data.user_agent),
                    client_version=_clean(data.client_version),
                ),
            )
            self.sessions[session_id] = session
            if self.get_active_session() is None:
                self.active_session_id = session_id
            logger.info(
                "Registered new session: %s (%s)", session_id, session.project_name or "unknown project"
            )
            self._notify_change()
        else:
            session.last_activity = self._clock()
            session.is_active = True
            if project_path:
                session.project_path = project_path
                session.project_name = extract_project_name(project_path)
            session.metadata.working_directory = _clean(data.working_directory)
            session.metadata.user_agent = _clean(data.user_agent)
            session.metadata.client_version = _clean(data.client_version)

        return session_id

    def get_all_sessions(self) -> List[Session]:
        return sorted(self.sessions.values(), key=lambda s: s.last_activity, reverse=True)

    def get_session(self, session_id: str) -> Optional[Session]:
        return self.sessions.get(session_id)

    def get_active_session(self) -> Optional[Session]:
        if not self.active_session_id:
            return None
        return self.sessions.get(self.active_session_id)

    def set_active_session(self, session_id: str) -> bool:
        session = self.sessions.get(session_id)
        if session is None or not session.is_active:
            return False
        self.active_session_id = session_id
        logger.info(
            "Active session changed to: %s (%s)", session_id, session.project_name or "unknown project"
        )
        self._notify_change()
        return True

    def get_utterance_queue(self, session_id: str) -> Optional[UtteranceQueue]:
        session = self.sessions.get(session_id)
        return session.utterance_queue if session else None

    def _elect_active(self) -> None:
        candidates =[s for s in self.get_all_sessions() if s.is_active]
        self.active_session_id = candidates[0].id if candidates else None

    def mark_session_inactive(self, session_id: str) -> bool:
        session = self.sessions.get(session_id)
        if session is None:
            return False
        session.is_active = False
        session.last_activity = self._clock()
        if self.active_session_id == session_id:
            self._elect_active()
            logger.info(
                "Session %s marked inactive. Active session now: %s",
                session_id,
                self.active_session_id or "none",
            )
        self._notify_change()
        return True

    def _remove(self, session_id: str) -> bool:
        if self.sessions.pop(session_id, None) is None:
            return False
        if self.active_session_id == session_id:
            self._elect_active()
        logger.info("Session %s removed. Active session now: %s", session_id, self.active_session_id or "none")
        return True

    def remove_session(self, session_id: str) -> bool:
        removed = self._remove(session_id)
        if removed:
            self._notify_change()
        return removed

    def cleanup_inactive_sessions(self) -> List[str]:
        """Supprime les sessions inactives depuis plus de ``inactive_timeout``."""
        threshold = self._clock() - self.inactive_timeout
        stale = [
            sid
            for sid, s in self.sessions.items()
            if not s.is_active and s.last_activity < threshold
        ]
        for sid in stale:
            self._remove(sid)
            logger.info("Cleaned up inactive session: %s", sid)
        if stale:
            self._notify_change()
        return stale

    def get_session_summary(self) -> str:
        sessions = self.get_all_sessions()
        active = [s for s in sessions if s.is_active]
        return (
            f"Sessions: {len(sessions)} total, {len(active)} active. "
            f"Active session: {self.active_session_id or 'none'}"
        )
