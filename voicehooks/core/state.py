"""État partagé du processus: préférences vocales, horodatages et files d'utterances."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Tuple

from voicehooks.core.logger import get_logger
from voicehooks.core.sessions import Session, SessionRegistry
from voicehooks.core.utterances import Utterance, UtteranceQueue, UtteranceStatus


logger = get_logger("server")

GLOBAL_SOURCE_ID = "global"
GLOBAL_SOURCE_NAME = "Global Queue"


@dataclass
class VoicePreferences:
    voice_input_active: bool = False
    voice_responses_enabled: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return {
            "voiceInputActive": self.voice_input_active,
            "voiceResponsesEnabled": self.voice_responses_enabled,
        }


@dataclass
class UtteranceSource:
    """Une file d'utterances et la session qui la possède (None pour la file globale)."""

    queue: UtteranceQueue
    session: Optional[Session] = None

    @property
    def source_id(self) -> str:
        return self.session.id if self.session else GLOBAL_SOURCE_ID

    @property
    def source_name(self) -> Optional[str]:
        return self.session.project_name if self.session else GLOBAL_SOURCE_NAME


class VoiceState:
    """Conteneur explicite de l'état global, partagé par le moteur et les routes."""

    def __init__(self, registry: Optional[SessionRegistry] = None) -> None:
        self.registry = registry or SessionRegistry()
        self.legacy_queue = UtteranceQueue(name=GLOBAL_SOURCE_ID)
        self.preferences = VoicePreferences()
        self.last_tool_use: Optional[datetime] = None
        self.last_speak: Optional[datetime] = None

    # préférences
    def set_voice_input_active(self, active: bool) -> None:
        self.preferences.voice_input_active = bool(active)
        logger.info("Voice input %s listening", "started" if active else "stopped")

    def set_voice_responses_enabled(self, enabled: bool) -> None:
        self.preferences.voice_responses_enabled = bool(enabled)
        logger.info("Voice responses %s", "enabled" if enabled else "disabled")

    def reset_preferences(self) -> None:
        prefs = self.preferences
        if prefs.voice_input_active or prefs.voice_responses_enabled:
            logger.info(
                "Voice features disabled - input: %s -> False, responses: %s -> False",
                prefs.voice_input_active,
                prefs.voice_responses_enabled,
            )
        prefs.voice_input_active = False
        prefs.voice_responses_enabled = False

    # horodatages
    def record_tool_use(self) -> None:
        self.last_tool_use = datetime.now(timezone.utc)

    def record_speak(self) -> None:
        self.last_speak = datetime.now(timezone.utc)

    def must_speak_after_tool(self) -> bool:
        if not self.preferences.voice_responses_enabled or self.last_tool_use is None:
            return False
        return self.last_speak is None or self.last_speak < self.last_tool_use

    # parcours des files
    def iter_sources(self) -> Iterator[UtteranceSource]:
        """Session active, puis autres sessions par activité récente, puis file globale."""
        active = self.registry.get_active_session()
        if active is not None:
            yield UtteranceSource(active.utterance_queue, active)
        for session in self.registry.get_all_sessions():
            if active is not None and session.id == active.id:
                continue
            yield UtteranceSource(session.utterance_queue, session)
        yield UtteranceSource(self.legacy_queue)

    def collect(self, status: UtteranceStatus) -> List[Tuple[Utterance, UtteranceSource]]:
        return [
            (utterance, source)
            for source in self.iter_sources()
            for utterance in source.queue.with_status(status)
        ]

    def count(self, status: UtteranceStatus) -> int:
        return sum(len(source.queue.with_status(status)) for source in self.iter_sources())

    def has_any_utterances(self) -> bool:
        return any(len(source.queue) for source in self.iter_sources())

    def recent_utterances(self, limit: int = 10) -> List[Tuple[Utterance, UtteranceSource]]:
        """Les ``limit`` utterances les plus récentes, toutes files confondues."""
        merged = [
            (utterance, source)
            for source in self.iter_sources()
            for utterance in source.queue.get_recent(limit)
        ]
        merged.sort(key=lambda item: item[0].timestamp, reverse=True)
        return merged[:limit]

    def clear_all(self) -> int:
        return sum(source.queue.clear() for source in self.iter_sources())

    def session_snapshot(self) -> Dict[str, Any]:
        registry = self.registry
        active = registry.get_active_session()
        return {
            "sessions": [s.to_dict() for s in registry.get_all_sessions()],
            "activeSessionId": active.id if active else None,
            "summary": registry.get_session_summary(),
        }
