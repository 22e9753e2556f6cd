from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Awaitable, Callable, Optional

from voicehooks.core.client import VoiceHooksClient
from voicehooks.core.config import Settings
from voicehooks.core.engine import HookDecisionEngine
from voicehooks.core.events import EventHub, Notifier
from voicehooks.core.logger import get_logger
from voicehooks.core.sessions import SessionRegistry
from voicehooks.core.sound import play_notification_sound
from voicehooks.core.state import VoiceState


logger = get_logger("server")


@dataclass
class Services:
    """Objets partagés par toutes les routes d'une application."""

    settings: Settings
    state: VoiceState
    events: EventHub
    feed: EventHub
    notifier: Notifier
    engine: HookDecisionEngine
    primary: VoiceHooksClient
    started_at: float = field(default_factory=time.time)

    @property
    def registry(self) -> SessionRegistry:
        return self.state.registry

    async def sweep_sessions(self) -> None:
        removed = self.registry.cleanup_inactive_sessions()
        if removed:
            logger.info("Session sweep removed %d session(s)", len(removed))


def build_services(settings: Settings) -> Services:
    registry = SessionRegistry(
        inactive_timeout=timedelta(seconds=settings.session_inactive_timeout_seconds),
    )
    state = VoiceState(registry)
    events = EventHub("events")
    feed = EventHub("feed")
    notifier = Notifier(events, state.session_snapshot)

    registry.set_change_callback(notifier.session_update)
    # Plus aucun navigateur connecté: le micro et la synthèse sont considérés coupés
    events.set_on_empty(state.reset_preferences)

    on_wait_start: Optional[Callable[[], Awaitable[Any]]] = None
    if settings.play_notification_sound:
        command = list(settings.notification_sound_command)

        async def _play_sound() -> Any:
            return await play_notification_sound(command)

        on_wait_start = _play_sound

    engine = HookDecisionEngine(state, notifier, settings, on_wait_start=on_wait_start)
    return Services(
        settings=settings,
        state=state,
        events=events,
        feed=feed,
        notifier=notifier,
        engine=engine,
        primary=VoiceHooksClient(settings.primary_url, timeout=settings.forward_timeout_seconds),
    )
