"""Diffusion des événements vers les navigateurs connectés.

Deux hubs coexistent:

- ``events``: flux Server-Sent Events du tableau de bord (``speak``,
  ``waitStatus``, ``sessionUpdate``);
- ``feed``: hub WebSocket des instances primaires, qui relaie les événements
  ``speak`` émis par les hooks pre-speak de toutes les instances.

La publication ne bloque jamais: chaque client possède sa propre
``asyncio.Queue`` et un client trop lent perd des événements.
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Dict, Optional, Set

from voicehooks.core.logger import get_logger


logger = get_logger("events")

CLIENT_QUEUE_SIZE = 256

_CLOSE = object()


class EventClient:
    def __init__(self, name: str) -> None:
        self.name = name
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=CLIENT_QUEUE_SIZE)

    def offer(self, event: Dict[str, Any]) -> bool:
        try:
            self.queue.put_nowait(event)
            return True
        except asyncio.QueueFull:
            logger.warning("Event queue full for client %s, dropping %s", self.name, event.get("type"))
            return False

    def close(self) -> None:
        try:
            self.queue.put_nowait(_CLOSE)
        except asyncio.QueueFull:
            pass

    async def __aiter__(self) -> AsyncIterator[Dict[str, Any]]:
        while True:
            event = await self.queue.get()
            if event is _CLOSE:
                return
            yield event


class EventHub:
    """Ensemble de clients abonnés à un même flux."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.clients: Set[EventClient] = set()
        self._on_empty: Optional[Callable[[], None]] = None
        self._counter = 0

    def set_on_empty(self, callback: Optional[Callable[[], None]]) -> None:
        """Callback invoqué quand le dernier client se déconnecte."""
        self._on_empty = callback

    def connect(self) -> EventClient:
        self._counter += 1
        client = EventClient(f"{self.name}-{self._counter}")
        self.clients.add(client)
        logger.info("Client %s connected (%d total)", client.name, len(self.clients))
        return client

    def disconnect(self, client: EventClient) -> None:
        if client not in self.clients:
            return
        self.clients.discard(client)
        client.close()
        if self.clients:
            logger.info("Client %s disconnected, %d remaining", client.name, len(self.clients))
            return
        logger.info("Last client disconnected from %s", self.name)
        if self._on_empty is not None:
            try:
                self._on_empty()
            except Exception:
                logger.warning("on_empty callback failed for hub %s", self.name, exc_info=True)

    def publish(self, event: Dict[str, Any]) -> int:
        delivered = 0
        for client in list(self.clients):
            if client.offer(event):
                delivered += 1
        return delivered

    def __len__(self) -> int:
        return len(self.clients)


def format_sse(event: Dict[str, Any]) -> str:
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"


class Notifier:
    """Construit les événements du tableau de bord et les publie sur le hub SSE."""

    def __init__(self, hub: EventHub, session_snapshot: Callable[[], Dict[str, Any]]) -> None:
        self.hub = hub
        self._session_snapshot = session_snapshot

    def speak(self, text: str, session_id: Optional[str] = None, session_name: Optional[str] = None) -> None:
        self.hub.publish(
            {
                "type": "speak",
                "text": text,
                "sessionId": session_id,
                "sessionName": session_name,
            }
        )

    def wait_status(self, is_waiting: bool) -> None:
        self.hub.publish({"type": "waitStatus", "isWaiting": is_waiting})

    def session_update(self) -> None:
        payload = {"type": "sessionUpdate"}
        payload.update(self._session_snapshot())
        self.hub.publish(payload)


def speak_feed_event(
    session_id: str,
    instance_url: str,
    text: str,
    meta: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Événement ``speak`` au format du hub WebSocket inter-instances."""
    return {
        "type": "speak",
        "at": int(datetime.now(timezone.utc).timestamp() * 1000),
        "sessionId": session_id,
        "instanceUrl": instance_url,
        "text": text,
        "meta": meta or {},
    }
