from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from voicehooks.core.logger import get_logger


logger = get_logger("events")


class VoiceHooksClient:
    """Client HTTP minimal vers un serveur voice hooks (CLI + relais inter-instances)."""

    def __init__(self, base_url: str = "http://127.0.0.1:5111", timeout: float = 5.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    # ----- lecture (CLI) -----
    def version(self) -> Dict[str, Any]:
        r = httpx.get(f"{self.base_url}/version", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def sessions(self) -> Dict[str, Any]:
        r = httpx.get(f"{self.base_url}/api/sessions", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    # ----- relais vers l'instance primaire -----
    async def forward_speak(self, event: Dict[str, Any], transport: Optional[httpx.AsyncBaseTransport] = None) -> bool:
        """Transmet un événement ``speak`` au hub ``/feed/speak``; les échecs sont journalisés."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=transport) as client:
                r = await client.post(f"{self.base_url}/feed/speak", json=event)
                r.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Failed to forward speak event to primary %s: %s", self.base_url, exc)
            return False
        return True
