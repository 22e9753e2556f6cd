from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import APIRouter, Body, Depends, WebSocket, WebSocketDisconnect
from fastapi.responses import StreamingResponse
from starlette.websockets import WebSocketState

from voicehooks.api.deps import get_services
from voicehooks.core.errors import FORBIDDEN_ROLE, error_json
from voicehooks.core.events import EventHub, format_sse, speak_feed_event
from voicehooks.core.logger import get_logger
from voicehooks.core.services import Services


router = APIRouter(tags=["events"])
logger = get_logger("events")


async def _sse_stream(hub: EventHub) -> AsyncIterator[str]:
    client = hub.connect()
    try:
        yield format_sse({"type": "connected"})
        async for event in client:
            yield format_sse(event)
    finally:
        hub.disconnect(client)


@router.get("/api/tts-events")
async def tts_events(services: Services = Depends(get_services)) -> StreamingResponse:
    """Flux SSE du tableau de bord: speak, waitStatus et sessionUpdate."""
    return StreamingResponse(
        _sse_stream(services.events),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.websocket("/ws")
async def speak_feed(websocket: WebSocket) -> None:
    """Hub WebSocket des événements speak (instances primaires uniquement)."""
    services: Services = websocket.app.state.services
    if not services.settings.is_primary:
        await websocket.close(code=1008)
        return

    await websocket.accept()
    client = services.feed.connect()

    async def _pump() -> None:
        async for event in client:
            await websocket.send_json(event)

    sender = asyncio.create_task(_pump())
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("Feed client disconnected: %s", websocket.client)
    finally:
        services.feed.disconnect(client)
        sender.cancel()
        if websocket.application_state == WebSocketState.CONNECTED:
            try:
                await websocket.close()
            except RuntimeError:
                pass


@router.post("/feed/speak")
async def feed_speak(
    body: Optional[Dict[str, Any]] = Body(default=None),
    services: Services = Depends(get_services),
):
    """Reçoit les événements speak des instances secondaires et les diffuse."""
    settings = services.settings
    if not settings.is_primary:
        return error_json(403, FORBIDDEN_ROLE, "Only primary instance can accept speak events")

    body = body or {}
    event = speak_feed_event(
        body.get("sessionId") or "unknown",
        body.get("instanceUrl") or settings.self_url,
        body.get("text") or body.get("message") or "",
        meta=body.get("meta") if isinstance(body.get("meta"), dict) else {},
    )
    delivered = services.feed.publish(event)
    logger.info("Broadcast speak event from session %s to %d client(s)", event["sessionId"], delivered)
    return {"ok": True}
