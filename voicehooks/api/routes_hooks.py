"""Points d'entrée des hooks de l'assistant.

Chaque hook enregistre (ou rafraîchit) la session appelante puis demande un
verdict au moteur. La réponse suit le format attendu par l'assistant:
``{"decision": "approve" | "block", "reason": "..."}``.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, Request

from voicehooks.api.deps import SessionHints, extra_text, get_services, register_session_from_request
from voicehooks.core.engine import HookAction
from voicehooks.core.events import speak_feed_event
from voicehooks.core.logger import get_logger
from voicehooks.core.services import Services


router = APIRouter(prefix="/api/hooks", tags=["hooks"])
logger = get_logger("hooks")


async def _run_hook(
    action: HookAction,
    request: Request,
    hints: Optional[SessionHints],
    services: Services,
) -> dict:
    session_id = register_session_from_request(services, request, hints)
    logger.debug("Hook %s from session %s", action.value, session_id)
    decision = await services.engine.decide(action)
    return decision.to_dict()


@router.post("/pre-tool")
async def pre_tool_hook(
    request: Request,
    hints: Optional[SessionHints] = Body(default=None),
    services: Services = Depends(get_services),
) -> dict:
    return await _run_hook(HookAction.TOOL, request, hints, services)


@router.post("/post-tool")
async def post_tool_hook(
    request: Request,
    hints: Optional[SessionHints] = Body(default=None),
    services: Services = Depends(get_services),
) -> dict:
    return await _run_hook(HookAction.POST_TOOL, request, hints, services)


@router.post("/pre-wait")
async def pre_wait_hook(
    request: Request,
    hints: Optional[SessionHints] = Body(default=None),
    services: Services = Depends(get_services),
) -> dict:
    return await _run_hook(HookAction.WAIT, request, hints, services)


@router.post("/stop")
async def stop_hook(
    request: Request,
    hints: Optional[SessionHints] = Body(default=None),
    services: Services = Depends(get_services),
) -> dict:
    return await _run_hook(HookAction.STOP, request, hints, services)


@router.post("/pre-speak")
async def pre_speak_hook(
    request: Request,
    hints: Optional[SessionHints] = Body(default=None),
    services: Services = Depends(get_services),
) -> dict:
    session_id = register_session_from_request(services, request, hints)
    settings = services.settings
    body_keys = sorted(hints.model_dump(exclude_none=True)) if hints else []
    event = speak_feed_event(
        session_id,
        settings.self_url,
        extra_text(hints),
        meta={"tool": "speak", "bodyKeys": body_keys},
    )
    if settings.is_primary:
        services.feed.publish(event)
    else:
        # Relais best effort: l'échec n'affecte jamais le verdict
        await services.primary.forward_speak(event)

    decision = await services.engine.decide(HookAction.SPEAK)
    return decision.to_dict()
