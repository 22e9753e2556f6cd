from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, Request
from fastapi.responses import JSONResponse

from voicehooks.api.deps import SessionHints, get_services, register_session_from_request
from voicehooks.core.errors import TEXT_REQUIRED, VOICE_INPUT_INACTIVE, ValidationError, error_json
from voicehooks.core.logger import get_logger
from voicehooks.core.metrics import inc_utterance_queued
from voicehooks.core.services import Services
from voicehooks.core.utterances import parse_timestamp


router = APIRouter(prefix="/api", tags=["utterances"])
logger = get_logger("server")


class UtteranceIn(SessionHints):
    text: Optional[str] = None
    timestamp: Optional[Any] = None


class ActionIn(SessionHints):
    action: Optional[str] = None


@router.post("/potential-utterances")
async def add_potential_utterance(
    request: Request,
    body: UtteranceIn = Body(...),
    services: Services = Depends(get_services),
) -> dict:
    if not (body.text or "").strip():
        raise ValidationError("Text is required", code=TEXT_REQUIRED)
    registry = services.registry
    timestamp = parse_timestamp(body.timestamp)

    target = None
    if body.has_hints():
        session_id = register_session_from_request(services, request, body)
        if registry.get_active_session() is None or len(registry.sessions) == 1:
            registry.set_active_session(session_id)
            logger.info("Auto-activated session: %s", session_id)
        target = registry.get_session(session_id)
    else:
        target = registry.get_active_session()

    queue = target.utterance_queue if target else services.state.legacy_queue
    utterance = queue.add(body.text or "", timestamp)
    inc_utterance_queued("session" if target else "global")
    if target:
        logger.info("Voice input routed to session: %s (%s)", target.id, target.project_name or "unknown project")
    else:
        logger.info("Voice input routed to global queue (no active session)")

    services.notifier.session_update()
    return {
        "success": True,
        "utterance": utterance.to_dict(),
        "sessionId": target.id if target else None,
        "sessionName": target.project_name if target else None,
    }


@router.get("/utterances")
async def list_utterances(
    limit: int = Query(10, ge=1, le=1000),
    services: Services = Depends(get_services),
) -> dict:
    items = services.state.recent_utterances(limit)
    return {"utterances": [u.to_dict() for u, _ in items]}


@router.delete("/utterances")
async def clear_utterances(services: Services = Depends(get_services)) -> dict:
    cleared = services.state.clear_all()
    services.notifier.session_update()
    return {
        "success": True,
        "message": f"Cleared {cleared} utterances",
        "clearedCount": cleared,
    }


@router.get("/utterances/status")
async def utterances_status(services: Services = Depends(get_services)) -> dict:
    totals = {"total": 0, "pending": 0, "delivered": 0, "responded": 0}
    for source in services.state.iter_sources():
        for key, value in source.queue.counts().items():
            totals[key] += value
    return totals


@router.get("/has-pending-utterances")
async def has_pending_utterances(services: Services = Depends(get_services)) -> dict:
    pending = len(services.state.legacy_queue.pending())
    return {"hasPending": pending > 0, "pendingCount": pending}


@router.post("/dequeue-utterances")
async def dequeue_utterances(services: Services = Depends(get_services)):
    result = services.engine.dequeue()
    if not result.success:
        return error_json(400, VOICE_INPUT_INACTIVE, result.error or "")
    if result.utterances:
        services.notifier.session_update()
    return result.to_dict()


@router.post("/wait-for-utterances")
async def wait_for_utterances(services: Services = Depends(get_services)):
    result = await services.engine.wait_for_utterance()
    if not result.success:
        return error_json(400, VOICE_INPUT_INACTIVE, result.error or "")
    if result.utterances:
        services.notifier.session_update()
    return result.to_dict()


@router.post("/validate-action")
async def validate_action(
    body: ActionIn = Body(...),
    services: Services = Depends(get_services),
) -> JSONResponse:
    check = services.engine.validate_action(body.action or "")
    return JSONResponse(check.to_dict())


@router.get("/activity")
async def activity_feed(
    limit: int = Query(50, ge=1, le=1000),
    services: Services = Depends(get_services),
) -> dict:
    sessions = services.registry.get_all_sessions()
    activities = [
        (
            utterance.timestamp,
            utterance.to_activity(
                sessionId=session.id,
                sessionName=session.project_name,
                projectPath=session.project_path,
            ),
        )
        for session in sessions
        for utterance in session.utterance_queue.utterances
    ]
    activities.sort(key=lambda item: item[0], reverse=True)
    return {
        "activities": [a for _, a in activities[:limit]],
        "totalSessions": len(sessions),
        "activeSessions": sum(1 for s in sessions if s.is_active),
    }
