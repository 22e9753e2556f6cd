from __future__ import annotations

import os
import platform

from fastapi import APIRouter, Depends

from voicehooks.api.deps import get_services
from voicehooks.core.errors import SessionNotFoundError
from voicehooks.core.gitinfo import git_info
from voicehooks.core.services import Services
from voicehooks.core.sessions import Session


router = APIRouter(prefix="/api/sessions", tags=["sessions"])


def _require(services: Services, session_id: str) -> Session:
    session = services.registry.get_session(session_id)
    if session is None:
        raise SessionNotFoundError("Session not found")
    return session


@router.get("")
async def list_sessions(services: Services = Depends(get_services)) -> dict:
    return services.state.session_snapshot()


@router.post("/{session_id}/activate")
async def activate_session(session_id: str, services: Services = Depends(get_services)) -> dict:
    if not services.registry.set_active_session(session_id):
        raise SessionNotFoundError("Session not found or inactive")
    return {
        "success": True,
        "activeSessionId": session_id,
        "message": f"Activated session {session_id}",
    }


@router.post("/{session_id}/deactivate")
async def deactivate_session(session_id: str, services: Services = Depends(get_services)) -> dict:
    _require(services, session_id)
    services.registry.mark_session_inactive(session_id)
    active = services.registry.get_active_session()
    return {
        "success": True,
        "activeSessionId": active.id if active else None,
        "message": f"Deactivated session {session_id}",
    }


@router.delete("/{session_id}")
async def remove_session(session_id: str, services: Services = Depends(get_services)) -> dict:
    _require(services, session_id)
    services.registry.remove_session(session_id)
    return {"success": True, "message": f"Removed session {session_id}"}


@router.post("/{session_id}/utterances/clear")
async def clear_session_utterances(session_id: str, services: Services = Depends(get_services)) -> dict:
    session = _require(services, session_id)
    cleared = session.utterance_queue.clear()
    services.notifier.session_update()
    return {
        "success": True,
        "message": f"Cleared {cleared} utterances from session {session_id}",
        "clearedCount": cleared,
    }


@router.get("/{session_id}/details")
async def session_details(session_id: str, services: Services = Depends(get_services)) -> dict:
    session = _require(services, session_id)
    payload = session.to_dict()
    payload["gitInfo"] = await git_info(session.project_path)
    payload["environment"] = {
        "pythonVersion": platform.python_version(),
        "platform": platform.system().lower(),
        "cwd": session.project_path or os.getcwd(),
    }
    return payload


@router.get("/{session_id}/activity")
async def session_activity(session_id: str, services: Services = Depends(get_services)) -> dict:
    session = _require(services, session_id)
    utterances = sorted(session.utterance_queue.utterances, key=lambda u: u.timestamp, reverse=True)
    return {
        "sessionId": session_id,
        "activities": [u.to_activity() for u in utterances],
    }
