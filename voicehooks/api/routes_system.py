from __future__ import annotations

import os
import platform
import time

from fastapi import APIRouter, Depends

from voicehooks.api.deps import get_services
from voicehooks.core.services import Services


router = APIRouter(tags=["system"])


@router.get("/version")
async def version_info(services: Services = Depends(get_services)) -> dict:
    """Rôle et identité de l'instance."""
    settings = services.settings
    return {
        "role": "primary" if settings.is_primary else "secondary",
        "port": settings.port,
        "instanceUrl": settings.self_url,
        "primaryUrl": None if settings.is_primary else settings.primary_url,
        "uiDisabled": settings.disable_ui,
        "pid": os.getpid(),
        "python": platform.python_version(),
    }


@router.get("/api/system")
async def system_overview(services: Services = Depends(get_services)) -> dict:
    settings = services.settings
    sessions = services.registry.get_all_sessions()
    return {
        "instance": {
            "role": "primary" if settings.is_primary else "secondary",
            "port": settings.port,
            "pid": os.getpid(),
            "uptime": round(time.time() - services.started_at, 3),
            "pythonVersion": platform.python_version(),
            "platform": platform.system().lower(),
        },
        "sessions": {
            "total": len(sessions),
            "active": sum(1 for s in sessions if s.is_active),
            "summary": services.registry.get_session_summary(),
        },
        "voice": {
            "enabled": not settings.disable_ui,
            "activeClients": len(services.events),
            "preferences": services.state.preferences.to_dict(),
        },
    }
