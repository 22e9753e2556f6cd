from __future__ import annotations

from .routes_events import router as events_router
from .routes_hooks import router as hooks_router
from .routes_metrics import router as metrics_router
from .routes_sessions import router as sessions_router
from .routes_system import router as system_router
from .routes_utterances import router as utterances_router
from .routes_voice import router as voice_router

__all__ = [
    "events_router",
    "hooks_router",
    "metrics_router",
    "sessions_router",
    "system_router",
    "utterances_router",
    "voice_router",
]
