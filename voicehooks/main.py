from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from voicehooks.api import (
    events_router,
    hooks_router,
    metrics_router,
    sessions_router,
    system_router,
    utterances_router,
    voice_router,
)
from voicehooks.core.config import Settings, get_settings
from voicehooks.core.errors import VoiceHooksError, error_json
from voicehooks.core.logger import get_logger
from voicehooks.core.metrics import metrics_middleware
from voicehooks.core.services import build_services
from voicehooks.core.trace import TRACE_HEADER, new_trace_id, set_trace_id


logger = get_logger("server")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Assemble l'application: services, middlewares, routes et balayage des sessions."""
    config = settings or get_settings()
    services = build_services(config)

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        scheduler = AsyncIOScheduler()
        scheduler.add_job(
            services.sweep_sessions,
            IntervalTrigger(seconds=config.session_cleanup_interval_seconds),
            id="session-sweep",
            replace_existing=True,
        )
        scheduler.start()
        logger.info(
            "voice hooks server ready on %s:%s (role=%s)",
            config.host,
            config.port,
            "primary" if config.is_primary else "secondary",
        )
        try:
            yield
        finally:
            scheduler.shutdown(wait=False)

    app = FastAPI(title="voice-hooks", lifespan=_lifespan)
    app.state.services = services

    if config.enable_metrics:
        app.middleware("http")(metrics_middleware)

    @app.middleware("http")
    async def _trace_middleware(request: Request, call_next):
        tid = request.headers.get(TRACE_HEADER) or new_trace_id()
        set_trace_id(tid)
        response = await call_next(request)
        response.headers[TRACE_HEADER] = tid
        return response

    _allow_credentials = config.cors_origins != ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(VoiceHooksError)
    async def _voicehooks_error_handler(request: Request, exc: VoiceHooksError):
        return error_json(exc.status_code, exc.code, exc.message, details=exc.details)

    app.include_router(system_router)
    app.include_router(utterances_router)
    app.include_router(hooks_router)
    app.include_router(voice_router)
    app.include_router(sessions_router)
    app.include_router(events_router)
    app.include_router(metrics_router)

    # UI statique en dernier pour ne pas masquer les routes API
    public_dir = Path(config.public_dir)
    if not config.disable_ui and public_dir.is_dir():
        app.mount("/", StaticFiles(directory=str(public_dir), html=True), name="ui")

    return app


app = create_app()
