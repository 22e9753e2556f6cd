from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from voicehooks.api.deps import get_services
from voicehooks.core.services import Services


router = APIRouter(tags=["metrics"])


@router.get("/metrics")
async def metrics(services: Services = Depends(get_services)) -> Response:
    if not services.settings.enable_metrics:
        return Response(status_code=404)
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
