from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel

from voicehooks.api.deps import get_services
from voicehooks.core.services import Services


router = APIRouter(prefix="/api", tags=["voice"])


class VoicePreferencesIn(BaseModel):
    voiceResponsesEnabled: bool = False


class VoiceInputStateIn(BaseModel):
    active: bool = False


class SpeakIn(BaseModel):
    text: Optional[str] = None


@router.post("/voice-preferences")
async def update_voice_preferences(
    body: VoicePreferencesIn = Body(...),
    services: Services = Depends(get_services),
) -> dict:
    services.state.set_voice_responses_enabled(body.voiceResponsesEnabled)
    return {"success": True, "preferences": services.state.preferences.to_dict()}


@router.post("/voice-input-state")
async def update_voice_input_state(
    body: VoiceInputStateIn = Body(...),
    services: Services = Depends(get_services),
) -> dict:
    services.state.set_voice_input_active(body.active)
    return {"success": True, "voiceInputActive": services.state.preferences.voice_input_active}


@router.post("/speak")
async def speak(
    body: SpeakIn = Body(...),
    services: Services = Depends(get_services),
) -> dict:
    result = services.engine.speak(body.text or "")
    services.notifier.session_update()
    return {
        "success": True,
        "message": "Text spoken successfully",
        "respondedCount": result.responded_count,
        "sessionId": result.session_id,
        "sessionName": result.session_name,
    }
