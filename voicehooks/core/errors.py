from __future__ import annotations

from typing import Any, Dict

from fastapi.responses import JSONResponse

from voicehooks.core.trace import get_trace_id


# Codes d'erreur exposés aux clients
TEXT_REQUIRED = "VH_4001"
INVALID_ACTION = "VH_4002"
VOICE_INPUT_INACTIVE = "VH_4003"
VOICE_RESPONSES_DISABLED = "VH_4004"
INVALID_TIMESTAMP = "VH_4005"
SESSION_NOT_FOUND = "VH_4041"
FORBIDDEN_ROLE = "VH_4031"
INTERNAL = "VH_5000"


class VoiceHooksError(Exception):
    """Erreur métier remontée jusqu'à la couche HTTP."""

    code = INTERNAL
    status_code = 500

    def __init__(self, message: str, *, details: Any | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(VoiceHooksError):
    """Entrée invalide (texte vide, action inconnue...)."""

    code = TEXT_REQUIRED
    status_code = 400

    def __init__(self, message: str, *, code: str | None = None, details: Any | None = None) -> None:
        super().__init__(message, details=details)
        if code:
            self.code = code


class SessionNotFoundError(VoiceHooksError):
    code = SESSION_NOT_FOUND
    status_code = 404


class VoiceResponsesDisabledError(VoiceHooksError):
    code = VOICE_RESPONSES_DISABLED
    status_code = 400


def error_response(
    code: str,
    message: str,
    *,
    details: Any | None = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "success": False,
        "error": message,
        "code": code,
    }
    if details is not None:
        payload["details"] = details
    trace_id = get_trace_id()
    if trace_id is not None:
        payload["trace_id"] = trace_id
    return payload


def error_json(
    status_code: int,
    code: str,
    message: str,
    *,
    details: Any | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_response(code, message, details=details),
    )
