from __future__ import annotations

import uuid
from contextvars import ContextVar


_trace_id: ContextVar[str | None] = ContextVar("voicehooks_trace_id", default=None)

TRACE_HEADER = "X-Trace-Id"


def new_trace_id() -> str:
    """Génère un identifiant de requête court et l'installe dans le contexte."""
    tid = uuid.uuid4().hex[:16]
    _trace_id.set(tid)
    return tid


def set_trace_id(tid: str | None) -> None:
    _trace_id.set(tid)


def get_trace_id() -> str | None:
    return _trace_id.get()
