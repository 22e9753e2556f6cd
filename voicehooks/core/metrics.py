from __future__ import annotations

import time

from prometheus_client import Counter, Histogram


REQ_COUNTER = Counter("voicehooks_http_requests_total", "HTTP requests", ["endpoint", "status"])
REQ_LATENCY = Histogram("voicehooks_http_request_seconds", "HTTP request latency", ["endpoint"])
HOOK_DECISIONS = Counter("voicehooks_hook_decisions_total", "Hook verdicts", ["action", "decision"])
UTTERANCES_QUEUED = Counter("voicehooks_utterances_queued_total", "Utterances added to a queue", ["target"])
UTTERANCES_DELIVERED = Counter("voicehooks_utterances_delivered_total", "Utterances delivered to the assistant")
SPEAK_EVENTS = Counter("voicehooks_speak_total", "Speak actions processed")


def record_request(endpoint: str, status: int, duration_s: float) -> None:
    REQ_COUNTER.labels(endpoint=endpoint, status=str(status)).inc()
    REQ_LATENCY.labels(endpoint=endpoint).observe(duration_s)


def inc_hook_decision(action: str, decision: str) -> None:
    HOOK_DECISIONS.labels(action=action, decision=decision).inc()


def inc_utterance_queued(target: str) -> None:
    UTTERANCES_QUEUED.labels(target=target).inc()


def inc_utterances_delivered(n: int) -> None:
    if n > 0:
        UTTERANCES_DELIVERED.inc(n)


def inc_speak() -> None:
    SPEAK_EVENTS.inc()


async def metrics_middleware(request, call_next):  # type: ignore
    start = time.perf_counter()
    response = await call_next(request)
    duration = time.perf_counter() - start
    route = request.scope.get("route")
    endpoint = getattr(route, "path", request.url.path)
    record_request(endpoint, response.status_code, duration)
    return response
