"""Moteur de décision des hooks de l'assistant.

Pour chaque événement du cycle de vie (pre-tool, post-tool, pre-speak,
pre-wait, stop) le moteur décide si l'assistant peut continuer (``approve``)
ou doit d'abord consommer la voix en attente / répondre à voix haute
(``block``). Les vérifications sont toujours évaluées dans le même ordre:

1. utterances en attente (si le micro est actif);
2. utterances livrées mais sans réponse vocale (si les réponses vocales sont activées);
3. traitement propre à l'action.

Le moteur porte aussi les opérations ``dequeue``, ``wait_for_utterance``
(attente bloquante par sondage) et ``speak``.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from voicehooks.core.config import Settings
from voicehooks.core.errors import (
    INVALID_ACTION,
    TEXT_REQUIRED,
    ValidationError,
    VoiceResponsesDisabledError,
)
from voicehooks.core.events import Notifier
from voicehooks.core.logger import get_logger
from voicehooks.core.metrics import inc_hook_decision, inc_speak, inc_utterances_delivered
from voicehooks.core.state import VoiceState
from voicehooks.core.utterances import UtteranceStatus, isoformat


logger = get_logger("hooks")

APPROVE = "approve"
BLOCK = "block"

VOICE_INPUT_INACTIVE_DEQUEUE = (
    "Voice input is not active. Cannot dequeue utterances when voice input is disabled."
)
VOICE_INPUT_INACTIVE_WAIT = (
    "Voice input is not active. Cannot wait for utterances when voice input is disabled."
)
SPEAK_REMINDER = (
    "\n\nThe user has enabled voice responses, so use the 'speak' tool to respond "
    "to the user's voice input before proceeding."
)


class HookAction(str, Enum):
    TOOL = "tool"
    POST_TOOL = "post-tool"
    SPEAK = "speak"
    WAIT = "wait"
    STOP = "stop"


@dataclass
class HookDecision:
    decision: str
    reason: Optional[str] = None

    @classmethod
    def approve(cls, reason: Optional[str] = None) -> "HookDecision":
        return cls(APPROVE, reason)

    @classmethod
    def block(cls, reason: str) -> "HookDecision":
        return cls(BLOCK, reason)

    def to_dict(self) -> Dict[str, str]:
        payload = {"decision": self.decision}
        if self.reason:
            payload["reason"] = self.reason
        return payload


@dataclass
class DequeueResult:
    success: bool
    utterances: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error}
        return {"success": True, "utterances": self.utterances}


@dataclass
class WaitResult:
    success: bool
    utterances: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None
    message: Optional[str] = None
    count: Optional[int] = None
    wait_time_ms: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error}
        payload: Dict[str, Any] = {"success": True, "utterances": self.utterances}
        if self.message is not None:
            payload["message"] = self.message
        if self.count is not None:
            payload["count"] = self.count
        if self.wait_time_ms is not None:
            payload["waitTime"] = self.wait_time_ms
        return payload


@dataclass
class SpeakResult:
    responded_count: int
    session_id: Optional[str] = None
    session_name: Optional[str] = None


@dataclass
class ActionCheck:
    allowed: bool
    required_action: Optional[str] = None
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.allowed:
            return {"allowed": True}
        return {"allowed": False, "requiredAction": self.required_action, "reason": self.reason}


def format_voice_utterances(utterances: List[Dict[str, Any]], voice_responses_enabled: bool) -> str:
    """Message présenté à l'assistant (utterances de la plus ancienne à la plus récente)."""
    count = len(utterances)
    texts = "\n".join(f'"{u["text"]}"' for u in utterances)
    plural = "" if count == 1 else "s"
    reminder = SPEAK_REMINDER if voice_responses_enabled else ""
    return f"Assistant received voice input from the user ({count} utterance{plural}):\n\n{texts}{reminder}"


class HookDecisionEngine:
    def __init__(
        self,
        state: VoiceState,
        notifier: Notifier,
        settings: Settings,
        on_wait_start: Optional[Callable[[], Awaitable[Any]]] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.state = state
        self.notifier = notifier
        self.settings = settings
        self.on_wait_start = on_wait_start
        self._clock = clock

    # ----- dequeue -----
    def dequeue(self) -> DequeueResult:
        if not self.state.preferences.voice_input_active:
            return DequeueResult(success=False, error=VOICE_INPUT_INACTIVE_DEQUEUE)

        pending = self.state.collect(UtteranceStatus.PENDING)
        pending.sort(key=lambda item: item[0].timestamp, reverse=True)
        for utterance, source in pending:
            source.queue.mark_delivered(utterance.id)
        inc_utterances_delivered(len(pending))
        if pending:
            logger.info("Dequeued %d utterance(s)", len(pending))
        return DequeueResult(
            success=True,
            utterances=[
                {"text": u.text, "timestamp": isoformat(u.timestamp)} for u, _ in pending
            ],
        )

    # ----- attente bloquante -----
    async def _announce_wait(self) -> None:
        if self.on_wait_start is None:
            return
        try:
            await self.on_wait_start()
        except Exception:
            logger.warning("Wait notification failed", exc_info=True)

    async def wait_for_utterance(self) -> WaitResult:
        prefs = self.state.preferences
        if not prefs.voice_input_active:
            return WaitResult(success=False, error=VOICE_INPUT_INACTIVE_WAIT)

        timeout = self.settings.wait_timeout_seconds
        poll = self.settings.wait_poll_interval_seconds
        start = self._clock()

        def _elapsed_ms() -> int:
            return int((self._clock() - start) * 1000)

        logger.info("Starting wait_for_utterance (%ss)", timeout)
        self.notifier.wait_status(True)
        try:
            first_time = True
            while self._clock() - start < timeout:
                if not prefs.voice_input_active:
                    logger.info("Voice input deactivated during wait_for_utterance")
                    return WaitResult(
                        success=True,
                        message="Voice input was deactivated",
                        wait_time_ms=_elapsed_ms(),
                    )

                pending = self.state.collect(UtteranceStatus.PENDING)
                if pending:
                    pending.sort(key=lambda item: item[0].timestamp)
                    for utterance, source in pending:
                        source.queue.mark_delivered(utterance.id)
                    inc_utterances_delivered(len(pending))
                    logger.info("wait_for_utterance found %d utterance(s)", len(pending))
                    return WaitResult(
                        success=True,
                        utterances=[u.to_dict() for u, _ in pending],
                        count=len(pending),
                        wait_time_ms=_elapsed_ms(),
                    )

                if first_time:
                    first_time = False
                    await self._announce_wait()

                await asyncio.sleep(poll)

            logger.info("wait_for_utterance timed out after %ss", timeout)
            return WaitResult(
                success=True,
                message=f"No utterances found after waiting {timeout:g} seconds.",
                wait_time_ms=int(timeout * 1000),
            )
        finally:
            self.notifier.wait_status(False)

    # ----- speak -----
    def speak(self, text: str) -> SpeakResult:
        clean = (text or "").strip()
        if not clean:
            raise ValidationError("Text is required", code=TEXT_REQUIRED)
        if not self.state.preferences.voice_responses_enabled:
            raise VoiceResponsesDisabledError(
                "Voice responses are disabled",
                details="Cannot speak when voice responses are disabled",
            )

        session_id: Optional[str] = None
        session_name: Optional[str] = None
        delivered = self.state.collect(UtteranceStatus.DELIVERED)
        if delivered:
            owner = delivered[0][1]
            session_id, session_name = owner.source_id, owner.source_name

        for utterance, source in delivered:
            source.queue.mark_responded(utterance.id)
        self.state.record_speak()
        self.notifier.speak(clean, session_id, session_name)
        inc_speak()
        logger.info('Speak: "%s" (session: %s)', clean, session_name or "unknown")
        return SpeakResult(
            responded_count=len(delivered),
            session_id=session_id,
            session_name=session_name,
        )

    # ----- vérification en lecture seule -----
    def validate_action(self, action: str) -> ActionCheck:
        if action not in ("tool-use", "stop"):
            raise ValidationError('Invalid action. Must be "tool-use" or "stop"', code=INVALID_ACTION)
        prefs = self.state.preferences

        if prefs.voice_input_active:
            pending = self.state.count(UtteranceStatus.PENDING)
            if pending:
                return ActionCheck(
                    False,
                    "dequeue_utterances",
                    f"{pending} pending utterance(s) must be dequeued first. "
                    "Please use dequeue_utterances to process them.",
                )

        if prefs.voice_responses_enabled:
            delivered = self.state.count(UtteranceStatus.DELIVERED)
            if delivered:
                return ActionCheck(
                    False,
                    "speak",
                    f"{delivered} delivered utterance(s) require voice response. "
                    "Please use the speak tool to respond before proceeding.",
                )

        if action == "stop" and prefs.voice_input_active and self.state.has_any_utterances():
            return ActionCheck(
                False,
                "wait_for_utterance",
                "Assistant tried to end its response. Stopping is not allowed without first "
                "checking for voice input. Assistant should now use wait_for_utterance to "
                "check for voice input",
            )

        return ActionCheck(True)

    # ----- décision -----
    async def decide(self, action: HookAction) -> HookDecision:
        decision = await self._decide(action)
        inc_hook_decision(action.value, decision.decision)
        logger.info("Hook %s -> %s", action.value, decision.decision)
        return decision

    async def _decide(self, action: HookAction) -> HookDecision:
        prefs = self.state.preferences
        settings = self.settings

        if prefs.voice_input_active:
            pending = self.state.count(UtteranceStatus.PENDING)
            if pending:
                if not settings.auto_deliver_voice_input:
                    return HookDecision.block(
                        f"{pending} pending utterance(s) available. "
                        "Use the dequeue_utterances tool to retrieve them."
                    )
                skip_for_tool = (
                    action is HookAction.TOOL and not settings.auto_deliver_voice_input_before_tools
                )
                if not skip_for_tool:
                    result = self.dequeue()
                    if result.success and result.utterances:
                        oldest_first = list(reversed(result.utterances))
                        return HookDecision.block(
                            format_voice_utterances(oldest_first, prefs.voice_responses_enabled)
                        )

        if prefs.voice_responses_enabled:
            delivered = self.state.count(UtteranceStatus.DELIVERED)
            if delivered:
                if action is HookAction.SPEAK:
                    return HookDecision.approve()
                return HookDecision.block(
                    f"{delivered} delivered utterance(s) require voice response. "
                    "Please use the speak tool to respond before proceeding."
                )

        if action is HookAction.TOOL:
            self.state.record_tool_use()
            return HookDecision.approve()

        if action is HookAction.POST_TOOL:
            return HookDecision.approve()

        if action is HookAction.WAIT:
            if self.state.must_speak_after_tool():
                return HookDecision.block(
                    "Assistant must speak after using tools. Please use the speak tool to "
                    "respond before waiting for utterances."
                )
            return HookDecision.approve()

        if action is HookAction.SPEAK:
            return HookDecision.approve()

        return await self._decide_stop()

    async def _decide_stop(self) -> HookDecision:
        prefs = self.state.preferences
        if self.state.must_speak_after_tool():
            return HookDecision.block(
                "Assistant must speak after using tools. Please use the speak tool to "
                "respond before proceeding."
            )

        if not prefs.voice_input_active:
            return HookDecision.approve()

        if not self.settings.auto_deliver_voice_input:
            return HookDecision.block(
                "Assistant tried to end its response, but voice input is active. Stopping is "
                "not allowed without first checking for voice input. Assistant should now use "
                "wait_for_utterance to check for voice input"
            )

        logger.info("Stop hook: auto-calling wait_for_utterance")
        try:
            result = await self.wait_for_utterance()
        except Exception:
            logger.exception("Stop hook: wait_for_utterance failed, proceeding")
            return HookDecision.approve("Auto-wait encountered an error, proceeding")

        if not result.success:
            return HookDecision.approve(result.error)
        if result.utterances:
            return HookDecision.block(
                format_voice_utterances(result.utterances, prefs.voice_responses_enabled)
            )
        return HookDecision.approve(result.message or "No utterances found during wait")
