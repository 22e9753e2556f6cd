"""File d'utterances vocales et leur cycle de vie (pending -> delivered -> responded)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from voicehooks.core.errors import INVALID_TIMESTAMP, TEXT_REQUIRED, ValidationError
from voicehooks.core.logger import get_logger


logger = get_logger("queue")


class UtteranceStatus(str, Enum):
    PENDING = "pending"
    DELIVERED = "delivered"
    RESPONDED = "responded"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Convertit un horodatage client (ISO-8601 ou epoch ms) en datetime UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, bool):
        raise ValidationError(f"Invalid timestamp: {value!r}", code=INVALID_TIMESTAMP)
    elif isinstance(value, (int, float)):
        try:
            ts = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as exc:
            raise ValidationError(f"Invalid timestamp: {value!r}", code=INVALID_TIMESTAMP) from exc
    elif isinstance(value, str):
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            ts = datetime.fromisoformat(raw)
        except ValueError as exc:
            raise ValidationError(f"Invalid timestamp: {value!r}", code=INVALID_TIMESTAMP) from exc
    else:
        raise ValidationError(f"Invalid timestamp: {value!r}", code=INVALID_TIMESTAMP)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def isoformat(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class Utterance:
    text: str
    timestamp: datetime = field(default_factory=_now)
    status: UtteranceStatus = UtteranceStatus.PENDING
    id: str = field(default_factory=lambda: str(uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "timestamp": isoformat(self.timestamp),
            "status": self.status.value,
        }

    def to_activity(self, **extra: Any) -> Dict[str, Any]:
        """Entrée du fil d'activité du tableau de bord."""
        payload: Dict[str, Any] = {
            "type": "voice_input",
            "timestamp": isoformat(self.timestamp),
            "status": self.status.value,
            "content": self.text,
            "id": self.id,
        }
        payload.update(extra)
        return payload


class UtteranceQueue:
    """Collection ordonnée d'utterances appartenant à une session (ou à la file globale)."""

    def __init__(self, name: str = "global") -> None:
        self.name = name
        self.utterances: List[Utterance] = []

    def __len__(self) -> int:
        return len(self.utterances)

    def add(self, text: str, timestamp: Optional[datetime] = None) -> Utterance:
        clean = (text or "").strip()
        if not clean:
            raise ValidationError("Text is required", code=TEXT_REQUIRED)
        utterance = Utterance(text=clean, timestamp=timestamp or _now())
        self.utterances.append(utterance)
        logger.info('queued: "%s" [id: %s, queue: %s]', utterance.text, utterance.id, self.name)
        return utterance

    def get_recent(self, limit: int = 10) -> List[Utterance]:
        ordered = sorted(self.utterances, key=lambda u: u.timestamp, reverse=True)
        return ordered[: max(limit, 0)]

    def find(self, utterance_id: str) -> Optional[Utterance]:
        return next((u for u in self.utterances if u.id == utterance_id), None)

    def mark_delivered(self, utterance_id: str) -> None:
        utterance = self.find(utterance_id)
        if utterance is not None:
            utterance.status = UtteranceStatus.DELIVERED
            logger.info('delivered: "%s" [id: %s]', utterance.text, utterance_id)

    def mark_responded(self, utterance_id: str) -> None:
        utterance = self.find(utterance_id)
        if utterance is not None and utterance.status is UtteranceStatus.DELIVERED:
            utterance.status = UtteranceStatus.RESPONDED
            logger.info('responded: "%s" [id: %s]', utterance.text, utterance_id)

    def with_status(self, status: UtteranceStatus) -> List[Utterance]:
        return [u for u in self.utterances if u.status is status]

    def pending(self) -> List[Utterance]:
        return self.with_status(UtteranceStatus.PENDING)

    def delivered(self) -> List[Utterance]:
        return self.with_status(UtteranceStatus.DELIVERED)

    def counts(self) -> Dict[str, int]:
        return {
            "total": len(self.utterances),
            "pending": len(self.pending()),
            "delivered": len(self.delivered()),
            "responded": len(self.with_status(UtteranceStatus.RESPONDED)),
        }

    def clear(self) -> int:
        count = len(self.utterances)
        self.utterances = []
        logger.info("Cleared %d utterances from queue %s", count, self.name)
        return count
