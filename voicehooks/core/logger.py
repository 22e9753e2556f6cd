import json
import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from voicehooks.core.config import get_settings
from voicehooks.core.trace import get_trace_id


class JsonFormatter(logging.Formatter):
    """Formateur qui sérialise chaque entrée en une ligne JSON."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "category": record.name,
            "message": record.getMessage(),
            "trace_id": get_trace_id() or None,
        }
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_record, ensure_ascii=False)


class SizeAndTimeRotatingFileHandler(TimedRotatingFileHandler):
    """Rotation basée sur la taille et le temps."""

    def __init__(
        self,
        filename: str | Path,
        max_bytes: int = 0,
        backup_count: int = 0,
        when: str = "midnight",
        encoding: str | None = "utf-8",
        delay: bool = True,
    ) -> None:
        self.maxBytes = max_bytes
        super().__init__(
            str(filename),
            when=when,
            backupCount=backup_count,
            encoding=encoding,
            delay=delay,
        )

    def shouldRollover(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if self.maxBytes > 0:
            if self.stream is None:  # pragma: no cover - ouverture différée
                self.stream = self._open()
            msg = f"{self.format(record)}\n"
            if (self.stream.tell() + len(msg.encode(self.encoding or "utf-8"))) >= self.maxBytes:
                return True
        return super().shouldRollover(record)


def _build_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(f"voicehooks.{name}")
    if logger.handlers:  # éviter doublons
        return logger

    settings = get_settings()
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = SizeAndTimeRotatingFileHandler(
        log_dir / f"{name}.jsonl",
        max_bytes=settings.log_rotate_mb * 1024 * 1024,
        backup_count=settings.log_retention_days,
    )
    handler.setFormatter(JsonFormatter())
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    logger.addHandler(handler)
    return logger


_LOGGERS: dict[str, logging.Logger] = {}


def get_logger(name: str) -> logging.Logger:
    """Retourne un logger existant ou le crée si nécessaire."""
    if name not in _LOGGERS:
        _LOGGERS[name] = _build_logger(name)
    return _LOGGERS[name]
