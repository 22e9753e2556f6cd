"""Configuration unifiée du serveur voice hooks."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Paramètres globaux, lus une seule fois au démarrage."""

    model_config = SettingsConfigDict(
        env_prefix="VOICE_HOOKS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Serveur HTTP
    host: str = "127.0.0.1"
    port: int = 5111
    cors_origins: list[str] = ["*"]

    # Politique de livraison de la voix
    auto_deliver_voice_input: bool = True
    auto_deliver_voice_input_before_tools: bool = False
    wait_timeout_seconds: float = 60.0
    wait_poll_interval_seconds: float = 0.1

    # Registre des sessions
    session_cleanup_interval_seconds: int = 300
    session_inactive_timeout_seconds: int = 1800

    # Multi-instance
    instance_role: str = "primary"
    instance_url: str | None = None
    primary_url: str = "http://127.0.0.1:5111"
    forward_timeout_seconds: float = 2.0

    # UI
    disable_ui: bool = False
    public_dir: str = "public"

    # Son de notification (attente)
    play_notification_sound: bool = True
    notification_sound_command: list[str] = ["afplay", "/System/Library/Sounds/Funk.aiff"]

    # Logs
    log_dir: str = "logs"
    log_level: str = "INFO"
    log_rotate_mb: int = 5
    log_retention_days: int = 7

    # Observabilité
    enable_metrics: bool = False

    @property
    def is_primary(self) -> bool:
        return self.instance_role.lower() != "secondary"

    @property
    def self_url(self) -> str:
        return self.instance_url or f"http://127.0.0.1:{self.port}"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls.json_config_settings_source,
            file_secret_settings,
        )

    @staticmethod
    def json_config_settings_source() -> dict[str, object]:
        """Charge config.json à la racine du projet si présent."""
        config_path = Path(__file__).resolve().parents[2] / "config.json"
        if config_path.is_file():
            try:
                data = json.loads(config_path.read_text(encoding="utf-8"))
            except ValueError:
                return {}
            return data if isinstance(data, dict) else {}
        return {}


@lru_cache()
def get_settings() -> Settings:
    """Retourne une instance de Settings mise en cache."""
    return Settings()
