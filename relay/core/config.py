"""
Relay settings loaded from environment variables.
Uses pydantic-settings; every field can be overridden with a RELAY_ prefixed variable.
"""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Relay settings with defaults for local development."""

    model_config = SettingsConfigDict(
        env_prefix="RELAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    # Comma-separated list, "*" allows any origin
    cors_origins: str = "*"

    # Liveness
    push_sweep_interval: float = 60.0
    poll_sweep_interval: float = 30.0
    poll_client_timeout: float = 60.0
    # Polling timeouts send user_left to WebSocket clients
    announce_poll_timeouts: bool = True

    # Delivery
    send_timeout: float = 5.0

    # Message retention for polling clients
    message_log_max: int = 1000
    message_log_max_age: float = 0.0  # seconds, 0 disables the age cutoff
    retain_push_chat: bool = False

    # /logs activity stream
    activity_queue_size: int = 100

    @property
    def allowed_origins(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
