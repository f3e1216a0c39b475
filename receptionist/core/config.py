"""Application configuration."""
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # OpenAI
    openai_api_key: str
    openai_model: str = "gpt-4o-mini"
    completion_timeout_seconds: float = 10.0
    completion_max_tokens: int = 300

    # Twilio
    twilio_phone_number: Optional[str] = None
    base_url: Optional[str] = None
    ws_host: Optional[str] = None

    # Database
    database_url: str

    # Trial
    enable_trial_restrictions: bool = False
    trial_duration_seconds: float = 180.0

    # Language
    default_language: str = "nl-NL"
    language_switch_threshold: int = 2
    handoff_pause_seconds: int = 1

    # Session housekeeping
    business_session_ttl_seconds: float = 3600.0
    business_session_active_window_seconds: float = 1800.0
    reaper_interval_seconds: float = 600.0
    call_idle_timeout_seconds: float = 900.0

    # Logging
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


settings = Settings()
