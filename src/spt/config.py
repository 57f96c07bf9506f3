"""Application settings via pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables with SPT_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="SPT_",
        env_file=".env",
        case_sensitive=False,
    )

    # --- Core ---
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"
    database_url: str = "sqlite+aiosqlite:///./spt.db"
    log_level: str = "INFO"
    log_format: str = "json"

    # --- Codeforces ---
    codeforces_api_base: str = "https://codeforces.com/api"
    codeforces_timeout_seconds: float = 10.0

    # --- Sync engine ---
    scheduler_enabled: bool = True
    default_sync_schedule: str = "0 2 * * *"  # daily 02:00 UTC

    # --- Email service ---
    email_provider: str = "smtp"
    email_from_address: str = "noreply@progress-tracker.local"
    email_from_name: str = "Student Progress System"
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    resend_api_key: str = ""
    frontend_base_url: str = "http://localhost:3000"


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
