"""Application configuration."""

import os

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Storage
    db_path: str = os.getenv("ROUTINE_DB_PATH", "data/routine.db")

    # Server
    server_host: str = os.getenv("SERVER_HOST", "0.0.0.0")
    server_port: int = int(os.getenv("SERVER_PORT", "8000"))

    # Reminders
    reminder_poll_interval: int = int(
        os.getenv("REMINDER_POLL_INTERVAL", "30")
    )  # seconds between ledger checks
    reminder_lookback: int = int(
        os.getenv("REMINDER_LOOKBACK", "120")
    )  # a start this many seconds in the past still fires

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    class Config:
        """Pydantic config."""

        env_file = ".env"
        case_sensitive = False


settings = Settings()
