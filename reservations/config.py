"""
Environment configuration for the reservation service.

Values come from environment variables prefixed with ``RESERVATIONS_`` or
from a ``.env`` file in the working directory.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

env_path = Path(".") / ".env"
load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(env_prefix="RESERVATIONS_", extra="ignore")

    APP_NAME: str = "Room reservations"
    APP_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str = "sqlite:///./data/reservations.db"

    # JWT configuration
    SECRET_KEY: str = "secure-secret-key-1234567890"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Account created on startup when no admin exists yet
    ADMIN_USERNAME: str = "admin"
    ADMIN_EMAIL: str = "admin@example.com"
    ADMIN_PASSWORD: Optional[str] = None

    # Outgoing mail; notifications are only logged when SMTP_HOST is unset
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = True
    MAIL_FROM: str = "reservations@example.com"

    # Working hours used when listing free slots
    DAY_START_HOUR: int = 8
    DAY_END_HOUR: int = 18


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
