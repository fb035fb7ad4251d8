"""Environment configuration for the notification delivery service."""

import os
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class EngineConfig:
    """Delivery policy shared by the dispatcher and the retry sweep.

    Attributes:
        max_retries: Attempts allowed per record (at least 1)
        base_backoff: Delay after the first failure; doubles per attempt
        batch_size: Records resubmitted per sweep
        retry_interval_seconds: Seconds between sweeps
        default_region: Region assumed for phone numbers without a country code
        shutdown_grace_seconds: Time pools get to drain on shutdown
    """

    max_retries: int = 3
    base_backoff: timedelta = timedelta(minutes=5)
    batch_size: int = 100
    retry_interval_seconds: float = 300
    default_region: str = "UG"
    shutdown_grace_seconds: float = 30.0

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Application settings loaded from environment variables.

    Only the composition root reads these. Components receive the values
    they need through their constructors.
    """

    def __init__(self) -> None:
        self.DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./notifications.db")
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
        self.APP_BASE_URL: str = os.getenv("APP_BASE_URL", "https://youthconnect.ug")

        # SMS gateway (Africa's Talking)
        self.AT_USERNAME: str = os.getenv("AT_USERNAME", "")
        self.AT_API_KEY: str = os.getenv("AT_API_KEY", "")
        self.AT_SENDER_ID: str = os.getenv("AT_SENDER_ID", "YouthConnect")
        self.AT_BASE_URL: str = os.getenv(
            "AT_BASE_URL", "https://api.africastalking.com/version1"
        )
        self.DEFAULT_PHONE_REGION: str = os.getenv("DEFAULT_PHONE_REGION", "UG")

        # SMTP
        self.SMTP_HOST: str = os.getenv("SMTP_HOST", "")
        self.SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
        self.SMTP_USERNAME: str = os.getenv("SMTP_USERNAME", "")
        self.SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
        self.SMTP_USE_TLS: bool = _env_bool("SMTP_USE_TLS", True)
        self.MAIL_FROM: str = os.getenv("MAIL_FROM", "noreply@youthconnect.ug")

        # Push gateway (optional)
        self.FIREBASE_CREDENTIALS_PATH: str = os.getenv("FIREBASE_CREDENTIALS_PATH", "")

        # Retry policy
        self.NOTIFICATION_MAX_RETRY_ATTEMPTS: int = int(
            os.getenv("NOTIFICATION_MAX_RETRY_ATTEMPTS", "3")
        )
        self.NOTIFICATION_BATCH_SIZE: int = int(os.getenv("NOTIFICATION_BATCH_SIZE", "100"))
        self.NOTIFICATION_RETRY_INTERVAL_SECONDS: int = int(
            os.getenv("NOTIFICATION_RETRY_INTERVAL_SECONDS", "300")
        )
        self.NOTIFICATION_BASE_BACKOFF_MINUTES: int = int(
            os.getenv("NOTIFICATION_BASE_BACKOFF_MINUTES", "5")
        )

        # Worker pools
        self.PRIMARY_POOL_CORE: int = int(os.getenv("PRIMARY_POOL_CORE", "10"))
        self.PRIMARY_POOL_MAX: int = int(os.getenv("PRIMARY_POOL_MAX", "50"))
        self.PRIMARY_POOL_QUEUE: int = int(os.getenv("PRIMARY_POOL_QUEUE", "1000"))
        self.RETRY_POOL_CORE: int = int(os.getenv("RETRY_POOL_CORE", "2"))
        self.RETRY_POOL_MAX: int = int(os.getenv("RETRY_POOL_MAX", "5"))
        self.RETRY_POOL_QUEUE: int = int(os.getenv("RETRY_POOL_QUEUE", "100"))
        self.POOL_SHUTDOWN_GRACE_SECONDS: float = float(
            os.getenv("POOL_SHUTDOWN_GRACE_SECONDS", "30")
        )

        # Provider timeouts (seconds)
        self.PROVIDER_CONNECT_TIMEOUT: float = float(os.getenv("PROVIDER_CONNECT_TIMEOUT", "5"))
        self.PROVIDER_READ_TIMEOUT: float = float(os.getenv("PROVIDER_READ_TIMEOUT", "10"))

    def validate(self) -> None:
        """Validate settings that would make the service unusable."""
        if not self.DATABASE_URL:
            raise ValueError("DATABASE_URL environment variable is required")
        if self.NOTIFICATION_MAX_RETRY_ATTEMPTS < 1:
            raise ValueError("NOTIFICATION_MAX_RETRY_ATTEMPTS must be at least 1")
        if self.NOTIFICATION_BATCH_SIZE < 1:
            raise ValueError("NOTIFICATION_BATCH_SIZE must be at least 1")

    def engine_config(self) -> EngineConfig:
        """Delivery policy values for the dispatcher and the retry sweep."""
        return EngineConfig(
            max_retries=self.NOTIFICATION_MAX_RETRY_ATTEMPTS,
            base_backoff=timedelta(minutes=self.NOTIFICATION_BASE_BACKOFF_MINUTES),
            batch_size=self.NOTIFICATION_BATCH_SIZE,
            retry_interval_seconds=self.NOTIFICATION_RETRY_INTERVAL_SECONDS,
            default_region=self.DEFAULT_PHONE_REGION,
            shutdown_grace_seconds=self.POOL_SHUTDOWN_GRACE_SECONDS,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    settings = Settings()
    return settings
