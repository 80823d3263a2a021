import secrets
import warnings
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Keys
    anthropic_api_key: str = ""

    # Database
    database_url: str = "postgresql+asyncpg://localhost:5432/questlog"

    # Auth - SECRET_KEY must be set via environment variable in production
    secret_key: str = ""
    access_token_expire_minutes: int = 60 * 24 * 30  # 30 days

    # Passcode login (one client, one therapist); each is disabled when unset
    client_passcode: str = ""
    client_name: str = "Brian"
    admin_passcode: str = ""

    # App settings
    app_name: str = "Questlog"
    debug: bool = False
    log_level: str = "INFO"

    # Day boundaries and early-bird hours are computed in this zone unless
    # the request supplies its own
    default_timezone: str = "UTC"

    # AI Models
    haiku_model: str = "claude-3-5-haiku-20241022"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("default_timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown time zone: {value}")
        return value

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Ensure secret_key is properly configured."""
        if not self.secret_key:
            if self.debug:
                # Generate a random key for development
                self.secret_key = secrets.token_urlsafe(32)
                warnings.warn(
                    "SECRET_KEY not set - using random key (sessions won't persist across restarts)",
                    stacklevel=2,
                )
            else:
                raise ValueError(
                    "SECRET_KEY environment variable must be set in production. "
                    "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(32))\""
                )
        return self


settings = Settings()
