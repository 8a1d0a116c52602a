"""
Application Configuration

Settings are read from environment variables (or a local .env file) using
pydantic-settings. Import the cached ``settings`` instance, or call
``get_settings()`` when a fresh reference is needed in a dependency.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

# Office name -> HR inbox that receives applications for that office
DEFAULT_OFFICE_HR_EMAILS = {
    "Bala Cynwyd Office": "qwenton.balawejder@batp.org",
    "Philadelphia Office": "samantha.power@batp.org",
    "South Philadelphia Satellite Office": "williampower@batp.org",
}


class Settings(BaseSettings):
    """Runtime configuration for the job intake API."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    python_env: Literal["development", "production", "test"] = "development"
    cors_origins: str = "http://localhost:3000"

    # Mail relay
    mail_backend: Literal["smtp", "resend"] = "smtp"
    email_host: str = "smtp.gmail.com"
    email_port: int = 587
    email_secure: bool = False
    email_user: str | None = None
    email_password: str | None = None
    email_from_name: str = "Job Applications"
    email_from: str | None = None
    resend_api_key: str | None = None

    # HR routing
    fallback_hr_email: str | None = None
    office_hr_emails: dict[str, str] = DEFAULT_OFFICE_HR_EMAILS

    @property
    def is_development(self) -> bool:
        return self.python_env == "development"

    @property
    def is_production(self) -> bool:
        return self.python_env == "production"

    @property
    def cors_origins_list(self) -> list[str]:
        """CORS origins as a list (comma-separated in the environment)."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def sender_address(self) -> str | None:
        """Envelope sender: explicit EMAIL_FROM, else the SMTP login."""
        return self.email_from or self.email_user


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()


settings = get_settings()
