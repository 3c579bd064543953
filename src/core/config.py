"""Configuration management for taskflow-notify."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage
    sqlite_db_path: str = Field(default="data/taskflow.db", description="Path to the SQLite database file")

    # Links embedded in notifications
    app_base_url: str = Field(default="http://localhost:3001", description="Public URL of the web application")

    # Delivery mode: "simulated" logs every message as sent without calling any provider
    notification_mode: Literal["live", "simulated"] = Field(
        default="simulated", description="Whether channel senders call the real providers"
    )

    # Mailjet Configuration
    mailjet_api_key: str | None = Field(default=None, description="Mailjet public API key")
    mailjet_secret_key: str | None = Field(default=None, description="Mailjet private API key")
    mailjet_api_url: str = Field(default="https://api.mailjet.com/v3.1/send", description="Mailjet send endpoint")
    mail_from_email: str = Field(default="noreply@taskflow.local", description="Sender address for emails")
    mail_from_name: str = Field(default="TaskFlow", description="Sender display name for emails")

    # Twilio Configuration
    twilio_account_sid: str | None = Field(default=None, description="Twilio account SID")
    twilio_auth_token: str | None = Field(default=None, description="Twilio auth token")
    twilio_phone_number: str | None = Field(default=None, description="Twilio sender number in E.164 format")
    twilio_api_base_url: str = Field(default="https://api.twilio.com/2010-04-01", description="Twilio REST base URL")

    # WAHA Configuration
    waha_base_url: str = Field(default="http://waha:3000", description="WAHA Base URL")
    waha_api_key: str | None = Field(default=None, description="WAHA API Key (optional)")
    waha_session: str = Field(default="default", description="WAHA session name used for sending")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    # Scheduler Configuration
    reminder_poll_interval_seconds: int = Field(
        default=60, description="How often pending explicit reminders are checked"
    )
    due_date_sweep_interval_hours: int = Field(default=12, description="How often the due-date sweep runs")

    # Assignment confirmation
    confirmation_token_ttl_hours: int = Field(
        default=24, description="Validity window of an accept/reject token while the assignment is pending"
    )
    notify_admins_on_accept: bool = Field(
        default=False, description="Also notify every manager and admin when an assignee accepts a task"
    )
    notify_manager_on_overdue: bool = Field(
        default=True, description="Send the project manager a copy of overdue sweep reminders"
    )

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value

    @property
    def is_live(self) -> bool:
        """Whether senders should call the real providers."""
        return self.notification_mode == "live"


# Application Constants
class Constants:
    """Application-wide constants."""

    # API Configuration
    API_TIMEOUT_SECONDS: int = 30

    # Rate Limiting
    MAX_REQUESTS_PER_MINUTE: int = 60

    # Message size limits
    SMS_MAX_LENGTH: int = 320  # Two concatenated segments
    WHATSAPP_MAX_LENGTH: int = 4096
    ERROR_MESSAGE_MAX_LENGTH: int = 500

    # Pagination Defaults
    DEFAULT_PER_PAGE_LIMIT: int = 100  # Default pagination limit for list queries
    DELIVERY_LOG_DEFAULT_LIMIT: int = 50
    DELIVERY_LOG_MAX_LIMIT: int = 200

    # Scheduled job retries
    JOB_MAX_RETRIES: int = 3
    JOB_RETRY_BASE_DELAY_SECONDS: float = 2.0

    # Job Tracker Configuration
    TRACKER_DEAD_LETTER_QUEUE_MAXLEN: int = 100  # Max items in dead letter queue
    TRACKER_DEAD_LETTER_THRESHOLD: int = 3  # Consecutive failures before a job is dead-lettered


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
