"""
Courier bot settings.

Read from the environment (and .env) with pydantic-settings. Intervals are
configured in milliseconds, matching the deployed .env files; the
*_seconds properties convert them for asyncio.

Storage and chat credentials are optional: without them the bot still starts
and answers commands, but folder monitors stay stopped.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven configuration for the courier service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # =============================================================================
    # BOT IDENTITY
    # =============================================================================
    BOT_NAME: str = Field(default="Konoha Bot", description="Bot name used in captions and replies")
    COMMAND_PREFIX: str = Field(default=".", description="Prefix that triggers a command")
    BOT_OWNER_ID: str = Field(
        default="", description="Chat address of the bot owner (e.g. 919675893215@c.us)"
    )

    # =============================================================================
    # LOGGING
    # =============================================================================
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: str = Field(default="json", description="Logging format: json or console")

    # =============================================================================
    # AUTO-FETCH (folder monitoring and delivery)
    # =============================================================================
    AUTOFETCH_ENABLED: bool = Field(default=True, description="Enable folder monitoring")
    AUTOFETCH_CHECK_INTERVAL_MS: int = Field(
        default=300000, description="Poll period per folder in milliseconds (5 minutes)"
    )
    AUTOFETCH_RETRY_INTERVAL_MS: int = Field(
        default=60000,
        description="Reserved for backoff; does not alter the fixed poll period",
    )
    AUTOFETCH_MAX_RETRIES: int = Field(
        default=3, description="Consecutive failures before a folder is auto-paused"
    )
    AUTOFETCH_INITIAL_DELAY_MS: int = Field(
        default=2000, description="Delay before the first poll after a monitor starts"
    )
    AUTOFETCH_STORAGE_FILE: Path = Field(
        default=Path("./data/auto-fetch-mappings.json"),
        description="JSON document holding folder mappings",
    )
    OWNERS_STORAGE_FILE: Path = Field(
        default=Path("./data/group-owners.json"), description="JSON document holding group owners"
    )
    SCRATCH_DIR: Path = Field(
        default=Path("./temp/excel"), description="Directory for transient download files"
    )
    SPREADSHEET_EXTENSIONS: str = Field(
        default=".xlsx,.xls,.xlsm,.ods,.csv",
        description="Deliverable file extensions (comma-separated)",
    )

    # =============================================================================
    # MINIO (Folder storage backend)
    # =============================================================================
    MINIO_ENDPOINT: Optional[str] = Field(None, description="MinIO endpoint (host:port)")
    MINIO_ACCESS_KEY: Optional[str] = Field(None, description="MinIO access key")
    MINIO_SECRET_KEY: Optional[str] = Field(None, description="MinIO secret key")
    MINIO_BUCKET_NAME: str = Field(default="shared-drive", description="Bucket holding monitored folders")
    MINIO_SECURE: bool = Field(default=False, description="Use HTTPS for MinIO")

    # =============================================================================
    # WHATSAPP CLOUD API (Chat transport)
    # =============================================================================
    WHATSAPP_API_URL: str = Field(
        default="https://graph.facebook.com/v19.0", description="Graph API base URL"
    )
    WHATSAPP_PHONE_NUMBER_ID: Optional[str] = Field(None, description="Sender phone number ID")
    WHATSAPP_ACCESS_TOKEN: Optional[str] = Field(None, description="Permanent access token")
    WHATSAPP_VERIFY_TOKEN: str = Field(
        default="change-me", description="Token echoed during webhook verification"
    )

    # =============================================================================
    # REDIS (Notifications, optional)
    # =============================================================================
    REDIS_URL: Optional[str] = Field(
        None, description="Redis URL for notification events (disabled when unset)"
    )

    # =============================================================================
    # SERVERS
    # =============================================================================
    METRICS_PORT: int = Field(default=8001, description="Prometheus metrics port")
    HEALTH_PORT: int = Field(default=8002, description="Health check port")
    WEBHOOK_HOST: str = Field(default="0.0.0.0", description="Webhook server host")
    WEBHOOK_PORT: int = Field(default=8000, description="Webhook server port")

    # =============================================================================
    # VALIDATORS
    # =============================================================================

    @field_validator("AUTOFETCH_MAX_RETRIES")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        """Retry budget must allow at least one attempt."""
        if v < 1:
            raise ValueError("AUTOFETCH_MAX_RETRIES must be at least 1")
        return v

    @field_validator("AUTOFETCH_CHECK_INTERVAL_MS", "AUTOFETCH_INITIAL_DELAY_MS")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("intervals must not be negative")
        return v

    @field_validator("MINIO_ENDPOINT", mode="before")
    @classmethod
    def parse_minio_endpoint(cls, v):
        """Minio client needs host:port, strip any scheme and placeholder values."""
        if v is None:
            return None
        if isinstance(v, str):
            v = v.strip()
            if not v or "YOUR_" in v or "CHANGE_" in v:
                return None
            return v.replace("http://", "").replace("https://", "")
        return v

    @property
    def check_interval_seconds(self) -> float:
        return self.AUTOFETCH_CHECK_INTERVAL_MS / 1000

    @property
    def initial_delay_seconds(self) -> float:
        return self.AUTOFETCH_INITIAL_DELAY_MS / 1000

    def get_spreadsheet_extensions(self) -> list[str]:
        """Get deliverable extensions as a normalized list (lowercase, leading dot)."""
        extensions = []
        for ext in self.SPREADSHEET_EXTENSIONS.split(","):
            ext = ext.strip().lower()
            if not ext:
                continue
            extensions.append(ext if ext.startswith(".") else f".{ext}")
        return extensions

    def has_storage_backend(self) -> bool:
        """Check if MinIO credentials are configured."""
        return all([self.MINIO_ENDPOINT, self.MINIO_ACCESS_KEY, self.MINIO_SECRET_KEY])

    def has_chat_transport(self) -> bool:
        """Check if WhatsApp Cloud API credentials are configured."""
        return all([self.WHATSAPP_PHONE_NUMBER_ID, self.WHATSAPP_ACCESS_TOKEN])


settings = Settings()
