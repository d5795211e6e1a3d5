"""Configuration module for wei.

This module provides configuration settings using Pydantic Settings.
Environment variables can be used to override default values.
"""

from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings for wei.

    All settings can be overridden via environment variables.
    Example: export DATABASE_URL="sqlite:////var/lib/wei/people.db"
    """

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./wei.db"
    """Database connection URL. Default: SQLite file in current directory"""

    # API Server Configuration
    API_HOST: str = "127.0.0.1"
    """API server host address"""

    API_PORT: int = 8005
    """API server port"""

    # MCP Server Configuration
    MCP_HOST: str = "127.0.0.1"
    MCP_PORT: int = 8006
    MCP_TRANSPORT: str = "stdio"
    """MCP transport type: 'stdio' for local, 'sse' for network access"""

    # General Configuration
    TIMEZONE: str = "UTC"
    """Timezone used to resolve calendar triggers (weekday/hour)"""

    LOG_LEVEL: str = "INFO"

    # Notification Configuration
    NOTIFICATIONS_AUTHORIZED: bool = True
    """Answer given when the scheduler asks for notification permission"""

    REMINDER_TRIGGER_MODE: str = "calendar"
    """'calendar' for the weekly random reminder, 'interval' for a short one-shot debug trigger"""

    REMINDER_DEBUG_DELAY_SECONDS: float = 3.0
    """Delay of the one-shot trigger used in 'interval' mode"""

    # Background Worker Configuration
    WORKER_ENABLED: bool = True
    WORKER_CHECK_INTERVAL: int = 30
    """Interval in seconds for delivering due notifications"""

    NOTIFICATION_WEBHOOK_URL: Optional[str] = None
    """Optional URL that receives every delivered notification as JSON"""

    @field_validator("TIMEZONE")
    @classmethod
    def check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"unknown timezone: {value}")
        return value

    @field_validator("REMINDER_TRIGGER_MODE")
    @classmethod
    def check_trigger_mode(cls, value: str) -> str:
        value = value.lower()
        if value not in ("calendar", "interval"):
            raise ValueError("REMINDER_TRIGGER_MODE must be 'calendar' or 'interval'")
        return value

    @field_validator("REMINDER_DEBUG_DELAY_SECONDS")
    @classmethod
    def check_debug_delay(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("REMINDER_DEBUG_DELAY_SECONDS must be greater than 0")
        return value

    class Config:
        """Pydantic config"""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


# Global settings instance
settings = Settings()
