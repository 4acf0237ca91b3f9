"""Configuration module for Parent Copilot.

This module provides configuration settings using Pydantic Settings.
Environment variables can be used to override default values.
"""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings for Parent Copilot.

    All settings can be overridden via environment variables.
    Example: export STORAGE_BACKEND="database"
    """

    PROJECT_NAME: str = "AI Copilot for Parents API"

    # API Server Configuration
    API_HOST: str = "0.0.0.0"
    """API server host address"""

    API_PORT: int = 5000
    """API server port"""

    CORS_ORIGINS: List[str] = ["*"]
    """Origins allowed to call the API from a browser"""

    # Storage Configuration
    STORAGE_BACKEND: str = "json"
    """Document store backend: 'json' for a single JSON file, 'database' for SQL"""

    DATA_FILE: str = "./data/models.json"
    """Path of the JSON document used by the file-backed store"""

    DATABASE_URL: str = "sqlite:///./parent_copilot.db"
    """Database connection URL for the SQL document store"""

    # General Configuration
    TIMEZONE: str = "UTC"
    """Timezone used to interpret reminder dates and times of day"""

    UPCOMING_REMINDER_HOURS: int = 24
    """Width of the upcoming reminders window"""

    UPCOMING_HEALTH_DAYS: int = 7
    """Width of the upcoming health events window"""

    # Background Worker Configuration
    WORKER_ENABLED: bool = True
    """Run the reminder sweep inside the API process"""

    WORKER_CHECK_INTERVAL: int = Field(60, ge=1)
    """Interval in seconds between reminder sweeps (default: 60 seconds)"""

    TRIGGER_WINDOW_SECONDS: int = 60
    """A reminder is due when now is within this many seconds of its fire time"""

    # Generative AI Configuration
    GEMINI_API_KEY: str = ""
    """API key for the Gemini generative model"""

    GEMINI_MODEL: str = "gemini-2.5-flash"
    """Gemini model name"""

    AI_REQUEST_TIMEOUT: float = 30.0
    """Timeout in seconds for a single model call"""

    WELCOME_INSIGHT_ENABLED: bool = False
    """Generate a welcome insight when a child profile is created"""

    # Logging Configuration
    LOG_DIR: str = "./logs"
    """Directory for rotating log files"""

    LOG_LEVEL: str = "INFO"
    """Level for application loggers (DEBUG shows every worker iteration)"""

    class Config:
        """Pydantic config"""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


# Global settings instance
settings = Settings()
