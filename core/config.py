"""
POSETRACK Configuration

Environment variables and application settings.
"""

from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "POSETRACK"
    DEBUG: bool = True
    LOG_LEVEL: str = "DEBUG"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8080", "http://10.0.2.2:8000"]

    # Tracking simulation
    TICK_INTERVAL_SECONDS: float = 1.0
    FRAME_WIDTH: int = 640
    FRAME_HEIGHT: int = 480

    # Update stream
    SUBSCRIBER_QUEUE_SIZE: int = 32

    # Only this many characters of the SDK key ever reach the logs
    SDK_KEY_LOG_CHARS: int = 10

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
