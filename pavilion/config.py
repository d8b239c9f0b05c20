"""
Application configuration
"""
import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Settings from environment variables"""

    # Storage
    DATABASE_PATH: str = os.getenv("DATABASE_PATH", "pavilion.db")

    # Comma-separated extra origins for the web frontend
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "")

    # Scoring
    DEFAULT_BALLS_PER_OVER: int = int(os.getenv("DEFAULT_BALLS_PER_OVER", "6"))

    # Scheduler
    SCHEDULER_DEFAULT_VENUE: str = os.getenv("SCHEDULER_DEFAULT_VENUE", "Main Ground")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
