"""
Configuration management using Pydantic Settings
"""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database
    DATABASE_URL: str = "sqlite:///./codequest.db"
    DATABASE_ECHO: bool = False

    # Code runner (sandboxed executor)
    CODE_RUNNER_URL: str = "http://localhost:8080"
    CODE_RUNNER_API_KEY: str = ""
    CODE_RUNNER_TIMEOUT: float = 30.0  # seconds

    # Redis (leaderboard cache, disabled when unset)
    REDIS_URL: Optional[str] = None

    # Application
    APP_NAME: str = "CodeQuest Learning Platform"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Rate Limiting (submission endpoints)
    RATE_LIMIT_PER_MINUTE: int = 30
    RATE_LIMIT_PER_HOUR: int = 500

    # Leaderboard
    LEADERBOARD_CACHE_TTL: int = 60  # seconds
    LEADERBOARD_DEFAULT_LIMIT: int = 10
    LEADERBOARD_MAX_LIMIT: int = 100

    # Badges
    BADGE_COUNT_DISTINCT_EXERCISES: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
