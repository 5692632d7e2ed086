"""
Configuration settings for the application
"""

import os
from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application settings"""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./guest_list.db")
    USE_FIREBASE: bool = os.getenv("USE_FIREBASE", "false").lower() in ("1", "true", "yes")
    FIREBASE_CREDENTIALS_JSON: str | None = os.getenv("FIREBASE_CREDENTIALS_JSON")
    FIREBASE_CREDENTIALS_FILE: str | None = os.getenv("FIREBASE_CREDENTIALS_FILE")
    FIREBASE_CREDENTIALS_B64: str | None = os.getenv("FIREBASE_CREDENTIALS_B64")
    FIREBASE_DATABASE_URL: str | None = os.getenv("FIREBASE_DATABASE_URL")

    # Auth. Outside Firebase the bearer token is taken as the uid only when this is on.
    AUTH_DEV_MODE: bool = os.getenv("AUTH_DEV_MODE", "false").lower() in ("1", "true", "yes")

    # Front door
    CHECKIN_TIMEZONE: str = os.getenv("CHECKIN_TIMEZONE", "America/New_York")
    # Empty disables vouching
    VOUCH_PASSWORD: str = os.getenv("VOUCH_PASSWORD", "")

    # CORS
    ALLOW_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:8000",
    ]

    # Rate limiting
    RATE_LIMIT_PER_MINUTE: int = 30

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    class Config:
        env_file = ".env"

settings = Settings()
