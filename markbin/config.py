"""
Configuration module for Markbin.
Loads environment variables and provides config objects.
"""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class Settings:
    """Application settings loaded from environment variables."""

    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    DEBUG: bool = _flag("DEBUG", "True")
    APP_DOMAIN: str = os.getenv("APP_DOMAIN", "http://localhost:8000")
    # Global switch for per-paste view passwords
    VIEW_PASSWORD: bool = _flag("VIEW_PASSWORD", "False")


settings = Settings()
