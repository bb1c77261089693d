# File: serialtrack/core/config.py
"""
Configuration settings for SerialTrack.

This module defines application settings using Pydantic's BaseSettings,
which supports environment variable loading and validation.
"""

import json
import secrets
from typing import Any, Dict, List, Optional, Union

from pydantic import AnyHttpUrl, EmailStr, validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Values are read from the process environment first and from a local
    ``.env`` file second.
    """

    # API settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "SerialTrack"

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    PRODUCTION: bool = False

    # Security
    SECRET_KEY: str = secrets.token_urlsafe(32)
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 8  # 8 days
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    JWT_ALGORITHM: str = "HS256"
    MIN_PASSWORD_LENGTH: int = 6

    # CORS
    BACKEND_CORS_ORIGINS: List[Union[AnyHttpUrl, str]] = []

    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse CORS origins from a JSON list or a comma-separated string."""
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return parsed
            except json.JSONDecodeError:
                return [i.strip() for i in v.split(",") if i.strip()]
        return v or []

    # Database
    DATABASE_PATH: str = "serialtrack.db"
    DATABASE_URL: Optional[str] = None
    INIT_DB_ON_STARTUP: bool = True

    @validator("DATABASE_URL", pre=True, always=True)
    def assemble_db_connection(cls, v: Optional[str], values: Dict[str, Any]) -> str:
        """Fall back to a SQLite file when no explicit URL is configured."""
        if isinstance(v, str) and v:
            return v
        return f"sqlite:///{values.get('DATABASE_PATH', 'serialtrack.db')}"

    # Order documents (invoices, delivery orders)
    FILE_STORAGE_DIR: str = "storage/order_files"
    MAX_UPLOAD_SIZE_MB: int = 20
    ALLOWED_UPLOAD_EXTENSIONS: List[str] = [".pdf", ".png", ".jpg", ".jpeg"]

    # Inventory defaults
    DEFAULT_STOCK_IN_LOCATION: str = "HQ"
    INVENTORY_PAGE_SIZE: int = 20
    INVENTORY_FILTERED_PAGE_SIZE: int = 1000
    DEMO_OVERDUE_THRESHOLD_DAYS: int = 30

    # First administrator
    FIRST_SUPERUSER: EmailStr = "admin@serialtrack.io"
    FIRST_SUPERUSER_PASSWORD: str = "changeme"
    FIRST_SUPERUSER_USERNAME: str = "admin"
    FIRST_SUPERUSER_FULLNAME: str = "SerialTrack Administrator"

    class Config:
        """Pydantic settings configuration."""

        case_sensitive = True
        env_file = ".env"


settings = Settings()
