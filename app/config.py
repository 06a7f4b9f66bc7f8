"""Application settings loaded from environment variables."""
from typing import List
from pathlib import Path
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Absolute path to the .env file
ENV_FILE = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Listing-Desk"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"
    cors_origins: List[str] = ["http://localhost:4200", "http://localhost:8000"]
    # Database
    database_url: str = "sqlite+aiosqlite:///./listings.db"
    api_key: str = ""

    # Identity forwarded by the upstream auth gateway
    identity_header: str = "X-Authenticated-Email"

    # Uploads
    upload_dir: str = "uploads"
    upload_url_prefix: str = "/uploads"
    max_upload_bytes: int = 10 * 1024 * 1024
    allowed_upload_extensions: List[str] = [".jpg", ".jpeg", ".png", ".webp", ".gif", ".pdf", ".mp4"]

    # Decision notifications
    notification_webhook_url: str = ""
    notification_timeout: int = 10
    notification_max_retries: int = 3

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v):
        if not v.startswith(('postgresql+asyncpg://', 'sqlite+aiosqlite://')):
            raise ValueError('database_url must use async driver')
        return v

    @field_validator("cors_origins", "allowed_upload_extensions", mode="before")
    @classmethod
    def parse_list(cls, v):
        if isinstance(v, str):
            import json
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("allowed_upload_extensions")
    @classmethod
    def normalize_extensions(cls, v: List[str]) -> List[str]:
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v]

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        if not v:
            import warnings
            warnings.warn(
                "API_KEY not configured — admin endpoints will refuse all requests.",
                stacklevel=2,
            )
        return v


settings = Settings()
