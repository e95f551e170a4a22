"""
Application configuration using pydantic-settings.
All config is validated at startup - fail fast if anything is missing.
"""
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application
    app_env: str = "development"
    app_host: str = "0.0.0.0"
    app_port: int = 3001
    service_url: str = "http://localhost:3001"
    log_level: str = "INFO"

    # Database
    database_url: str
    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Encryption (hex-encoded 32-byte AES-256 key)
    encryption_key: str

    # Meta (Facebook Lead Ads)
    meta_app_id: str = ""
    meta_app_secret: str
    meta_webhook_verify_token: str
    meta_graph_version: str = "v21.0"

    # Google (Sheets + Drive OAuth client)
    google_client_id: str = ""
    google_client_secret: str = ""

    # Sentry
    sentry_dsn: str = ""

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @field_validator("encryption_key")
    @classmethod
    def _check_encryption_key(cls, value: str) -> str:
        try:
            raw = bytes.fromhex(value)
        except ValueError:
            raise ValueError("ENCRYPTION_KEY must be hex-encoded")
        if len(raw) != 32:
            raise ValueError("ENCRYPTION_KEY must decode to 32 bytes (64 hex chars)")
        return value

    @property
    def google_redirect_uri(self) -> str:
        return f"{self.service_url}/oauth/google/callback"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
