# backend/app/core/config_loader.py

from typing import List

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    MONGODB_URI: str = "mongodb://localhost:27017/chat_backend"
    COOKIE_SECRET: str = ""
    AUTH_SERVICE_URL: str = "http://localhost:9000/v2"

    port: int = 5003
    environment: str = "development"
    allowed_origins: str = (
        "http://localhost:5001,http://127.0.0.1:5001,"
        "http://localhost:5173,http://127.0.0.1:5173"
    )

    auth_timeout_seconds: float = 10.0
    auth_check_timeout_seconds: float = 5.0
    shutdown_timeout_seconds: int = 30
    log_level: str = "DEBUG"
    log_dir: str = ""
    log_max_bytes: int = 5 * 1024 * 1024
    log_backup_count: int = 5

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @model_validator(mode="after")
    def _require_production_secrets(self):
        if self.is_production and not self.COOKIE_SECRET:
            raise ValueError("Missing required environment variable: COOKIE_SECRET")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def allowed_origin_list(self) -> List[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


settings = Settings()
