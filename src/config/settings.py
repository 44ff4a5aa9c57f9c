"""Application settings loaded from environment variables."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Discord upstream
    discord_bot_token: str = ""
    discord_api_base: str = "https://discord.com/api/v10"

    # CORS
    allowed_origin: str = ""  # Empty = "*"

    # Rate limiting (per client IP)
    rate_limit_max: int = Field(default=10, gt=0)  # Requests per window
    rate_limit_window_ms: int = Field(default=60000, gt=0)

    # Window store
    window_store_backend: str = "upstash"  # "upstash" | "redis" | "memory"
    upstash_redis_rest_url: str = ""
    upstash_redis_rest_token: str = ""
    redis_url: str = "redis://localhost:6379/0"
    store_timeout_seconds: float = 2.0

    # Logging
    log_level: str = "INFO"
    audit_log_file: str = ""  # Empty = stdout only

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def cors_origin(self) -> str:
        return self.allowed_origin or "*"


@lru_cache
def get_settings() -> Settings:
    return Settings()
