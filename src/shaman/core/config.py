"""Centralized configuration using Pydantic BaseSettings."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_AUTH_HEADER = "X-AUTH-TOKEN"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # API configuration
    api_token: str = "secret"
    api_listen: str = "127.0.0.1:1632"
    auth_header: str = DEFAULT_AUTH_HEADER

    # TLS configuration
    insecure: bool = False
    api_domain: str = "shaman.nanobox.io"
    api_crt: Optional[str] = None
    api_key: Optional[str] = None
    api_key_password: Optional[str] = None

    # Logging
    log_level: str = "INFO"

    # Redis record store (optional, memory store otherwise)
    redis_ip: Optional[str] = None
    redis_port: int = 6379
    redis_db: int = 0

    # Sentry configuration (optional)
    sentry_dsn: Optional[str] = None
    sentry_environment: str = "production"
    sentry_traces_sample_rate: float = 1.0

    @property
    def api_host(self) -> str:
        """Return host part of api_listen."""
        host, _, _ = self.api_listen.rpartition(":")

        return host.strip("[]") or "0.0.0.0"

    @property
    def api_port(self) -> int:
        """Return port part of api_listen."""
        _, _, port = self.api_listen.rpartition(":")

        return int(port)

    @property
    def use_redis(self) -> bool:
        """Check if Redis is configured."""
        return self.redis_ip is not None

    @property
    def redis_url(self) -> str:
        """Return Redis connection URL."""
        return f"redis://{self.redis_ip}:{self.redis_port}/{self.redis_db}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
