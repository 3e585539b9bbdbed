"""
Client Configuration - Pydantic Settings for type-safe config.

All settings come from VIBING_* environment variables or a local .env file.
FAIL FAST - Invalid configuration is rejected at import time.
"""

import sys
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when critical configuration is missing or invalid."""

    pass


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    # API Configuration
    api_url: str = "http://localhost:8080/api"
    request_timeout: float = 30.0
    client_version: str = "0.1.0"

    # Local credential storage (auth-token / auth-user)
    storage_path: Path = Path.home() / ".vibing" / "session.json"

    # Chat
    chat_poll_interval: float = 5.0  # seconds between conversation list polls
    chat_reconcile_delay: float = 0.5  # refresh delay after a send

    # Catalog
    products_per_page: int = 12

    # Payment Provider - PortOne (Toss Pay test channel by default)
    portone_store_id: str = "store-e4dbd984-dcc9-4f49-8911-58725611a1a5"
    portone_channel_key: str = "channel-key-0d521b1a-98cf-4d41-b678-2bc2781a2b70"
    app_origin: str = "http://localhost:5173"

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"  # json or console

    # Observability
    metrics_enabled: bool = True
    metrics_port: int = 9090
    tracing_enabled: bool = False
    otlp_endpoint: str = "http://otel-collector:4317"
    otlp_insecure: bool = True
    service_name: str = "vibing-client"

    model_config = SettingsConfigDict(
        env_prefix="VIBING_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_critical_config(self) -> "Settings":
        """
        FAIL FAST: Validate critical configuration at startup.

        A client pointed at a malformed API URL or configured with a
        non-positive poll interval would fail on every call.
        """
        errors: list[str] = []

        if not self.api_url.startswith(("http://", "https://")):
            errors.append(f"VIBING_API_URL must be an http(s) URL, got: {self.api_url[:40]}")

        if self.request_timeout <= 0:
            errors.append("VIBING_REQUEST_TIMEOUT must be positive")

        if self.chat_poll_interval <= 0:
            errors.append("VIBING_CHAT_POLL_INTERVAL must be positive")

        if self.chat_reconcile_delay < 0:
            errors.append("VIBING_CHAT_RECONCILE_DELAY cannot be negative")

        if self.products_per_page <= 0:
            errors.append("VIBING_PRODUCTS_PER_PAGE must be positive")

        if errors:
            error_msg = "\n".join(
                [
                    "",
                    "=" * 60,
                    "CRITICAL CONFIGURATION ERROR - CLIENT CANNOT START",
                    "=" * 60,
                    *[f"  ✗ {e}" for e in errors],
                    "=" * 60,
                    "",
                ]
            )
            print(error_msg, file=sys.stderr)
            raise ConfigurationError(error_msg)

        return self

    @property
    def base_url(self) -> str:
        """API URL without a trailing slash."""
        return self.api_url.rstrip("/")


# Global settings instance - validates at import time
settings = Settings()


def get_settings() -> Settings:
    """Get client settings instance."""
    return settings
