"""Configuration settings for the Exotel MCP Server.

Values are read from environment variables (or a local .env file).
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 8085
    base_url: str = Field(
        default="http://localhost:8085",
        description="Public base URL used to build vendor status-callback URLs",
    )
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Error tracking
    sentry_dsn: str | None = None

    # CORS
    cors_allowed_origins: str = "*"

    # Vendor HTTP pool
    vendor_max_connections: int = 50
    vendor_max_keepalive_connections: int = 20
    vendor_keepalive_expiry: float = 30.0
    vendor_pool_timeout: float = 5.0  # Waiting for a pooled connection
    vendor_response_timeout: float = 30.0  # Per attempt

    # Retry policy
    retry_max_attempts: int = 3
    retry_base_delay: float = 1.0
    retry_max_jitter: float = 0.5

    # Number metadata cache
    metadata_cache_ttl_minutes: int = 15
    metadata_cache_sweep_threshold: int = 100
    metadata_cache_max_entries: int = 1000

    # Auth handling
    strict_auth: bool = Field(
        default=False,
        description="Reject tool calls when no usable Authorization header is available",
    )

    # Credential bundle defaults
    default_from_number: str = "default_from"
    default_caller_id: str = "default_caller"
    default_api_domain: str = "https://api.exotel.com"
    default_account_sid: str = "default_account"
    default_portal_url: str = "https://my.exotel.com"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins."""
        if self.cors_allowed_origins.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]


settings = Settings()
