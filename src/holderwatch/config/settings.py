"""Application settings using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """HolderWatch configuration from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )

    # Application
    app_name: str = Field(default="solana-holder-bot-api", description="Service name")
    app_version: str = Field(default="0.1.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Minimum log level"
    )
    json_logs: bool = Field(default=False, description="Render logs as JSON")

    # Server
    host: str = Field(default="0.0.0.0", description="API server host")
    port: int = Field(default=56789, ge=1, le=65535, description="API server port")
    api_enabled: bool = Field(default=False, description="Serve the holder API")

    # Solana RPC
    solana_rpc_url: str = Field(
        default="https://api.mainnet-beta.solana.com",
        description="Solana RPC endpoint URL",
    )
    rpc_max_retries: int = Field(default=3, ge=1, description="Attempts per fetch")
    rpc_timeout: float = Field(
        default=30.0, gt=0, description="Per-attempt timeout in seconds"
    )
    rpc_backoff_base: float = Field(
        default=1.0, ge=0, description="Backoff delay before the second attempt"
    )
    rpc_backoff_cap: float = Field(
        default=10.0, ge=0, description="Maximum backoff delay between attempts"
    )
    rpc_slow_threshold: float = Field(
        default=10.0, gt=0, description="Seconds after which a fetch is logged as slow"
    )
    rpc_request_delay_ms: int = Field(
        default=100, ge=0, description="Minimum spacing between RPC requests"
    )

    # Monitoring loop
    poll_interval: int = Field(default=30, ge=1, description="Seconds between polls")

    # Holder cache
    cache_capacity: int = Field(default=2, ge=1, description="Maximum cached tokens")
    cache_refresh_interval: int = Field(
        default=30, ge=1, description="Seconds between background refreshes"
    )
    cache_ttl: float | None = Field(
        default=None, gt=0, description="Treat entries older than this as misses"
    )
    api_timeout: float = Field(
        default=45.0, gt=0, description="Caller-facing deadline for cache misses"
    )
    refresh_timeout: float = Field(
        default=90.0, gt=0, description="Deadline for one background refresh fetch"
    )

    @field_validator("solana_rpc_url")
    @classmethod
    def validate_rpc_url(cls, v: str) -> str:
        """Validate RPC URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("Solana RPC URL must start with http:// or https://")
        return v

    @model_validator(mode="after")
    def validate_timeouts(self) -> "Settings":
        """One RPC attempt must fit inside the API deadline, which fits inside a refresh."""
        if self.rpc_timeout >= self.api_timeout:
            raise ValueError("rpc_timeout must be shorter than api_timeout")
        if self.refresh_timeout < self.api_timeout:
            raise ValueError("refresh_timeout must not be shorter than api_timeout")
        if self.rpc_backoff_cap < self.rpc_backoff_base:
            raise ValueError("rpc_backoff_cap must not be below rpc_backoff_base")
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
