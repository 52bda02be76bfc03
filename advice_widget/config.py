"""Centralized configuration using Pydantic BaseSettings"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SNAPSHOT_ADVICE = (
    "If you don't want something to be public, don't post it on the Internet."
)


class AppConfig(BaseSettings):
    """Application configuration with environment variable support"""

    # Advice source
    advice_endpoint_url: str = Field(
        default="https://api.adviceslip.com/advice",
        description="Endpoint returning a JSON advice slip",
    )
    http_timeout_seconds: float = Field(
        default=5.0, gt=0, le=120, description="HTTP timeout for the advice request"
    )

    # Timeline
    refresh_interval_minutes: int = Field(
        default=15, ge=1, le=1440, description="Minutes until the host should ask again"
    )
    cache_max_age_minutes: int | None = Field(
        default=None,
        ge=1,
        description="Expire cached advice after this many minutes (None = only manual refresh)",
    )
    placeholder_advice: str = Field(
        default="...", min_length=1, description="Text rendered when nothing is cached"
    )
    snapshot_advice: str = Field(
        default=DEFAULT_SNAPSHOT_ADVICE,
        min_length=1,
        description="Fixed text for quick previews",
    )

    # Background host
    host_refresh_enabled: bool = Field(
        default=True, description="Re-invoke the scheduler at each next refresh instant"
    )

    # MCP Server
    mcp_host: str = Field(default="0.0.0.0", description="MCP server bind address")
    mcp_port: int = Field(default=8080, ge=1024, le=65535, description="MCP server port")

    # OpenTelemetry
    otel_logging_enabled: bool = Field(default=False, description="Enable OpenTelemetry logging")
    otel_tracing_enabled: bool = Field(
        default=False, description="Enable OpenTelemetry tracing for HTTP requests"
    )
    otel_endpoint: str = Field(
        default="http://localhost:4318",
        description="OpenTelemetry collector endpoint (HTTP/protobuf)",
    )
    otel_service_name: str = Field(
        default="advice-slip-widget", description="Service name for OpenTelemetry"
    )
    otel_service_version: str = Field(
        default="1.0.0", description="Service version for OpenTelemetry"
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )


# Global config instance
config = AppConfig()
