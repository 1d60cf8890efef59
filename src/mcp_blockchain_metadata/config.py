"""Gateway settings loaded from the environment."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["development", "production", "test"]


class GatewaySettings(BaseSettings):
    """
    Runtime settings, read from ``MCP_*`` environment variables or ``.env``.

    Attributes
    ----------
    host : str
        Interface the HTTP server binds to
    port : int
        HTTP port
    environment : Environment
        Deployment environment; selects the log format
    auth_token : str | None
        Bearer token required on /mcp. Requests are not authenticated if unset.
    log_level : str
        Root log level
    session_timeout_seconds : float
        Session inactivity timeout
    repository_url : str
        Repository document URL
    repository_ttl_seconds : float
        Repository cache TTL
    token_list_ttl_seconds : float
        Token-list cache TTL
    template_fallback_url : str
        Document served when a template endpoint returns 404

    """

    model_config = SettingsConfigDict(
        env_prefix="MCP_",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    host: str = "127.0.0.1"
    port: int = Field(default=3000, ge=1, le=65535)
    environment: Environment = "development"
    auth_token: str | None = None
    log_level: str = "INFO"

    session_timeout_seconds: float = Field(default=30 * 60, gt=0)

    repository_url: str = "https://api.sherry.social/v1/repository/v1"
    repository_ttl_seconds: float = Field(default=5 * 60, gt=0)
    repository_timeout_seconds: float = Field(default=10.0, gt=0)

    token_list_ttl_seconds: float = Field(default=30 * 60, gt=0)
    token_list_timeout_seconds: float = Field(default=10.0, gt=0)

    template_timeout_seconds: float = Field(default=8.0, gt=0)
    template_fallback_url: str | None = "https://staging.sherry.social/api/examples/token-mill-swap"


def load_settings(**overrides: object) -> GatewaySettings:
    """Load settings from the environment, with keyword overrides."""
    return GatewaySettings(**overrides)  # type: ignore[arg-type]


__all__ = ["Environment", "GatewaySettings", "load_settings"]
