"""Shared settings loaded from environment / .env file."""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration for the ScanWizard API server, MCP server and CLI.

    Values are read from environment variables and from a ``.env`` file
    in the working directory.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Shared
    log_level: str = "INFO"
    max_document_size: int = 1_000_000  # characters accepted by the YAML loader

    # REST API
    api_server_host: str = "localhost"
    api_server_port: int = 8000
    port: int | None = None  # Cloud Run injects PORT; takes precedence over api_server_port

    @property
    def effective_port(self) -> int:
        """Return the port to listen on (Cloud Run PORT takes precedence)."""
        return self.port if self.port is not None else self.api_server_port

    # MCP
    mcp_transport: str = "stdio"  # stdio | http | sse
    mcp_server_host: str = "localhost"
    mcp_server_port: int = 9000

    # Sessions
    session_idle_timeout_seconds: int = 1800  # 30 min inactivity
    session_max_lifetime_seconds: int = 28800  # 8 h absolute limit
    session_warning_seconds: int = 300  # warn 5 min before expiry
    session_check_interval: int = 60  # seconds between periodic checks
    session_hourly_check_interval: int = 3600
    disable_session_list: bool = False  # hide GET /sessions endpoint
