"""Configuration and logging setup for the DCN catalog MCP server."""

import logging
import sys

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import APIConfiguration

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ServerConfig(BaseSettings):
    """Server settings read from DCN_* environment variables."""

    model_config = SettingsConfigDict(env_prefix="DCN_", env_file=".env", extra="ignore")

    api_url: str = Field(default="http://localhost:8080", description="Catalog service base URL")
    access_token: SecretStr | None = Field(default=None, description="Bearer token to start with")
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")
    log_level: str = Field(default="INFO", description="Root log level")

    def get_api_config(self) -> APIConfiguration:
        """Build the client configuration from server settings."""
        return APIConfiguration(
            base_url=self.api_url.rstrip("/"),
            access_token=self.access_token,
            timeout=self.timeout,
        )


def setup_logging(level: str | int = "INFO") -> None:
    """Route standard logging to stderr (stdout belongs to the stdio transport)."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)

    has_console = any(
        isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stderr
        for h in root.handlers
    )
    if not has_console:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
