"""Application settings from environment variables.

Centralized environment variable parsing and validation.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_PAGE_CONTENT = "<h1>Deployed by deploy_mcp</h1>"
DEFAULT_CREDENTIALS_DIR = str(Path.home() / ".deploy_mcp" / "credentials")


@dataclass(frozen=True)
class Settings:
    """Application settings from environment.

    Handles parsing, validation, and defaults for all env vars.
    Frozen so a run cannot alter the configuration it was started with.
    """

    # Timeouts (seconds)
    connect_timeout: int = field(default=30)
    command_timeout: int = field(default=300)
    http_timeout: int = field(default=10)
    connect_retries: int = field(default=0)

    # Deployed web server
    package: str = field(default="nginx")
    service: str = field(default="nginx")
    content_dir: str = field(default="/var/www/html")
    page_content: str = field(default=DEFAULT_PAGE_CONTENT)
    http_port: int = field(default=80)

    # Credentials
    credentials_dir: str = field(default=DEFAULT_CREDENTIALS_DIR)
    key_passphrase: str | None = field(default=None, repr=False)

    # MCP transport
    transport: str = field(default="stdio")
    mcp_host: str = field(default="127.0.0.1")
    mcp_port: int = field(default=8000)

    # Logging
    log_level: str = field(default="INFO")
    log_colors: bool = field(default=True)
    include_traceback: bool = field(default=False)

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from DEPLOY_* environment variables.

        Returns:
            Settings instance with values from environment
        """
        return cls(
            connect_timeout=cls._get_int("DEPLOY_CONNECT_TIMEOUT", 30),
            command_timeout=cls._get_int("DEPLOY_COMMAND_TIMEOUT", 300),
            http_timeout=cls._get_int("DEPLOY_HTTP_TIMEOUT", 10),
            connect_retries=max(0, cls._get_int("DEPLOY_CONNECT_RETRIES", 0)),
            package=os.getenv("DEPLOY_PACKAGE", "nginx"),
            service=os.getenv("DEPLOY_SERVICE", "nginx"),
            content_dir=os.getenv("DEPLOY_CONTENT_DIR", "/var/www/html"),
            page_content=os.getenv("DEPLOY_PAGE_CONTENT", DEFAULT_PAGE_CONTENT),
            http_port=cls._get_int("DEPLOY_HTTP_PORT", 80),
            credentials_dir=os.path.expanduser(
                os.getenv("DEPLOY_CREDENTIALS_DIR", DEFAULT_CREDENTIALS_DIR)
            ),
            key_passphrase=os.getenv("DEPLOY_KEY_PASSPHRASE") or None,
            transport=cls._get_transport(),
            mcp_host=os.getenv("DEPLOY_MCP_HOST", "127.0.0.1"),
            mcp_port=cls._get_int("DEPLOY_MCP_PORT", 8000),
            log_level=os.getenv("DEPLOY_LOG_LEVEL", "INFO").upper(),
            log_colors=cls._get_bool("DEPLOY_LOG_COLORS", True),
            include_traceback=cls._get_bool("DEPLOY_INCLUDE_TRACEBACK", False),
        )

    @staticmethod
    def _get_int(key: str, default: int) -> int:
        """Get integer from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Integer value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid int for %s: %s, using default %d", key, value, default)
            return default

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        """Get boolean from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Boolean value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("1", "true", "yes", "on")

    @staticmethod
    def _get_transport() -> str:
        """Get MCP transport ("http" or "stdio"), defaulting to stdio."""
        transport = os.getenv("DEPLOY_TRANSPORT", "").lower()
        if transport in ("http", "stdio"):
            return transport
        return "stdio"
