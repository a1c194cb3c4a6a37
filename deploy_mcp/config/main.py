"""Application configuration.

Delegates to specialized components:
- Settings: Environment variables
- HostKeyVerifier: Manages known_hosts
"""

import logging
import os
from dataclasses import dataclass

from deploy_mcp.config.host_keys import HostKeyVerifier
from deploy_mcp.config.settings import Settings

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """Application configuration.

    Aggregates settings from environment and known_hosts.
    """

    settings: Settings
    host_keys: HostKeyVerifier

    @classmethod
    def from_env(cls) -> "Config":
        """Create config from environment.

        Returns:
            Configured instance with all components initialized

        Raises:
            FileNotFoundError: If strict host key checking is on and
                known_hosts is missing
        """
        settings = Settings.from_env()
        host_keys = HostKeyVerifier(
            known_hosts_path=os.getenv("DEPLOY_KNOWN_HOSTS"),
            strict_checking=cls._get_bool_env("DEPLOY_STRICT_HOST_KEY_CHECKING", True),
        )
        logger.debug(
            "Config loaded (connect_timeout=%ds, package=%s, host_keys=%s)",
            settings.connect_timeout,
            settings.package,
            "enabled" if host_keys.is_enabled() else "disabled",
        )
        return cls(settings=settings, host_keys=host_keys)

    @staticmethod
    def _get_bool_env(key: str, default: bool) -> bool:
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() != "false"

    # Delegate to components for convenience
    @property
    def known_hosts_path(self) -> str | None:
        """Path to known_hosts file or None if disabled."""
        return self.host_keys.get_known_hosts_path()

    @property
    def strict_host_key_checking(self) -> bool:
        """Whether to reject unknown host keys."""
        return self.host_keys.strict_checking

    @property
    def transport(self) -> str:
        return self.settings.transport
