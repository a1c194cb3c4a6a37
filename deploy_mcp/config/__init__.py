"""Configuration module for deploy_mcp.

- Config: Main configuration class (aggregates all components)
- HostKeyVerifier: Manages SSH host key verification
- Settings: Environment variable configuration
"""

from deploy_mcp.config.host_keys import HostKeyVerifier
from deploy_mcp.config.main import Config
from deploy_mcp.config.settings import Settings

__all__ = ["Config", "HostKeyVerifier", "Settings"]
