"""Utilities for deploy_mcp."""

from deploy_mcp.utils.console import (
    ColorfulFormatter,
    StageEventFormatter,
    configure_logging,
)
from deploy_mcp.utils.shell import join_steps, quote_arg, quote_path
from deploy_mcp.utils.validation import (
    PathTraversalError,
    validate_content_dir,
    validate_host,
)

__all__ = [
    "ColorfulFormatter",
    "configure_logging",
    "join_steps",
    "PathTraversalError",
    "quote_arg",
    "quote_path",
    "StageEventFormatter",
    "validate_content_dir",
    "validate_host",
]
