"""Input validation utilities."""

import os
import re
from typing import Final


class PathTraversalError(ValueError):
    """Attempted path traversal detected."""

    pass


# Path traversal patterns to reject
TRAVERSAL_PATTERNS: Final[list[str]] = [
    r"\.\./",  # ../
    r"/\.\.",  # /..
    r"^\.\.$",  # Just ..
    r"^\.\./",  # Starts with ../
]

# Characters that could enable injection when a value reaches a shell
SUSPICIOUS_CHARS: Final[list[str]] = [
    "/", "\\", ";", "&", "|", "$", "`", " ", "\n", "\r", "\x00",
]


def validate_content_dir(path: str) -> str:
    """Validate the remote web content directory.

    The clean stage empties this directory, so it must be an absolute,
    non-root path without traversal sequences.

    Args:
        path: Remote directory path

    Returns:
        Normalized path

    Raises:
        PathTraversalError: If path contains traversal sequences
        ValueError: If path is relative, empty, or the filesystem root
    """
    if not path:
        raise ValueError("Path cannot be empty")

    if "\x00" in path:
        raise PathTraversalError(f"Path contains null byte: {path!r}")

    for pattern in TRAVERSAL_PATTERNS:
        if re.search(pattern, path):
            raise PathTraversalError(f"Path traversal not allowed: {path}")

    if not os.path.isabs(path):
        raise ValueError(f"Content directory must be absolute: {path}")

    normalized = os.path.normpath(path)
    if normalized == "/":
        raise ValueError("Content directory cannot be the filesystem root")

    return normalized


def validate_host(host: str) -> str:
    """Validate a host name or IP address.

    Args:
        host: The host name to validate

    Returns:
        Validated host name

    Raises:
        ValueError: If host name is invalid
    """
    if not host:
        raise ValueError("Host cannot be empty")

    if len(host) > 253:
        raise ValueError(f"Host name too long: {len(host)} chars")

    for char in SUSPICIOUS_CHARS:
        if char in host:
            raise ValueError(f"Host contains invalid characters: {host!r}")

    return host
