"""Global state management for deploy_mcp."""

from deploy_mcp.dependencies import Dependencies

# Global state (initialized on first access)
_deps: Dependencies | None = None


def get_dependencies() -> Dependencies:
    """Get or create the dependency container."""
    global _deps
    if _deps is None:
        _deps = Dependencies.create()
    return _deps


def set_dependencies(deps: Dependencies) -> None:
    """Set the global dependency container.

    Allows tests and the CLI to inject a prepared container.
    """
    global _deps
    _deps = deps


def reset_state() -> None:
    """Reset global state. Should only be used in test fixtures."""
    global _deps
    _deps = None
