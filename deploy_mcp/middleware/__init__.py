"""MCP middleware for deploy_mcp."""

from deploy_mcp.middleware.base import DeployMiddleware
from deploy_mcp.middleware.errors import ErrorHandlingMiddleware

__all__ = ["DeployMiddleware", "ErrorHandlingMiddleware"]
