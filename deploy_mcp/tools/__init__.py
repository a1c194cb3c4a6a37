"""MCP tools for deploy_mcp."""

from deploy_mcp.tools.deploy import deploy, plan

__all__ = ["deploy", "plan"]
