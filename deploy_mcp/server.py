"""deploy_mcp FastMCP server.

Thin wrapper exposing the deployment orchestrator as MCP tools. All
business logic lives in services/ and pipeline.py.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import PlainTextResponse

from deploy_mcp.middleware import ErrorHandlingMiddleware
from deploy_mcp.services.state import get_dependencies
from deploy_mcp.tools import deploy, plan

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[dict[str, Any]]:
    """Load configuration and credentials before accepting requests."""
    logger.info("deploy_mcp server starting up")
    deps = get_dependencies()
    settings = deps.config.settings
    logger.info(
        "Deploying package=%s service=%s (connect_timeout=%ds, retries=%d)",
        settings.package,
        settings.service,
        settings.connect_timeout,
        settings.connect_retries,
    )
    logger.info("deploy_mcp server ready to accept connections")
    try:
        yield {"package": settings.package}
    finally:
        logger.info("deploy_mcp server shutting down")


def create_server(include_traceback: bool = False) -> FastMCP:
    """Create and configure the MCP server.

    Args:
        include_traceback: Include tracebacks in error logs

    Returns:
        Configured FastMCP server instance
    """
    server = FastMCP("deploy_mcp", lifespan=app_lifespan)

    server.add_middleware(ErrorHandlingMiddleware(include_traceback=include_traceback))

    server.tool()(deploy)
    server.tool()(plan)

    @server.custom_route("/health", methods=["GET"])
    async def health_check(request: Request) -> PlainTextResponse:
        """Health check endpoint."""
        client_host = request.client.host if request.client else "unknown"
        logger.debug("Health check from %s", client_host)
        return PlainTextResponse("OK")

    return server


def run_server(server: FastMCP, transport: str, host: str, port: int) -> None:
    """Run ``server`` with the given transport."""
    if transport == "stdio":
        logger.info("Starting deploy_mcp server (transport=stdio)")
        server.run(transport="stdio")
    else:
        logger.info(
            "Starting deploy_mcp server (transport=http, host=%s, port=%d)",
            host,
            port,
        )
        server.run(transport="http", host=host, port=port)
