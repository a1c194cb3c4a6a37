"""MCP tools that trigger and preview deployments."""

import logging
from typing import Any

from fastmcp.exceptions import ToolError

from deploy_mcp.models import DeployTarget
from deploy_mcp.pipeline import build_default_stages, describe_stages
from deploy_mcp.services.state import get_dependencies

logger = logging.getLogger(__name__)


def _build_target(
    host: str,
    user: str,
    credential_id: str,
    port: int,
    name: str,
) -> DeployTarget:
    try:
        return DeployTarget(
            host=host,
            user=user,
            credential_id=credential_id,
            port=port,
            name=name,
        )
    except ValueError as e:
        raise ToolError(f"Invalid target: {e}") from e


async def deploy(
    host: str,
    user: str,
    credential_id: str,
    port: int = 22,
    name: str = "",
) -> dict[str, Any]:
    """Deploy the web server to a remote host over SSH.

    Runs verify, clean, install and check stages in order and stops at
    the first failing required stage. Nothing is rolled back.

    Args:
        host: Target host name or IP address
        user: SSH user on the target
        credential_id: ID of the private key in the credential store
        port: SSH port
        name: Display name for the target (defaults to host)

    Returns:
        Run report with per-stage results, errors and overall outcome.
    """
    deps = get_dependencies()
    target = _build_target(host, user, credential_id, port, name)
    try:
        stages = build_default_stages(target, deps.config.settings)
    except ValueError as e:
        raise ToolError(f"Invalid deployment settings: {e}") from e

    logger.info("tool:deploy requested for %s", target.address)
    report = await deps.orchestrator.execute(target, stages)
    return report.to_dict()


async def plan(
    host: str,
    user: str = "ubuntu",
    credential_id: str = "default",
    port: int = 22,
) -> str:
    """Show the stages a deployment to ``host`` would run, without connecting.

    Args:
        host: Target host name or IP address
        user: SSH user on the target
        credential_id: ID of the private key in the credential store
        port: SSH port

    Returns:
        Numbered stage list with commands and HTTP probes.
    """
    deps = get_dependencies()
    target = _build_target(host, user, credential_id, port, "")
    try:
        stages = build_default_stages(target, deps.config.settings)
    except ValueError as e:
        raise ToolError(f"Invalid deployment settings: {e}") from e
    return describe_stages(stages)
