"""Data models for deploy_mcp."""

from deploy_mcp.models.command import CommandResult
from deploy_mcp.models.report import RunOutcome, RunReport
from deploy_mcp.models.stage import HttpCheckResult, HttpProbe, Stage, StageResult
from deploy_mcp.models.target import DeployTarget

__all__ = [
    "CommandResult",
    "DeployTarget",
    "HttpCheckResult",
    "HttpProbe",
    "RunOutcome",
    "RunReport",
    "Stage",
    "StageResult",
]
