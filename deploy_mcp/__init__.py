"""Remote web server deployment over SSH."""

from deploy_mcp.models import DeployTarget, RunOutcome, RunReport, Stage, StageResult
from deploy_mcp.services.orchestrator import DeploymentOrchestrator

__all__ = [
    "DeploymentOrchestrator",
    "DeployTarget",
    "RunOutcome",
    "RunReport",
    "Stage",
    "StageResult",
]
