"""Services for deploy_mcp."""

from deploy_mcp.services.credentials import (
    ChainCredentialStore,
    EnvCredentialStore,
    FileCredentialStore,
    build_credential_store,
)
from deploy_mcp.services.executors import run_stage
from deploy_mcp.services.http_check import check_url, parse_status_line
from deploy_mcp.services.orchestrator import DeploymentOrchestrator, classify_failure
from deploy_mcp.services.session import DeploySession, load_client_key, open_session

__all__ = [
    "build_credential_store",
    "ChainCredentialStore",
    "check_url",
    "classify_failure",
    "DeploymentOrchestrator",
    "DeploySession",
    "EnvCredentialStore",
    "FileCredentialStore",
    "load_client_key",
    "open_session",
    "parse_status_line",
    "run_stage",
]
