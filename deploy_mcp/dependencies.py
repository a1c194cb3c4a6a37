"""Dependency injection container for deploy_mcp."""

from dataclasses import dataclass

from deploy_mcp.config import Config
from deploy_mcp.protocols import CredentialStore
from deploy_mcp.services.credentials import build_credential_store
from deploy_mcp.services.orchestrator import DeploymentOrchestrator


@dataclass
class Dependencies:
    """Container for deploy_mcp dependencies.

    Holds configuration, the credential store and the orchestrator built
    from them. Pass this to the CLI and MCP tools instead of reaching for
    module-level state.

    Example:
        deps = Dependencies.create()
        report = await deps.orchestrator.execute(target, stages)
    """

    config: Config
    credentials: CredentialStore
    orchestrator: DeploymentOrchestrator

    @classmethod
    def create(cls) -> "Dependencies":
        """Create dependencies from the environment.

        Raises:
            FileNotFoundError: If strict host key checking is on and
                known_hosts is missing
        """
        return cls.from_config(Config.from_env())

    @classmethod
    def from_config(
        cls,
        config: Config,
        credentials: CredentialStore | None = None,
    ) -> "Dependencies":
        """Create dependencies with custom configuration.

        Args:
            config: Config instance
            credentials: Optional credential store override

        Returns:
            Dependencies with orchestrator initialized from config
        """
        if credentials is None:
            credentials = build_credential_store(config.settings.credentials_dir)
        orchestrator = DeploymentOrchestrator(
            credentials=credentials,
            settings=config.settings,
            known_hosts=config.known_hosts_path,
            strict_host_key_checking=config.strict_host_key_checking,
        )
        return cls(config=config, credentials=credentials, orchestrator=orchestrator)
