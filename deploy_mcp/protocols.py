"""Protocol interfaces for dependency inversion.

Defines the contracts the orchestrator depends on, so tests and
alternative backends can stand in for the asyncssh session or the
credential store.

Usage Example:

    from deploy_mcp.protocols import CredentialStore

    class VaultStore:
        def get(self, credential_id: str) -> str:
            return fetch_from_vault(credential_id)

    orchestrator = DeploymentOrchestrator(credentials=VaultStore())
    report = await orchestrator.execute(target, stages)
"""

from typing import Protocol, runtime_checkable

from deploy_mcp.models import CommandResult


@runtime_checkable
class CredentialStore(Protocol):
    """Supplies SSH private key material by credential ID."""

    def get(self, credential_id: str) -> str:
        """Return PEM-encoded private key material.

        Args:
            credential_id: Identifier of the stored credential

        Returns:
            Key material as text

        Raises:
            CredentialNotFound: If the store has no such credential
        """
        ...


@runtime_checkable
class RemoteSession(Protocol):
    """Authenticated remote-execution channel to one target."""

    @property
    def is_closed(self) -> bool:
        """True once close() was called or the transport dropped."""
        ...

    async def run(self, command: str, timeout: float | None = None) -> CommandResult:
        """Run a shell command on the target.

        Args:
            command: Shell command line
            timeout: Seconds before the command is abandoned

        Returns:
            CommandResult with stdout, stderr and exit code

        Raises:
            asyncssh.Error, OSError: If the channel fails
            TimeoutError: If the command exceeds ``timeout``
        """
        ...

    async def close(self) -> None:
        """Close the channel. Safe to call more than once."""
        ...
