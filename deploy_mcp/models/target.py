"""Deployment target data models."""

from dataclasses import dataclass

from deploy_mcp.utils.validation import validate_host


@dataclass(frozen=True)
class DeployTarget:
    """Remote machine receiving a deployment.

    Immutable for the duration of a run.
    """

    host: str
    user: str
    credential_id: str
    port: int = 22
    name: str = ""

    def __post_init__(self) -> None:
        validate_host(self.host)
        if not self.user:
            raise ValueError("User cannot be empty")
        if not self.credential_id:
            raise ValueError("Credential ID cannot be empty")
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}")
        if not self.name:
            # Frozen dataclass: bypass __setattr__ for the derived default
            object.__setattr__(self, "name", self.host)

    @property
    def address(self) -> str:
        """user@host:port form used in log lines."""
        return f"{self.user}@{self.host}:{self.port}"
