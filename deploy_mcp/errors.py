"""Error kinds raised or recorded during a deployment run."""


class DeployError(Exception):
    """Base class for deployment errors."""


class ConnectionError(DeployError):
    """Failed to establish an authenticated SSH session."""

    def __init__(
        self,
        host_name: str,
        reason: str,
        original_error: Exception | None = None,
    ):
        """Initialize connection error.

        Args:
            host_name: Name of the target host
            reason: One of "timeout", "auth", "unreachable"
            original_error: Exception that caused the failure, if any
        """
        self.host_name = host_name
        self.reason = reason
        self.original_error = original_error
        detail = f": {original_error}" if original_error else ""
        super().__init__(f"Cannot connect to {host_name} ({reason}){detail}")


class CredentialNotFound(DeployError):
    """Requested credential ID is not present in the credential store."""

    def __init__(self, credential_id: str):
        self.credential_id = credential_id
        super().__init__(f"Credential not found: {credential_id}")


class CommandError(DeployError):
    """Required stage exited non-zero."""

    def __init__(self, stage_name: str, exit_code: int, stderr: str = ""):
        self.stage_name = stage_name
        self.exit_code = exit_code
        self.stderr = stderr
        message = f"Stage {stage_name} failed with exit code {exit_code}"
        if stderr.strip():
            message += f": {stderr.strip().splitlines()[-1]}"
        super().__init__(message)


class ToleratedCommandError(CommandError):
    """Cleanup stage exited non-zero; the run continues."""


class VerificationError(DeployError):
    """Deployment verification did not pass."""

    def __init__(self, stage_name: str, failures: list[str]):
        self.stage_name = stage_name
        self.failures = failures
        super().__init__(
            f"Verification in stage {stage_name} failed: {'; '.join(failures)}"
        )
