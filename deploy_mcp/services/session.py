"""SSH session lifecycle for a single deployment target.

A DeploySession wraps one asyncssh connection and is scoped to one
execute() call:
- opened by open_session() within a bounded connect timeout
- closed exactly once, however many times close() is called
"""

import asyncio
import logging
from typing import TYPE_CHECKING

import asyncssh

from deploy_mcp.errors import ConnectionError
from deploy_mcp.models import CommandResult

if TYPE_CHECKING:
    from deploy_mcp.models import DeployTarget

logger = logging.getLogger(__name__)


def _decode(data: str | bytes | None) -> str:
    """Decode raw command output; invalid UTF-8 is replaced, never raised."""
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


class DeploySession:
    """Authenticated remote-execution channel to one target."""

    def __init__(
        self,
        target: "DeployTarget",
        connection: asyncssh.SSHClientConnection,
    ) -> None:
        self.target = target
        self._conn = connection
        self._closed = False
        self.close_count = 0

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def run(self, command: str, timeout: float | None = None) -> CommandResult:
        """Run a command on the target without raising on non-zero exit.

        Raises:
            asyncssh.Error, OSError: If the connection is lost
            asyncio.TimeoutError: If the command exceeds ``timeout``
        """
        if self._closed:
            raise asyncssh.ConnectionLost("Session already closed")

        result = await self._conn.run(
            command, check=False, timeout=timeout, encoding=None
        )

        returncode = result.returncode
        if returncode is None:
            # No exit status reported (e.g. channel torn down by a signal)
            returncode = 255

        return CommandResult(
            output=_decode(result.stdout),
            error=_decode(result.stderr),
            returncode=returncode,
        )

    async def close(self) -> None:
        """Close the connection. Only the first call has an effect."""
        if self._closed:
            return
        self._closed = True
        self.close_count += 1

        logger.info("Closing SSH session to %s", self.target.address)
        self._conn.close()
        try:
            await self._conn.wait_closed()
        except (asyncssh.Error, OSError) as e:
            logger.debug("Error while waiting for %s to close: %s", self.target.name, e)

    async def __aenter__(self) -> "DeploySession":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


def load_client_key(
    target: "DeployTarget",
    key_data: str,
    passphrase: str | None = None,
) -> asyncssh.SSHKey:
    """Decrypt/parse private key material.

    Raises:
        ConnectionError: reason "auth" if the key cannot be imported
    """
    try:
        return asyncssh.import_private_key(key_data, passphrase)
    except (asyncssh.KeyImportError, ValueError) as e:
        logger.error("Cannot load key %s for %s: %s", target.credential_id, target.name, e)
        raise ConnectionError(target.name, "auth", e) from e


async def open_session(
    target: "DeployTarget",
    client_key: asyncssh.SSHKey,
    connect_timeout: float = 30,
    known_hosts: str | None = None,
    strict_host_key_checking: bool = True,
) -> DeploySession:
    """Open an authenticated session to ``target``.

    The whole handshake, including authentication, must finish within
    ``connect_timeout`` seconds.

    Args:
        target: Deployment target
        client_key: Private key used for public-key authentication
        connect_timeout: Seconds allowed for connect + authenticate
        known_hosts: Path to known_hosts file, or None to disable verification
        strict_host_key_checking: Whether to reject unknown host keys

    Returns:
        Open DeploySession

    Raises:
        ConnectionError: reason "timeout", "auth" or "unreachable"
    """
    logger.info(
        "Opening SSH connection to %s (%s, timeout=%ss)",
        target.name,
        target.address,
        connect_timeout,
    )

    async def _connect(verify: bool) -> asyncssh.SSHClientConnection:
        return await asyncssh.connect(
            target.host,
            port=target.port,
            username=target.user,
            client_keys=[client_key],
            known_hosts=known_hosts if verify else None,
        )

    try:
        try:
            conn = await asyncio.wait_for(_connect(verify=True), timeout=connect_timeout)
        except asyncssh.HostKeyNotVerifiable as e:
            if strict_host_key_checking:
                logger.error(
                    "Host key verification failed for %s: %s. "
                    "Add the host key to %s or set "
                    "DEPLOY_STRICT_HOST_KEY_CHECKING=false",
                    target.name,
                    e,
                    known_hosts,
                )
                raise
            logger.warning(
                "Host key not verified for %s (strict mode disabled): %s",
                target.name,
                e,
            )
            conn = await asyncio.wait_for(_connect(verify=False), timeout=connect_timeout)
    except asyncio.TimeoutError as e:
        logger.error(
            "SSH connection to %s timed out after %ss", target.name, connect_timeout
        )
        raise ConnectionError(target.name, "timeout", e) from e
    except (asyncssh.PermissionDenied, asyncssh.HostKeyNotVerifiable) as e:
        logger.error("SSH authentication to %s failed: %s", target.name, e)
        raise ConnectionError(target.name, "auth", e) from e
    except (asyncssh.Error, OSError) as e:
        logger.error("SSH connection to %s failed: %s", target.name, e)
        raise ConnectionError(target.name, "unreachable", e) from e

    logger.info("SSH session established to %s", target.address)
    return DeploySession(target, conn)
