"""Credential stores supplying SSH private keys by credential ID."""

import logging
import os
import re
from collections.abc import Mapping, Sequence
from pathlib import Path

from deploy_mcp.errors import CredentialNotFound
from deploy_mcp.protocols import CredentialStore

logger = logging.getLogger(__name__)

CREDENTIAL_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.\-]*$")
KEY_FILE_SUFFIXES = ("", ".pem", ".key")


def _check_credential_id(credential_id: str) -> None:
    if not CREDENTIAL_ID_PATTERN.match(credential_id):
        raise CredentialNotFound(credential_id)


class FileCredentialStore:
    """Reads key material from ``<directory>/<id>[.pem|.key]``."""

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)

    def get(self, credential_id: str) -> str:
        """Return PEM key material for ``credential_id``.

        Raises:
            CredentialNotFound: If no readable key file exists for the ID
        """
        _check_credential_id(credential_id)

        for suffix in KEY_FILE_SUFFIXES:
            path = self.directory / f"{credential_id}{suffix}"
            if not path.is_file():
                continue
            try:
                data = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Cannot read credential file %s: %s", path, e)
                continue
            logger.debug("Loaded credential %s from %s", credential_id, path)
            return data

        raise CredentialNotFound(credential_id)


class EnvCredentialStore:
    """Reads key material from ``DEPLOY_CREDENTIAL_<ID>`` variables.

    The ID is upper-cased and every non-alphanumeric character becomes
    an underscore, so ``ec2-ssh-key`` maps to ``DEPLOY_CREDENTIAL_EC2_SSH_KEY``.
    """

    prefix = "DEPLOY_CREDENTIAL_"

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = environ if environ is not None else os.environ

    def variable_name(self, credential_id: str) -> str:
        return self.prefix + re.sub(r"[^A-Za-z0-9]", "_", credential_id).upper()

    def get(self, credential_id: str) -> str:
        _check_credential_id(credential_id)
        value = self._environ.get(self.variable_name(credential_id))
        if not value:
            raise CredentialNotFound(credential_id)
        # Single-line env values commonly carry escaped newlines
        return value.replace("\\n", "\n")


class ChainCredentialStore:
    """Tries each store in order and returns the first match."""

    def __init__(self, stores: Sequence[CredentialStore]) -> None:
        self.stores = list(stores)

    def get(self, credential_id: str) -> str:
        for store in self.stores:
            try:
                return store.get(credential_id)
            except CredentialNotFound:
                continue
        raise CredentialNotFound(credential_id)


def build_credential_store(credentials_dir: Path | str) -> ChainCredentialStore:
    """Default store: environment variables first, then the key directory."""
    return ChainCredentialStore(
        [EnvCredentialStore(), FileCredentialStore(credentials_dir)]
    )
