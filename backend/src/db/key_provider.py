"""Local master key provider for client-side field level encryption."""
import logging
import os
import secrets
from pathlib import Path

from db.errors import KeyUnavailableError

logger = logging.getLogger(__name__)

# The "local" KMS provider requires exactly 96 bytes of key material.
MASTER_KEY_LENGTH = 96


class LocalKeyProvider:
    """
    Reads the master key that wraps and unwraps data encryption keys.

    The key lives on the filesystem, outside the database, and is only ever
    handed to the driver's encryption layer. It is read on demand and not
    cached here; the encrypting connection holds it for its own lifetime.
    """

    name = "local"

    def __init__(self, key_path: Path | str) -> None:
        self._key_path = Path(key_path)

    @property
    def key_path(self) -> Path:
        """Location of the master key file."""
        return self._key_path

    def load_master_key(self) -> bytes:
        """
        Read the master key.

        Raises:
            KeyUnavailableError: If the file is missing, unreadable, or not 96 bytes.
        """
        try:
            key = self._key_path.read_bytes()
        except FileNotFoundError as e:
            raise KeyUnavailableError(f"Master key not found at {self._key_path}") from e
        except OSError as e:
            raise KeyUnavailableError(
                f"Master key at {self._key_path} could not be read: {e.strerror}",
            ) from e

        if len(key) != MASTER_KEY_LENGTH:
            raise KeyUnavailableError(
                f"Master key at {self._key_path} must be {MASTER_KEY_LENGTH} bytes, "
                f"got {len(key)}",
            )
        return key

    def kms_providers(self) -> dict[str, dict[str, bytes]]:
        """Build the kms_providers mapping expected by PyMongo's encryption options."""
        return {self.name: {"key": self.load_master_key()}}


def generate_master_key(key_path: Path | str, overwrite: bool = False) -> Path:
    """
    Generate a new random master key and write it with owner-only permissions.

    Losing the master key makes every value encrypted under its data keys
    unrecoverable, so an existing key file is never replaced unless overwrite
    is explicitly requested.

    Args:
        key_path: Destination file.
        overwrite: Replace an existing key file.

    Returns:
        The path the key was written to.

    Raises:
        FileExistsError: If the file exists and overwrite is False.
    """
    path = Path(key_path)
    if path.exists() and not overwrite:
        raise FileExistsError(f"Master key already exists at {path}")

    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as f:
        f.write(secrets.token_bytes(MASTER_KEY_LENGTH))

    logger.info("Generated %d-byte local master key at %s", MASTER_KEY_LENGTH, path)
    return path
