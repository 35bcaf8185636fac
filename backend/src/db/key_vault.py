"""Data encryption key registry backed by the key vault collection."""
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from bson.binary import Binary
from pymongo.errors import DuplicateKeyError, EncryptionError, OperationFailure

from db.encryption_schema import format_data_key_id
from db.errors import DuplicateAltNameError, storage_errors

if TYPE_CHECKING:
    from pymongo.asynchronous.collection import AsyncCollection

logger = logging.getLogger(__name__)

# Server error codes meaning an equivalent (or conflicting) index is already present.
INDEX_EXISTS_CODES = frozenset({
    68,  # IndexAlreadyExists
    85,  # IndexOptionsConflict
    86,  # IndexKeySpecsConflict
})

KEY_ALT_NAMES_INDEX = "keyAltNames_1"


class DataKeyRegistry:
    """
    Administrative access to wrapped data encryption keys.

    Args:
        key_vault: The key vault collection (``<db>.encryption_keyVault``).
        client_encryption: An ``AsyncClientEncryption`` bound to the same key vault.
            Only required for creating keys.
    """

    def __init__(self, key_vault: "AsyncCollection", client_encryption: Any = None) -> None:
        self._key_vault = key_vault
        self._client_encryption = client_encryption

    async def ensure_key_vault_index(self) -> None:
        """
        Create the partial unique index on ``keyAltNames``.

        The index only covers documents that have alternate names, so keys
        without one never collide. An existing index counts as success.
        """
        with storage_errors():
            try:
                await self._key_vault.create_index(
                    "keyAltNames",
                    name=KEY_ALT_NAMES_INDEX,
                    unique=True,
                    partialFilterExpression={"keyAltNames": {"$exists": True}},
                )
            except OperationFailure as e:
                if e.code not in INDEX_EXISTS_CODES:
                    raise
                logger.info("keyAltNames index already exists")
                return
        logger.info("Ensured unique index on keyAltNames")

    async def create_data_key(self, provider: str, alt_name: str) -> Binary:
        """
        Create a data key wrapped by the given KMS provider and tag it with alt_name.

        Returns:
            The new key's id (UUID Binary).

        Raises:
            DuplicateAltNameError: If a key with alt_name already exists. Callers
                should look up and reuse the existing key instead of retrying.
        """
        if self._client_encryption is None:
            raise RuntimeError("DataKeyRegistry was created without a ClientEncryption")
        try:
            key_id = await self._client_encryption.create_data_key(
                provider, key_alt_names=[alt_name],
            )
        except DuplicateKeyError as e:
            raise DuplicateAltNameError(alt_name) from e
        except EncryptionError as e:
            # The driver wraps key vault write failures in EncryptionError.
            if isinstance(e.cause, DuplicateKeyError):
                raise DuplicateAltNameError(alt_name) from e
            raise
        logger.info("Created data key %s (%s)", format_data_key_id(key_id), alt_name)
        return key_id

    async def get_key_id(self, alt_name: str) -> Binary | None:
        """Return the id of the key tagged with alt_name, or None."""
        with storage_errors():
            doc = await self._key_vault.find_one({"keyAltNames": alt_name}, {"_id": 1})
        return doc["_id"] if doc else None

    async def ensure_data_key(self, provider: str, alt_name: str) -> Binary:
        """Create the key for alt_name, or return the existing one."""
        try:
            return await self.create_data_key(provider, alt_name)
        except DuplicateAltNameError:
            key_id = await self.get_key_id(alt_name)
            if key_id is None:
                # Rejected as a duplicate but not visible yet; surface the original error.
                raise
            logger.info("Reusing existing data key %s (%s)", format_data_key_id(key_id), alt_name)
            return key_id

    async def missing_key_ids(self, key_ids: Iterable[Binary]) -> list[Binary]:
        """Return the subset of key_ids that are not present in the key vault."""
        missing = []
        with storage_errors():
            for key_id in key_ids:
                if await self._key_vault.find_one({"_id": key_id}, {"_id": 1}) is None:
                    missing.append(key_id)
        return missing
