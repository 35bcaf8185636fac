"""Service layer for vault note CRUD over the encrypted collection."""
import logging
from typing import TYPE_CHECKING, Any

from pymongo import ReturnDocument

from db.connection import EncryptedMongoConnection, MongoConnection
from db.encryption_schema import VAULT_NOTES_COLLECTION
from db.errors import NotConnectedError, storage_errors
from schemas.vault import VaultNoteCreate, VaultNoteUpdate
from services.exceptions import VaultUnavailableError
from services.utils import parse_object_id, utc_now

if TYPE_CHECKING:
    from pymongo.asynchronous.collection import AsyncCollection

logger = logging.getLogger(__name__)


class VaultNoteService:
    """
    Vault note operations.

    Every read and write goes through the encrypting connection, so the
    ``markdown`` field is encrypted before it leaves the process and decrypted
    on the way back. get_raw() is the single exception: it reads the same
    document through the plain connection to expose the stored ciphertext,
    and never writes.
    """

    def __init__(self, encrypted: EncryptedMongoConnection, plain: MongoConnection) -> None:
        self._encrypted = encrypted
        self._plain = plain

    def _collection(self) -> "AsyncCollection":
        try:
            return self._encrypted.collection(VAULT_NOTES_COLLECTION)
        except NotConnectedError as e:
            raise VaultUnavailableError(str(e)) from e

    async def list(self) -> list[dict[str, Any]]:
        """List vault notes, most recently updated first."""
        collection = self._collection()
        with storage_errors():
            cursor = collection.find().sort("updatedAt", -1)
            return await cursor.to_list()

    async def get(self, note_id: str) -> dict[str, Any] | None:
        """Get a decrypted vault note, or None if it does not exist."""
        oid = parse_object_id(note_id)
        collection = self._collection()
        with storage_errors():
            return await collection.find_one({"_id": oid})

    async def create(self, data: VaultNoteCreate) -> dict[str, Any]:
        """
        Create a vault note.

        Creation and update timestamps are identical on a new note.
        """
        collection = self._collection()
        now = utc_now()
        note: dict[str, Any] = {
            "title": data.title,
            "markdown": data.markdown,
            "tags": data.tags,
            "createdAt": now,
            "updatedAt": now,
        }
        with storage_errors():
            result = await collection.insert_one(note)
        note["_id"] = result.inserted_id
        logger.info("vault_note_created", extra={"note_id": str(result.inserted_id)})
        return note

    async def update(self, note_id: str, data: VaultNoteUpdate) -> dict[str, Any] | None:
        """
        Merge the provided fields into a vault note.

        The update timestamp is refreshed on every call, even when no other
        field is provided.

        Returns:
            The updated note, or None if not found.
        """
        oid = parse_object_id(note_id)
        collection = self._collection()
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)
        update_data["updatedAt"] = utc_now()
        with storage_errors():
            return await collection.find_one_and_update(
                {"_id": oid},
                {"$set": update_data},
                return_document=ReturnDocument.AFTER,
            )

    async def delete(self, note_id: str) -> bool:
        """Delete a vault note. Returns True iff exactly one document was removed."""
        oid = parse_object_id(note_id)
        collection = self._collection()
        with storage_errors():
            result = await collection.delete_one({"_id": oid})
        deleted = result.deleted_count == 1
        if deleted:
            logger.info("vault_note_deleted", extra={"note_id": note_id})
        return deleted

    async def get_raw(self, note_id: str) -> dict[str, Any] | None:
        """
        Read the stored document without decrypting it.

        Uses the plain connection, so ``markdown`` comes back as BSON binary
        (subtype 6) ciphertext rather than text.
        """
        oid = parse_object_id(note_id)
        with storage_errors():
            return await self._plain.collection(VAULT_NOTES_COLLECTION).find_one({"_id": oid})
