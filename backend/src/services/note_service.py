"""Service layer for plain note CRUD operations."""
import logging
from typing import TYPE_CHECKING, Any

from pymongo import ReturnDocument

from db.connection import MongoConnection
from db.errors import storage_errors
from schemas.note import NoteCreate, NoteUpdate
from services.utils import parse_object_id, utc_now

if TYPE_CHECKING:
    from pymongo.asynchronous.collection import AsyncCollection

logger = logging.getLogger(__name__)

NOTES_COLLECTION = "notes"

# Embeddings are large and internal to vector search; never return them.
WITHOUT_EMBEDDING = {"embedding": 0}

# Module-level alias; inside NoteService the name `list` is the list() method.
Embedding = list[float]


class NoteService:
    """Note CRUD over the plaintext ``notes`` collection."""

    def __init__(self, connection: MongoConnection) -> None:
        self._connection = connection

    def _collection(self) -> "AsyncCollection":
        return self._connection.collection(NOTES_COLLECTION)

    async def list(self, notebook_id: str | None = None) -> list[dict[str, Any]]:
        """List notes, most recently updated first, optionally scoped to a notebook."""
        query = {"notebookId": notebook_id} if notebook_id else {}
        with storage_errors():
            cursor = self._collection().find(query, WITHOUT_EMBEDDING).sort("updatedAt", -1)
            return await cursor.to_list()

    async def get(self, note_id: str) -> dict[str, Any] | None:
        """Get a note by id, or None if not found."""
        oid = parse_object_id(note_id)
        with storage_errors():
            return await self._collection().find_one({"_id": oid}, WITHOUT_EMBEDDING)

    async def get_with_embedding(self, note_id: str) -> dict[str, Any] | None:
        """Get a note including its stored embedding (if any)."""
        oid = parse_object_id(note_id)
        with storage_errors():
            return await self._collection().find_one({"_id": oid})

    async def create(self, data: NoteCreate) -> dict[str, Any]:
        """Create a new note. Embedding generation is scheduled by the caller."""
        now = utc_now()
        note: dict[str, Any] = {
            "title": data.title,
            "markdown": data.markdown,
            "tags": data.tags,
            "notebookId": data.notebook_id,
            "createdAt": now,
            "updatedAt": now,
        }
        with storage_errors():
            result = await self._collection().insert_one(note)
        note["_id"] = result.inserted_id
        return note

    async def update(self, note_id: str, data: NoteUpdate) -> dict[str, Any] | None:
        """
        Update a note.

        Returns:
            The updated note, or None if not found.
        """
        oid = parse_object_id(note_id)
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)
        if "notebook_id" in update_data:
            update_data["notebookId"] = update_data.pop("notebook_id")
        update_data["updatedAt"] = utc_now()
        with storage_errors():
            return await self._collection().find_one_and_update(
                {"_id": oid},
                {"$set": update_data},
                projection=WITHOUT_EMBEDDING,
                return_document=ReturnDocument.AFTER,
            )

    async def delete(self, note_id: str) -> bool:
        """Delete a note. Returns True iff a document was removed."""
        oid = parse_object_id(note_id)
        with storage_errors():
            result = await self._collection().delete_one({"_id": oid})
        return result.deleted_count == 1

    async def set_embedding(self, note_id: str, embedding: Embedding) -> None:
        """Store a freshly generated embedding on a note."""
        oid = parse_object_id(note_id)
        with storage_errors():
            await self._collection().update_one({"_id": oid}, {"$set": {"embedding": embedding}})
        logger.debug("Stored embedding for note %s", note_id)
