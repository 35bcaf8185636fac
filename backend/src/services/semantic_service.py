"""Vector (semantic) search over plain notes using Atlas Vector Search."""
import logging
from typing import Any

from bson import ObjectId

from db.connection import MongoConnection
from db.errors import storage_errors
from services.embedding_service import EmbeddingService, prepare_text_for_embedding
from services.note_service import NOTES_COLLECTION, NoteService

logger = logging.getLogger(__name__)

VECTOR_INDEX = "notes_vector_index"

SEMANTIC_CANDIDATES = 100
SEMANTIC_LIMIT = 10
RELATED_CANDIDATES = 50
RELATED_LIMIT = 5


def build_vector_pipeline(
    embedding: list[float],
    num_candidates: int,
    limit: int,
    exclude_id: ObjectId | None = None,
) -> list[dict[str, Any]]:
    """
    Build a ``$vectorSearch`` pipeline.

    When exclude_id is given, one extra neighbour is requested so that
    filtering out the source note still leaves ``limit`` results.
    """
    pipeline: list[dict[str, Any]] = [
        {
            "$vectorSearch": {
                "index": VECTOR_INDEX,
                "path": "embedding",
                "queryVector": embedding,
                "numCandidates": num_candidates,
                "limit": limit + 1 if exclude_id is not None else limit,
            },
        },
    ]
    if exclude_id is not None:
        pipeline.append({"$match": {"_id": {"$ne": exclude_id}}})
    pipeline.append({
        "$project": {
            "title": 1,
            "markdown": 1,
            "tags": 1,
            "score": {"$meta": "vectorSearchScore"},
        },
    })
    if exclude_id is not None:
        pipeline.append({"$limit": limit})
    return pipeline


class SemanticService:
    """Semantic search and related-note lookup."""

    def __init__(
        self,
        connection: MongoConnection,
        embeddings: EmbeddingService,
    ) -> None:
        self._connection = connection
        self._embeddings = embeddings
        self._notes = NoteService(connection)

    async def _aggregate(self, pipeline: list[dict[str, Any]]) -> list[dict[str, Any]]:
        collection = self._connection.collection(NOTES_COLLECTION)
        with storage_errors():
            cursor = await collection.aggregate(pipeline)
            return await cursor.to_list()

    async def search(self, query: str) -> list[dict[str, Any]]:
        """Find notes semantically similar to a free-text query."""
        embedding = await self._embeddings.generate(query)
        if embedding is None:
            return []
        return await self._aggregate(
            build_vector_pipeline(embedding, SEMANTIC_CANDIDATES, SEMANTIC_LIMIT),
        )

    async def find_related(self, note_id: str) -> list[dict[str, Any]]:
        """
        Find notes similar to an existing note.

        Uses the stored embedding when present, otherwise generates one on the
        fly (without persisting it). Returns an empty list for unknown notes.
        """
        note = await self._notes.get_with_embedding(note_id)
        if note is None:
            return []

        embedding = note.get("embedding")
        if not embedding:
            text = prepare_text_for_embedding(
                note.get("title", ""), note.get("markdown", ""), note.get("tags", []),
            )
            embedding = await self._embeddings.generate(text)
            if embedding is None:
                return []

        return await self._aggregate(
            build_vector_pipeline(
                embedding, RELATED_CANDIDATES, RELATED_LIMIT, exclude_id=note["_id"],
            ),
        )
