"""
Create the Atlas Search and Vector Search indexes used by plain notes.

Usage:
    PYTHONPATH=backend/src python -m tasks.create_search_indexes

Indexes build asynchronously on the cluster; this only submits them.
"""
import asyncio
import logging
from typing import Any

from pymongo import AsyncMongoClient
from pymongo.errors import OperationFailure
from pymongo.operations import SearchIndexModel

from core.config import get_settings
from db.errors import ConfigurationError, storage_errors
from services.embedding_service import EMBEDDING_DIMENSIONS
from services.note_service import NOTES_COLLECTION
from services.search_service import SEARCH_INDEX
from services.semantic_service import VECTOR_INDEX

logger = logging.getLogger(__name__)

SEARCH_INDEX_DEFINITION: dict[str, Any] = {
    "mappings": {
        "dynamic": False,
        "fields": {
            "title": [
                {"type": "string", "analyzer": "lucene.standard"},
                {"type": "autocomplete", "tokenization": "edgeGram", "minGrams": 2, "maxGrams": 15},
            ],
            "markdown": {"type": "string", "analyzer": "lucene.standard"},
            "tags": [
                {"type": "string", "analyzer": "lucene.keyword"},
                {"type": "token"},
            ],
        },
    },
}

VECTOR_INDEX_DEFINITION: dict[str, Any] = {
    "fields": [
        {
            "type": "vector",
            "path": "embedding",
            "numDimensions": EMBEDDING_DIMENSIONS,
            "similarity": "cosine",
        },
    ],
}


async def create_search_index(collection: Any, model: SearchIndexModel) -> bool:
    """
    Submit one search index definition.

    Returns:
        True if the index was created, False if it already existed.
    """
    name = model.document["name"]
    with storage_errors():
        try:
            await collection.create_search_index(model)
        except OperationFailure as e:
            if (e.details or {}).get("codeName") != "IndexAlreadyExists" and e.code != 68:
                raise
            logger.info("Search index '%s' already exists", name)
            return False
    logger.info("Search index '%s' created; it may take a few minutes to build", name)
    return True


async def create_indexes() -> None:
    """Ensure the notes collection exists and submit both search indexes."""
    settings = get_settings()
    if not settings.mongodb_uri:
        raise ConfigurationError("MONGODB_URI is required")

    client = AsyncMongoClient(settings.mongodb_uri, timeoutMS=settings.mongodb_timeout_ms)
    try:
        db = client[settings.database_name]
        with storage_errors():
            # Search indexes can only be created on an existing collection.
            if NOTES_COLLECTION not in await db.list_collection_names():
                await db.create_collection(NOTES_COLLECTION)
                logger.info("Created '%s' collection", NOTES_COLLECTION)

        notes = db[NOTES_COLLECTION]
        await create_search_index(
            notes, SearchIndexModel(definition=SEARCH_INDEX_DEFINITION, name=SEARCH_INDEX),
        )
        await create_search_index(
            notes,
            SearchIndexModel(
                definition=VECTOR_INDEX_DEFINITION, name=VECTOR_INDEX, type="vectorSearch",
            ),
        )
    finally:
        await client.close()


def main() -> None:
    """Entry point for running index creation as a script."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(create_indexes())


if __name__ == "__main__":
    main()
