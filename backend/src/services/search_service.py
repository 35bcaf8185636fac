"""Keyword search over plain notes using Atlas Search."""
from typing import Any

from db.connection import MongoConnection
from db.errors import storage_errors
from services.note_service import NOTES_COLLECTION

SEARCH_INDEX = "notes_search_index"
SEARCH_LIMIT = 20
AUTOCOMPLETE_LIMIT = 8


def build_search_pipeline(query: str, tags: list[str] | None = None) -> list[dict[str, Any]]:
    """
    Build the ``$search`` pipeline for a fuzzy text query with an optional tag filter.

    Title and markdown are matched with one allowed edit; tags narrow the
    result set without affecting the score.
    """
    compound: dict[str, Any] = {
        "must": [
            {
                "text": {
                    "query": query,
                    "path": ["title", "markdown"],
                    "fuzzy": {"maxEdits": 1},
                },
            },
        ],
    }
    if tags:
        compound["filter"] = [{"text": {"query": tags, "path": "tags"}}]

    return [
        {
            "$search": {
                "index": SEARCH_INDEX,
                "compound": compound,
                "highlight": {"path": ["title", "markdown"]},
            },
        },
        {
            "$project": {
                "title": 1,
                "markdown": 1,
                "tags": 1,
                "score": {"$meta": "searchScore"},
                "highlights": {"$meta": "searchHighlights"},
            },
        },
        {"$limit": SEARCH_LIMIT},
    ]


def build_autocomplete_pipeline(query: str) -> list[dict[str, Any]]:
    """Build the ``$search`` autocomplete pipeline over note titles."""
    return [
        {
            "$search": {
                "index": SEARCH_INDEX,
                "autocomplete": {"query": query, "path": "title"},
            },
        },
        {"$project": {"title": 1}},
        {"$limit": AUTOCOMPLETE_LIMIT},
    ]


class SearchService:
    """Runs search pipelines; ranking is done entirely by Atlas Search."""

    def __init__(self, connection: MongoConnection) -> None:
        self._connection = connection

    async def _aggregate(self, pipeline: list[dict[str, Any]]) -> list[dict[str, Any]]:
        collection = self._connection.collection(NOTES_COLLECTION)
        with storage_errors():
            cursor = await collection.aggregate(pipeline)
            return await cursor.to_list()

    async def search(self, query: str, tags: list[str] | None = None) -> list[dict[str, Any]]:
        """Full-text search across titles and bodies."""
        return await self._aggregate(build_search_pipeline(query, tags))

    async def autocomplete(self, query: str) -> list[dict[str, Any]]:
        """Suggest note titles matching a prefix."""
        return await self._aggregate(build_autocomplete_pipeline(query))
