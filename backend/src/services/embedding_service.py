"""Embedding generation for semantic search over plain notes."""
import logging
from typing import TYPE_CHECKING, Any

from openai import AsyncOpenAI

if TYPE_CHECKING:
    from services.note_service import NoteService

logger = logging.getLogger(__name__)

EMBEDDING_DIMENSIONS = 1536
MAX_EMBEDDING_TEXT_LENGTH = 8000


def prepare_text_for_embedding(title: str, markdown: str, tags: list[str]) -> str:
    """Combine a note's title, body, and tags into the text that gets embedded."""
    parts = [title, markdown, ", ".join(tags)]
    combined = "\n\n".join(part for part in parts if part)
    return combined[:MAX_EMBEDDING_TEXT_LENGTH]


class EmbeddingService:
    """
    Thin wrapper around the OpenAI embeddings endpoint.

    Without an API key every call returns None, which callers treat as
    "no embedding available" rather than an error.
    """

    def __init__(self, api_key: str, model: str = "text-embedding-3-small") -> None:
        self._model = model
        self._client = AsyncOpenAI(api_key=api_key) if api_key else None

    @property
    def enabled(self) -> bool:
        """Check if an API key is configured."""
        return self._client is not None

    async def generate(self, text: str) -> list[float] | None:
        """Generate an embedding for text, or None if embeddings are disabled."""
        if self._client is None:
            logger.warning("OpenAI API key not configured, skipping embedding generation")
            return None
        if not text.strip():
            return None
        response = await self._client.embeddings.create(model=self._model, input=text)
        return response.data[0].embedding

    async def close(self) -> None:
        """Release the underlying HTTP client."""
        if self._client is not None:
            await self._client.close()


async def refresh_note_embedding(
    note_service: "NoteService",
    embedding_service: EmbeddingService,
    note: dict[str, Any],
) -> None:
    """
    Regenerate and store a note's embedding.

    Runs as a background task after the response is sent; failures are logged
    and never propagate to the request that triggered them.
    """
    note_id = str(note["_id"])
    try:
        text = prepare_text_for_embedding(note["title"], note["markdown"], note["tags"])
        embedding = await embedding_service.generate(text)
        if embedding is not None:
            await note_service.set_embedding(note_id, embedding)
    except Exception:
        logger.exception("Failed to update embedding for note %s", note_id)

