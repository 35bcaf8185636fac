"""FastAPI dependencies for injection."""
from fastapi import Depends, Request

from core.config import get_settings
from db.connection import EncryptedMongoConnection, MongoConnection
from db.errors import ConfigurationError, StorageError
from services.embedding_service import EmbeddingService
from services.exceptions import VaultUnavailableError
from services.note_service import NoteService
from services.search_service import SearchService
from services.semantic_service import SemanticService
from services.vault_service import VaultNoteService


def get_plain_connection(request: Request) -> MongoConnection:
    """Return the app's plain (non-encrypting) connection."""
    return request.app.state.plain_connection


def get_encrypted_connection(request: Request) -> EncryptedMongoConnection:
    """Return the app's encrypting connection (possibly not yet connected)."""
    return request.app.state.encrypted_connection


def get_embedding_service(request: Request) -> EmbeddingService:
    """Return the app's embedding service."""
    return request.app.state.embedding_service


def get_note_service(
    connection: MongoConnection = Depends(get_plain_connection),
) -> NoteService:
    """Build a note service over the plain connection."""
    return NoteService(connection)


def get_search_service(
    connection: MongoConnection = Depends(get_plain_connection),
) -> SearchService:
    """Build a keyword search service over the plain connection."""
    return SearchService(connection)


def get_semantic_service(
    connection: MongoConnection = Depends(get_plain_connection),
    embeddings: EmbeddingService = Depends(get_embedding_service),
) -> SemanticService:
    """Build a semantic search service."""
    return SemanticService(connection, embeddings)


async def get_vault_service(
    encrypted: EncryptedMongoConnection = Depends(get_encrypted_connection),
    plain: MongoConnection = Depends(get_plain_connection),
) -> VaultNoteService:
    """
    Connect the encrypting client on first use and build the vault service.

    Connection failures (missing configuration, unreadable master key, unknown
    data key, unreachable cluster) become VaultUnavailableError (503). The
    connection stays disconnected, so the next request retries.
    """
    try:
        await encrypted.connect()
    except (ConfigurationError, StorageError) as e:
        raise VaultUnavailableError(str(e)) from e
    return VaultNoteService(encrypted, plain)


__all__ = [
    "get_embedding_service",
    "get_encrypted_connection",
    "get_note_service",
    "get_plain_connection",
    "get_search_service",
    "get_semantic_service",
    "get_settings",
    "get_vault_service",
]
