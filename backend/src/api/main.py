"""FastAPI application entry point."""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from api.routers import health, notes, search, semantic, vault
from core.config import Settings, get_settings
from db.connection import EncryptedMongoConnection, MongoConnection
from db.errors import NotConnectedError, StorageError, StorageTimeoutError
from db.key_provider import LocalKeyProvider
from services.embedding_service import EmbeddingService
from services.exceptions import InvalidIdError, VaultUnavailableError

logger = logging.getLogger(__name__)


def build_encrypted_connection(settings: Settings) -> EncryptedMongoConnection:
    """Create the (unconnected) encrypting connection from settings."""
    key_provider = (
        LocalKeyProvider(settings.encryption_key_path) if settings.encryption_key_path else None
    )
    return EncryptedMongoConnection(
        settings.mongodb_uri,
        settings.database_name,
        key_provider=key_provider,
        data_key_id=settings.csfle_data_key_id,
        key_vault_namespace=settings.key_vault_namespace,
        crypt_shared_lib_path=settings.crypt_shared_lib_path,
        timeout_ms=settings.mongodb_timeout_ms,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan - startup and shutdown."""
    app_settings = get_settings()

    # Startup: the plain connection is required; a failure here stops the process.
    plain_connection = MongoConnection(
        app_settings.mongodb_uri,
        app_settings.database_name,
        timeout_ms=app_settings.mongodb_timeout_ms,
    )
    await plain_connection.connect()
    app.state.plain_connection = plain_connection

    # The vault connects lazily on its first request; it may be unconfigured.
    app.state.encrypted_connection = build_encrypted_connection(app_settings)

    app.state.embedding_service = EmbeddingService(
        app_settings.openai_api_key, app_settings.embedding_model,
    )

    yield

    # Shutdown
    await app.state.embedding_service.close()
    await app.state.encrypted_connection.close()
    await plain_connection.close()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request and add security headers to response."""
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        # Vault responses are never cached.
        if request.url.path.startswith("/vault"):
            response.headers["Cache-Control"] = "no-store"
        return response


app_settings = get_settings()

app = FastAPI(
    title="Inkleaf Notes API",
    description="Markdown notes with keyword and semantic search, plus an encrypted vault.",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(VaultUnavailableError)
async def vault_unavailable_handler(
    _request: Request, exc: VaultUnavailableError,
) -> JSONResponse:
    """The encrypting connection is not ready: the vault is locked, not missing."""
    logger.warning("Vault unavailable: %s", exc.reason)
    return JSONResponse(status_code=503, content={"detail": f"Vault unavailable: {exc.reason}"})


@app.exception_handler(InvalidIdError)
async def invalid_id_handler(_request: Request, exc: InvalidIdError) -> JSONResponse:
    """Malformed identifiers are a client error."""
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(NotConnectedError)
async def not_connected_handler(_request: Request, exc: NotConnectedError) -> JSONResponse:
    """A connection was used before it was established."""
    logger.error("Connection not established: %s", exc)
    return JSONResponse(status_code=503, content={"detail": "Database not connected"})


@app.exception_handler(StorageTimeoutError)
async def storage_timeout_handler(_request: Request, exc: StorageTimeoutError) -> JSONResponse:
    """The database did not answer within the configured timeout. Not retried here."""
    logger.warning("Database operation timed out: %s", exc)
    return JSONResponse(status_code=503, content={"detail": "Database operation timed out"})


@app.exception_handler(StorageError)
async def storage_error_handler(_request: Request, exc: StorageError) -> JSONResponse:
    """Other database failures. Not retried here so writes are never silently duplicated."""
    logger.error("Database operation failed: %s", exc)
    return JSONResponse(status_code=502, content={"detail": "Database operation failed"})


# Security headers middleware (runs after CORS, adds headers to responses)
app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(notes.router)
app.include_router(search.router)
app.include_router(semantic.router)
app.include_router(vault.router)
