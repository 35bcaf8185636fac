"""Pytest fixtures for testing."""
import itertools
from collections.abc import AsyncGenerator, Callable, Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from db.connection import EncryptedMongoConnection, MongoConnection
from db.encryption_schema import format_data_key_id
from db.key_provider import LocalKeyProvider, generate_master_key
from db.key_vault import DataKeyRegistry
from tests.fakes import (
    DATABASE,
    FAKE_URI,
    KEY_VAULT_COLLECTION,
    KEY_VAULT_NAMESPACE,
    FakeClientEncryption,
    FakeClientFactory,
    FakeEmbeddingService,
    FakeStore,
)


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Iterator[None]:
    """Make every test read settings fresh from its own environment."""
    from core.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def mongo_store() -> FakeStore:
    """Server-side state shared by every fake client in a test."""
    return FakeStore()


@pytest.fixture
def client_factory(mongo_store: FakeStore) -> FakeClientFactory:
    """Client factory handed to the connections under test."""
    return FakeClientFactory(mongo_store)


@pytest.fixture
def master_key_path(tmp_path: Path) -> Path:
    """A freshly generated local master key."""
    return generate_master_key(tmp_path / "master-key.bin")


@pytest.fixture
async def data_key_id(mongo_store: FakeStore) -> str:
    """
    Create the vault data key in the fake key vault and return its base64 id.

    Uses its own client factory so tests can count the clients their
    connections open.
    """
    admin_client = FakeClientFactory(mongo_store)(FAKE_URI)
    key_vault = admin_client[DATABASE][KEY_VAULT_COLLECTION]
    registry = DataKeyRegistry(key_vault, FakeClientEncryption(key_vault))
    await registry.ensure_key_vault_index()
    key_id = await registry.ensure_data_key("local", "vaultNotesKey")
    return format_data_key_id(key_id)


@pytest.fixture
async def plain_connection(client_factory: FakeClientFactory) -> AsyncGenerator[MongoConnection]:
    """A connected plain connection."""
    connection = MongoConnection(FAKE_URI, DATABASE, client_factory=client_factory)
    await connection.connect()
    yield connection
    await connection.close()


@pytest.fixture
def make_encrypted_connection(
    client_factory: FakeClientFactory,
    master_key_path: Path,
    data_key_id: str,
) -> Callable[..., EncryptedMongoConnection]:
    """Build an encrypting connection; keyword arguments override the working defaults."""
    def make(**overrides: Any) -> EncryptedMongoConnection:
        kwargs: dict[str, Any] = {
            "key_provider": LocalKeyProvider(master_key_path),
            "data_key_id": data_key_id,
            "key_vault_namespace": KEY_VAULT_NAMESPACE,
            "client_factory": client_factory,
            "auto_encryption_opts_factory": dict,
        }
        kwargs.update(overrides)
        uri = kwargs.pop("uri", FAKE_URI)
        return EncryptedMongoConnection(uri, DATABASE, **kwargs)

    return make


@pytest.fixture
async def encrypted_connection(
    make_encrypted_connection: Callable[..., EncryptedMongoConnection],
) -> AsyncGenerator[EncryptedMongoConnection]:
    """A configured but not yet connected encrypting connection."""
    connection = make_encrypted_connection()
    yield connection
    await connection.close()


@pytest.fixture
def embedding_service() -> FakeEmbeddingService:
    """Embedding service returning a fixed vector."""
    return FakeEmbeddingService()


@pytest.fixture
def advancing_clock(monkeypatch: pytest.MonkeyPatch) -> list[datetime]:
    """
    Replace the service clocks with one that advances a second per call.

    Returns the list of timestamps handed out so far.
    """
    start = datetime(2026, 1, 1, tzinfo=UTC)
    ticks = (start + timedelta(seconds=i) for i in itertools.count())
    issued: list[datetime] = []

    def now() -> datetime:
        issued.append(next(ticks))
        return issued[-1]

    monkeypatch.setattr("services.vault_service.utc_now", now)
    monkeypatch.setattr("services.note_service.utc_now", now)
    return issued


@pytest.fixture
async def client(
    plain_connection: MongoConnection,
    encrypted_connection: EncryptedMongoConnection,
    embedding_service: FakeEmbeddingService,
) -> AsyncGenerator[AsyncClient]:
    """Create a test client with the app's connections replaced by in-memory fakes."""
    from api.dependencies import (
        get_embedding_service,
        get_encrypted_connection,
        get_plain_connection,
    )
    from api.main import app

    app.dependency_overrides[get_plain_connection] = lambda: plain_connection
    app.dependency_overrides[get_encrypted_connection] = lambda: encrypted_connection
    app.dependency_overrides[get_embedding_service] = lambda: embedding_service

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()
