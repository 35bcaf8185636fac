"""
Fixtures for tests against a real MongoDB server.

A single container is started per test session; each test gets its own
database, dropped afterwards. Tests are skipped when Docker is unavailable.
"""
import uuid
from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import docker
import pytest
from bson.binary import UuidRepresentation
from bson.codec_options import CodecOptions
from docker.errors import DockerException
from pymongo import AsyncMongoClient
from pymongo.asynchronous.encryption import AsyncClientEncryption
from testcontainers.mongodb import MongoDbContainer

from db.key_provider import LocalKeyProvider
from db.key_vault import DataKeyRegistry
from tests.fakes import KEY_VAULT_COLLECTION


@pytest.fixture(scope="session")
def mongo_container() -> Generator[MongoDbContainer]:
    """Start a MongoDB container for the test session."""
    try:
        docker.from_env().ping()
    except DockerException as e:
        pytest.skip(f"Docker is not available: {e}")
    with MongoDbContainer("mongo:7.0") as mongo:
        yield mongo


@pytest.fixture(scope="session")
def mongo_uri(mongo_container: MongoDbContainer) -> str:
    """Connection string of the session's MongoDB container."""
    return mongo_container.get_connection_url()


@pytest.fixture
def database_name() -> str:
    """A fresh database name per test."""
    return f"inkleaf_test_{uuid.uuid4().hex[:12]}"


@pytest.fixture
def key_vault_namespace(database_name: str) -> str:
    return f"{database_name}.{KEY_VAULT_COLLECTION}"


@pytest.fixture
async def admin_client(mongo_uri: str, database_name: str) -> AsyncGenerator[AsyncMongoClient]:
    """An unencrypted client; drops the test database on teardown."""
    client = AsyncMongoClient(mongo_uri, uuidRepresentation="standard", tz_aware=True)
    yield client
    await client.drop_database(database_name)
    await client.close()


@pytest.fixture
async def client_encryption(
    admin_client: AsyncMongoClient,
    key_vault_namespace: str,
    master_key_path: Path,
) -> AsyncGenerator[AsyncClientEncryption]:
    """The driver's explicit encryption API bound to the test key vault."""
    client_encryption = AsyncClientEncryption(
        LocalKeyProvider(master_key_path).kms_providers(),
        key_vault_namespace,
        admin_client,
        CodecOptions(uuid_representation=UuidRepresentation.STANDARD),
    )
    yield client_encryption
    await client_encryption.close()


@pytest.fixture
async def registry(
    admin_client: AsyncMongoClient,
    database_name: str,
    client_encryption: AsyncClientEncryption,
) -> DataKeyRegistry:
    """A registry over the test key vault with its unique index in place."""
    registry = DataKeyRegistry(admin_client[database_name][KEY_VAULT_COLLECTION], client_encryption)
    await registry.ensure_key_vault_index()
    return registry
