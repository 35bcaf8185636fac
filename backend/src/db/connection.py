"""MongoDB connection managers for the plain and the encrypting client."""
import asyncio
import logging
from collections.abc import Callable
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pymongo import AsyncMongoClient
from pymongo.encryption_options import AutoEncryptionOpts

from db.encryption_schema import (
    EncryptionSchema,
    build_vault_schema,
    format_data_key_id,
    parse_data_key_id,
)
from db.errors import (
    ConfigurationError,
    EncryptionNotConfiguredError,
    NotConnectedError,
    UnknownDataKeyError,
    storage_errors,
)
from db.key_provider import LocalKeyProvider
from db.key_vault import DataKeyRegistry

if TYPE_CHECKING:
    from pymongo.asynchronous.collection import AsyncCollection
    from pymongo.asynchronous.database import AsyncDatabase

logger = logging.getLogger(__name__)

ClientFactory = Callable[..., Any]


class ConnectionState(StrEnum):
    """Lifecycle state of a connection manager."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class MongoConnection:
    """
    Owns one MongoDB client and its lifecycle.

    connect() is idempotent and single-flight: while an attempt is in progress,
    concurrent callers await that same attempt instead of opening a second
    client. A failed attempt leaves the manager DISCONNECTED so a later call can
    retry. handle() never connects implicitly.

    Args:
        uri: MongoDB connection string.
        database_name: Database returned by handle().
        timeout_ms: Client-side operation timeout (PyMongo ``timeoutMS``).
        client_factory: Callable creating the client; defaults to AsyncMongoClient.
    """

    name = "plain"

    def __init__(
        self,
        uri: str,
        database_name: str,
        *,
        timeout_ms: int = 10_000,
        client_factory: ClientFactory = AsyncMongoClient,
    ) -> None:
        self._uri = uri
        self._database_name = database_name
        self._timeout_ms = timeout_ms
        self._client_factory = client_factory
        self._client: Any = None
        self._database: "AsyncDatabase | None" = None
        self._state = ConnectionState.DISCONNECTED
        self._connecting: asyncio.Task | None = None

    @property
    def state(self) -> ConnectionState:
        """Current lifecycle state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        """Check if the connection is established."""
        return self._state is ConnectionState.CONNECTED

    @property
    def database_name(self) -> str:
        """Name of the database served by this connection."""
        return self._database_name

    async def connect(self) -> "AsyncDatabase":
        """Connect if needed and return the database handle."""
        if self._database is not None:
            return self._database

        if self._connecting is None:
            self._connecting = asyncio.create_task(self._establish())
        attempt = self._connecting
        try:
            # shield: a cancelled caller must not cancel the attempt other callers share
            return await asyncio.shield(attempt)
        finally:
            if attempt.done() and self._connecting is attempt:
                self._connecting = None

    async def _establish(self) -> "AsyncDatabase":
        self._state = ConnectionState.CONNECTING
        try:
            self._check_configuration()
            with storage_errors():
                client = self._client_factory(self._uri, **self._client_options())
            try:
                with storage_errors():
                    await client.admin.command("ping")
                await self._after_connect(client)
            except BaseException:
                await client.close()
                raise
        except BaseException as e:
            self._state = ConnectionState.DISCONNECTED
            logger.warning("MongoDB %s connection failed: %s", self.name, e)
            raise

        self._client = client
        self._database = client[self._database_name]
        self._state = ConnectionState.CONNECTED
        logger.info("MongoDB %s connection established", self.name)
        return self._database

    def _check_configuration(self) -> None:
        if not self._uri:
            raise ConfigurationError("MONGODB_URI environment variable is not set")

    def _client_options(self) -> dict[str, Any]:
        return {
            "timeoutMS": self._timeout_ms,
            "tz_aware": True,
            "uuidRepresentation": "standard",
        }

    async def _after_connect(self, client: Any) -> None:
        """Hook for subclasses to validate the fresh client before it is published."""

    def handle(self) -> "AsyncDatabase":
        """
        Return the database handle.

        Raises:
            NotConnectedError: If connect() has not succeeded.
        """
        if self._database is None:
            raise NotConnectedError(self.name)
        return self._database

    def collection(self, name: str) -> "AsyncCollection":
        """Return a collection from the connected database."""
        return self.handle()[name]

    async def ping(self) -> bool:
        """Check connectivity without raising."""
        if self._client is None:
            return False
        try:
            with storage_errors():
                await self._client.admin.command("ping")
        except Exception:
            logger.exception("MongoDB %s ping failed", self.name)
            return False
        return True

    async def close(self) -> None:
        """Close the client and clear cached state so connect() starts fresh."""
        if self._connecting is not None and not self._connecting.done():
            self._connecting.cancel()
        self._connecting = None
        client = self._client
        self._client = None
        self._database = None
        self._state = ConnectionState.DISCONNECTED
        if client is not None:
            await client.close()
            logger.info("MongoDB %s connection closed", self.name)


class EncryptedMongoConnection(MongoConnection):
    """
    Connection with automatic client-side field level encryption.

    Fields named in the encryption schema are encrypted by the driver before
    they leave the process and decrypted after retrieval; other fields pass
    through unchanged. The schema is built once per connect and is fixed for
    the lifetime of the client.

    Args:
        uri: MongoDB connection string.
        database_name: Database holding the encrypted collections.
        key_provider: Source of the master key, or None when unconfigured.
        data_key_id: Base64 id of the data key referenced by the schema.
        key_vault_namespace: ``<db>.<collection>`` of the key vault.
        crypt_shared_lib_path: Optional path to the crypt_shared library.
        auto_encryption_opts_factory: Builds the driver's auto-encryption options.
    """

    name = "encrypted"

    def __init__(
        self,
        uri: str,
        database_name: str,
        *,
        key_provider: LocalKeyProvider | None,
        data_key_id: str,
        key_vault_namespace: str,
        crypt_shared_lib_path: str = "",
        timeout_ms: int = 10_000,
        client_factory: ClientFactory = AsyncMongoClient,
        auto_encryption_opts_factory: Callable[..., Any] = AutoEncryptionOpts,
    ) -> None:
        super().__init__(
            uri, database_name, timeout_ms=timeout_ms, client_factory=client_factory,
        )
        self._key_provider = key_provider
        self._data_key_id = data_key_id
        self._key_vault_namespace = key_vault_namespace
        self._crypt_shared_lib_path = crypt_shared_lib_path
        self._auto_encryption_opts_factory = auto_encryption_opts_factory
        self._schema: EncryptionSchema | None = None

    @property
    def schema(self) -> EncryptionSchema | None:
        """Encryption schema of the current (or last attempted) connection; None after close()."""
        return self._schema

    def _check_configuration(self) -> None:
        missing = []
        if not self._uri:
            missing.append("MONGODB_URI")
        if not self._data_key_id:
            missing.append("CSFLE_DATA_KEY_ID")
        if self._key_provider is None:
            missing.append("ENCRYPTION_KEY_PATH")
        if missing:
            raise EncryptionNotConfiguredError(missing)

        try:
            key_id = parse_data_key_id(self._data_key_id)
        except ValueError as e:
            raise ConfigurationError(f"CSFLE_DATA_KEY_ID is invalid: {e}") from e
        self._schema = build_vault_schema(self._database_name, [key_id])

    def _client_options(self) -> dict[str, Any]:
        options = super()._client_options()
        extra: dict[str, Any] = {}
        if self._crypt_shared_lib_path:
            extra["crypt_shared_lib_path"] = self._crypt_shared_lib_path
            extra["crypt_shared_lib_required"] = True
        options["auto_encryption_opts"] = self._auto_encryption_opts_factory(
            kms_providers=self._key_provider.kms_providers(),
            key_vault_namespace=self._key_vault_namespace,
            schema_map=self._schema.to_schema_map(),
            **extra,
        )
        return options

    async def _after_connect(self, client: Any) -> None:
        # Fail at connect time rather than on the first write if a key is missing.
        kv_db, kv_coll = self._key_vault_namespace.split(".", 1)
        registry = DataKeyRegistry(client[kv_db][kv_coll])
        missing = await registry.missing_key_ids(self._schema.key_ids())
        if missing:
            raise UnknownDataKeyError([format_data_key_id(k) for k in missing])

    async def close(self) -> None:
        """Close the client and drop the schema; the next connect() rebuilds it."""
        await super().close()
        self._schema = None
