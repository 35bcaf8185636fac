"""DataKeyRegistry against a real key vault and the driver's ClientEncryption."""
import uuid

import pytest
from bson.binary import UUID_SUBTYPE, Binary
from pymongo import AsyncMongoClient
from pymongo.asynchronous.encryption import AsyncClientEncryption

from db.errors import DuplicateAltNameError
from db.key_vault import KEY_ALT_NAMES_INDEX, DataKeyRegistry
from tests.fakes import KEY_VAULT_COLLECTION


class TestKeyVaultIndex:
    """The partial unique index on keyAltNames."""

    async def test__index_is_unique_and_partial(
        self, registry: DataKeyRegistry, admin_client: AsyncMongoClient, database_name: str,
    ) -> None:
        indexes = await admin_client[database_name][KEY_VAULT_COLLECTION].index_information()

        index = indexes[KEY_ALT_NAMES_INDEX]
        assert index["unique"] is True
        assert dict(index["partialFilterExpression"]) == {"keyAltNames": {"$exists": True}}

    async def test__ensuring_twice_is_success(self, registry: DataKeyRegistry) -> None:
        await registry.ensure_key_vault_index()

    async def test__keys_without_alt_names_do_not_collide(
        self,
        registry: DataKeyRegistry,
        client_encryption: AsyncClientEncryption,
        admin_client: AsyncMongoClient,
        database_name: str,
    ) -> None:
        await client_encryption.create_data_key("local")
        await client_encryption.create_data_key("local")

        count = await admin_client[database_name][KEY_VAULT_COLLECTION].count_documents({})
        assert count == 2


class TestDataKeys:
    """Creating and reusing the vault data key."""

    async def test__create_data_key(
        self, registry: DataKeyRegistry, admin_client: AsyncMongoClient, database_name: str,
    ) -> None:
        key_id = await registry.create_data_key("local", "vaultNotesKey")

        assert key_id.subtype == UUID_SUBTYPE
        doc = await admin_client[database_name][KEY_VAULT_COLLECTION].find_one({"_id": key_id})
        assert doc["keyAltNames"] == ["vaultNotesKey"]
        assert doc["masterKey"]["provider"] == "local"

    async def test__duplicate_alt_name_rejected(
        self, registry: DataKeyRegistry, admin_client: AsyncMongoClient, database_name: str,
    ) -> None:
        await registry.create_data_key("local", "vaultNotesKey")

        with pytest.raises(DuplicateAltNameError):
            await registry.create_data_key("local", "vaultNotesKey")

        key_vault = admin_client[database_name][KEY_VAULT_COLLECTION]
        assert await key_vault.count_documents({"keyAltNames": "vaultNotesKey"}) == 1

    async def test__ensure_data_key_reuses_existing(self, registry: DataKeyRegistry) -> None:
        first = await registry.ensure_data_key("local", "vaultNotesKey")
        second = await registry.ensure_data_key("local", "vaultNotesKey")

        assert first == second
        assert await registry.get_key_id("vaultNotesKey") == first

    async def test__missing_key_ids(self, registry: DataKeyRegistry) -> None:
        key_id = await registry.create_data_key("local", "vaultNotesKey")
        unknown = Binary(uuid.uuid4().bytes, UUID_SUBTYPE)

        assert await registry.missing_key_ids([key_id, unknown]) == [unknown]
