"""
Typed client-side field level encryption schema.

The driver expects a ``schema_map`` keyed by ``"<database>.<collection>"`` strings
containing JSON schema fragments. This module models the same information as
frozen dataclasses keyed by an explicit (database, collection) pair, validates it
on construction, and renders the driver's form only at connection time.
"""
import base64
import binascii
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Any

from bson.binary import UUID_SUBTYPE, Binary

VAULT_NOTES_COLLECTION = "vault_notes"


class EncryptionAlgorithm(StrEnum):
    """Field encryption algorithms supported by automatic encryption."""

    # Same plaintext -> same ciphertext; supports equality queries.
    DETERMINISTIC = "AEAD_AES_256_CBC_HMAC_SHA_512-Deterministic"
    # Fresh IV per encryption; not queryable.
    RANDOM = "AEAD_AES_256_CBC_HMAC_SHA_512-Random"


# BSON types that cannot be encrypted deterministically.
NON_DETERMINISTIC_BSON_TYPES = frozenset({"object", "array", "bool", "double", "decimal"})


@dataclass(frozen=True)
class FieldEncryption:
    """Encryption spec for one field: its BSON type, algorithm, and optional key override."""

    bson_type: str
    algorithm: EncryptionAlgorithm
    key_ids: tuple[Binary, ...] = ()

    def __post_init__(self) -> None:
        if (
            self.algorithm is EncryptionAlgorithm.DETERMINISTIC
            and self.bson_type in NON_DETERMINISTIC_BSON_TYPES
        ):
            raise ValueError(
                f"BSON type '{self.bson_type}' cannot use deterministic encryption",
            )


@dataclass(frozen=True)
class CollectionEncryption:
    """Encrypted fields of a single collection, keyed by field name."""

    database: str
    collection: str
    fields: Mapping[str, FieldEncryption]
    key_ids: tuple[Binary, ...] = ()

    def __post_init__(self) -> None:
        if not self.fields:
            raise ValueError(f"No encrypted fields declared for {self.namespace}")
        for name, spec in self.fields.items():
            if not (spec.key_ids or self.key_ids):
                raise ValueError(
                    f"Encrypted field '{name}' in {self.namespace} has no data key",
                )
        # Freeze the mapping so the schema cannot change under a live connection.
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    @property
    def namespace(self) -> str:
        """Return the driver namespace string, e.g. 'mongodb-notes.vault_notes'."""
        return f"{self.database}.{self.collection}"

    def referenced_key_ids(self) -> set[Binary]:
        """Return every data key id this collection's encryption depends on."""
        ids = set(self.key_ids)
        for spec in self.fields.values():
            ids.update(spec.key_ids)
        return ids

    def to_json_schema(self) -> dict[str, Any]:
        """Render this collection as an automatic-encryption JSON schema fragment."""
        properties: dict[str, Any] = {}
        for name, spec in self.fields.items():
            encrypt: dict[str, Any] = {
                "bsonType": spec.bson_type,
                "algorithm": str(spec.algorithm),
            }
            if spec.key_ids:
                encrypt["keyId"] = list(spec.key_ids)
            properties[name] = {"encrypt": encrypt}

        schema: dict[str, Any] = {"bsonType": "object", "properties": properties}
        if self.key_ids:
            schema["encryptMetadata"] = {"keyId": list(self.key_ids)}
        return schema


@dataclass(frozen=True)
class EncryptionSchema:
    """Immutable set of encrypted collections supplied to an encrypting connection."""

    collections: tuple[CollectionEncryption, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        seen: set[tuple[str, str]] = set()
        for entry in self.collections:
            key = (entry.database, entry.collection)
            if key in seen:
                raise ValueError(f"Duplicate encryption schema for {entry.namespace}")
            seen.add(key)

    def for_collection(self, database: str, collection: str) -> CollectionEncryption | None:
        """Look up the encryption spec for a (database, collection) pair."""
        for entry in self.collections:
            if entry.database == database and entry.collection == collection:
                return entry
        return None

    def key_ids(self) -> set[Binary]:
        """Return every data key id referenced anywhere in the schema."""
        ids: set[Binary] = set()
        for entry in self.collections:
            ids.update(entry.referenced_key_ids())
        return ids

    def to_schema_map(self) -> dict[str, dict[str, Any]]:
        """Render the driver's ``schema_map`` option."""
        return {entry.namespace: entry.to_json_schema() for entry in self.collections}


# Only the note body is encrypted. Titles and tags stay plaintext so the vault
# can be listed and sorted without decrypting every document.
VAULT_NOTE_ENCRYPTED_FIELDS: Mapping[str, FieldEncryption] = MappingProxyType({
    "markdown": FieldEncryption(bson_type="string", algorithm=EncryptionAlgorithm.RANDOM),
})


def parse_data_key_id(value: str) -> Binary:
    """
    Decode a base64 data key id (as printed by the bootstrap task) into a UUID Binary.

    Raises:
        ValueError: If the value is not base64 of exactly 16 bytes.
    """
    try:
        raw = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError("Data key id is not valid base64") from e
    if len(raw) != 16:
        raise ValueError(f"Data key id must decode to 16 bytes, got {len(raw)}")
    return Binary(raw, UUID_SUBTYPE)


def format_data_key_id(key_id: Binary) -> str:
    """Encode a data key id as base64 for configuration files."""
    return base64.b64encode(bytes(key_id)).decode("ascii")


def build_vault_schema(
    database: str,
    data_key_ids: Iterable[Binary],
    fields: Mapping[str, FieldEncryption] = VAULT_NOTE_ENCRYPTED_FIELDS,
) -> EncryptionSchema:
    """Build the encryption schema for the vault notes collection."""
    return EncryptionSchema(collections=(
        CollectionEncryption(
            database=database,
            collection=VAULT_NOTES_COLLECTION,
            fields=fields,
            key_ids=tuple(data_key_ids),
        ),
    ))
