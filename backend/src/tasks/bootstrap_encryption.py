"""
One-time setup for client-side field level encryption.

Usage:
    PYTHONPATH=backend/src python -m tasks.bootstrap_encryption generate-master-key
    PYTHONPATH=backend/src python -m tasks.bootstrap_encryption create-data-key --env-file .env
    PYTHONPATH=backend/src python -m tasks.bootstrap_encryption all --env-file .env

Steps:
    1. Generate the 96-byte local master key (never overwritten unless --force).
    2. Ensure the partial unique index on keyAltNames in the key vault.
    3. Create the vault data key (or reuse the existing one with the same alt
       name) and print its base64 id for CSFLE_DATA_KEY_ID.
"""
import argparse
import asyncio
import logging
import re
from collections.abc import Callable
from pathlib import Path
from typing import Any

from bson.binary import Binary, UuidRepresentation
from bson.codec_options import CodecOptions
from pymongo import AsyncMongoClient
from pymongo.asynchronous.encryption import AsyncClientEncryption

from core.config import Settings, get_settings
from db.encryption_schema import format_data_key_id
from db.errors import ConfigurationError
from db.key_provider import LocalKeyProvider, generate_master_key
from db.key_vault import DataKeyRegistry

logger = logging.getLogger(__name__)

DATA_KEY_ENV_VAR = "CSFLE_DATA_KEY_ID"


def write_env_value(env_file: Path, name: str, value: str) -> None:
    """Set ``name=value`` in an env file, replacing an existing assignment if present."""
    line = f"{name}={value}"
    lines = env_file.read_text().splitlines() if env_file.exists() else []
    pattern = re.compile(rf"^\s*{re.escape(name)}\s*=")
    replaced = False
    for i, existing in enumerate(lines):
        if pattern.match(existing):
            lines[i] = line
            replaced = True
    if not replaced:
        lines.append(line)
    env_file.write_text("\n".join(lines) + "\n")
    logger.info("Wrote %s to %s", name, env_file)


async def create_vault_data_key(
    settings: Settings,
    *,
    client_factory: Callable[..., Any] = AsyncMongoClient,
    client_encryption_factory: Callable[..., Any] = AsyncClientEncryption,
) -> Binary:
    """
    Ensure the key vault index and the vault data key exist; return the key id.

    Running it again reuses the key already registered under the alt name.

    Raises:
        ConfigurationError: If the URI is missing or the master key cannot be read.
    """
    if not settings.mongodb_uri:
        raise ConfigurationError("MONGODB_URI is required")
    key_provider = LocalKeyProvider(settings.encryption_key_path)
    kms_providers = key_provider.kms_providers()
    kv_db, kv_coll = settings.key_vault_namespace.split(".", 1)

    client = client_factory(
        settings.mongodb_uri,
        timeoutMS=settings.mongodb_timeout_ms,
        uuidRepresentation="standard",
    )
    client_encryption = None
    try:
        client_encryption = client_encryption_factory(
            kms_providers,
            settings.key_vault_namespace,
            client,
            CodecOptions(uuid_representation=UuidRepresentation.STANDARD),
        )
        registry = DataKeyRegistry(client[kv_db][kv_coll], client_encryption)
        await registry.ensure_key_vault_index()
        return await registry.ensure_data_key(key_provider.name, settings.data_key_alt_name)
    finally:
        if client_encryption is not None:
            await client_encryption.close()
        await client.close()


def main() -> None:
    """Entry point for running the encryption bootstrap as a script."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    parser = argparse.ArgumentParser(description="Bootstrap client-side field level encryption")
    parser.add_argument(
        "command",
        choices=["generate-master-key", "create-data-key", "all"],
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing master key. Destroys access to data encrypted under it.",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        help=f"Record the data key id as {DATA_KEY_ENV_VAR} in this env file",
    )
    args = parser.parse_args()
    settings = get_settings()

    if args.command in ("generate-master-key", "all"):
        key_path = Path(settings.encryption_key_path)
        if key_path.exists() and not args.force and args.command == "all":
            logger.info("Master key already exists at %s, keeping it", key_path)
        else:
            generate_master_key(key_path, overwrite=args.force)
            logger.warning("Keep %s secret and out of version control", key_path)

    if args.command in ("create-data-key", "all"):
        key_id = format_data_key_id(asyncio.run(create_vault_data_key(settings)))
        logger.info("Vault data key id: %s=%s", DATA_KEY_ENV_VAR, key_id)
        if args.env_file is not None:
            write_env_value(args.env_file, DATA_KEY_ENV_VAR, key_id)


if __name__ == "__main__":
    main()
