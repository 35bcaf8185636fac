"""Seed script to populate the local dev database with sample notes.

Usage:
    PYTHONPATH=backend/src python backend/scripts/seed_data.py populate
    PYTHONPATH=backend/src python backend/scripts/seed_data.py populate --force
    PYTHONPATH=backend/src python backend/scripts/seed_data.py clear

Only plain notes are seeded. Vault notes need the encryption bootstrap and are
created through the API.
"""

import argparse
import asyncio
import logging

from core.config import get_settings
from db.connection import MongoConnection
from schemas.note import NoteCreate
from services.embedding_service import EmbeddingService, refresh_note_embedding
from services.note_service import NOTES_COLLECTION, NoteService

logger = logging.getLogger(__name__)

NOTES = [
    {
        'title': 'Getting Started with MongoDB Atlas',
        'markdown': (
            '# Getting Started with MongoDB Atlas\n\n'
            'MongoDB Atlas is a fully managed cloud database service.\n\n'
            '## Quick Setup\n\n'
            '1. Create an Atlas account\n'
            '2. Deploy a free M0 cluster\n'
            '3. Configure network access\n'
            '4. Create a database user\n'
            '5. Copy your connection string\n'
        ),
        'tags': ['mongodb', 'atlas', 'getting-started', 'cloud'],
        'notebook_id': 'learning',
    },
    {
        'title': 'Understanding the Aggregation Pipeline',
        'markdown': (
            '# Understanding the Aggregation Pipeline\n\n'
            'Documents flow through a series of stages, each transforming them.\n\n'
            '- `$match` filters documents; place it early\n'
            '- `$group` applies accumulators per key\n'
            '- `$lookup` joins another collection\n'
            '- `$project` reshapes documents\n'
        ),
        'tags': ['mongodb', 'aggregation', 'performance'],
        'notebook_id': 'learning',
    },
    {
        'title': 'Client-Side Field Level Encryption',
        'markdown': (
            '# Client-Side Field Level Encryption\n\n'
            'The driver encrypts designated fields before they leave the application. '
            'The server only ever stores ciphertext for those fields.\n\n'
            '- **Deterministic**: equality-queryable, leaks duplicates\n'
            '- **Random**: not queryable, strongest confidentiality\n'
        ),
        'tags': ['mongodb', 'security', 'encryption'],
        'notebook_id': 'learning',
    },
    {
        'title': 'Weekly Planning',
        'markdown': (
            '# Weekly Planning\n\n'
            '- [ ] Review open pull requests\n'
            '- [ ] Write release notes\n'
            '- [x] Rotate staging credentials\n'
        ),
        'tags': ['planning'],
        'notebook_id': 'default',
    },
]


async def populate(force: bool) -> None:
    """Insert the sample notes, generating embeddings when an API key is configured."""
    settings = get_settings()
    connection = MongoConnection(
        settings.mongodb_uri, settings.database_name, timeout_ms=settings.mongodb_timeout_ms,
    )
    embeddings = EmbeddingService(settings.openai_api_key, settings.embedding_model)
    await connection.connect()
    try:
        collection = connection.collection(NOTES_COLLECTION)
        existing = await collection.count_documents({})
        if existing and not force:
            logger.info('%d notes already exist; use --force to seed anyway', existing)
            return

        notes = NoteService(connection)
        for data in NOTES:
            note = await notes.create(NoteCreate(**data))
            await refresh_note_embedding(notes, embeddings, note)
            logger.info('Seeded note: %s', note['title'])
    finally:
        await embeddings.close()
        await connection.close()


async def clear() -> None:
    """Delete every plain note."""
    settings = get_settings()
    connection = MongoConnection(
        settings.mongodb_uri, settings.database_name, timeout_ms=settings.mongodb_timeout_ms,
    )
    await connection.connect()
    try:
        result = await connection.collection(NOTES_COLLECTION).delete_many({})
        logger.info('Deleted %d notes', result.deleted_count)
    finally:
        await connection.close()


def main() -> None:
    """Parse arguments and run the requested command."""
    logging.basicConfig(level=logging.INFO, format='%(levelname)s - %(message)s')
    parser = argparse.ArgumentParser(description='Seed the dev database with sample notes')
    parser.add_argument('command', choices=['populate', 'clear'])
    parser.add_argument('--force', action='store_true', help='Seed even if notes already exist')
    args = parser.parse_args()

    if args.command == 'populate':
        asyncio.run(populate(args.force))
    else:
        asyncio.run(clear())


if __name__ == '__main__':
    main()
