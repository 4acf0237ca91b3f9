#!/usr/bin/env python3
"""
Migration script to copy the JSON file store into the SQL document store.

Reads DATA_FILE and writes every document into DATABASE_URL, keeping ids and
timestamps. Documents whose id already exists in the database are skipped,
so the script can be run more than once.

Usage:
    DATA_FILE=./data/models.json DATABASE_URL=postgresql://... python migrate_json_to_db.py
"""
import sys
from typing import Dict

from config import settings
from logger_config import setup_logger
from storage import Collection, JsonFileStore, SqlDocumentStore, StorageError

logger = setup_logger(__name__, 'migration.log')


def migrate(source: JsonFileStore, target: SqlDocumentStore) -> Dict[str, Dict[str, int]]:
    """Copy every collection from source to target and return per-collection counts."""
    stats = {}
    for collection in Collection:
        counts = {"total": 0, "inserted": 0, "skipped": 0, "errors": 0}
        for item in source.get_all(collection):
            counts["total"] += 1
            item_id = item.get("id")
            if not item_id:
                logger.warning(f"Skipping {collection.value} document without id")
                counts["skipped"] += 1
                continue

            try:
                if target.find_by_id(collection, item_id) is not None:
                    counts["skipped"] += 1
                    continue
                target.create(collection, item)
                counts["inserted"] += 1
            except StorageError as e:
                logger.error(f"Error migrating {collection.value} {item_id}: {str(e)}")
                counts["errors"] += 1

        logger.info(
            f"{collection.value}: {counts['inserted']} inserted, "
            f"{counts['skipped']} skipped, {counts['errors']} errors (of {counts['total']})"
        )
        stats[collection.value] = counts
    return stats


def main():
    logger.info(f"Migrating {settings.DATA_FILE} -> {settings.DATABASE_URL.split('://')[0]} database")
    stats = migrate(JsonFileStore(settings.DATA_FILE), SqlDocumentStore())

    errors = sum(counts["errors"] for counts in stats.values())
    if errors:
        logger.error(f"Migration finished with {errors} error(s)")
        sys.exit(1)
    logger.info("Migration completed successfully")


if __name__ == "__main__":
    main()
