#!/usr/bin/env python3
"""
Migrate legacy jobKeys ("Customer|Number|Name") to the tilde format.

Safe to re-run: documents already using "~" are skipped, so a second pass
performs zero writes.

Usage:
    python scripts/migrate_job_keys.py schedules [--dry-run] [--backfill]
"""

import asyncio
import sys
from datetime import datetime, timezone

# Add project root to path
sys.path.insert(0, ".")

from reconcile.config import get_settings
from reconcile.errors import StoreWriteFailure
from reconcile.runner import ReconcileRunner
from reconcile.store.sql import SqlDocumentStore


async def migrate_job_keys(collection: str, dry_run: bool = True, backfill: bool = False) -> dict:
    settings = get_settings()
    print(f"{'[DRY RUN] ' if dry_run else ''}Migrating jobKeys in '{collection}'...")
    print(f"Timestamp: {datetime.now(timezone.utc).isoformat()}")
    print("-" * 60)

    store = await SqlDocumentStore.connect(settings.DATABASE_URL)
    try:
        runner = ReconcileRunner(store, settings)
        return await runner.migrate(collection, dry_run=dry_run, backfill_missing=backfill)
    finally:
        await store.close()


if __name__ == "__main__":
    args = [a for a in sys.argv[1:] if not a.startswith("-")]
    if not args:
        print(__doc__)
        sys.exit(1)
    collection = args[0]
    dry_run = "--dry-run" in sys.argv or "-n" in sys.argv
    backfill = "--backfill" in sys.argv

    if not dry_run:
        print("=" * 60)
        print("WARNING: This will modify the database!")
        print("Run with --dry-run to preview changes first.")
        print("=" * 60)
        response = input("Continue? (y/N): ")
        if response.lower() != "y":
            print("Aborted.")
            sys.exit(0)

    try:
        result = asyncio.run(migrate_job_keys(collection, dry_run=dry_run, backfill=backfill))
    except StoreWriteFailure as e:
        print(f"\nMIGRATION ABORTED at chunk {e.chunk_index}: {e.completed} documents already updated")
        print(f"Error: {e.cause}")
        sys.exit(2)

    print("\n" + "=" * 60)
    print("MIGRATION SUMMARY")
    print("=" * 60)
    print(f"Processed:                   {result['processed']}")
    if dry_run:
        print(f"Would update:                {result['planned']}")
    else:
        print(f"Updated:                     {result['updated']}")
    print(f"Skipped (already canonical): {result['skipped_canonical']}")
    print(f"Skipped (no jobKey):         {result['skipped_no_key']}")
    if backfill:
        print(f"Backfilled keys:             {result['backfilled']}")
        print(f"Skipped (unresolvable):      {result['skipped_unresolvable']}")

    if dry_run and result["planned"] > 0:
        print("\nTo apply changes, run without --dry-run flag.")
