#!/usr/bin/env python3
"""
Remove duplicate documents from a collection.

Projects are matched on jobKey alone; scopes on (jobKey, title). One record
per group is kept (lowest document id unless RECONCILE_DEDUP_KEEP_POLICY says
otherwise); the rest are deleted in chunks.

Usage:
    python scripts/dedup_collection.py projectScopes [--dry-run] [--until-stable]
"""

import asyncio
import sys

# Add project root to path
sys.path.insert(0, ".")

from reconcile.config import get_settings
from reconcile.errors import StoreWriteFailure
from reconcile.runner import ReconcileRunner
from reconcile.store.sql import SqlDocumentStore


async def dedup(collection: str, dry_run: bool, until_stable: bool) -> dict:
    settings = get_settings()
    store = await SqlDocumentStore.connect(settings.DATABASE_URL)
    try:
        runner = ReconcileRunner(store, settings)
        return await runner.dedup(collection, dry_run=dry_run, until_stable=until_stable)
    finally:
        await store.close()


if __name__ == "__main__":
    args = [a for a in sys.argv[1:] if not a.startswith("-")]
    if not args:
        print(__doc__)
        sys.exit(1)
    collection = args[0]
    dry_run = "--dry-run" in sys.argv or "-n" in sys.argv
    until_stable = "--until-stable" in sys.argv

    if not dry_run:
        response = input(f"Delete duplicates from '{collection}'? (y/N): ")
        if response.lower() != "y":
            print("Aborted.")
            sys.exit(0)

    try:
        result = asyncio.run(dedup(collection, dry_run, until_stable))
    except StoreWriteFailure as e:
        print(f"\nDEDUP ABORTED at chunk {e.chunk_index}: {e.completed} documents already deleted")
        print(f"Error: {e.cause}")
        sys.exit(2)

    print("\n" + "=" * 60)
    print(f"DEDUP SUMMARY ({result['mode']})")
    print("=" * 60)
    print(f"Processed:        {result['processed']}")
    print(f"Duplicate groups: {result['groups']}")
    print(f"{'Would remove' if dry_run else 'Removed'}:  {result['removed']}")
    print(f"Kept:             {result['kept']}")
    print(f"Unresolved (kept): {result['unresolved']}")
    if until_stable:
        print(f"Passes:           {result['passes']}")
