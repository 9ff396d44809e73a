"""Legacy jobKey migration (``|`` separators to ``~``).

Each document whose key still uses the legacy separator is rewritten in full
with only ``jobKey`` changed. Documents already in canonical form are left
alone, so re-running the migration performs zero writes.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from reconcile.identity.keys import build_job_key, is_legacy_key, to_canonical
from reconcile.jobs.batch import DEFAULT_CHUNK_SIZE, BatchMutator
from reconcile.store.base import Document, DocumentStore

logger = logging.getLogger(__name__)

JOB_KEY_FIELD = "jobKey"


@dataclass
class MigrationPlan:
    """Writes a migration pass would issue, plus what it skipped."""

    updates: dict[str, dict] = field(default_factory=dict)
    changes: list[tuple[str, str, str]] = field(default_factory=list)  # (doc_id, old, new)
    skipped_canonical: int = 0
    skipped_no_key: int = 0
    skipped_unresolvable: int = 0
    backfilled: int = 0

    @property
    def processed(self) -> int:
        return len(self.updates) + self.skipped_canonical + self.skipped_no_key + self.skipped_unresolvable


@dataclass
class MigrationReport:
    """Completion report for a migration run."""

    collection: str
    planned: int = 0
    updated: int = 0
    skipped_canonical: int = 0
    skipped_no_key: int = 0
    skipped_unresolvable: int = 0
    backfilled: int = 0
    processed: int = 0
    failed: int = 0
    dry_run: bool = False

    @property
    def skipped(self) -> int:
        return self.skipped_canonical + self.skipped_no_key + self.skipped_unresolvable

    def to_dict(self) -> dict:
        return {
            "collection": self.collection,
            "processed": self.processed,
            "planned": self.planned,
            "updated": self.updated,
            "skipped_canonical": self.skipped_canonical,
            "skipped_no_key": self.skipped_no_key,
            "skipped_unresolvable": self.skipped_unresolvable,
            "backfilled": self.backfilled,
            "skipped": self.skipped,
            "failed": self.failed,
            "dry_run": self.dry_run,
        }


def migrate_key(job_key: str) -> str:
    """Canonical form of a stored key. Idempotent."""
    return to_canonical(job_key)


def plan_key_migration(documents: Iterable[Document], backfill_missing: bool = False) -> MigrationPlan:
    """Decide which documents need a key rewrite.

    Args:
        documents: Snapshot of one collection
        backfill_missing: Also write a constructed key for documents with no
            jobKey (those that cannot be resolved are still skipped)
    """
    plan = MigrationPlan()

    for doc in documents:
        old_key = doc.data.get(JOB_KEY_FIELD)

        if not old_key:
            if not backfill_missing:
                plan.skipped_no_key += 1
                continue
            new_key = build_job_key(
                str(doc.data.get("customer") or ""),
                str(doc.data.get("projectNumber") or ""),
                str(doc.data.get("projectName") or ""),
            )
            if not new_key:
                plan.skipped_unresolvable += 1
                continue
            plan.backfilled += 1
            old_key = ""
        else:
            old_key = str(old_key)
            if not is_legacy_key(old_key):
                plan.skipped_canonical += 1
                continue
            new_key = migrate_key(old_key)

        plan.updates[doc.id] = {**doc.data, JOB_KEY_FIELD: new_key}
        plan.changes.append((doc.id, old_key, new_key))

    return plan


async def migrate_collection(
    store: DocumentStore,
    collection: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    dry_run: bool = False,
    backfill_missing: bool = False,
    mutator: Optional[BatchMutator] = None,
) -> MigrationReport:
    """Rewrite legacy keys in ``collection``.

    Raises:
        StoreReadFailure: The collection could not be read
        StoreWriteFailure: A chunk failed; ``completed`` tells how many
            documents were already rewritten
    """
    documents = await store.list_all(collection)
    plan = plan_key_migration(documents, backfill_missing=backfill_missing)

    logger.info(
        f"[MIGRATE] {collection}: {len(documents)} documents, {len(plan.updates)} to rewrite, "
        f"{plan.skipped_canonical} canonical, {plan.skipped_no_key} without key"
    )
    for doc_id, old_key, new_key in plan.changes:
        logger.debug(f"[MIGRATE] {doc_id}: '{old_key}' -> '{new_key}'")

    report = MigrationReport(
        collection=collection,
        skipped_canonical=plan.skipped_canonical,
        skipped_no_key=plan.skipped_no_key,
        skipped_unresolvable=plan.skipped_unresolvable,
        backfilled=plan.backfilled,
        processed=plan.processed,
        planned=len(plan.updates),
        dry_run=dry_run,
    )

    if dry_run:
        logger.info(f"[MIGRATE] Dry run: would update {report.planned} documents in {collection}")
        return report
    if not plan.updates:
        return report

    mutator = mutator or BatchMutator(store, chunk_size=chunk_size)
    batch = await mutator.update(collection, plan.updates)
    report.updated = batch.completed

    logger.info(f"[MIGRATE] {collection}: updated {report.updated} documents")
    return report
