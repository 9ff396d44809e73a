"""Duplicate record detection and removal.

Records are grouped by (identity, discriminator). Scopes use their title as
the discriminator; projects group by identity alone. Each group keeps one
record and the rest are deleted.

Which record survives is explicit rather than left to store iteration order:
``lowest_id`` keeps the lexicographically smallest document id, ``first_seen``
keeps the first record in input order.

A pass is not idempotent against concurrent writers. If new duplicates can
be created while it runs, repeat until a pass removes nothing
(``dedup_until_stable``).
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable, Hashable, Iterable, Optional

from reconcile.identity.keys import identity_key
from reconcile.jobs.batch import DEFAULT_CHUNK_SIZE, BatchMutator
from reconcile.store.base import DocumentStore

logger = logging.getLogger(__name__)

KEEP_LOWEST_ID = "lowest_id"
KEEP_FIRST_SEEN = "first_seen"
KEEP_POLICIES = (KEEP_LOWEST_ID, KEEP_FIRST_SEEN)

MODE_IDENTITY = "identity"
MODE_IDENTITY_TITLE = "identity_title"
MODES = (MODE_IDENTITY, MODE_IDENTITY_TITLE)
MODE_ALIASES = {
    "by-identity-only": MODE_IDENTITY,
    "by-identity-and-title": MODE_IDENTITY_TITLE,
}

Discriminator = Callable[[Any], Hashable]


def by_identity_only(record: Any) -> Hashable:
    return None


def by_title(record: Any) -> Hashable:
    return (getattr(record, "title", "") or "").strip()


def discriminator_for(mode: str) -> Discriminator:
    """Discriminator for a dedup mode name."""
    mode = MODE_ALIASES.get(mode, mode)
    if mode == MODE_IDENTITY:
        return by_identity_only
    if mode == MODE_IDENTITY_TITLE:
        return by_title
    raise ValueError(f"Unknown dedup mode '{mode}', expected one of {MODES}")


@dataclass
class DuplicateGroup:
    identity: str
    discriminator: Hashable
    kept: Any
    removed: list = field(default_factory=list)


@dataclass
class DedupResult:
    """Records to keep and records to remove."""

    kept: list = field(default_factory=list)
    removed: list = field(default_factory=list)
    groups: list[DuplicateGroup] = field(default_factory=list)
    unresolved: int = 0

    @property
    def removed_ids(self) -> list[str]:
        return [record.id for record in self.removed]


def deduplicate(
    records: Iterable[Any],
    discriminator: Discriminator = by_identity_only,
    keep: str = KEEP_LOWEST_ID,
) -> DedupResult:
    """Split ``records`` into kept and removed.

    Records with an unresolvable identity are always kept and counted in
    ``unresolved``; they cannot be proven duplicates of anything.
    ``kept`` preserves input order.
    """
    if keep not in KEEP_POLICIES:
        raise ValueError(f"Unknown keep policy '{keep}', expected one of {KEEP_POLICIES}")

    records = list(records)
    grouped: "OrderedDict[tuple, list[tuple[int, Any]]]" = OrderedDict()
    result = DedupResult()

    for position, record in enumerate(records):
        key = identity_key(record)
        if not key:
            result.unresolved += 1
            continue
        grouped.setdefault((key, discriminator(record)), []).append((position, record))

    removed_positions = set()
    for (key, disc), members in grouped.items():
        if len(members) < 2:
            continue
        if keep == KEEP_LOWEST_ID:
            survivor = min(members, key=lambda m: (str(m[1].id), m[0]))
        else:
            survivor = members[0]
        extras = [m for m in members if m is not survivor]
        removed_positions.update(position for position, _ in extras)
        result.groups.append(
            DuplicateGroup(
                identity=key,
                discriminator=disc,
                kept=survivor[1],
                removed=[record for _, record in extras],
            )
        )

    for position, record in enumerate(records):
        if position in removed_positions:
            result.removed.append(record)
        else:
            result.kept.append(record)

    return result


@dataclass
class DedupReport:
    collection: str
    mode: str
    processed: int = 0
    kept: int = 0
    removed: int = 0
    groups: int = 0
    unresolved: int = 0
    passes: int = 1
    failed: int = 0
    dry_run: bool = False

    @property
    def skipped(self) -> int:
        return self.unresolved

    def to_dict(self) -> dict:
        return {
            "collection": self.collection,
            "mode": self.mode,
            "processed": self.processed,
            "kept": self.kept,
            "removed": self.removed,
            "groups": self.groups,
            "unresolved": self.unresolved,
            "skipped": self.skipped,
            "failed": self.failed,
            "passes": self.passes,
            "dry_run": self.dry_run,
        }


async def dedup_collection(
    store: DocumentStore,
    collection: str,
    record_type: type,
    mode: str = MODE_IDENTITY,
    keep: str = KEEP_LOWEST_ID,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    dry_run: bool = False,
    mutator: Optional[BatchMutator] = None,
) -> DedupReport:
    """Remove duplicate documents from ``collection``.

    Args:
        record_type: Record class with ``from_document`` (ProjectRecord, ScopeRecord, ...)
        mode: "identity" or "identity_title"

    Raises:
        StoreReadFailure: The collection could not be read
        StoreWriteFailure: A delete chunk failed
    """
    discriminator = discriminator_for(mode)
    documents = await store.list_all(collection)
    records = [record_type.from_document(doc.id, doc.data) for doc in documents]
    result = deduplicate(records, discriminator, keep=keep)

    for group in result.groups:
        logger.info(
            f"[DEDUP] {collection}: '{group.identity}' / {group.discriminator!r}: "
            f"keeping {group.kept.id}, removing {len(group.removed)}"
        )

    report = DedupReport(
        collection=collection,
        mode=mode,
        processed=len(records),
        kept=len(result.kept),
        removed=len(result.removed),
        groups=len(result.groups),
        unresolved=result.unresolved,
        dry_run=dry_run,
    )

    if dry_run or not result.removed:
        logger.info(
            f"[DEDUP] {collection}: {report.groups} duplicate groups, "
            f"{report.removed} {'would be ' if dry_run else ''}removed"
        )
        return report

    mutator = mutator or BatchMutator(store, chunk_size=chunk_size)
    await mutator.delete(collection, result.removed_ids)
    logger.info(f"[DEDUP] {collection}: removed {report.removed} duplicates in {report.groups} groups")
    return report


async def dedup_until_stable(
    store: DocumentStore,
    collection: str,
    record_type: type,
    mode: str = MODE_IDENTITY,
    keep: str = KEEP_LOWEST_ID,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    max_passes: int = 3,
) -> DedupReport:
    """Re-read and re-run dedup until a pass removes nothing (or ``max_passes``)."""
    max_passes = max(1, max_passes)
    total_removed = 0
    for attempt in range(1, max_passes + 1):
        report = await dedup_collection(
            store, collection, record_type, mode=mode, keep=keep, chunk_size=chunk_size
        )
        total_removed += report.removed
        if report.removed == 0:
            break
    else:
        logger.warning(f"[DEDUP] {collection}: still removing duplicates after {max_passes} passes")

    report.passes = attempt
    report.removed = total_removed
    return report
