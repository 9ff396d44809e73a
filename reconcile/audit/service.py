"""Read-only audits over identity data.

Nothing here writes to the store. The reports tell an operator whether a
migration or dedup pass is needed and which records will not line up
across collections.
"""

import logging
from typing import Any, Iterable

from reconcile.identity.keys import (
    KEY_CANONICAL,
    KEY_LEGACY,
    KEY_MISSING,
    KEY_OTHER,
    identity_key,
    key_format,
)

logger = logging.getLogger(__name__)

SAMPLE_SIZE = 3


def key_format_report(records: Iterable[Any]) -> dict:
    """Count stored jobKey formats and keep a few sample keys of each."""
    counts = {KEY_CANONICAL: 0, KEY_LEGACY: 0, KEY_MISSING: 0, KEY_OTHER: 0}
    samples: dict[str, list] = {name: [] for name in counts}
    for record in records:
        stored = getattr(record, "job_key", None) or ""
        fmt = key_format(stored)
        counts[fmt] += 1
        if stored and len(samples[fmt]) < SAMPLE_SIZE:
            samples[fmt].append(stored)
    return {"total": sum(counts.values()), "counts": counts, "samples": samples}


def find_orphans(projects: Iterable[Any], others: Iterable[Any]) -> dict:
    """Identities referenced by scopes/schedules with no matching project.

    Legacy and canonical encodings of the same key match each other.

    Returns:
        {"orphans": {identity: record_count}, "checked": int, "unresolved": int}
    """
    project_keys = {key for key in (identity_key(p) for p in projects) if key}
    orphans: dict[str, int] = {}
    checked = 0
    unresolved = 0
    for record in others:
        checked += 1
        key = identity_key(record)
        if not key:
            unresolved += 1
            continue
        if key not in project_keys:
            orphans[key] = orphans.get(key, 0) + 1

    if orphans:
        logger.info(f"[AUDIT] {len(orphans)} identities without a project ({checked} records checked)")
    return {"orphans": dict(sorted(orphans.items())), "checked": checked, "unresolved": unresolved}


def find_split_identifiers(records: Iterable[Any]) -> dict:
    """Project names that resolve to more than one identity.

    A name used under both a project number and a bare name (or with two
    different numbers) splits its totals across keys.
    """
    by_name: dict[str, set] = {}
    for record in records:
        name = (getattr(record, "project_name", "") or "").strip().lower()
        key = identity_key(record)
        if not name or not key:
            continue
        by_name.setdefault(name, set()).add(key)
    return {name: sorted(keys) for name, keys in sorted(by_name.items()) if len(keys) > 1}
