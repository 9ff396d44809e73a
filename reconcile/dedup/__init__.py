"""Duplicate detection and removal."""

from reconcile.dedup.service import (
    KEEP_FIRST_SEEN,
    KEEP_LOWEST_ID,
    MODE_IDENTITY,
    MODE_IDENTITY_TITLE,
    DedupReport,
    DedupResult,
    by_identity_only,
    by_title,
    dedup_collection,
    dedup_until_stable,
    deduplicate,
    discriminator_for,
)

__all__ = [
    "KEEP_FIRST_SEEN",
    "KEEP_LOWEST_ID",
    "MODE_IDENTITY",
    "MODE_IDENTITY_TITLE",
    "DedupReport",
    "DedupResult",
    "by_identity_only",
    "by_title",
    "dedup_collection",
    "dedup_until_stable",
    "deduplicate",
    "discriminator_for",
]
