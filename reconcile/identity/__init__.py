"""Project identity: jobKey resolution and legacy key migration."""

from reconcile.identity.keys import (
    build_job_key,
    canonicalize,
    identity_key,
    is_legacy_key,
    key_format,
    to_canonical,
)
from reconcile.identity.migration import (
    MigrationReport,
    migrate_collection,
    migrate_key,
    plan_key_migration,
)

__all__ = [
    "build_job_key",
    "canonicalize",
    "identity_key",
    "is_legacy_key",
    "key_format",
    "to_canonical",
    "MigrationReport",
    "migrate_collection",
    "migrate_key",
    "plan_key_migration",
]
